"""
Fee schedule configuration.

Loaded once at process start; the resulting FeeSchedule is immutable.

    fees:
      bps_denominator: 10000
      max_fee_bps: 3000
      max_referrer_fee_bps: 500
    tokens:
      allowed_mints:
        - Gh9ZwEmdLJ8DscKNTkTqPbNwLNNBjuSzaG9Vp2KGtKJr
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from splitledger.core.exceptions import ConfigError
from splitledger.core.fees import (
    BPS_DENOMINATOR,
    DEVNET_USDC_MINT,
    MAX_FEE_BPS,
    MAX_REFERRER_FEE_BPS,
    FeeSchedule,
)


_ALLOWED_TOP_KEYS    = {"fees", "tokens"}
_ALLOWED_FEE_KEYS    = {"bps_denominator", "max_fee_bps", "max_referrer_fee_bps"}
_ALLOWED_TOKEN_KEYS  = {"allowed_mints"}


def load_fee_schedule(path: str) -> FeeSchedule:
    """Load and validate a fee schedule from a YAML file.

    Missing keys fall back to the built-in defaults. Unknown keys are
    rejected so a typo cannot silently loosen a limit.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the YAML is invalid or violates fee invariants
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Fee schedule config not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    return fee_schedule_from_dict({} if raw is None else raw)


def fee_schedule_from_dict(raw: Dict[str, Any]) -> FeeSchedule:
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")
    _reject_unknown(raw, _ALLOWED_TOP_KEYS, "configuration")

    fees = raw.get("fees")
    if fees is None:
        fees = {}
    if not isinstance(fees, dict):
        raise ConfigError("'fees' must be a mapping")
    _reject_unknown(fees, _ALLOWED_FEE_KEYS, "fees")

    tokens = raw.get("tokens")
    if tokens is None:
        tokens = {}
    if not isinstance(tokens, dict):
        raise ConfigError("'tokens' must be a mapping")
    _reject_unknown(tokens, _ALLOWED_TOKEN_KEYS, "tokens")

    mints = tokens.get("allowed_mints", [DEVNET_USDC_MINT])
    if not isinstance(mints, list) or not all(isinstance(m, str) and m for m in mints):
        raise ConfigError("'tokens.allowed_mints' must be a list of non-empty strings")

    return FeeSchedule(
        bps_denominator=      _int_field(fees, "bps_denominator", BPS_DENOMINATOR),
        max_fee_bps=          _int_field(fees, "max_fee_bps", MAX_FEE_BPS),
        max_referrer_fee_bps= _int_field(fees, "max_referrer_fee_bps", MAX_REFERRER_FEE_BPS),
        allowed_mints=        frozenset(mints),
    )


def _reject_unknown(data: Dict[str, Any], allowed: set, path: str) -> None:
    unknown = set(data.keys()) - allowed
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {sorted(unknown)}")


def _int_field(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'fees.{key}' must be an integer", {"got": value})
    return value
