"""
splitledger/cli/verify.py

splitledger verify — audit ledger verification.

Usage:
    splitledger verify <ledger>                  Human output (default)
    splitledger verify <ledger> --format json    Machine-readable JSON
    splitledger verify <ledger> --quiet          Exit code only
    splitledger verify <ledger> --no-color       Disable ANSI

Exit codes:
    0  Ledger fully valid (schema, chain, signatures, balanced records)
    1  Ledger has violations
    2  Error (file missing, malformed JSON)
"""

import json
import sys
from pathlib import Path

import click

from splitledger.ledger.replay import AuditReplay, AuditSummary


class _Color:
    """ANSI color wrapper. Off when not a TTY or with --no-color."""
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, code: str, s: str) -> str:
        return f"\033[{code}m{s}\033[0m" if cls._on else s

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("32", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("31", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("1", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("2", s)


def _label(text: str) -> str:
    return _Color.dim(f"{text:<16}")


def _row(label: str, ok: bool, value: str) -> str:
    mark = _Color.green("OK  ") if ok else _Color.red("FAIL")
    return f"  {_label(label)}  {mark}  {value}"


@click.command(name="verify")
@click.argument("ledger", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option("--quiet", is_flag=True, default=False,
              help="Suppress output. Exit code only (0=valid, 1=invalid, 2=error).")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(ledger: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """
    Verify a settlement audit ledger.

    LEDGER is the path to a .jsonl audit ledger.
    """
    _Color.configure(not no_color)
    ledger_path = Path(ledger)

    replay = AuditReplay()
    try:
        replay.load(ledger_path)
    except (FileNotFoundError, ValueError) as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    summary = replay.verify()

    if quiet:
        sys.exit(0 if summary.is_valid else 1)

    if fmt == "json":
        report = summary.to_dict()
        report["ledger"] = str(ledger_path)
        click.echo(json.dumps(report, indent=2))
    else:
        _output_human(summary, ledger_path)

    sys.exit(0 if summary.is_valid else 1)


def _output_human(summary: AuditSummary, ledger_path: Path) -> None:
    bar = "═" * 60
    by_type = {}
    for v in summary.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    click.echo()
    click.echo(_Color.bold(f"  {bar}"))
    click.echo(_Color.bold("  splitledger  ·  Audit Ledger Verification"))
    click.echo(_Color.bold(f"  {bar}"))
    click.echo(f"  {_label('Ledger')}        {ledger_path}")
    click.echo(f"  {_label('Entries')}        {summary.total_entries:,}")
    click.echo()

    checks = [
        ("Schema",     "schema"),
        ("Sequence",   "sequence_gap"),
        ("Chain",      "chain_break"),
        ("Signatures", "invalid_signature"),
        ("Nonces",     "duplicate_nonce"),
        ("Balance",    "unbalanced"),
        ("Purchases",  "duplicate_purchase"),
    ]
    for label, kind in checks:
        found = by_type.get(kind, [])
        if found:
            click.echo(_row(label, False, f"{len(found)} violation(s), first at sequence {found[0].at_sequence}"))
        else:
            click.echo(_row(label, True, "clean"))

    if summary.total_settled:
        click.echo()
        for asset, total in sorted(summary.total_settled.items()):
            click.echo(f"  {_label('Settled')}        {total:,} {asset}")

    if summary.violations:
        click.echo()
        for v in summary.violations[:20]:
            click.echo(f"  [{v.at_sequence}] {v.violation_type}: {v.detail}")
        if len(summary.violations) > 20:
            click.echo(f"  ... {len(summary.violations) - 20} more")

    click.echo()
    if summary.is_valid:
        click.echo(_Color.green("  LEDGER VALID"))
    else:
        click.echo(_Color.red("  LEDGER INVALID"))
    click.echo()


def _emit_error(message: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({"valid": False, "error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
