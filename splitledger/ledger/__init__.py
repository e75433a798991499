from splitledger.ledger.envelope import AuditEnvelope, GENESIS_HASH
from splitledger.ledger.recorder import AuditLedger, EventRecorder, MemoryRecorder
from splitledger.ledger.replay import AuditReplay, AuditSummary, AuditViolation

__all__ = [
    "AuditEnvelope",
    "GENESIS_HASH",
    "AuditLedger",
    "EventRecorder",
    "MemoryRecorder",
    "AuditReplay",
    "AuditSummary",
    "AuditViolation",
]
