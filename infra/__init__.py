"""Persistence models for the SnapBit backend."""

from .audit_models import AuditLog
from .audit_models import Base as AuditBase
from .ledger_models import Base as LedgerBase
from .ledger_models import LedgerRecord

__all__ = [
    "AuditBase",
    "AuditLog",
    "LedgerBase",
    "LedgerRecord",
]
