"""Helpers to record audit trail events."""
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from infra import AuditLog
from libs.observability.logging import get_correlation_id


def record_audit(
    db: Session,
    *,
    service: str,
    action: str,
    subject_id: str,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Stage an :class:`AuditLog` entry in the caller's transaction.

    The entry is flushed but not committed so it lands atomically with the
    mutation it describes.
    """

    entry = AuditLog(
        service=service,
        action=action,
        subject_id=subject_id,
        details=details or {},
        correlation_id=get_correlation_id(),
    )
    db.add(entry)
    db.flush()
    return entry


__all__ = ["record_audit"]
