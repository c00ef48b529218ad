"""Audit trail of ledger mutations and OAuth registrations."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AuditLog(Base):
    """One applied mutation, e.g. ``tokens.added`` for a given user."""

    __tablename__ = "audit_logs"

    id: int = Column(Integer, primary_key=True)
    service: str = Column(String(64), nullable=False, index=True)
    action: str = Column(String(64), nullable=False)
    subject_id: str = Column(String(64), nullable=False, index=True)
    details: Dict[str, object] = Column(JSON, nullable=False, default=dict)
    correlation_id: Optional[str] = Column(String(64))
    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


__all__ = ["Base", "AuditLog"]
