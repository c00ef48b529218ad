"""SQLAlchemy model for the per-user token ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LedgerRecord(Base):
    """Token balance, derived league and registration flag for one provider user."""

    __tablename__ = "token_ledger"

    id: int = Column(Integer, primary_key=True)
    user_id: str = Column(String(64), nullable=False, unique=True, index=True)
    balance: int = Column(BigInteger, nullable=False, default=0)
    league: str = Column(String(32), nullable=False, default="Bronze")
    is_registered: bool = Column(Boolean, nullable=False, default=False)
    display_name: Optional[str] = Column(String(128))
    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: datetime = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


__all__ = ["Base", "LedgerRecord"]
