"""Token ledger persistence.

Every operation is an upsert: unknown users get a zero-balance record on first
touch. Balance changes are applied by the database in a single
``INSERT .. ON CONFLICT DO UPDATE`` statement so concurrent increments for the
same user never lose an update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DataError, SQLAlchemyError
from sqlalchemy.orm import Session

from infra import LedgerRecord
from libs.audit import record_audit
from libs.observability.metrics import record_ledger_mutation

from .errors import ClientInputError, LedgerUnavailable
from .league import DEFAULT_LEAGUE, classify

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class LedgerEntry:
    """Committed view of a ledger record, league already recomputed."""

    user_id: str
    balance: int
    league: str
    is_registered: bool


class LedgerStore:
    """Read, increment and register operations over ``token_ledger``."""

    def __init__(self, db: Session, *, service_name: str = "snapbit-api") -> None:
        self._db = db
        self._service_name = service_name

    def get_or_create(self, user_id: str) -> LedgerEntry:
        def statement(insert):
            return insert(LedgerRecord).values(**_fresh_values(user_id)).on_conflict_do_nothing(
                index_elements=[LedgerRecord.user_id]
            )

        return self._apply(user_id, statement)

    def increment(self, user_id: str, amount: int) -> LedgerEntry:
        """Add ``amount`` (any sign) to the balance and return the new state."""

        if amount < 0:
            # Negative deltas are accepted and the balance is not floored.
            logger.info("Applying negative token delta", extra={"user_id": user_id, "amount": amount})

        def statement(insert):
            stmt = insert(LedgerRecord).values(
                **_fresh_values(user_id, balance=amount, league=classify(amount))
            )
            return stmt.on_conflict_do_update(
                index_elements=[LedgerRecord.user_id],
                set_={
                    "balance": LedgerRecord.balance + stmt.excluded.balance,
                    "updated_at": func.now(),
                },
            )

        return self._apply(
            user_id,
            statement,
            action="tokens.added",
            details={"amount": amount},
        )

    def register(
        self,
        user_id: str,
        *,
        display_name: Optional[str] = None,
        action: str = "tokens.registered",
    ) -> LedgerEntry:
        """Mark the user registered; the flag never goes back to false."""

        def statement(insert):
            stmt = insert(LedgerRecord).values(
                **_fresh_values(user_id, is_registered=True, display_name=display_name)
            )
            return stmt.on_conflict_do_update(
                index_elements=[LedgerRecord.user_id],
                set_={
                    "is_registered": True,
                    "display_name": func.coalesce(
                        stmt.excluded.display_name, LedgerRecord.display_name
                    ),
                    "updated_at": func.now(),
                },
            )

        return self._apply(user_id, statement, action=action)

    def _insert_factory(self):
        dialect = self._db.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise LedgerUnavailable(f"Unsupported ledger dialect: {dialect}") from None

    def _apply(
        self,
        user_id: str,
        statement,
        *,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntry:
        insert = self._insert_factory()
        try:
            self._db.execute(statement(insert))
            record = self._db.scalar(
                select(LedgerRecord)
                .where(LedgerRecord.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            if record is None:
                raise LedgerUnavailable(f"Ledger record for {user_id} vanished after upsert")

            league = classify(record.balance)
            if record.league != league:
                record.league = league
            if action:
                record_audit(
                    self._db,
                    service=self._service_name,
                    action=action,
                    subject_id=user_id,
                    details={**(details or {}), "balance": record.balance, "league": league},
                )
            entry = LedgerEntry(
                user_id=record.user_id,
                balance=record.balance,
                league=league,
                is_registered=bool(record.is_registered),
            )
            self._db.commit()
        except (DataError, OverflowError) as exc:
            # The balance column cannot hold the value.
            self._db.rollback()
            logger.info("Rejected out of range ledger value", extra={"user_id": user_id, "detail": str(exc)})
            raise ClientInputError("Token amount out of range") from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Ledger operation failed", extra={"user_id": user_id})
            raise LedgerUnavailable("Ledger store unavailable") from exc
        except LedgerUnavailable:
            self._db.rollback()
            raise

        if action:
            record_ledger_mutation(action)
        return entry


def _fresh_values(
    user_id: str,
    *,
    balance: int = 0,
    league: str = DEFAULT_LEAGUE,
    is_registered: bool = False,
    display_name: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "balance": balance,
        "league": league,
        "is_registered": is_registered,
        "display_name": display_name,
    }


__all__ = ["LedgerEntry", "LedgerStore"]
