"""Database helpers shared across services."""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from libs.env import get_database_url


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine, serialising SQLite writers with ``BEGIN IMMEDIATE``.

    pysqlite defers locking until the first write which lets two readers
    deadlock when both try to upgrade. Taking the write lock when the
    transaction starts makes concurrent ledger increments queue on the busy
    timeout instead.
    """

    if not url.startswith("sqlite"):
        return create_engine(url, future=True, **kwargs)

    connect_args = dict(kwargs.pop("connect_args", {}))
    connect_args.setdefault("check_same_thread", False)
    connect_args.setdefault("timeout", 30)
    engine = create_engine(url, future=True, connect_args=connect_args, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):  # pragma: no cover - driver hook
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


DB_URL = get_database_url(env_var="SNAPBIT_DATABASE_URL")

engine = build_engine(DB_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
