import os
from pathlib import Path

TEST_DB = os.getenv("TEST_DATABASE_PATH", "/tmp/snapbit_tests.db")
os.environ.setdefault("SNAPBIT_DATABASE_URL", f"sqlite+pysqlite:///{TEST_DB}")
os.environ.setdefault("SNAPBIT_API_KEY", "test-api-key")
os.environ.setdefault("SNAPBIT_PROVIDER_CLIENT_ID", "test-client")
os.environ.setdefault("SNAPBIT_PROVIDER_CLIENT_SECRET", "test-secret")
os.environ.setdefault("SECRET_MANAGER_PROVIDER", "environment")

from libs.db import db  # noqa: E402

if str(db.engine.url) != os.environ["SNAPBIT_DATABASE_URL"]:
    db.engine.dispose()
    new_engine = db.build_engine(os.environ["SNAPBIT_DATABASE_URL"])
    db.engine = new_engine
    db.SessionLocal.configure(bind=new_engine)

# Ensure database file exists
if os.environ["SNAPBIT_DATABASE_URL"].startswith("sqlite"):
    Path(TEST_DB).touch()

from infra import AuditBase, LedgerBase  # noqa: E402

LedgerBase.metadata.create_all(bind=db.engine)
AuditBase.metadata.create_all(bind=db.engine)
