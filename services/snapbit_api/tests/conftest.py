from __future__ import annotations

from typing import Callable

import pytest
import respx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from infra import AuditBase, LedgerBase
from libs.db.db import build_engine, get_db
from services.snapbit_api.app.config import Settings
from services.snapbit_api.app.main import create_app

from .helpers import API_KEY, make_settings


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    LedgerBase.metadata.create_all(engine)
    AuditBase.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield TestingSessionLocal
    AuditBase.metadata.drop_all(engine)
    LedgerBase.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def app_factory(session_factory) -> Callable[[Settings], FastAPI]:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def _build(settings: Settings) -> FastAPI:
        app = create_app(settings)
        app.dependency_overrides[get_db] = override_get_db
        return app

    return _build


@pytest.fixture()
def client_factory(app_factory):
    clients: list[TestClient] = []

    def _build(settings: Settings) -> TestClient:
        test_client = TestClient(
            app_factory(settings),
            base_url="https://testserver",
            follow_redirects=False,
        )
        clients.append(test_client)
        return test_client

    yield _build
    for test_client in clients:
        test_client.close()


@pytest.fixture()
def client(client_factory, settings) -> TestClient:
    return client_factory(settings)


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {API_KEY}"}


@pytest.fixture()
def provider_mock():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture(scope="session")
def rsa_key_pair() -> tuple[str, str]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_pem, public_pem
