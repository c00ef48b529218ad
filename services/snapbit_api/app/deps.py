"""Common FastAPI dependencies used across routers."""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from libs.db.db import get_db

from .config import Settings
from .ledger import LedgerStore
from .provider import ProviderClient


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_ledger_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> LedgerStore:
    return LedgerStore(db, service_name=settings.service_name)


async def get_provider_client(
    settings: Settings = Depends(get_settings_dependency),
) -> AsyncIterator[ProviderClient]:
    client = ProviderClient(settings)
    try:
        yield client
    finally:
        await client.aclose()


__all__ = ["get_db", "get_ledger_store", "get_provider_client", "get_settings_dependency"]
