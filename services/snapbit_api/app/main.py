"""SnapBit API: OAuth sign-in and the token ledger."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from infra import AuditBase, LedgerBase
from libs.db import db
from libs.observability.logging import RequestContextMiddleware, configure_logging
from libs.observability.metrics import setup_metrics

from .config import Settings, get_settings
from .errors import install_error_handlers
from .routers import oauth, tokens
from .schemas import HealthResponse
from .security import AccessGateMiddleware

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]


def _create_tables() -> None:
    LedgerBase.metadata.create_all(bind=db.engine)
    AuditBase.metadata.create_all(bind=db.engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.service_name)

    docs_kwargs = {} if settings.enable_docs else {"docs_url": None, "redoc_url": None, "openapi_url": None}
    app = FastAPI(title="SnapBit API", version="1.0.0", **docs_kwargs)
    app.state.settings = settings

    if not settings.api_key:
        logger.warning("SNAPBIT_API_KEY is not set; every gated route will answer 401")
    if settings.auto_create_tables:
        _create_tables()

    install_error_handlers(app)

    # Starlette wraps in reverse order: CORS runs first, the gate last.
    app.add_middleware(AccessGateMiddleware, api_key=settings.api_key)
    setup_metrics(app, service_name=settings.service_name)
    app.add_middleware(RequestContextMiddleware, service_name=settings.service_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        allow_credentials=True,
    )

    app.include_router(oauth.router)
    app.include_router(tokens.router)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse()

    return app


app = create_app()


__all__ = ["app", "create_app"]
