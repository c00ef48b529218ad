"""Shared-secret access gate and outbound credential signing."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from jose import jwt
from jose.exceptions import JOSEError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED
from starlette.types import ASGIApp

from .config import Settings
from .provider import ProviderIdentity

logger = logging.getLogger(__name__)

OPEN_PATHS = ("/health", "/auth")
OPEN_PREFIXES = ("/oauth/",)


class CredentialSigningError(Exception):
    """Raised when the outbound credential cannot be minted."""

    code = "credential_unavailable"


def bearer_matches(authorization: str | None, api_key: str) -> bool:
    """Return whether ``authorization`` is ``Bearer <api_key>``.

    An unset ``api_key`` never matches, so a misconfigured deployment fails
    closed.
    """

    if not api_key or not authorization:
        return False
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials:
        return False
    return hmac.compare_digest(credentials.strip().encode("utf-8"), api_key.encode("utf-8"))


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Reject requests lacking the shared API key, except on open paths."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        api_key: str,
        open_paths: Iterable[str] = OPEN_PATHS,
        open_prefixes: Iterable[str] = OPEN_PREFIXES,
    ) -> None:
        super().__init__(app)
        self._api_key = api_key
        self._open_paths = frozenset(open_paths)
        self._open_prefixes = tuple(open_prefixes)

    def is_open(self, path: str) -> bool:
        if path in self._open_paths:
            return True
        return path.startswith(self._open_prefixes)

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if self.is_open(request.url.path):
            return await call_next(request)
        if not bearer_matches(request.headers.get("Authorization"), self._api_key):
            logger.info("Rejected request without valid API key", extra={"path": request.url.path})
            return JSONResponse({"error": "Unauthorized"}, status_code=HTTP_401_UNAUTHORIZED)
        return await call_next(request)


def issue_session_credential(
    identity: ProviderIdentity,
    settings: Settings,
    *,
    now: datetime | None = None,
) -> str:
    """Sign the short-lived credential handed to the front-end after login."""

    if not settings.credential_private_key:
        raise CredentialSigningError("No signing key configured")

    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": identity.sub,
        "displayName": identity.display_name,
        "iss": settings.credential_issuer,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=settings.credential_ttl_seconds)).timestamp()),
    }
    headers = {"kid": settings.credential_key_id} if settings.credential_key_id else None
    try:
        return jwt.encode(
            claims,
            settings.credential_private_key,
            algorithm=settings.credential_algorithm,
            headers=headers,
        )
    except (JOSEError, ValueError) as exc:
        logger.error("Signing the outbound credential failed", exc_info=True)
        raise CredentialSigningError("Signing key rejected") from exc


__all__ = [
    "AccessGateMiddleware",
    "CredentialSigningError",
    "OPEN_PATHS",
    "OPEN_PREFIXES",
    "bearer_matches",
    "issue_session_credential",
]
