"""HTTP client for the identity provider's OAuth2/OIDC endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

from .config import Settings

logger = logging.getLogger(__name__)

# Claims tried in order for a human readable name before falling back to ``sub``.
DISPLAY_NAME_CLAIMS = ("name", "nickname", "preferred_username")
_LOGGED_BODY_LIMIT = 512


class ProviderError(Exception):
    """Base class for failures talking to the identity provider."""

    code = "provider_error"


class TokenExchangeFailed(ProviderError):
    code = "token_exchange_failed"


class UserInfoFailed(ProviderError):
    code = "userinfo_failed"


class IdentityTokenInvalid(ProviderError):
    code = "identity_token_invalid"


@dataclass(frozen=True)
class ProviderTokens:
    access_token: str
    id_token: Optional[str] = None


@dataclass(frozen=True)
class ProviderIdentity:
    """Verified identity claims for the user who completed the flow."""

    sub: str
    display_name: str
    preferred_username: Optional[str] = None
    claims: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any], error: type[ProviderError]) -> "ProviderIdentity":
        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            raise error("Identity claims carry no usable subject")
        preferred_username = claims.get("preferred_username")
        if not isinstance(preferred_username, str) or not preferred_username:
            preferred_username = None
        display_name = sub
        for claim in DISPLAY_NAME_CLAIMS:
            value = claims.get(claim)
            if isinstance(value, str) and value.strip():
                display_name = value.strip()
                break
        return cls(
            sub=sub,
            display_name=display_name,
            preferred_username=preferred_username,
            claims=dict(claims),
        )


def _truncate(text: str) -> str:
    if len(text) <= _LOGGED_BODY_LIMIT:
        return text
    return text[:_LOGGED_BODY_LIMIT] + "..."


def _json_object(response: httpx.Response, error: type[ProviderError], what: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise error(f"{what} response is not JSON") from exc
    if not isinstance(data, dict):
        raise error(f"{what} response must be a JSON object")
    return data


class ProviderClient:
    """Performs the outbound calls of the authorization-code flow.

    Every call is bounded by ``provider_timeout_seconds``; timeouts and
    transport errors are reported as the same :class:`ProviderError`
    subclass as an explicit non-2xx answer.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.provider_timeout_seconds)

    @property
    def strategy(self) -> str:
        return self._settings.identity_strategy

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self._settings.provider_client_id,
            "response_type": "code",
            "redirect_uri": self._settings.oauth_redirect_uri,
            "scope": self._settings.oauth_scope,
            "state": state,
        }
        return f"{self._settings.provider_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderTokens:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._settings.oauth_redirect_uri,
        }
        try:
            response = await self._client.post(
                self._settings.provider_token_url,
                data=data,
                auth=httpx.BasicAuth(
                    self._settings.provider_client_id, self._settings.provider_client_secret
                ),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Token exchange request failed", extra={"error": repr(exc)})
            raise TokenExchangeFailed("Token endpoint unreachable") from exc

        if response.is_error:
            logger.warning(
                "Token exchange rejected",
                extra={"status_code": response.status_code, "body": _truncate(response.text)},
            )
            raise TokenExchangeFailed(f"Token endpoint answered {response.status_code}")

        payload = _json_object(response, TokenExchangeFailed, "Token")
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeFailed("Token response carries no access_token")
        id_token = payload.get("id_token")
        if id_token is not None and not isinstance(id_token, str):
            raise TokenExchangeFailed("Token response carries a malformed id_token")
        return ProviderTokens(access_token=access_token, id_token=id_token or None)

    async def fetch_user_info(self, access_token: str) -> ProviderIdentity:
        try:
            response = await self._client.get(
                self._settings.provider_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Userinfo request failed", extra={"error": repr(exc)})
            raise UserInfoFailed("Userinfo endpoint unreachable") from exc

        if response.is_error:
            logger.warning(
                "Userinfo rejected",
                extra={"status_code": response.status_code, "body": _truncate(response.text)},
            )
            raise UserInfoFailed(f"Userinfo endpoint answered {response.status_code}")

        claims = _json_object(response, UserInfoFailed, "Userinfo")
        return ProviderIdentity.from_claims(claims, UserInfoFailed)

    async def fetch_signing_keys(self) -> list[Dict[str, Any]]:
        try:
            response = await self._client.get(
                self._settings.provider_jwks_url, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            logger.warning("JWKS request failed", extra={"error": repr(exc)})
            raise IdentityTokenInvalid("Key set endpoint unreachable") from exc
        if response.is_error:
            logger.warning("JWKS rejected", extra={"status_code": response.status_code})
            raise IdentityTokenInvalid(f"Key set endpoint answered {response.status_code}")

        payload = _json_object(response, IdentityTokenInvalid, "Key set")
        keys = payload.get("keys")
        if not isinstance(keys, list):
            raise IdentityTokenInvalid("Key set carries no keys")
        return [key for key in keys if isinstance(key, dict)]

    async def verify_identity_token(
        self, id_token: str, *, access_token: Optional[str] = None
    ) -> ProviderIdentity:
        """Verify ``id_token`` against the provider's current key set.

        The key is picked by the ``kid`` header; signature, issuer, audience
        (our client id) and expiry are all checked.
        """

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as exc:
            raise IdentityTokenInvalid("Identity token header is malformed") from exc

        kid = header.get("kid")
        if not kid:
            raise IdentityTokenInvalid("Identity token names no key id")

        keys = await self.fetch_signing_keys()
        key = next((candidate for candidate in keys if candidate.get("kid") == kid), None)
        if key is None:
            logger.warning("Identity token signed with unknown key", extra={"kid": kid})
            raise IdentityTokenInvalid("Identity token signed with an unknown key")

        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=list(self._settings.id_token_algorithms),
                audience=self._settings.provider_client_id,
                issuer=self._settings.provider_issuer,
                access_token=access_token,
            )
        except JWTError as exc:
            logger.warning("Identity token rejected", extra={"error": str(exc), "kid": kid})
            raise IdentityTokenInvalid("Identity token failed verification") from exc

        return ProviderIdentity.from_claims(claims, IdentityTokenInvalid)

    async def fetch_identity(self, tokens: ProviderTokens) -> ProviderIdentity:
        """Resolve the identity with the configured strategy."""

        if self.strategy == "id_token":
            if not tokens.id_token:
                raise IdentityTokenInvalid("Token response carries no id_token")
            return await self.verify_identity_token(tokens.id_token, access_token=tokens.access_token)
        return await self.fetch_user_info(tokens.access_token)

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()


__all__ = [
    "DISPLAY_NAME_CLAIMS",
    "IdentityTokenInvalid",
    "ProviderClient",
    "ProviderError",
    "ProviderIdentity",
    "ProviderTokens",
    "TokenExchangeFailed",
    "UserInfoFailed",
]
