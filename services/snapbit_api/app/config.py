"""Environment configuration for the SnapBit API."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.secrets import get_secret

IdentityStrategy = Literal["userinfo", "id_token"]

# Settings that may live in the secret manager instead of plain environment.
_SECRET_FIELDS = {
    "api_key": "API_KEY",
    "provider_client_secret": "PROVIDER_CLIENT_SECRET",
    "credential_private_key": "CREDENTIAL_PRIVATE_KEY",
}


class Settings(BaseSettings):
    """Immutable process configuration, built once at start-up."""

    model_config = SettingsConfigDict(
        env_prefix="SNAPBIT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    service_name: str = "snapbit-api"
    api_key: str = Field("", description="Shared secret expected as bearer token", repr=False)

    provider_client_id: str = ""
    provider_client_secret: str = Field("", repr=False)
    provider_authorize_url: str = "https://apis.roblox.com/oauth/v1/authorize"
    provider_token_url: str = "https://apis.roblox.com/oauth/v1/token"
    provider_userinfo_url: str = "https://apis.roblox.com/oauth/v1/userinfo"
    provider_jwks_url: str = "https://apis.roblox.com/oauth/v1/certs"
    provider_issuer: str = "https://apis.roblox.com/oauth/"
    provider_timeout_seconds: float = Field(10.0, gt=0)

    oauth_redirect_uri: str = "https://snapbit-api.onrender.com/oauth/callback"
    oauth_scope: str = "openid profile"
    identity_strategy: IdentityStrategy = "userinfo"
    id_token_algorithms: List[str] = Field(default_factory=lambda: ["ES256", "RS256"])

    frontend_landing_url: str = "https://snapbitportal.web.app/dashboard"
    error_redirect_path: str = "/auth"

    state_cookie_name: str = "oauth_state"
    state_cookie_max_age: int = Field(600, gt=0)
    state_cookie_secure: bool = True
    state_nbytes: int = Field(32, ge=16)

    register_on_login: bool = False

    credential_private_key: str = Field("", description="PEM private key for outbound credentials", repr=False)
    credential_algorithm: Literal["RS256", "ES256"] = "RS256"
    credential_ttl_seconds: int = Field(60, gt=0)
    credential_issuer: str = "snapbit-api"
    credential_key_id: Optional[str] = None

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["https://snapbitportal.web.app"])
    enable_docs: bool = True
    auto_create_tables: bool = True

    @property
    def issues_credentials(self) -> bool:
        return bool(self.credential_private_key)


def _with_managed_secrets(settings: Settings) -> Settings:
    updates: dict[str, str] = {}
    for field_name, secret_key in _SECRET_FIELDS.items():
        if getattr(settings, field_name):
            continue
        value = get_secret(secret_key)
        if value:
            updates[field_name] = value
    if not updates:
        return settings
    return settings.model_copy(update=updates)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""

    return _with_managed_secrets(Settings())
