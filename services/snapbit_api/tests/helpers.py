from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from services.snapbit_api.app.config import Settings

API_KEY = "test-api-key"
PROVIDER_BASE = "https://provider.test"
AUTHORIZE_URL = f"{PROVIDER_BASE}/oauth/v1/authorize"
TOKEN_URL = f"{PROVIDER_BASE}/oauth/v1/token"
USERINFO_URL = f"{PROVIDER_BASE}/oauth/v1/userinfo"
JWKS_URL = f"{PROVIDER_BASE}/oauth/v1/certs"
ISSUER = f"{PROVIDER_BASE}/oauth/"
CLIENT_ID = "client-123"
REDIRECT_URI = "https://api.test/oauth/callback"
LANDING_URL = "https://portal.test/dashboard"


def make_settings(**overrides) -> Settings:
    values = {
        "api_key": API_KEY,
        "provider_client_id": CLIENT_ID,
        "provider_client_secret": "client-secret",
        "provider_authorize_url": AUTHORIZE_URL,
        "provider_token_url": TOKEN_URL,
        "provider_userinfo_url": USERINFO_URL,
        "provider_jwks_url": JWKS_URL,
        "provider_issuer": ISSUER,
        "oauth_redirect_uri": REDIRECT_URI,
        "frontend_landing_url": LANDING_URL,
        "cors_allow_origins": ["https://portal.test"],
        "auto_create_tables": False,
    }
    values.update(overrides)
    return Settings(**values)


def query_params(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}
