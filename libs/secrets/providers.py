"""Backends able to resolve service secrets."""
from __future__ import annotations

import os
from typing import Mapping, Protocol

import httpx


class SecretProvider(Protocol):
    """Interface implemented by all secret providers."""

    name: str

    def get_secret(self, key: str) -> str | None:
        """Return the secret value for ``key``.

        Providers return ``None`` when the secret cannot be located instead of
        raising. Transport errors still bubble up so misconfiguration is
        visible at start-up.
        """


class EnvironmentSecretProvider:
    """Load secrets directly from environment variables."""

    name = "environment"

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix or ""

    def get_secret(self, key: str) -> str | None:
        env_key = f"{self._prefix}{key}" if self._prefix else key
        return os.environ.get(env_key) or None


class DopplerSecretProvider:
    """Retrieve secrets from Doppler via its HTTP API."""

    name = "doppler"

    def __init__(
        self,
        token: str,
        *,
        config: str,
        project: str,
        base_url: str = "https://api.doppler.com",
        key_mapping: Mapping[str, str] | None = None,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._token = token
        self._config = config
        self._project = project
        self._mapping = dict(key_mapping or {})
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def _resolve_key(self, key: str) -> str:
        return self._mapping.get(key, key)

    def get_secret(self, key: str) -> str | None:
        response = self._client.get(
            "/v3/configs/config/secret",
            params={"project": self._project, "config": self._config, "name": self._resolve_key(key)},
            headers={"Authorization": f"Bearer {self._token}"},
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        payload = response.json()
        return payload.get("secret", {}).get("raw")


__all__ = [
    "DopplerSecretProvider",
    "EnvironmentSecretProvider",
    "SecretProvider",
]
