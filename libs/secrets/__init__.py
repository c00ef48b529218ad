"""Unified interface for loading application secrets."""
from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import Mapping

from .providers import (
    DopplerSecretProvider,
    EnvironmentSecretProvider,
    SecretProvider,
)


class SecretManager:
    """Resolve secrets from the configured provider with optional caching."""

    def __init__(self, provider: SecretProvider, *, cache_enabled: bool = True) -> None:
        self._provider = provider
        self._cache_enabled = cache_enabled
        self._cache: dict[str, str | None] = {}

    @property
    def provider(self) -> SecretProvider:
        return self._provider

    def get(self, key: str, default: str | None = None) -> str | None:
        if self._cache_enabled and key in self._cache:
            return self._cache[key] if self._cache[key] is not None else default

        try:
            value = self._provider.get_secret(key)
        except Exception as exc:
            raise RuntimeError(
                f"Unable to resolve secret '{key}' using provider '{self._provider.name}'"
            ) from exc

        if self._cache_enabled:
            self._cache[key] = value

        return value if value is not None else default


def _load_key_mapping() -> Mapping[str, str]:
    raw_mapping = os.environ.get("SECRET_MANAGER_KEY_MAPPING")
    if not raw_mapping:
        return {}
    try:
        parsed = json.loads(raw_mapping)
    except json.JSONDecodeError as exc:  # pragma: no cover - configuration error
        raise RuntimeError("SECRET_MANAGER_KEY_MAPPING must be valid JSON") from exc
    if not isinstance(parsed, dict):
        raise RuntimeError("SECRET_MANAGER_KEY_MAPPING must be a JSON object")
    return parsed


def _build_provider() -> SecretProvider:
    provider = os.environ.get("SECRET_MANAGER_PROVIDER", "environment").strip().lower()

    if provider in {"env", "environment", "local"}:
        prefix = os.environ.get("SECRET_MANAGER_ENV_PREFIX", "SNAPBIT_")
        return EnvironmentSecretProvider(prefix=prefix)
    if provider in {"doppler", "doppler.com"}:
        token = os.environ.get("DOPPLER_TOKEN")
        config = os.environ.get("DOPPLER_CONFIG")
        project = os.environ.get("DOPPLER_PROJECT")
        if not token or not config or not project:
            raise RuntimeError(
                "DOPPLER_TOKEN, DOPPLER_CONFIG and DOPPLER_PROJECT must be set for the Doppler provider"
            )
        return DopplerSecretProvider(
            token=token,
            config=config,
            project=project,
            base_url=os.environ.get("DOPPLER_API_URL", "https://api.doppler.com"),
            key_mapping=_load_key_mapping(),
        )

    raise RuntimeError(f"Unknown secret manager provider: {provider}")


@lru_cache(maxsize=1)
def get_secret_manager() -> SecretManager:
    return SecretManager(_build_provider())


def get_secret(key: str, default: str | None = None) -> str | None:
    """Convenience wrapper used by services to access secrets."""

    manager = get_secret_manager()
    return manager.get(key, default=default)


__all__ = ["SecretManager", "get_secret_manager", "get_secret"]
