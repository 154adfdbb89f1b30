"""Shared-secret API key authentication for the WordPress widget endpoints."""

from __future__ import annotations

import secrets
from typing import Optional

from backend.utils.config import Settings, get_settings


API_KEY_HEADER = "X-Heiwa-API-Key"


class AuthenticationError(Exception):
    """Base authentication failure."""


class ApiKeyNotConfiguredError(AuthenticationError):
    """Raised when WORDPRESS_API_KEY is missing."""


class InvalidApiKeyError(AuthenticationError):
    """Raised when the provided key is missing or wrong."""


class AuthService:
    """Validates the widget API key; fails closed when no key is configured."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    @property
    def auth_configured(self) -> bool:
        return bool(self._settings.wordpress_api_key)

    def _expected_key(self) -> str:
        if not self._settings.wordpress_api_key:
            raise ApiKeyNotConfiguredError(
                "WORDPRESS_API_KEY is not configured. Set WORDPRESS_API_KEY in environment variables."
            )
        return self._settings.wordpress_api_key

    def validate_api_key(self, provided_key: Optional[str]) -> None:
        expected = self._expected_key()
        if not provided_key:
            raise InvalidApiKeyError("Invalid or missing API key")
        if not secrets.compare_digest(provided_key.encode("utf-8"), expected.encode("utf-8")):
            raise InvalidApiKeyError("Invalid or missing API key")
