"""Application configuration utilities for the cashflow client.

This module centralises environment-driven configuration so the rest of the
code base does not need to read environment variables directly.  Only
configuration concerns live here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load any variables defined in a local .env file. The call is idempotent, so
# importing it at module import time keeps the API ergonomic.
load_dotenv()


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed container for runtime configuration.

    Attributes:
        api_url: Scheme and host of the cash-flow backend.
        api_prefix: Path prefix under which every REST resource lives.
        access_token: Optional bearer token. When absent the client starts
            without a session and every call fails as unauthenticated.
        request_timeout: Seconds to wait for the backend before giving up.
        base_currency: Currency code assumed when the backend omits one.
        login_url: Where an expired session is sent.
        log_level: Name of the root logging level used by ``main.py``.
    """

    api_url: str
    api_prefix: str
    access_token: Optional[str]
    request_timeout: float
    base_currency: str
    login_url: str
    log_level: str

    @property
    def api_root(self) -> str:
        """Return the absolute URL every endpoint path is appended to."""

        return f"{self.api_url.rstrip('/')}/{self.api_prefix.strip('/')}"


def load_config() -> AppConfig:
    """Create a new :class:`AppConfig` instance based on environment settings.

    Environment variables override the default values so tests can supply
    patched environments without touching the source code.
    """

    timeout = getenv_with_default("CASHFLOW_REQUEST_TIMEOUT", "30")
    return AppConfig(
        api_url=getenv_with_default("CASHFLOW_API_URL", "http://localhost:8080"),
        api_prefix=getenv_with_default("CASHFLOW_API_PREFIX", "/api/v1"),
        access_token=getenv_with_default("CASHFLOW_ACCESS_TOKEN"),
        request_timeout=float(timeout),
        base_currency=getenv_with_default("CASHFLOW_BASE_CURRENCY", "EUR").upper(),
        login_url=getenv_with_default("CASHFLOW_LOGIN_URL", "/login"),
        log_level=getenv_with_default("CASHFLOW_LOG_LEVEL", "INFO").upper(),
    )


def getenv_with_default(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return the value of an environment variable or a sensible default.

    ``None`` values are propagated so callers can make explicit decisions about
    optional configuration values.  Empty strings count as unset.
    """

    from os import getenv

    value = getenv(name)
    if value:
        return value
    return default
