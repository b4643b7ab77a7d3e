"""Shared configuration for the BREAD acceptance harness.

Every value comes from an environment variable with a default that matches a
locally running calculator app:

- UI_BASE_URL: application under test (default http://127.0.0.1:8001)
- PLAYWRIGHT_HEADLESS / PLAYWRIGHT_BROWSER: browser launch options
- UI_SETTLE_TIMEOUT: bound for client-side redirects and UI settling (seconds)
- UI_CALC_CREATE_MODE: create calculations through the "ui" or the "api"
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from copy import deepcopy
from typing import Iterator, Mapping, Optional
from urllib.parse import urljoin

DEFAULT_BASE_URL = "http://127.0.0.1:8001"
CREATE_MODES = {"ui", "api"}
BROWSER_TYPES = {"chromium", "firefox", "webkit"}


class ConfigError(RuntimeError):
    """Raised when an environment value cannot be used."""


def _float(env: Mapping[str, str], key: str, default: str) -> float:
    raw = env.get(key, default)
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


class UiTestConfig:
    """Configuration loaded from the environment.

    Pass ``environ`` to build an isolated instance (tests do this); otherwise
    ``os.environ`` is read once at construction.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        env = os.environ if environ is None else environ

        self.base_url: str = env.get("UI_BASE_URL") or DEFAULT_BASE_URL

        headless_str = env.get("PLAYWRIGHT_HEADLESS", "true")
        self.playwright_headless: bool = headless_str.lower() in {"true", "1"}

        self.browser_type: str = env.get("PLAYWRIGHT_BROWSER", "chromium")
        if self.browser_type not in BROWSER_TYPES:
            raise ConfigError(
                f"PLAYWRIGHT_BROWSER must be one of {sorted(BROWSER_TYPES)}, got {self.browser_type!r}"
            )

        nav_timeout = env.get("UI_NAVIGATION_TIMEOUT_MS", "30000")
        if not nav_timeout.isdigit():
            raise ConfigError(f"UI_NAVIGATION_TIMEOUT_MS must be an integer, got {nav_timeout!r}")
        self.navigation_timeout_ms: int = int(nav_timeout)

        self.settle_timeout: float = _float(env, "UI_SETTLE_TIMEOUT", "7.0")
        self.resolve_timeout: float = _float(env, "UI_RESOLVE_TIMEOUT", "1.0")
        self.action_timeout: float = _float(env, "UI_ACTION_TIMEOUT", "5.0")
        self.poll_interval: float = _float(env, "UI_POLL_INTERVAL", "0.25")
        self.api_timeout: float = _float(env, "UI_API_TIMEOUT", "10.0")

        self.calc_create_mode: str = env.get("UI_CALC_CREATE_MODE", "ui").lower()
        if self.calc_create_mode not in CREATE_MODES:
            raise ConfigError(
                f"UI_CALC_CREATE_MODE must be 'ui' or 'api', got {self.calc_create_mode!r}"
            )

        self.session_token_key: str = env.get("UI_SESSION_TOKEN_KEY", "access_token")
        self.log_level: str = env.get("UI_LOG_LEVEL", "INFO").upper()

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    @contextmanager
    def overrides(self, **values) -> Iterator["UiTestConfig"]:
        """Temporarily replace settings values.

        The previous state is snapshotted with a deep copy and restored on exit so
        mutations never leak across tests in the same process.
        """
        unknown = [key for key in values if not hasattr(self, key)]
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        previous = deepcopy(self.__dict__)
        self.__dict__.update(values)
        try:
            yield self
        finally:
            self.__dict__.clear()
            self.__dict__.update(previous)

    def __repr__(self) -> str:
        return (
            f"UiTestConfig(base_url={self.base_url!r}, headless={self.playwright_headless}, "
            f"create_mode={self.calc_create_mode!r})"
        )


# Singleton instance - initialized on first import
settings = UiTestConfig()
