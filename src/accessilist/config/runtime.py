"""
Runtime Configuration for AccessiList.

Deployment modes:
- production: strict rate limits, JSON logs
- staging: rate limits relaxed 5x
- local: rate limits relaxed 50x, debug logging

Configuration priority (highest to lowest):
1. Environment variables (ACCESSILIST_* prefix, plus HOST/PORT/LOG_LEVEL)
2. Mode-specific defaults
3. Base defaults

Usage:
    from accessilist.config.runtime import get_runtime_config, RuntimeMode

    config = get_runtime_config(mode=RuntimeMode.STAGING)
    config = get_runtime_config()  # mode from ACCESSILIST_RUNTIME_MODE
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RuntimeMode(str, Enum):
    """Supported deployment environments."""

    PRODUCTION = "production"
    STAGING = "staging"
    LOCAL = "local"

    @property
    def rate_limit_multiplier(self) -> int:
        return _RATE_LIMIT_MULTIPLIERS[self]


_RATE_LIMIT_MULTIPLIERS: dict[RuntimeMode, int] = {
    RuntimeMode.PRODUCTION: 1,
    RuntimeMode.STAGING: 5,
    RuntimeMode.LOCAL: 50,
}


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"
    reload: bool = False


@dataclass
class StorageConfig:
    """Where session and rate-limit files live."""

    sessions_dir: str = "saves"
    rate_limit_dir: str = ""
    types_file: str | None = None


@dataclass
class SecurityConfig:
    """CSRF and rate limiting configuration."""

    csrf_enabled: bool = True
    csrf_secret: str = ""
    csrf_ttl: int = 3600
    rate_limit_enabled: bool = True
    rate_limit_multiplier: int = 1
    secure_cookies: bool = False


@dataclass
class ObservabilityConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    json_logging: bool = False
    metrics_enabled: bool = True


@dataclass
class RuntimeConfig:
    """Complete runtime configuration."""

    mode: RuntimeMode
    server: ServerConfig
    storage: StorageConfig
    security: SecurityConfig
    observability: ObservabilityConfig
    debug: bool = False

    def to_env_dict(self) -> dict[str, str]:
        """Convert configuration to environment variables.

        The CSRF secret is deliberately left out.
        """
        env: dict[str, str] = {
            "ACCESSILIST_RUNTIME_MODE": self.mode.value,
            "HOST": self.server.host,
            "PORT": str(self.server.port),
            "ACCESSILIST_SESSIONS_DIR": self.storage.sessions_dir,
            "ACCESSILIST_RATE_LIMIT_DIR": self.storage.rate_limit_dir,
            "ACCESSILIST_CSRF_ENABLED": "1" if self.security.csrf_enabled else "0",
            "ACCESSILIST_CSRF_TTL": str(self.security.csrf_ttl),
            "DISABLE_RATE_LIMIT": "0" if self.security.rate_limit_enabled else "1",
            "LOG_LEVEL": self.observability.log_level,
            "JSON_LOGGING": "true" if self.observability.json_logging else "false",
            "ENABLE_METRICS": "true" if self.observability.metrics_enabled else "false",
            "ACCESSILIST_DEBUG": "1" if self.debug else "0",
        }
        if self.storage.types_file:
            env["ACCESSILIST_TYPES_FILE"] = self.storage.types_file
        return env


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment."""
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _get_mode_defaults(mode: RuntimeMode) -> dict[str, Any]:
    """Get default configuration values for a specific mode."""
    base: dict[str, Any] = {
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
            "log_level": "info",
            "reload": False,
        },
        "storage": {
            "sessions_dir": "saves",
            "rate_limit_dir": os.path.join(tempfile.gettempdir(), "accessilist_rate_limits"),
        },
        "security": {
            "csrf_enabled": True,
            "csrf_ttl": 3600,
            "rate_limit_enabled": True,
            "secure_cookies": False,
        },
        "observability": {
            "log_level": "INFO",
            "json_logging": False,
            "metrics_enabled": True,
        },
        "debug": False,
    }

    if mode == RuntimeMode.LOCAL:
        base["server"]["reload"] = True
        base["server"]["log_level"] = "debug"
        base["observability"]["log_level"] = "DEBUG"
        base["debug"] = True

    elif mode == RuntimeMode.STAGING:
        base["server"]["host"] = "0.0.0.0"
        base["observability"]["json_logging"] = True
        base["security"]["secure_cookies"] = True

    elif mode == RuntimeMode.PRODUCTION:
        base["server"]["host"] = "0.0.0.0"
        base["server"]["log_level"] = "warning"
        base["observability"]["json_logging"] = True
        base["security"]["secure_cookies"] = True

    return base


def get_runtime_mode() -> RuntimeMode:
    """Get the current runtime mode from ACCESSILIST_RUNTIME_MODE.

    Defaults to LOCAL if not set or invalid.
    """
    mode_str = os.environ.get("ACCESSILIST_RUNTIME_MODE", "local").lower()
    try:
        return RuntimeMode(mode_str)
    except ValueError:
        logger.warning("Unknown runtime mode %r, falling back to local", mode_str)
        return RuntimeMode.LOCAL


def get_runtime_config(mode: RuntimeMode | None = None) -> RuntimeConfig:
    """Get runtime configuration for the specified mode.

    Args:
        mode: Runtime mode. If None, auto-detected from the environment.

    Returns:
        RuntimeConfig with merged defaults and environment overrides.
    """
    if mode is None:
        mode = get_runtime_mode()

    defaults = _get_mode_defaults(mode)

    server = ServerConfig(
        host=_get_env_str("HOST", defaults["server"]["host"]),
        port=_get_env_int("PORT", defaults["server"]["port"]),
        log_level=_get_env_str("ACCESSILIST_SERVER_LOG_LEVEL", defaults["server"]["log_level"]),
        reload=_get_env_bool("ACCESSILIST_RELOAD", defaults["server"]["reload"]),
    )

    storage = StorageConfig(
        sessions_dir=_get_env_str("ACCESSILIST_SESSIONS_DIR", defaults["storage"]["sessions_dir"]),
        rate_limit_dir=_get_env_str(
            "ACCESSILIST_RATE_LIMIT_DIR", defaults["storage"]["rate_limit_dir"]
        ),
        types_file=os.environ.get("ACCESSILIST_TYPES_FILE") or None,
    )

    csrf_secret = os.environ.get("ACCESSILIST_CSRF_SECRET", "")
    if not csrf_secret:
        # Tokens minted by one process are rejected by any other.
        if mode != RuntimeMode.LOCAL:
            logger.warning(
                "ACCESSILIST_CSRF_SECRET is not set; using a per-process random secret"
            )
        csrf_secret = secrets.token_hex(32)

    # DISABLE_RATE_LIMIT inverts to rate_limit_enabled
    disable_rate_limit = _get_env_bool("DISABLE_RATE_LIMIT", False)
    security = SecurityConfig(
        csrf_enabled=_get_env_bool(
            "ACCESSILIST_CSRF_ENABLED", defaults["security"]["csrf_enabled"]
        ),
        csrf_secret=csrf_secret,
        csrf_ttl=_get_env_int("ACCESSILIST_CSRF_TTL", defaults["security"]["csrf_ttl"]),
        rate_limit_enabled=not disable_rate_limit
        if "DISABLE_RATE_LIMIT" in os.environ
        else defaults["security"]["rate_limit_enabled"],
        rate_limit_multiplier=mode.rate_limit_multiplier,
        secure_cookies=_get_env_bool(
            "ACCESSILIST_SECURE_COOKIES", defaults["security"]["secure_cookies"]
        ),
    )

    observability = ObservabilityConfig(
        log_level=_get_env_str("LOG_LEVEL", defaults["observability"]["log_level"]),
        json_logging=_get_env_bool("JSON_LOGGING", defaults["observability"]["json_logging"]),
        metrics_enabled=_get_env_bool(
            "ENABLE_METRICS", defaults["observability"]["metrics_enabled"]
        ),
    )

    return RuntimeConfig(
        mode=mode,
        server=server,
        storage=storage,
        security=security,
        observability=observability,
        debug=_get_env_bool("ACCESSILIST_DEBUG", defaults["debug"]),
    )


def print_runtime_config(config: RuntimeConfig) -> None:
    """Print runtime configuration in a human-readable format."""
    print("=" * 60)
    print(f"AccessiList Runtime Configuration ({config.mode.value})")
    print("=" * 60)
    print()
    print("Server:")
    print(f"  Host: {config.server.host}")
    print(f"  Port: {config.server.port}")
    print(f"  Log Level: {config.server.log_level}")
    print()
    print("Storage:")
    print(f"  Sessions Dir: {config.storage.sessions_dir}")
    print(f"  Rate Limit Dir: {config.storage.rate_limit_dir}")
    print(f"  Types File: {config.storage.types_file or '<built-in>'}")
    print()
    print("Security:")
    print(f"  CSRF Enabled: {config.security.csrf_enabled}")
    print(f"  CSRF Token TTL: {config.security.csrf_ttl}s")
    print(f"  Rate Limit Enabled: {config.security.rate_limit_enabled}")
    print(f"  Rate Limit Multiplier: {config.security.rate_limit_multiplier}x")
    print()
    print("Observability:")
    print(f"  Log Level: {config.observability.log_level}")
    print(f"  JSON Logging: {config.observability.json_logging}")
    print(f"  Metrics Enabled: {config.observability.metrics_enabled}")
    print()
    print(f"Debug Mode: {config.debug}")
    print("=" * 60)
