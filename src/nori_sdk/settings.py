"""
Settings and configuration for nori-sdk.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when the CLI context is created.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "default_log_path"]


def default_log_path() -> str:
    """Log file used when LOG_PATH is unset: ~/devkit.log"""
    return str(Path.home() / "devkit.log")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for nori-sdk.

    Registry Settings:
        registry_user: Username for registry authentication
        registry_pass: Password for registry authentication
        registry_insecure: Use plain HTTP for pushes and manifest pulls
        http_timeout_s: HTTP request timeout in seconds

    Logging Settings:
        log_path: File receiving JSON log lines
        debug: Mirror log records to stdout
    """
    registry_user: Optional[str] = None
    registry_pass: Optional[str] = field(default=None, repr=False)
    registry_insecure: bool = False
    http_timeout_s: float = 30.0

    log_path: str = field(default_factory=default_log_path)
    debug: bool = False

    def __post_init__(self):
        """Validate settings on construction."""
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        # Credentials are all-or-nothing
        if self.registry_user and self.registry_pass is None:
            raise ValueError("registry_user specified but registry_pass is missing")
        if self.registry_pass is not None and not self.registry_user:
            raise ValueError("registry_pass specified but registry_user is missing")

        if not self.log_path:
            raise ValueError("log_path cannot be empty")

    @property
    def has_credentials(self) -> bool:
        return bool(self.registry_user)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - NORI_REGISTRY_USERNAME (optional)
        - NORI_REGISTRY_PASSWORD (optional, required with username)
        - NORI_REGISTRY_INSECURE (default: false)
        - NORI_HTTP_TIMEOUT (default: 30.0)
        - LOG_PATH (default: ~/devkit.log)
        - DEBUG (any value enables stdout logging)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if not value:
            return default
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"{key} must be a number, got {value!r}") from None

    return Settings(
        registry_user=os.getenv("NORI_REGISTRY_USERNAME") or None,
        registry_pass=os.getenv("NORI_REGISTRY_PASSWORD"),
        registry_insecure=str_to_bool(os.getenv("NORI_REGISTRY_INSECURE", "false")),
        http_timeout_s=get_float("NORI_HTTP_TIMEOUT", 30.0),
        log_path=os.getenv("LOG_PATH") or default_log_path(),
        debug="DEBUG" in os.environ,
    )
