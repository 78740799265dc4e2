"""
CLI Context for managing application dependencies.

Holds the settings and registry client shared by one CLI command execution,
avoiding global state and enabling dependency injection in tests.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from .operations import Operations, OpsConfig
from .settings import Settings, create_settings_from_env
from .storage.registry_client import RegistryClient
from .storage.registry_factory import make_client


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    The registry client is created lazily so commands that never touch the
    network (pack, unpack) do not build one.
    """
    settings: Settings
    transport: Optional[httpx.BaseTransport] = None
    _client: Optional[RegistryClient] = None

    @classmethod
    def from_env(cls, transport: Optional[httpx.BaseTransport] = None) -> CLIContext:
        """
        Create CLI context from environment variables.

        Returns:
            CLIContext with settings loaded from environment
        """
        return cls(settings=create_settings_from_env(), transport=transport)

    @property
    def client(self) -> RegistryClient:
        """Get or create the registry client (lazy initialization)."""
        if self._client is None:
            self._client = make_client(self.settings, transport=self.transport)
        return self._client

    def operations(self, insecure: bool = False, username: Optional[str] = None,
                   password: Optional[str] = None) -> Operations:
        """
        Build an Operations facade for one command.

        Command-line credentials replace any taken from the environment.
        """
        if username:
            self.client.set_basic_auth(username, password or "")
        cfg = OpsConfig(insecure=insecure or self.settings.registry_insecure)
        return Operations(cfg, client=self.client, settings=self.settings)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


__all__ = ["CLIContext"]
