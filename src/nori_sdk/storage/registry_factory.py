"""
Registry client factory.

Builds a RegistryClient from Settings so call sites never wire credentials
and timeouts by hand.
"""
from __future__ import annotations

from typing import Optional

import httpx

from ..settings import Settings
from .credentials import Credentials
from .registry_client import RegistryClient


def make_client(settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> RegistryClient:
    """
    Create a RegistryClient configured from settings.

    Args:
        settings: Registry configuration
        transport: Optional httpx transport override (tests)

    Returns:
        RegistryClient, authenticated when settings carry credentials

    Examples:
        >>> client = make_client(Settings(registry_user="u", registry_pass="p"))
        >>> client.get_credentials().authorization
        'Basic dTpw'
    """
    credentials = None
    if settings.has_credentials:
        credentials = Credentials(username=settings.registry_user, password=settings.registry_pass or "")

    return RegistryClient(
        credentials=credentials,
        timeout_s=settings.http_timeout_s,
        transport=transport,
    )


__all__ = ["make_client"]
