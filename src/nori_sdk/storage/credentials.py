"""
Registry credentials.

Credentials are immutable values. The encoded Authorization header is
computed once, when the value is created, and reused for every request.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """
    Static basic-auth credentials for a registry.

    Attributes:
        username: Registry username
        password: Registry password or access token
        authorization: Cached "Basic <base64(username:password)>" header value
    """
    username: str
    password: str = field(repr=False)
    authorization: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        userpass = f"{self.username}:{self.password}".encode("utf-8")
        encoded = base64.b64encode(userpass).decode("ascii")
        # frozen dataclass: bypass __setattr__ for the derived field
        object.__setattr__(self, "authorization", f"Basic {encoded}")


__all__ = ["Credentials"]
