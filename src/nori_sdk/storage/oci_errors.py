"""
OCI registry error classes.

Provides a clear taxonomy of errors that can occur during registry operations.
HTTP statuses and httpx exceptions are mapped onto these classes so callers
can tell which kind of failure happened, and at which step of a multi-request
sequence, without inspecting message strings.
"""
from __future__ import annotations

from typing import Optional

AUTH_HINT = "unauthorized, please use nori login to authenticate"


class OciError(Exception):
    """
    Base class for all OCI registry errors.

    Attributes:
        step: Name of the request step that failed (e.g. "init-upload",
            "upload", "pull-manifest"), or None when the failure happened
            before any step started.
    """

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class OciConfigError(OciError):
    """
    A required reference field is missing.

    Raised before any network call, e.g. when the reference has no host.
    """
    pass


class OciRequestError(OciError):
    """
    The request could not be constructed.

    Raised when:
    - the endpoint URL is malformed (bad host, bad Location header)
    - the URL scheme is not supported by the transport
    """
    pass


class OciTransportError(OciError):
    """
    The network call itself failed.

    Raised when:
    - DNS resolution fails
    - the connection is refused or reset
    - the TLS handshake fails
    - the request times out
    """
    pass


class OciAuthError(OciError):
    """
    Authentication failure.

    Raised when any step answers HTTP 401 Unauthorized.
    """

    def __init__(self, message: str = AUTH_HINT, step: Optional[str] = None):
        super().__init__(message, step=step)


class OciProtocolError(OciError):
    """
    The registry answered with an unexpected status.

    Attributes:
        status_code: Numeric HTTP status
        status_text: Literal status line text, e.g. "404 Not Found"
    """

    def __init__(self, message: str, status_code: int, status_text: str,
                 step: Optional[str] = None):
        super().__init__(message, step=step)
        self.status_code = status_code
        self.status_text = status_text


class OciSerializationError(OciError):
    """
    Manifest JSON could not be encoded or decoded.
    """
    pass


class OciDigestMismatch(OciError):
    """
    Content digest validation failed.

    Raised when pulled content does not hash to the digest it was requested by.
    """

    def __init__(self, message: str, expected: str | None = None, actual: str | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


__all__ = [
    "AUTH_HINT",
    "OciError",
    "OciConfigError",
    "OciRequestError",
    "OciTransportError",
    "OciAuthError",
    "OciProtocolError",
    "OciSerializationError",
    "OciDigestMismatch",
]
