"""
Registry HTTP client for the OCI Distribution API.

Implements the request sequences nori needs: two-step blob upload, blob
download, manifest download, and the check-then-write manifest upload, with
static basic-auth credentials.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Union

import httpx
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..models import Descriptor, Manifest
from .credentials import Credentials
from .endpoints import blob_upload_url, blob_url, manifest_url
from .oci_errors import (
    OciAuthError,
    OciConfigError,
    OciProtocolError,
    OciRequestError,
    OciSerializationError,
    OciTransportError,
)
from .oci_media_types import BLOB_UPLOAD_CONTENT_TYPE, OCI_IMAGE_MANIFEST
from .reference import Reference

logger = logging.getLogger(__name__)

USER_AGENT = "nori-sdk/0.1.0"


class RegistryClient:
    """
    HTTP client for OCI Distribution API operations.

    Every operation is a fresh, fixed sequence of requests. Nothing is retried:
    the first failing step aborts the sequence and raises.

    Thread safety: operations may run concurrently on one client. Each
    operation reads the credentials once, under a lock, and uses that value
    for all of its requests, so ``set_basic_auth`` while requests are in
    flight only affects operations started afterwards.
    """

    def __init__(self, credentials: Optional[Credentials] = None, timeout_s: float = 30.0,
                 verify: bool = True, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize registry client.

        Args:
            credentials: Initial basic-auth credentials (None for anonymous)
            timeout_s: Per-request read/write timeout in seconds
            verify: Verify TLS certificates
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._lock = threading.Lock()
        self._credentials = credentials

        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0)),
            follow_redirects=True,
            verify=verify,
            transport=transport,
            headers={"User-Agent": USER_AGENT},
        )

    # Credentials

    def set_basic_auth(self, username: str, password: str) -> None:
        """Replace the held credentials with a new username/password pair."""
        self.set_credentials(Credentials(username=username, password=password))

    def get_credentials(self) -> Optional[Credentials]:
        """Return the held credentials, or None when anonymous."""
        with self._lock:
            return self._credentials

    def set_credentials(self, credentials: Optional[Credentials]) -> None:
        """Store a copy of credentials; None clears them."""
        if credentials is not None:
            credentials = Credentials(username=credentials.username, password=credentials.password)
        with self._lock:
            self._credentials = credentials

    # Blobs

    def push_blob(self, descriptor: Descriptor, content: bytes, ref: Reference,
                  insecure: bool = False) -> None:
        """
        Upload a blob in two steps: open an upload session, then PUT the content.

        Args:
            descriptor: Descriptor of the content; its digest is sent to the registry
            content: Raw blob bytes
            ref: Target repository (version is not used)
            insecure: Use http instead of https

        Raises:
            OciConfigError: If ref has no host or name
            OciAuthError: If either step answers 401
            OciProtocolError: If the registry answers anything but 202 then 201
            OciRequestError: If an endpoint or the Location header is malformed
            OciTransportError: If the network call fails
        """
        _require(ref, version=False)
        creds = self.get_credentials()

        init_url = blob_upload_url(ref, insecure)
        response = self._send("GET", init_url, step="init-upload", creds=creds)
        self._expect(response, 202, step="init-upload", action="push blob")

        location = response.headers.get("Location")
        if not location:
            raise OciProtocolError(
                f"Registry did not return a Location header for blob upload to {ref.namespaced_name}",
                status_code=response.status_code,
                status_text=_status_text(response),
                step="init-upload",
            )

        try:
            upload_url = httpx.URL(init_url).join(location).copy_merge_params(
                {"digest": descriptor.digest}
            )
        except httpx.InvalidURL as e:
            raise OciRequestError(f"Invalid upload location {location!r}: {e}", step="upload") from e

        headers = {
            "Content-Type": BLOB_UPLOAD_CONTENT_TYPE,
            "Content-Length": str(len(content)),
        }
        response = self._send("PUT", upload_url, step="upload", creds=creds,
                              headers=headers, content=content)
        self._expect(response, 201, step="upload", action="push blob")
        logger.debug(f"Pushed blob {descriptor.digest} ({len(content)} bytes) to {ref.namespaced_name}")

    def pull_blob(self, descriptor: Descriptor, ref: Reference) -> bytes:
        """
        Download a blob by digest. Always uses https.

        Returns:
            Full blob content

        Raises:
            OciConfigError: If ref has no host or name
            OciAuthError: On 401
            OciProtocolError: On any other non-200 status
        """
        _require(ref, version=False)
        creds = self.get_credentials()

        response = self._send("GET", blob_url(ref, descriptor.digest), step="pull-blob", creds=creds)
        self._expect(response, 200, step="pull-blob", action="pull blob")
        return response.content

    # Manifests

    def pull_manifest(self, ref: Reference, insecure: bool = False) -> Manifest:
        """
        Download and parse the image manifest for ref.

        Raises:
            OciConfigError: If ref has no host, name or version (no request is sent)
            OciAuthError: On 401
            OciProtocolError: On any other non-200 status
            OciSerializationError: If the body is not a valid manifest
        """
        _require(ref)
        creds = self.get_credentials()

        response = self._send("GET", manifest_url(ref, insecure), step="pull-manifest", creds=creds,
                              headers={"Accept": OCI_IMAGE_MANIFEST})
        self._expect(response, 200, step="pull-manifest", action="pull manifest")

        try:
            return Manifest.from_json(response.content)
        except ValidationError as e:
            raise OciSerializationError(f"Invalid manifest for {ref}: {e}", step="pull-manifest") from e

    def push_manifest(self, manifest: Manifest, ref: Reference, insecure: bool = False) -> None:
        """
        Upload a manifest unless the tag already exists.

        A HEAD answering exactly 200 counts as "already present" and no PUT is
        issued. The existing manifest's digest is not compared, so pushing a
        different manifest to an existing tag leaves the registry unchanged.

        Raises:
            OciSerializationError: If the manifest cannot be encoded (no request is sent)
            OciConfigError: If ref has no host, name or version
            OciAuthError: If the PUT answers 401
            OciProtocolError: If the PUT answers anything but 201
        """
        try:
            payload = manifest.to_json()
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise OciSerializationError(f"Cannot serialize manifest: {e}", step="push-manifest") from e

        _require(ref)
        creds = self.get_credentials()
        url = manifest_url(ref, insecure)

        response = self._send("HEAD", url, step="check-manifest", creds=creds,
                              headers={"Content-Type": OCI_IMAGE_MANIFEST, "Accept": OCI_IMAGE_MANIFEST})
        if response.status_code == 200:
            logger.info(f"Manifest {ref} already exists, skipping upload")
            return

        headers = {
            "Content-Type": OCI_IMAGE_MANIFEST,
            "Content-Length": str(len(payload)),
        }
        response = self._send("PUT", url, step="push-manifest", creds=creds,
                              headers=headers, content=payload)
        self._expect(response, 201, step="push-manifest", action="push manifest")
        logger.debug(f"Pushed manifest {ref}")

    # Helpers

    def _send(self, method: str, url: Union[str, httpx.URL], step: str,
              creds: Optional[Credentials], headers: Optional[Dict[str, str]] = None,
              content: Optional[bytes] = None) -> httpx.Response:
        """
        Build and send one request, mapping httpx failures onto OciError kinds.

        The response body is read and the connection released before returning.
        """
        request_headers = dict(headers or {})
        if creds is not None:
            request_headers["Authorization"] = creds.authorization

        try:
            request = self.client.build_request(method, url, headers=request_headers, content=content)
        except httpx.InvalidURL as e:
            raise OciRequestError(f"Invalid endpoint {url}: {e}", step=step) from e

        if not request.url.host:
            raise OciRequestError(f"Invalid endpoint {url}: missing host", step=step)

        logger.debug(f"{method} {request.url}")
        try:
            response = self.client.send(request)
        except httpx.UnsupportedProtocol as e:
            raise OciRequestError(f"Unsupported endpoint {url}: {e}", step=step) from e
        except httpx.InvalidURL as e:
            raise OciRequestError(f"Invalid endpoint {url}: {e}", step=step) from e
        except httpx.RequestError as e:
            raise OciTransportError(f"Network error during {step} ({method} {url}): {e}", step=step) from e

        logger.debug(f"{method} {request.url} -> {response.status_code}")
        return response

    def _expect(self, response: httpx.Response, expected: int, step: str, action: str) -> None:
        """Raise the matching OciError unless response has the expected status."""
        if response.status_code == expected:
            return

        if response.status_code == 401:
            logger.warning(f"{step}: registry answered 401 Unauthorized")
            raise OciAuthError(step=step)

        status_text = _status_text(response)
        logger.warning(f"{step}: registry answered {status_text}, expected {expected}")
        raise OciProtocolError(
            f"failed to {action}: {status_text}",
            status_code=response.status_code,
            status_text=status_text,
            step=step,
        )

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _require(ref: Reference, version: bool = True) -> None:
    """Check reference fields before any request is built."""
    if not ref.host:
        raise OciConfigError("Host is required, but not provided")
    if not ref.name:
        raise OciConfigError("Repository name is required, but not provided")
    if version and not ref.version:
        raise OciConfigError("Version is required, but not provided")


def _status_text(response: httpx.Response) -> str:
    """Status line text, e.g. "404 Not Found"."""
    return f"{response.status_code} {response.reason_phrase}".strip()


__all__ = ["RegistryClient", "USER_AGENT"]
