"""nori-sdk - OCI distribution client for pushing and pulling blobs and manifests."""

__version__ = "0.1.0"

from .models import Descriptor, Manifest, compute_digest, verify_digest
from .storage.credentials import Credentials
from .storage.oci_errors import (
    OciAuthError,
    OciConfigError,
    OciDigestMismatch,
    OciError,
    OciProtocolError,
    OciRequestError,
    OciSerializationError,
    OciTransportError,
)
from .storage.reference import Reference
from .storage.registry_client import RegistryClient
from .storage.registry_factory import make_client

__all__ = [
    "Credentials",
    "Descriptor",
    "Manifest",
    "Reference",
    "RegistryClient",
    "compute_digest",
    "make_client",
    "verify_digest",
    "OciError",
    "OciConfigError",
    "OciRequestError",
    "OciTransportError",
    "OciAuthError",
    "OciProtocolError",
    "OciSerializationError",
    "OciDigestMismatch",
]
