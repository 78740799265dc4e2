"""
OCI media types and constants.

Single source of truth for all OCI-related media types and constants.
"""
from __future__ import annotations

# Manifest types
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_EMPTY_CONFIG = "application/vnd.oci.empty.v1+json"

# Layer types
OCI_IMAGE_LAYER = "application/vnd.oci.image.layer.v1.tar+gzip"
OCI_GENERIC_LAYER = "application/octet-stream"

# Blob uploads are always sent as raw octets
BLOB_UPLOAD_CONTENT_TYPE = "application/octet-stream"

# Empty config for minimal OCI images (always {})
OCI_EMPTY_CONFIG_BYTES = b"{}"
OCI_EMPTY_CONFIG_DIGEST = "sha256:44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"
OCI_EMPTY_CONFIG_SIZE = 2

OCI_TITLE_ANNOTATION = "org.opencontainers.image.title"


__all__ = [
    "OCI_IMAGE_MANIFEST",
    "OCI_EMPTY_CONFIG",
    "OCI_IMAGE_LAYER",
    "OCI_GENERIC_LAYER",
    "BLOB_UPLOAD_CONTENT_TYPE",
    "OCI_EMPTY_CONFIG_BYTES",
    "OCI_EMPTY_CONFIG_DIGEST",
    "OCI_EMPTY_CONFIG_SIZE",
    "OCI_TITLE_ANNOTATION",
]
