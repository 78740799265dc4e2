"""
Registry endpoint construction.

Centralizes the URL rules shared by every RegistryClient operation so the
namespace and scheme handling lives in one place.
"""
from __future__ import annotations

from .reference import Reference


def scheme_for(insecure: bool) -> str:
    """Return "http" for insecure registries, "https" otherwise."""
    return "http" if insecure else "https"


def repo_path(ref: Reference) -> str:
    """
    Build the /v2/ repository prefix for a reference.

    The namespace segment is omitted entirely when it is empty.

    Examples:
        >>> repo_path(Reference(host="r.io", namespace="library", name="nginx"))
        '/v2/library/nginx'

        >>> repo_path(Reference(host="r.io", name="nginx"))
        '/v2/nginx'
    """
    return f"/v2/{ref.namespaced_name}"


def blob_upload_url(ref: Reference, insecure: bool = False) -> str:
    """Blob upload initiation endpoint: scheme://host/v2/{ns/}name/blobs/uploads/"""
    return f"{scheme_for(insecure)}://{ref.host}{repo_path(ref)}/blobs/uploads/"


def blob_url(ref: Reference, digest: str) -> str:
    """Blob fetch endpoint. Always HTTPS."""
    return f"https://{ref.host}{repo_path(ref)}/blobs/{digest}"


def manifest_url(ref: Reference, insecure: bool = False) -> str:
    """Manifest endpoint: scheme://host/v2/{ns/}name/manifests/{version}"""
    return f"{scheme_for(insecure)}://{ref.host}{repo_path(ref)}/manifests/{ref.version}"


__all__ = ["scheme_for", "repo_path", "blob_upload_url", "blob_url", "manifest_url"]
