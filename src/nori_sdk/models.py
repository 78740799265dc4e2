"""
OCI data models.

Pydantic models for content descriptors and image manifests. Field names
follow Python conventions; the OCI JSON key names are kept as aliases so
documents round-trip unchanged through the registry.
"""
from __future__ import annotations

import hashlib
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# algorithm:encoded digest grammar of the OCI image format
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+(?:[+._-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$")

SUPPORTED_ALGORITHMS = ("sha256", "sha512")


class Descriptor(BaseModel):
    """Content descriptor: identifies a blob or manifest by digest."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    media_type: str = Field(..., alias="mediaType", description="Media type of the referenced content")
    digest: str = Field(..., description="Algorithm-prefixed content digest (sha256:...)")
    size: int = Field(..., ge=0, description="Content size in bytes")
    urls: Optional[List[str]] = Field(default=None, description="Alternate download locations")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="Arbitrary metadata")
    artifact_type: Optional[str] = Field(default=None, alias="artifactType", description="Artifact type")

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        if not DIGEST_PATTERN.match(v):
            raise ValueError(f"Invalid digest format: {v}")
        return v

    @classmethod
    def from_bytes(cls, data: bytes, media_type: str,
                   annotations: Optional[Dict[str, str]] = None) -> Descriptor:
        """Describe in-memory content with a freshly computed sha256 digest."""
        return cls(
            media_type=media_type,
            digest=compute_digest(data),
            size=len(data),
            annotations=annotations,
        )


class Manifest(BaseModel):
    """
    OCI image manifest.

    Opaque to the registry client beyond JSON (de)serialization; see
    ``to_json`` and ``from_json``.
    """
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=2, alias="schemaVersion", description="Manifest schema version")
    media_type: Optional[str] = Field(default=None, alias="mediaType", description="Manifest media type")
    artifact_type: Optional[str] = Field(default=None, alias="artifactType", description="Artifact type")
    config: Descriptor = Field(..., description="Image configuration blob")
    layers: List[Descriptor] = Field(default_factory=list, description="Ordered layer blobs")
    subject: Optional[Descriptor] = Field(default=None, description="Manifest this one refers to")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="Arbitrary metadata")

    def to_json(self) -> bytes:
        """Serialize with OCI key names, leaving out unset optional fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    @classmethod
    def from_json(cls, payload: bytes | str) -> Manifest:
        """Parse a manifest document. Raises pydantic.ValidationError on bad input."""
        return cls.model_validate_json(payload)


def compute_digest(data: bytes, algorithm: str = "sha256") -> str:
    """
    Compute an algorithm-prefixed digest of data.

    Raises:
        ValueError: If algorithm is not supported
    """
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}")
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def verify_digest(data: bytes, expected_digest: str) -> bool:
    """
    Check that data hashes to expected_digest.

    Raises:
        ValueError: If the digest is malformed or uses an unsupported algorithm
    """
    if not DIGEST_PATTERN.match(expected_digest):
        raise ValueError(f"Invalid digest format: {expected_digest}")
    algorithm, _ = expected_digest.split(":", 1)
    return compute_digest(data, algorithm) == expected_digest


__all__ = ["Descriptor", "Manifest", "compute_digest", "verify_digest", "DIGEST_PATTERN"]
