"""
Repository references.

A Reference names a tag in a repository on a registry: host, optional
namespace, name and version.
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_VERSION = "latest"


@dataclass(frozen=True)
class Reference:
    """
    Registry coordinate of a tagged manifest.

    Attributes:
        host: Registry host with optional port (e.g. "ghcr.io", "localhost:5000")
        name: Repository name (last path segment)
        namespace: Path between host and name; empty when absent
        version: Tag
    """
    host: str
    name: str
    namespace: str = ""
    version: str = DEFAULT_VERSION

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.host}/{self.namespace}/{self.name}:{self.version}"
        if self.host:
            return f"{self.host}/{self.name}:{self.version}"
        return f"{self.name}:{self.version}"

    @property
    def namespaced_name(self) -> str:
        """Repository path without host: "namespace/name" or "name"."""
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    @classmethod
    def parse(cls, ref_str: str) -> Reference:
        """
        Parse a reference string.

        Supports formats:
        - "host/name:version"
        - "host/ns/name:version" (namespace may contain slashes)
        - "name:version" (no host)
        - any of the above without ":version" -> version "latest"

        The first segment is taken as the host when it contains "." or ":"
        or is "localhost", the same heuristic docker uses.

        Raises:
            ValueError: If the string is empty or has an empty name or tag

        Examples:
            >>> Reference.parse("registry.example.org/library/nginx:latest")
            Reference(host='registry.example.org', name='nginx', namespace='library', version='latest')

            >>> Reference.parse("localhost:5000/app")
            Reference(host='localhost:5000', name='app', namespace='', version='latest')
        """
        ref_str = ref_str.strip()
        if not ref_str:
            raise ValueError("Reference cannot be empty")

        if "@" in ref_str:
            raise ValueError(f"Digest references are not supported: {ref_str}")

        # Split off the tag; a colon before the last slash belongs to the host port
        path, version = ref_str, DEFAULT_VERSION
        last_slash = ref_str.rfind("/")
        last_colon = ref_str.rfind(":")
        if last_colon > last_slash:
            path, version = ref_str[:last_colon], ref_str[last_colon + 1:]
            if not version:
                raise ValueError(f"Empty tag in reference: {ref_str}")

        parts = path.split("/")
        host = ""
        if len(parts) > 1 and _looks_like_host(parts[0]):
            host, parts = parts[0], parts[1:]

        if any(not part for part in parts):
            raise ValueError(f"Invalid reference format: {ref_str}")

        name = parts[-1]
        namespace = "/".join(parts[:-1])
        return cls(host=host, name=name, namespace=namespace, version=version)


def _looks_like_host(segment: str) -> bool:
    return "." in segment or ":" in segment or segment == "localhost"


__all__ = ["Reference", "DEFAULT_VERSION"]
