"""
Human-readable output formatting.

Centralizes all CLI output so commands stay thin.
"""
from __future__ import annotations

import typer

from ..models import Manifest
from ..storage.oci_media_types import OCI_TITLE_ANNOTATION
from ..storage.reference import Reference


def print_manifest_json(manifest: Manifest) -> None:
    """Print the manifest document as the registry would store it."""
    typer.echo(manifest.model_dump_json(by_alias=True, exclude_none=True, indent=2))


def print_push_summary(ref: Reference, manifest: Manifest) -> None:
    """
    Print push result.

    Args:
        ref: Reference the image was pushed to
        manifest: Manifest that was pushed
    """
    typer.echo(f"Pushed {ref}")
    for layer in manifest.layers:
        typer.echo(f"  {layer.digest} {_format_bytes(layer.size)}")


def print_pull_summary(ref: Reference, dest: str, manifest: Manifest) -> None:
    """Print pull result with one line per layer."""
    typer.echo(f"Pulled {ref} to {dest}")
    for layer in manifest.layers:
        title = (layer.annotations or {}).get(OCI_TITLE_ANNOTATION)
        suffix = f" ({title})" if title else ""
        typer.echo(f"  {layer.digest} {_format_bytes(layer.size)}{suffix}")


def print_blob_pushed(ref: Reference, digest: str, size: int) -> None:
    typer.echo(f"Pushed blob {digest} ({_format_bytes(size)}) to {ref.namespaced_name}")


def print_blob_pulled(digest: str, out_path: str, size: int) -> None:
    typer.echo(f"Pulled blob {digest} ({_format_bytes(size)}) to {out_path}")


def print_manifest_pushed(ref: Reference) -> None:
    typer.echo(f"Pushed manifest {ref}")


def print_pack_summary(src_dir: str, out_path: str, digest: str, size: int) -> None:
    """
    Print pack operation summary.

    Args:
        src_dir: Source directory that was packed
        out_path: Output archive path
        digest: Archive digest, usable as a layer digest
        size: Archive size in bytes
    """
    typer.echo(f"Packed {src_dir} to {out_path}")
    typer.echo(f"Digest: {digest}")
    typer.echo(f"Size: {_format_bytes(size)}")


def print_unpack_summary(archive_path: str, dest: str) -> None:
    typer.echo(f"Unpacked {archive_path} to {dest}")


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


__all__ = [
    "print_manifest_json",
    "print_push_summary",
    "print_pull_summary",
    "print_blob_pushed",
    "print_blob_pulled",
    "print_manifest_pushed",
    "print_pack_summary",
    "print_unpack_summary",
]
