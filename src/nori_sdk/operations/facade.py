"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the registry client,
centralizing command orchestration and configuration while keeping CLI
commands thin and testable.
"""
from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import process
from ..archive import compress_dir, decompress_dir
from ..models import Descriptor, Manifest, compute_digest, verify_digest
from ..settings import Settings
from ..storage.oci_errors import OciDigestMismatch
from ..storage.oci_media_types import (
    OCI_EMPTY_CONFIG,
    OCI_EMPTY_CONFIG_BYTES,
    OCI_EMPTY_CONFIG_DIGEST,
    OCI_EMPTY_CONFIG_SIZE,
    OCI_GENERIC_LAYER,
    OCI_IMAGE_LAYER,
    OCI_IMAGE_MANIFEST,
    OCI_TITLE_ANNOTATION,
)
from ..storage.reference import Reference
from ..storage.registry_client import RegistryClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions so they are not scattered across commands.
    """
    insecure: bool = False        # Plain http for pushes and manifest pulls
    title_layers: bool = True     # Annotate pushed layers with the source dir name


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. Exceptions bubble up unchanged so the CLI can map
    them to exit codes in one place.
    """

    def __init__(self, config: OpsConfig, client: Optional[RegistryClient] = None,
                 settings: Optional[Settings] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            client: Registry client (if None, built from settings)
            settings: Optional settings (if None, loaded from environment)
        """
        self.cfg = config

        if settings is None:
            from ..settings import create_settings_from_env
            settings = create_settings_from_env()
        self.settings = settings

        if client is None:
            from ..storage.registry_factory import make_client
            client = make_client(settings)
        self.client = client

    def push_dir(self, src_dir: str, ref: Reference, *, prebuild: Optional[str] = None) -> Manifest:
        """
        Push a directory as a single-layer image.

        Args:
            src_dir: Directory to pack into the layer
            ref: Target image reference
            prebuild: Optional command line run in src_dir before packing

        Returns:
            The manifest that now describes ref

        Raises:
            subprocess.CalledProcessError: If the prebuild command fails
            ValueError: If src_dir is missing or holds unsafe paths
            OciError: If any registry step fails
        """
        if prebuild:
            argv = shlex.split(prebuild)
            if not argv:
                raise ValueError("prebuild command is empty")
            logger.info(f"Running prebuild {argv} in {src_dir}")
            process.run(src_dir, argv[0], argv[1:])

        layer_bytes = compress_dir(src_dir)
        annotations = None
        if self.cfg.title_layers:
            annotations = {OCI_TITLE_ANNOTATION: Path(src_dir).resolve().name}
        layer = Descriptor.from_bytes(layer_bytes, OCI_IMAGE_LAYER, annotations=annotations)
        config = Descriptor(
            media_type=OCI_EMPTY_CONFIG,
            digest=OCI_EMPTY_CONFIG_DIGEST,
            size=OCI_EMPTY_CONFIG_SIZE,
        )

        insecure = self.cfg.insecure
        self.client.push_blob(config, OCI_EMPTY_CONFIG_BYTES, ref, insecure=insecure)
        self.client.push_blob(layer, layer_bytes, ref, insecure=insecure)

        manifest = Manifest(media_type=OCI_IMAGE_MANIFEST, config=config, layers=[layer])
        self.client.push_manifest(manifest, ref, insecure=insecure)
        logger.info(f"Pushed {src_dir} as {ref} (layer {layer.digest})")
        return manifest

    def pull_dir(self, ref: Reference, dest: str) -> Manifest:
        """
        Pull an image and unpack its tar+gzip layers into dest, in order.

        Layers of other media types are skipped.

        Raises:
            OciDigestMismatch: If a pulled layer does not hash to its digest
            ValueError: If a layer is not a safe archive
            OciError: If any registry step fails
        """
        manifest = self.client.pull_manifest(ref, insecure=self.cfg.insecure)

        for layer in manifest.layers:
            if layer.media_type != OCI_IMAGE_LAYER:
                logger.info(f"Skipping layer {layer.digest} with media type {layer.media_type}")
                continue

            data = self.client.pull_blob(layer, ref)
            _check_digest(data, layer.digest)
            decompress_dir(data, dest)

        logger.info(f"Pulled {ref} into {dest}")
        return manifest

    def pull_manifest(self, ref: Reference) -> Manifest:
        return self.client.pull_manifest(ref, insecure=self.cfg.insecure)

    def push_manifest_file(self, path: str, ref: Reference) -> Manifest:
        """
        Push a manifest document read from a JSON file.

        Raises:
            pydantic.ValidationError: If the file is not a valid manifest
        """
        manifest = Manifest.from_json(Path(path).read_bytes())
        self.client.push_manifest(manifest, ref, insecure=self.cfg.insecure)
        return manifest

    def push_blob_file(self, path: str, ref: Reference, *,
                       media_type: str = OCI_GENERIC_LAYER) -> Descriptor:
        """
        Push a file's bytes as one blob.

        Returns:
            Descriptor of the pushed blob
        """
        data = Path(path).read_bytes()
        descriptor = Descriptor.from_bytes(data, media_type)
        self.client.push_blob(descriptor, data, ref, insecure=self.cfg.insecure)
        return descriptor

    def pull_blob_file(self, ref: Reference, digest: str, out_path: str) -> int:
        """
        Download blob digest from ref's repository into out_path.

        The content is verified against digest before anything is written.

        Returns:
            Number of bytes written

        Raises:
            OciDigestMismatch: If the content does not hash to digest
        """
        # Size is not sent to the registry; 0 is a placeholder.
        descriptor = Descriptor(media_type=OCI_GENERIC_LAYER, digest=digest, size=0)
        data = self.client.pull_blob(descriptor, ref)
        _check_digest(data, digest)
        Path(out_path).write_bytes(data)
        return len(data)


def _check_digest(data: bytes, digest: str) -> None:
    """Raise OciDigestMismatch unless data hashes to digest."""
    if verify_digest(data, digest):
        return
    actual = compute_digest(data, digest.split(":", 1)[0])
    raise OciDigestMismatch(
        f"Digest mismatch: expected {digest}, got {actual}",
        expected=digest,
        actual=actual,
    )


__all__ = ["Operations", "OpsConfig"]
