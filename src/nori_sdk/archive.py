"""
Directory archives for image layers.

Packs a directory tree into deterministic tar+gzip bytes and unpacks such
bytes back into a directory. Identical input trees produce byte-identical
archives, so re-pushing an unchanged directory yields the same layer digest.
"""
from __future__ import annotations

import gzip
import io
import logging
import os
import shutil
import tarfile
import unicodedata
import zlib
from pathlib import Path
from typing import Iterator, List, Tuple

from .path_safety import resolve_within, safe_relpath

logger = logging.getLogger(__name__)


def compress_dir(src_dir: str) -> bytes:
    """
    Create a deterministic tar.gz archive of a directory.

    Produces byte-identical archives from identical input trees by:
    - Setting deterministic tar headers (uid=0, gid=0, mtime=0)
    - Using USTAR format without PAX headers
    - Writing gzip with a zero timestamp and no file name
    - Sorting entries by archive name

    Symlinks are stored as the files they point to. Sockets, FIFOs and
    device nodes are skipped.

    Args:
        src_dir: Source directory to archive

    Returns:
        Compressed archive bytes

    Raises:
        ValueError: If src_dir doesn't exist or contains unsafe paths
        OSError: If a file cannot be read
    """
    src_path = Path(src_dir).resolve()
    if not src_path.is_dir():
        raise ValueError(f"Source directory does not exist: {src_dir}")

    buf = io.BytesIO()
    with gzip.GzipFile(filename="", mode="wb", fileobj=buf, mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w", format=tarfile.USTAR_FORMAT, dereference=True) as tar:
            _add_entries_to_tar(tar, src_path)
    return buf.getvalue()


def decompress_dir(data: bytes, dest_dir: str) -> None:
    """
    Extract tar.gz bytes into dest_dir.

    Only regular files and directories are accepted. Every entry is checked
    before anything is written, so a rejected archive leaves dest_dir untouched.

    Args:
        data: Archive bytes as produced by compress_dir
        dest_dir: Destination directory (created if missing)

    Raises:
        ValueError: If the data is not a valid tar.gz archive, an entry would
            land outside dest_dir, an entry is not a file or directory, or one
            path is used both as a file and as a directory
    """
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            members = tar.getmembers()
            targets = [(member, _check_member(member, dest)) for member in members]
            _check_conflicts(targets)

            for member, target in targets:
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with tar.extractfile(member) as source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
                os.chmod(target, member.mode & 0o777)
    except (tarfile.TarError, EOFError, gzip.BadGzipFile, zlib.error) as e:
        raise ValueError(f"Invalid archive: {e}") from e

    logger.debug(f"Extracted {len(targets)} entries into {dest}")


def _check_member(member: tarfile.TarInfo, dest: Path) -> Path:
    """Validate one archive entry and return its destination path."""
    if not (member.isreg() or member.isdir()):
        raise ValueError(f"Unsupported archive entry type for {member.name!r}")
    return resolve_within(dest, member.name)


def _check_conflicts(targets: List[Tuple[tarfile.TarInfo, Path]]) -> None:
    """Reject archives that use one path as both a file and a directory."""
    files = {target for member, target in targets if member.isreg()}
    for member, target in targets:
        if member.isdir() and target in files:
            raise ValueError(f"Conflicting archive entries for {member.name!r}")
        if any(parent in files for parent in target.parents):
            raise ValueError(f"Conflicting archive entries for {member.name!r}: parent is a file")


def _add_entries_to_tar(tar: tarfile.TarFile, src_path: Path) -> None:
    """Add directory entries to tar archive in deterministic order."""
    for entry_path, arcname in _iter_entries_sorted(src_path):
        try:
            safe_relpath(arcname)
        except ValueError as e:
            raise ValueError(f"Unsafe archive path {arcname}: {e}")

        if entry_path.is_symlink() and not entry_path.exists():
            logger.warning(f"Skipping dangling symlink {entry_path}")
            continue

        arc = arcname + ("/" if entry_path.is_dir() else "")
        tarinfo = tar.gettarinfo(str(entry_path), arcname=arc)
        if not (tarinfo.isreg() or tarinfo.isdir()):
            logger.warning(f"Skipping special file {entry_path}")
            continue

        _apply_canonical_headers(tarinfo)
        if tarinfo.isreg():
            with open(entry_path, "rb") as entry_file:
                tar.addfile(tarinfo, entry_file)
        else:
            tar.addfile(tarinfo)


def _iter_entries_sorted(src_dir: Path) -> Iterator[Tuple[Path, str]]:
    """
    Yield (filesystem_path, archive_name) pairs sorted by archive name.

    Directories sort before their contents since "dir" < "dir/...".
    """
    entries = []

    for root, dirs, files in os.walk(src_dir):
        root_path = Path(root)
        rel_root = root_path.relative_to(src_dir)

        if rel_root != Path('.'):
            entries.append((root_path, normalize_relpath(str(rel_root))))

        for file_name in files:
            file_path = root_path / file_name
            entries.append((file_path, normalize_relpath(str(file_path.relative_to(src_dir)))))

    entries.sort(key=lambda x: x[1])
    yield from entries


def normalize_relpath(path: str) -> str:
    """
    Normalize a relative path for archive creation.

    Converts backslashes to forward slashes and applies NFC normalization.
    """
    normalized = unicodedata.normalize('NFC', path.replace('\\', '/'))
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _apply_canonical_headers(tarinfo: tarfile.TarInfo) -> None:
    """Set consistent ownership, timestamps and permissions."""
    tarinfo.uid = 0
    tarinfo.gid = 0
    tarinfo.uname = ""
    tarinfo.gname = ""
    tarinfo.mtime = 0

    if tarinfo.isdir():
        tarinfo.mode = 0o755
    elif tarinfo.mode & 0o100:
        # Preserve execute bit
        tarinfo.mode = 0o755
    else:
        tarinfo.mode = 0o644


__all__ = ["compress_dir", "decompress_dir", "normalize_relpath"]
