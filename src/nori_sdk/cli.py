"""
nori CLI

Registry verbs backed by the Operations facade:
- pull-manifest / push-manifest: Read or write one image manifest
- pull-blob / push-blob: Move a single blob between a file and a repository
- push / pull: Publish a directory as a one-layer image, or unpack one
- pack / unpack: Local tar+gzip archive of a directory, no registry involved
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from .archive import compress_dir, decompress_dir
from .cli_context import CLIContext
from .log import configure_logging
from .models import compute_digest
from .operations import Operations, run_and_exit
from .operations.printers import (
    print_blob_pulled,
    print_blob_pushed,
    print_manifest_json,
    print_manifest_pushed,
    print_pack_summary,
    print_pull_summary,
    print_push_summary,
    print_unpack_summary,
)
from .storage.oci_media_types import OCI_GENERIC_LAYER
from .storage.reference import Reference

app = typer.Typer(name="nori", help="nori OCI registry client")

INSECURE_OPTION = typer.Option(False, "--insecure", help="Use plain http for pushes and manifest pulls")
USERNAME_OPTION = typer.Option(None, "--username", "-u", help="Registry username (overrides NORI_REGISTRY_USERNAME)")
PASSWORD_STDIN_OPTION = typer.Option(False, "--password-stdin", help="Read the registry password from stdin")


@app.callback()
def main_callback(ctx: typer.Context) -> None:
    """Load settings and configure logging once per invocation."""
    if ctx.obj is None:
        ctx.obj = run_and_exit(CLIContext.from_env)
    cli_ctx: CLIContext = ctx.obj
    run_and_exit(lambda: configure_logging(cli_ctx.settings))
    ctx.call_on_close(cli_ctx.close)


def _operations(ctx: typer.Context, insecure: bool, username: Optional[str],
                password_stdin: bool) -> Operations:
    """Build the facade for one command, applying command-line credentials."""
    password = None
    if password_stdin:
        if not username:
            raise ValueError("--password-stdin requires --username")
        password = typer.get_text_stream("stdin").read().rstrip("\r\n")
    elif username:
        raise ValueError("--username requires --password-stdin")

    cli_ctx: CLIContext = ctx.obj
    return cli_ctx.operations(insecure=insecure, username=username, password=password)


@app.command("pull-manifest")
def pull_manifest(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Image reference, e.g. registry.example.org/library/nginx:latest"),
    insecure: bool = INSECURE_OPTION,
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Print the image manifest for REF."""
    def _pull_manifest() -> None:
        ops = _operations(ctx, insecure, username, password_stdin)
        print_manifest_json(ops.pull_manifest(Reference.parse(ref)))

    run_and_exit(_pull_manifest)


@app.command("push-manifest")
def push_manifest(
    ctx: typer.Context,
    manifest_file: str = typer.Argument(..., help="Manifest JSON file"),
    ref: str = typer.Argument(..., help="Image reference to tag"),
    insecure: bool = INSECURE_OPTION,
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Push a manifest document to REF unless the tag already exists."""
    def _push_manifest() -> None:
        ops = _operations(ctx, insecure, username, password_stdin)
        target = Reference.parse(ref)
        ops.push_manifest_file(manifest_file, target)
        print_manifest_pushed(target)

    run_and_exit(_push_manifest)


@app.command("push-blob")
def push_blob(
    ctx: typer.Context,
    blob_file: str = typer.Argument(..., help="File to upload"),
    ref: str = typer.Argument(..., help="Target repository"),
    media_type: str = typer.Option(OCI_GENERIC_LAYER, "--media-type", help="Media type recorded in the descriptor"),
    insecure: bool = INSECURE_OPTION,
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Upload a file as one blob into REF's repository."""
    def _push_blob() -> None:
        ops = _operations(ctx, insecure, username, password_stdin)
        target = Reference.parse(ref)
        descriptor = ops.push_blob_file(blob_file, target, media_type=media_type)
        print_blob_pushed(target, descriptor.digest, descriptor.size)

    run_and_exit(_push_blob)


@app.command("pull-blob")
def pull_blob(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Source repository"),
    digest: str = typer.Argument(..., help="Blob digest, e.g. sha256:..."),
    out_path: str = typer.Argument(..., help="Output file"),
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Download blob DIGEST from REF's repository (always over https)."""
    def _pull_blob() -> None:
        ops = _operations(ctx, False, username, password_stdin)
        size = ops.pull_blob_file(Reference.parse(ref), digest, out_path)
        print_blob_pulled(digest, out_path, size)

    run_and_exit(_pull_blob)


@app.command()
def push(
    ctx: typer.Context,
    src_dir: str = typer.Argument(..., help="Directory to publish"),
    ref: str = typer.Argument(..., help="Image reference to push"),
    prebuild: Optional[str] = typer.Option(None, "--prebuild", help="Command run in DIR before packing"),
    insecure: bool = INSECURE_OPTION,
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Publish DIR as a single-layer image at REF."""
    def _push() -> None:
        ops = _operations(ctx, insecure, username, password_stdin)
        target = Reference.parse(ref)
        manifest = ops.push_dir(src_dir, target, prebuild=prebuild)
        print_push_summary(target, manifest)

    run_and_exit(_push)


@app.command()
def pull(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Image reference to pull"),
    dest: str = typer.Argument(..., help="Destination directory"),
    insecure: bool = INSECURE_OPTION,
    username: Optional[str] = USERNAME_OPTION,
    password_stdin: bool = PASSWORD_STDIN_OPTION,
):
    """Pull REF and unpack its layers into DEST."""
    def _pull() -> None:
        ops = _operations(ctx, insecure, username, password_stdin)
        source = Reference.parse(ref)
        manifest = ops.pull_dir(source, dest)
        print_pull_summary(source, dest, manifest)

    run_and_exit(_pull)


@app.command()
def pack(
    src_dir: str = typer.Argument(..., help="Directory to archive"),
    out_path: str = typer.Argument(..., help="Output .tar.gz path"),
):
    """Write a deterministic tar+gzip archive of DIR."""
    def _pack() -> None:
        data = compress_dir(src_dir)
        Path(out_path).write_bytes(data)
        print_pack_summary(src_dir, out_path, compute_digest(data), len(data))

    run_and_exit(_pack)


@app.command()
def unpack(
    archive_path: str = typer.Argument(..., help="Archive produced by pack"),
    dest: str = typer.Argument(..., help="Destination directory"),
):
    """Extract a tar+gzip archive into DEST."""
    def _unpack() -> None:
        decompress_dir(Path(archive_path).read_bytes(), dest)
        print_unpack_summary(archive_path, dest)

    run_and_exit(_unpack)


def main():
    """Entry point for the nori console script."""
    app()


if __name__ == "__main__":
    main()
