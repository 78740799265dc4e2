"""
External process runner.

Runs a program and forwards its output line by line to this process's
stdout/stderr as it is produced.
"""
from __future__ import annotations

import logging
import subprocess
import sys
import threading
from typing import IO, List, Sequence, TextIO

logger = logging.getLogger(__name__)


def run(working_dir: str, command: str, args: Sequence[str] = ()) -> None:
    """
    Run command with args in working_dir, streaming its output.

    Each stdout line is written to sys.stdout and each stderr line to
    sys.stderr while the child runs. Both pipes are drained concurrently so a
    chatty stderr cannot block the child.

    Raises:
        OSError: If the program cannot be started (e.g. FileNotFoundError)
        subprocess.CalledProcessError: If the program exits non-zero
    """
    argv: List[str] = [command, *args]
    logger.debug(f"Running {argv} in {working_dir}")

    proc = subprocess.Popen(
        argv,
        cwd=working_dir,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )

    errors: List[BaseException] = []
    pumps = [
        threading.Thread(target=_pump, args=(proc.stdout, sys.stdout, errors), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, sys.stderr, errors), daemon=True),
    ]
    for pump in pumps:
        pump.start()
    for pump in pumps:
        pump.join()

    returncode = proc.wait()
    if errors:
        raise errors[0]
    if returncode != 0:
        logger.error(f"{command} exited with status {returncode}")
        raise subprocess.CalledProcessError(returncode, argv)


def _pump(source: IO[str], sink: TextIO, errors: List[BaseException]) -> None:
    """Copy lines from source to sink until EOF."""
    try:
        with source:
            for line in source:
                sink.write(line)
                sink.flush()
    except (OSError, ValueError) as e:
        errors.append(e)


__all__ = ["run"]
