"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and the CLI command
wrapper. This is the only place where an error ends the process.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

T = TypeVar('T')

logger = logging.getLogger(__name__)

EXIT_CODES = {
    "OciConfigError": 2,
    "ValidationError": 2,
    "ValueError": 2,
    "OciRequestError": 3,
    "OciTransportError": 3,
    "OciProtocolError": 3,
    "OciSerializationError": 3,
    "OciDigestMismatch": 3,
    "OciAuthError": 4,
    "CalledProcessError": 5,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    - 2: Configuration or validation error (OciConfigError, ValueError)
    - 3: Registry, transport or serialization error, and the fallback
    - 4: Authentication error (OciAuthError)
    - 5: External process failure (CalledProcessError)

    Args:
        exc: Exception to map

    Returns:
        Exit code (3 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def user_message(exc: BaseException) -> str:
    """One-line message shown to the user for exc."""
    step = getattr(exc, "step", None)
    text = str(exc) or type(exc).__name__
    return f"error: {step}: {text}" if step else f"error: {text}"


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function. On failure the error is logged, a one-line
    message is written to stderr and the process exits with the mapped code.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        logger.error(f"{type(e).__name__}: {e}", exc_info=True)
        typer.echo(user_message(e), err=True)
        raise typer.Exit(code=exit_code_for(e)) from e


__all__ = ["EXIT_CODES", "exit_code_for", "run_and_exit", "user_message"]
