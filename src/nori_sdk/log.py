"""
Process-wide logging setup.

Log records go to a JSON-lines file (settings.log_path). When debug is on
they are mirrored to stdout as well. Library modules only ever call
``logging.getLogger(__name__)``; configuring handlers is left to the CLI.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .settings import Settings

ROOT_LOGGER = "nori_sdk"

_HANDLER_MARK = "_nori_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger, msg (and error if any)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Attach the file handler (and stdout handler in debug mode) to the package logger.

    Calling it again replaces handlers installed by a previous call.

    Raises:
        OSError: If the log file cannot be opened
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [logging.FileHandler(settings.log_path, encoding="utf-8")]
    if settings.debug:
        handlers.append(logging.StreamHandler(sys.stdout))

    formatter = JsonFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    return logger


__all__ = ["configure_logging", "JsonFormatter", "ROOT_LOGGER"]
