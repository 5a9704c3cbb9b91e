"""
Logging setup shared by the coordinator and the heartbeat trigger.

Every record is rendered as a single line

    [2024-01-01T00:00:00.000Z] [INFO] Queue processor started

appended to a log file and mirrored to standard output. Modules log through
``logging.getLogger(__name__)``; configure_logging attaches the handlers to
the ``dirqueue`` package logger once per process.
"""
from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


class _IsoFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        ts = datetime.fromtimestamp(record.created, UTC)
        return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def configure_logging(
    log_file: Path | None,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Route the package logger to stdout and, if given, to `log_file`."""
    logger = logging.getLogger("dirqueue")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    fmt = _IsoFormatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)
    logger.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
