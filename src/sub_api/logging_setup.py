# src/sub_api/logging_setup.py

"""
Process-wide logging for the console app.

- stderr: project records at the configured level; other libraries only when they fail
- <log_dir>/sub_api.log: everything from DEBUG, including tracebacks of failed tasks and saves
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

LOG_FILE_NAME = "sub_api.log"

# HTTP stacks log every request at INFO/DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ProjectOnlyFilter(logging.Filter):
    """Pass sub_api records; let foreign records (py.warnings included) through at `threshold`+."""

    def __init__(self, threshold: int = logging.ERROR) -> None:
        super().__init__()
        self.threshold = threshold

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "sub_api" or record.name.startswith("sub_api."):
            return True
        return record.levelno >= self.threshold


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/sub_api",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> Path:
    """Install console + file handlers on the root logger (replacing existing ones). Call once."""
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = _handler(logging.StreamHandler(sys.stderr), console_level)
    console.addFilter(_ProjectOnlyFilter())
    root.addHandler(console)
    root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level))

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
