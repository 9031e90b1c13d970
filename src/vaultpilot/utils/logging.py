"""File logging for vaultpilot.

The terminal belongs to the conversation, so records only go to a rotating
file under ``~/.vaultpilot/logs`` (or ``VAULTPILOT_LOG_DIR``).
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["setup_logging"]

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_FILENAME = "vaultpilot.log"
_QUIET_LOGGERS = ("asyncio", "httpx", "httpcore", "openai")
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3

_active_path: Path | None = None


def _log_directory(override: Path | str | None = None) -> Path:
    """Where the log file lives: explicit override, then env, then home."""

    configured = override or os.environ.get("VAULTPILOT_LOG_DIR")
    return Path(configured or Path.home() / ".vaultpilot" / "logs").expanduser()


def setup_logging(level: int = logging.INFO, *, log_dir: Path | str | None = None, force: bool = False) -> Path:
    """Send root logging to the rotating log file and return its path.

    Repeated calls keep the first configuration unless ``force`` is set,
    which is how a debug level requested by settings replaces the default.
    """

    global _active_path
    if _active_path is not None and not force:
        return _active_path

    directory = _log_directory(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / _LOG_FILENAME

    handler = RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # HTTP and SDK request chatter stays at WARNING even in debug runs
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_path = path
    return path
