"""Logging setup: a rotating bot log, a separate error log and a coloured console."""

import logging
import logging.handlers
import pathlib
import sys

from dating_room.config import settings

_configured = False

LINE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"
ERROR_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s:%(lineno)d] %(message)s"

# Library loggers that flood INFO with polling and SQL chatter
QUIET_LOGGERS = {
    "aiogram.event": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "apscheduler": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "asyncio": logging.WARNING,
}


class ConsoleFormatter(logging.Formatter):
    """Colours the level name for terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        plain = record.levelname
        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def _rotating(path: pathlib.Path, level: int, fmt: str, max_mb: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging() -> None:
    """Configure the root logger once per process."""
    global _configured

    if _configured:
        return
    _configured = True

    log_dir = pathlib.Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, settings.log_level, logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    root.addHandler(_rotating(log_dir / "dating_room.log", level, LINE_FORMAT, 10, 5))
    root.addHandler(_rotating(log_dir / "errors.log", logging.ERROR, ERROR_FORMAT, 5, 10))

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter(LINE_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(console)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).info(f"Logging to {log_dir.absolute()} at {settings.log_level}")
