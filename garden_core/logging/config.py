# =============================================================================
# garden_core/logging/config.py
# Logging Configuration for Garden Core
# =============================================================================

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR = Path("logs")

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "postgrest", "apscheduler")


def _level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = False,
    log_dir: Path = LOG_DIR,
) -> Optional[Path]:
    """
    Configure process-wide logging from Settings.log_level / log_to_file.

    Args:
        level: Level as an int or a name like "DEBUG"; unknown names mean INFO
        log_to_file: Also write to log_dir/garden_YYYY-MM-DD.log

    Returns:
        Path of the log file, or None when logging to stdout only
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    log_path = None

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"garden_{date.today():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("garden_core").info("Logging initialized")
    return log_path


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as get_logger(__name__)."""
    return logging.getLogger(name)


class LogContext:
    """
    Logs start, completion and duration of a multi-step operation
    (week propagation, rank rewrites, reminder sync). A failure is logged
    with its traceback and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.elapsed = 0.0
        self._started = 0.0

    def __enter__(self):
        self._started = time.monotonic()
        self.logger.log(self.level, f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self._started

        if exc_type is None:
            self.logger.log(self.level, f"{self.operation}... completed ({self.elapsed:.2f}s)")
        else:
            self.logger.error(f"{self.operation}... failed ({self.elapsed:.2f}s): {exc_val}", exc_info=True)

        return False
