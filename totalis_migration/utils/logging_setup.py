from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _project_root() -> Path:
    # totalis_migration/utils/logging_setup.py -> totalis_migration/utils -> totalis_migration -> repo root
    return Path(__file__).resolve().parents[2]


def configure_logging(level: str | int = "INFO") -> int:
    """Console logging for script entry points. Returns the numeric level."""
    if isinstance(level, str):
        numeric = logging.getLevelName(level.strip().upper())
        if not isinstance(numeric, int):
            numeric = logging.INFO
    else:
        numeric = int(level)
    logging.basicConfig(level=numeric, format=_FORMAT)
    return numeric


def setup_file_logging(
    *,
    log_file_path: str,
    level: int,
    logger_names: Optional[list[str]] = None,
) -> None:
    """
    Attach a rotating FileHandler to loggers. Idempotent across reloads.
    - `log_file_path` may be relative to project root.
    """
    if not log_file_path:
        return

    root = _project_root()
    path = Path(log_file_path)
    if not path.is_absolute():
        path = root / path

    os.makedirs(path.parent, exist_ok=True)

    handler_name = "totalis_migration_file_handler"
    fmt = logging.Formatter(_FORMAT)

    def _ensure(logger: logging.Logger) -> None:
        for h in logger.handlers:
            if getattr(h, "name", None) == handler_name:
                return

        h = TimedRotatingFileHandler(
            filename=str(path),
            when="midnight",
            interval=1,
            backupCount=14,
            encoding="utf-8",
            utc=False,
        )
        h.setLevel(level)
        h.setFormatter(fmt)
        h.name = handler_name
        logger.addHandler(h)
        if logger.level == logging.NOTSET or logger.level > level:
            logger.setLevel(level)
        # Prevent duplicate emissions via root once this logger has a handler.
        if logger.name:
            logger.propagate = False

    targets = logger_names or ["totalis_migration"]

    for name in targets:
        _ensure(logging.getLogger(name))


def silence_noisy_loggers() -> None:
    """
    Supabase/PostgREST clients log every request at INFO through httpx.
    """
    for name in ("httpx", "httpcore", "postgrest", "supabase", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)
