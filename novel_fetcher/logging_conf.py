"""Logging configuration built around structlog JSON logging.

Run-level events land in ``fetcher.log`` (and ``error.log`` for failures).
Once logging is configured, every work unit also gets its own file under
``units/`` so one novel's history can be read in isolation.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog

APP_LOGGER = "novel_fetcher"
UNIT_LOGGER_PREFIX = f"{APP_LOGGER}.unit"
UNITS_SUBDIR = "units"

_LOGGING_INITIALISED = False
_LOG_DIR: Path | None = None
_UNIT_HANDLER_LOCK = Lock()


def _default_log_dir() -> Path:
    if _LOG_DIR is not None:
        return _LOG_DIR
    from .config import ConfigLocator

    return Path(ConfigLocator().logs_dir)


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def _logging_config(level: str, log_dir: Path) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "fetcher_file": _file_handler(log_dir / "fetcher.log", "INFO"),
            "error_file": _file_handler(log_dir / "error.log", "ERROR"),
        },
        "loggers": {
            APP_LOGGER: {
                "handlers": ["console", "fetcher_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED, _LOG_DIR
    if not _LOGGING_INITIALISED:
        if log_dir is not None:
            _LOG_DIR = Path(log_dir)
        target = _default_log_dir()
        (target / UNITS_SUBDIR).mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(_logging_config("DEBUG" if verbose else "INFO", target))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(APP_LOGGER)


def unit_log_path(unit_name: str) -> Path:
    from .engine.sink import safe_file_stem

    return _default_log_dir() / UNITS_SUBDIR / f"{safe_file_stem(unit_name)}.log"


def unit_logger(unit_name: str) -> structlog.BoundLogger:
    """Return a logger bound to one work unit.

    After :func:`configure_logging` has run, the unit's events are also
    written to ``units/<unit name>.log``. Events still propagate to the
    run-level handlers.
    """

    from .engine.sink import safe_file_stem

    # Dots would nest the stdlib logger under a bogus parent.
    logger_name = f"{UNIT_LOGGER_PREFIX}.{safe_file_stem(unit_name).replace('.', '_')}"
    if _LOGGING_INITIALISED:
        _attach_unit_handler(logging.getLogger(logger_name), unit_log_path(unit_name))
    return structlog.get_logger(logger_name).bind(unit=unit_name)


def _attach_unit_handler(py_logger: logging.Logger, path: Path) -> None:
    with _UNIT_HANDLER_LOCK:
        if any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path)
            for handler in py_logger.handlers
        ):
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        app_handlers = logging.getLogger(APP_LOGGER).handlers
        if app_handlers:
            handler.setFormatter(app_handlers[0].formatter)
        handler.setLevel(logging.INFO)
        py_logger.addHandler(handler)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_logs() -> Iterable[Path]:
    """Run-level logs first, then one log per work unit."""

    log_dir = _default_log_dir()
    if not log_dir.exists():
        return []
    return sorted(log_dir.glob("*.log")) + sorted((log_dir / UNITS_SUBDIR).glob("*.log"))


__all__ = ["available_logs", "configure_logging", "tail_log", "unit_log_path", "unit_logger"]
