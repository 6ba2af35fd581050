"""Structured logging helpers shared by the API server, the client and the CLI."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
LOG_DIR: Final[Path] = Path("artifacts") / "logs"
LOG_PATH: Final[Path] = LOG_DIR / "expense_tracker.log"
JSON_ENV_FLAG: Final[str] = "EXPENSES_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "EXPENSES_LOG_LEVEL"
ROOT_LOGGER: Final[str] = "expense_tracker"


class JsonRequestFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC).isoformat()
        payload = {
            "timestamp": timestamp,
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "method": getattr(record, "method", None),
            "path": getattr(record, "path", None),
            "status_code": _coerce_int(getattr(record, "status_code", None)),
            "process_time_ms": _coerce_number(getattr(record, "process_time_ms", None)),
            "expense_id": getattr(record, "expense_id", None),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _coerce_number(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coerce_int(value: object) -> int | None:
    number = _coerce_number(value)
    return None if number is None else int(number)


def _resolve_level(level: str | int | None) -> int:
    """Pick the log level, letting ``EXPENSES_LOG_LEVEL`` win over arguments."""

    env_level = os.environ.get(LEVEL_ENV_FLAG)
    if env_level:
        candidate = env_level.strip().upper()
    elif isinstance(level, str):
        candidate = level.strip().upper()
    elif isinstance(level, int):
        return int(level)
    else:
        candidate = DEFAULT_LEVEL
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _json_logging_enabled(explicit: bool) -> bool:
    if explicit:
        return True
    value = os.environ.get(JSON_ENV_FLAG)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expenses_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._expenses_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int, log_path: Path) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expenses_json", False):
            handler.setLevel(level)
            return
    log_path.parent.mkdir(parents=True, exist_ok=True)
    json_handler = logging.FileHandler(log_path, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonRequestFormatter())
    json_handler._expenses_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(
    name: str = ROOT_LOGGER,
    json_format: bool = False,
    level: str | int | None = None,
    log_path: Path | None = None,
) -> logging.Logger:
    """Configure and return a logger with a console and optional JSON file handler."""

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Keep propagation on so pytest's caplog still captures records.
    logger.propagate = True
    _ensure_console_handler(logger, resolved_level)
    if _json_logging_enabled(json_format):
        _ensure_json_handler(logger, resolved_level, log_path or LOG_PATH)
    return logger


def configure_cli_logging(json_logs: bool, level: str | int | None = None) -> logging.Logger:
    """Reconfigure the package logger for a CLI run."""

    if json_logs:
        os.environ[JSON_ENV_FLAG] = "1"
    else:
        os.environ.pop(JSON_ENV_FLAG, None)
    return setup_logger(ROOT_LOGGER, json_format=json_logs, level=level)


__all__ = ["JsonRequestFormatter", "configure_cli_logging", "setup_logger"]
