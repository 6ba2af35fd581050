"""Runtime configuration for the expense tracker backend and client.

Settings are resolved in three layers, each overriding the previous one:

1. the defaults declared on :class:`Settings`;
2. an optional YAML file, given explicitly or through ``EXPENSES_CONFIG``;
3. ``EXPENSES_*`` environment variables.

Every problem found while parsing is collected so that a single
:class:`ConfigError` reports all of them at once.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Final

import yaml

CONFIG_ENV_FLAG: Final[str] = "EXPENSES_CONFIG"
DEFAULT_DB_PATH: Final[Path] = Path("expenses.db")

_ENV_KEYS: Final[dict[str, str]] = {
    "EXPENSES_HOST": "host",
    "EXPENSES_PORT": "port",
    "EXPENSES_DB_URL": "database_url",
    "EXPENSES_CORS_ORIGINS": "cors_origins",
    "EXPENSES_API_URL": "api_base_url",
    "EXPENSES_TIMEOUT": "request_timeout",
    "EXPENSES_LOG_LEVEL": "log_level",
    "EXPENSES_JSON_LOGS": "json_logs",
}
_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off", ""})


class ConfigError(ValueError):
    """Raised when configuration values cannot be parsed."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration values.

    Attributes:
      host: Interface the API server binds to.
      port: TCP port the API server listens on.
      database_url: SQLAlchemy URL of the expense store.
      cors_origins: Origins allowed to call the API from a browser.
      api_base_url: Base URL the client uses to reach the API.
      request_timeout: Client request timeout in seconds.
      log_level: Level name used by :func:`expense_tracker.logging.setup_logger`.
      json_logs: Whether to also write JSON lines to the log file.
    """

    host: str = "127.0.0.1"
    port: int = 5000
    database_url: str = f"sqlite:///{DEFAULT_DB_PATH}"
    cors_origins: tuple[str, ...] = ("*",)
    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 10.0
    log_level: str = "INFO"
    json_logs: bool = False


def _as_port(value: Any, errors: list[str]) -> int | None:
    try:
        port = int(value)
    except (TypeError, ValueError):
        errors.append(f"port must be an integer, got {value!r}")
        return None
    if not 0 < port < 65536:
        errors.append(f"port must be between 1 and 65535, got {port}")
        return None
    return port


def _as_timeout(value: Any, errors: list[str]) -> float | None:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        errors.append(f"request_timeout must be a number, got {value!r}")
        return None
    if timeout <= 0:
        errors.append("request_timeout must be > 0")
        return None
    return timeout


def _as_bool(value: Any, errors: list[str]) -> bool | None:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    errors.append(f"json_logs must be a boolean, got {value!r}")
    return None


def _as_origins(value: Any, errors: list[str]) -> tuple[str, ...] | None:
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, list | tuple):
        items = [str(part).strip() for part in value]
    else:
        errors.append(f"cors_origins must be a list or comma separated string, got {value!r}")
        return None
    origins = tuple(item for item in items if item)
    return origins or ("*",)


def _as_text(name: str, value: Any, errors: list[str]) -> str | None:
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{name} must be a non-empty string")
        return None
    return value.strip()


def _coerce(raw: Mapping[str, Any], errors: list[str]) -> dict[str, Any]:
    """Validate ``raw`` entries returning the subset that parsed correctly."""

    known = {item.name for item in fields(Settings)}
    parsed: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            continue
        if key == "port":
            result: Any = _as_port(value, errors)
        elif key == "request_timeout":
            result = _as_timeout(value, errors)
        elif key == "json_logs":
            result = _as_bool(value, errors)
        elif key == "cors_origins":
            result = _as_origins(value, errors)
        elif key == "log_level":
            text = _as_text(key, value, errors)
            result = text.upper() if text else None
        else:
            result = _as_text(key, value, errors)
        if result is not None:
            parsed[key] = result
    return parsed


def read_config_file(path: Path | str) -> dict[str, Any]:
    """Load a YAML configuration file returning its top-level mapping."""

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError([f"{path} must contain a mapping at the top level"])
    return payload


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_key, name in _ENV_KEYS.items():
        if env_key in env:
            overrides[name] = env[env_key]
    db_path = env.get("EXPENSES_DB_PATH")
    if db_path and "database_url" not in overrides:
        overrides["database_url"] = f"sqlite:///{db_path}"
    return overrides


def load_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve :class:`Settings` from defaults, YAML file and environment."""

    environ = os.environ if env is None else env
    errors: list[str] = []
    settings = Settings()

    config_path = path or environ.get(CONFIG_ENV_FLAG)
    if config_path:
        raw = read_config_file(config_path)
        settings = replace(settings, **_coerce(raw, errors))

    settings = replace(settings, **_coerce(_env_overrides(environ), errors))
    if errors:
        raise ConfigError(errors)
    return settings


__all__ = ["ConfigError", "Settings", "load_settings", "read_config_file"]
