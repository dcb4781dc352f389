import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

from taskman.lib import paths

DEFAULTS = {
    "db_file": "tasks.db",
    "lock_timeout": 5.0,
    "retry_delay": 0.01,
    "retry_max_delay": 0.25,
    "log_level": "WARNING",
}

_NUMERIC_KEYS = ("lock_timeout", "retry_delay", "retry_max_delay")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    db_path: Path
    lock_timeout: float
    retry_delay: float
    retry_max_delay: float
    log_level: str


def config_file() -> Path:
    """Return config file path in the working directory."""
    return paths.config_file()


def _validate_config(cfg: dict) -> None:
    """Validate config structure. Fail fast on invalid types."""
    if not isinstance(cfg, dict):
        raise ValueError(f"Config must be a dict, got {type(cfg).__name__}")

    unknown = set(cfg) - set(DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    if "db_file" in cfg and (not isinstance(cfg["db_file"], str) or not cfg["db_file"].strip()):
        raise ValueError("Config 'db_file' must be a non-empty string")

    for key in _NUMERIC_KEYS:
        if key not in cfg:
            continue
        value = cfg[key]
        if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
            raise ValueError(f"Config '{key}' must be a positive number")

    if "log_level" in cfg and str(cfg["log_level"]).upper() not in _LOG_LEVELS:
        raise ValueError(f"Config 'log_level' must be one of {', '.join(_LOG_LEVELS)}")


def _clear_cache():
    load_config.cache_clear()


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load taskman.yaml, returning its content or an empty dict if not found."""
    path = config_file()
    if not path.exists():
        return {}
    with open(path) as f:
        cfg = yaml.safe_load(f) or {}
    _validate_config(cfg)
    return cfg


def _env_timeout() -> float | None:
    raw = os.getenv("TASKMAN_LOCK_TIMEOUT")
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"TASKMAN_LOCK_TIMEOUT must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError("TASKMAN_LOCK_TIMEOUT must be positive")
    return value


def get_settings(db_override: str | Path | None = None) -> Settings:
    """Resolve settings: defaults < taskman.yaml < environment < explicit override."""
    cfg = {**DEFAULTS, **load_config()}

    db_file = str(db_override) if db_override else os.getenv("TASKMAN_DB") or cfg["db_file"]
    lock_timeout = _env_timeout() or float(cfg["lock_timeout"])

    return Settings(
        db_path=paths.db_path(db_file),
        lock_timeout=lock_timeout,
        retry_delay=float(cfg["retry_delay"]),
        retry_max_delay=float(cfg["retry_max_delay"]),
        log_level=str(cfg["log_level"]).upper(),
    )
