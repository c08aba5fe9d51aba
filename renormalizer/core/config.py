# renormalizer/core/config.py

import os
import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..types import (
    RepairConfig,
    ConfigurationError,
    DEFAULT_JSON_COLUMNS,
    DEFAULT_KEY_COLUMN,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BUSY_TIMEOUT_MS,
)
from .logging import RenormalizerLogger, log_with_context


ENV_PREFIX = "RENORMALIZER_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


def _env_list(env: Mapping[str, str], name: str, default: Sequence[str]) -> list:
    raw = env.get(ENV_PREFIX + name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_repair_config(input_path=None,
                       output_path=None,
                       check_integrity: bool = False,
                       json_columns: Optional[Sequence[str]] = None,
                       key_column: Optional[str] = None,
                       batch_size: Optional[int] = None,
                       busy_timeout_ms: Optional[int] = None,
                       keep_going: bool = False,
                       log_level: Optional[str] = None,
                       log_dir=None,
                       env_vars: Optional[Mapping[str, str]] = None) -> RepairConfig:
    """
    Build the run configuration.

    Explicit arguments win over RENORMALIZER_* environment variables,
    which win over the built-in defaults. A .env file in the working
    directory is loaded first unless env_vars is given.
    """
    if env_vars is None:
        from dotenv import load_dotenv
        load_dotenv()
        env = os.environ
    else:
        env = env_vars

    if not input_path:
        raise ConfigurationError("Missing input")
    if not output_path:
        raise ConfigurationError("Missing output")

    json_columns = list(json_columns) if json_columns else _env_list(env, "JSON_COLUMNS", DEFAULT_JSON_COLUMNS)
    key_column = key_column or env.get(ENV_PREFIX + "KEY_COLUMN") or DEFAULT_KEY_COLUMN
    batch_size = batch_size if batch_size is not None else _env_int(env, "BATCH_SIZE", DEFAULT_BATCH_SIZE)
    busy_timeout_ms = (busy_timeout_ms if busy_timeout_ms is not None
                       else _env_int(env, "BUSY_TIMEOUT_MS", DEFAULT_BUSY_TIMEOUT_MS))
    log_level = (log_level or env.get(ENV_PREFIX + "LOG_LEVEL") or "INFO").upper()
    log_dir = log_dir or env.get(ENV_PREFIX + "LOG_DIR")

    if not json_columns:
        raise ConfigurationError("At least one JSON column is required")
    if batch_size < 1:
        raise ConfigurationError(f"Batch size must be positive, got {batch_size}")
    if busy_timeout_ms < 0:
        raise ConfigurationError(f"Busy timeout cannot be negative, got {busy_timeout_ms}")
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level: {log_level}")

    config = RepairConfig(
        input_path=Path(input_path),
        output_path=Path(output_path),
        check_integrity=bool(check_integrity),
        json_columns=json_columns,
        key_column=key_column,
        batch_size=batch_size,
        busy_timeout_ms=busy_timeout_ms,
        keep_going=bool(keep_going),
        log_level=log_level,
        log_dir=Path(log_dir) if log_dir else None,
    )

    logger = RenormalizerLogger.get_logger('core.config')
    log_with_context(logger, logging.DEBUG, "Repair configuration loaded",
                     db_path=str(config.input_path),
                     column=",".join(config.json_columns))
    return config
