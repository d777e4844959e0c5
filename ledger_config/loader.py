"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the typed
``ledger_config.schema`` dataclasses.  The single public entry point for
runtime config is ``ledger_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Malformed values (non-numeric amount, inverted handle range, unknown
  log level, ...)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ConcurrencySettings,
    DatabaseSettings,
    LedgerSettings,
    LimitSettings,
    LoggingSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top level of {path} must be a mapping")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a YAML scalar into Decimal.  Floats go through str()."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a decimal, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a decimal, got {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


def parse_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=str(data["url"]),
        echo=bool(data.get("echo", False)),
        pool_size=parse_positive_int(data.get("pool_size", 20), "database.pool_size"),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=parse_positive_int(data.get("pool_timeout", 30), "database.pool_timeout"),
        pool_recycle=int(data.get("pool_recycle", 1800)),
    )


def parse_limits(data: dict[str, Any]) -> LimitSettings:
    minimum = parse_decimal(data.get("min_movement_amount", "0.1"), "limits.min_movement_amount")
    if minimum < 0:
        raise ValueError(f"limits.min_movement_amount must be >= 0, got {minimum}")
    handle_min = parse_positive_int(data.get("handle_min_length", 5), "limits.handle_min_length")
    handle_max = parse_positive_int(data.get("handle_max_length", 20), "limits.handle_max_length")
    if handle_min > handle_max:
        raise ValueError(
            f"limits.handle_min_length ({handle_min}) exceeds "
            f"limits.handle_max_length ({handle_max})"
        )
    age = data.get("min_account_age_years", 18)
    if isinstance(age, bool) or not isinstance(age, int) or age < 0:
        raise ValueError(f"limits.min_account_age_years must be >= 0, got {age!r}")
    return LimitSettings(
        min_movement_amount=minimum,
        min_account_age_years=age,
        handle_min_length=handle_min,
        handle_max_length=handle_max,
    )


def parse_concurrency(data: dict[str, Any]) -> ConcurrencySettings:
    timeout = parse_decimal(
        data.get("lock_timeout_seconds", 10), "concurrency.lock_timeout_seconds"
    )
    if timeout <= 0:
        raise ValueError(f"concurrency.lock_timeout_seconds must be > 0, got {timeout}")
    return ConcurrencySettings(lock_timeout_seconds=float(timeout))


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level is not a known level: {level!r}")
    return LoggingSettings(level=level)


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a full settings mapping.

    Postconditions: Returns a frozen LedgerSettings whose ``checksum`` is
        the SHA-256 of the parsed values.
    """
    settings = LedgerSettings(
        database=parse_database(data["database"]),
        limits=parse_limits(data.get("limits") or {}),
        concurrency=parse_concurrency(data.get("concurrency") or {}),
        logging=parse_logging(data.get("logging") or {}),
    )
    payload = asdict(settings)
    payload.pop("checksum")
    return replace(settings, checksum=compute_checksum(payload))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
