"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.

Architecture position:
    Configuration -- sits above ``ledger_kernel``.  The kernel MUST NEVER
    import from ``ledger_config``; ``ledger_config.bridges`` translates
    settings into kernel constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` -- a required key (``database.url``) is missing.
    - ``ValueError`` -- a value is malformed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``ledger_config_loaded`` log entry with the source path and the SHA-256
    checksum of the parsed settings.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_settings
from ledger_config.schema import (
    ConcurrencySettings,
    DatabaseSettings,
    LedgerSettings,
    LimitSettings,
    LoggingSettings,
)

_logger = logging.getLogger("ledger_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Settings file.  Defaults to ledger_config/sets/default.yaml.

    Returns:
        Frozen LedgerSettings with its checksum populated.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": settings.checksum,
            "min_movement_amount": settings.limits.min_movement_amount,
            "lock_timeout_seconds": settings.concurrency.lock_timeout_seconds,
        },
    )
    return settings


__all__ = [
    "ConcurrencySettings",
    "DatabaseSettings",
    "LedgerSettings",
    "LimitSettings",
    "LoggingSettings",
    "get_active_config",
]
