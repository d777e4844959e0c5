"""
LedgerSettings schema.

Frozen dataclasses the YAML configuration is parsed into.  Nothing outside
ledger_config constructs these from files; the kernel receives plain
values through the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for ledger_kernel.db.engine."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LimitSettings:
    """Business limits enforced by the appender and the catalog service."""

    min_movement_amount: Decimal = Decimal("0.1")
    min_account_age_years: int = 18
    handle_min_length: int = 5
    handle_max_length: int = 20


@dataclass(frozen=True)
class ConcurrencySettings:
    lock_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Complete runtime configuration."""

    database: DatabaseSettings
    limits: LimitSettings = field(default_factory=LimitSettings)
    concurrency: ConcurrencySettings = field(default_factory=ConcurrencySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
