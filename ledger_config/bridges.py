"""
Config -> Kernel Bridges.

Functions that turn LedgerSettings into kernel objects.  They live in
ledger_config because the kernel must never import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import bootstrap

    service = bootstrap(get_active_config())
"""

from __future__ import annotations

from typing import Any

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
)
from ledger_kernel.db.store import LedgerStore
from ledger_kernel.domain.clock import Clock
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.services.ledger_service import LedgerService


def engine_kwargs(settings: LedgerSettings) -> dict[str, Any]:
    """Keyword arguments for ledger_kernel.db.engine.init_engine_from_url()."""
    db = settings.database
    return {
        "database_url": db.url,
        "echo": db.echo,
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
    }


def service_kwargs(settings: LedgerSettings) -> dict[str, Any]:
    """Keyword arguments for LedgerService()."""
    return {
        "min_movement_amount": settings.limits.min_movement_amount,
        "min_account_age_years": settings.limits.min_account_age_years,
        "handle_min_length": settings.limits.handle_min_length,
        "handle_max_length": settings.limits.handle_max_length,
        "lock_timeout_seconds": settings.concurrency.lock_timeout_seconds,
    }


def build_ledger_service(
    settings: LedgerSettings,
    store: LedgerStore,
    clock: Clock | None = None,
) -> LedgerService:
    return LedgerService(store, clock, **service_kwargs(settings))


def bootstrap(
    settings: LedgerSettings,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> LedgerService:
    """
    Configure logging, initialize the engine and return a ready LedgerService.

    With ``create_schema`` the tables are created if missing (local SQLite
    databases); production schemas are managed outside the application.
    """
    configure_logging(level=settings.logging.level)
    init_engine_from_url(**engine_kwargs(settings))
    if create_schema:
        create_tables()
    return build_ledger_service(settings, LedgerStore(get_session_factory()), clock)
