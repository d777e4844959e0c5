"""Imperative shell: services that read and write the record log."""

from ledger_kernel.services.account_locks import AccountLockRegistry
from ledger_kernel.services.balance_service import BalanceReport, BalanceService
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.record_appender import AppendResult, RecordAppender
from ledger_kernel.services.retraction_service import (
    RetractionResult,
    RetractionService,
)
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AccountLockRegistry",
    "AppendResult",
    "BalanceReport",
    "BalanceService",
    "CatalogService",
    "LedgerService",
    "RecordAppender",
    "RetractionResult",
    "RetractionService",
    "SequenceCounter",
    "SequenceService",
]
