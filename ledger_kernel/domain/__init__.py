"""Pure domain core: record variants, catalogs, conversion, projection, retraction."""

from ledger_kernel.domain.catalog import AccountCatalog, CurrencyCatalog
from ledger_kernel.domain.conversion import convert, to_usd, total_in
from ledger_kernel.domain.projection import balance_in, project
from ledger_kernel.domain.records import (
    OnboardRecord,
    OnboardRequest,
    Record,
    RecordKind,
    RecordRequest,
    SwapRecord,
    SwapRequest,
    TransferRecord,
    TransferRequest,
    build_request,
)
from ledger_kernel.domain.retraction import blocking_accounts, can_retract

__all__ = [
    "AccountCatalog",
    "CurrencyCatalog",
    "OnboardRecord",
    "OnboardRequest",
    "Record",
    "RecordKind",
    "RecordRequest",
    "SwapRecord",
    "SwapRequest",
    "TransferRecord",
    "TransferRequest",
    "balance_in",
    "blocking_accounts",
    "build_request",
    "can_retract",
    "convert",
    "project",
    "to_usd",
    "total_in",
]
