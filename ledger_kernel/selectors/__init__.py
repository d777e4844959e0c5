"""Read-only query selectors."""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.catalog_selector import (
    AccountView,
    CatalogSelector,
    CurrencyView,
)
from ledger_kernel.selectors.record_selector import (
    RecordSelector,
    RecordView,
    to_record,
    to_view,
)

__all__ = [
    "AccountView",
    "BaseSelector",
    "CatalogSelector",
    "CurrencyView",
    "RecordSelector",
    "RecordView",
    "to_record",
    "to_view",
]
