"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.record import LedgerRecord

__all__ = [
    "Account",
    "Currency",
    "LedgerRecord",
]
