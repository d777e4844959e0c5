"""
BalanceService -- projected balances of one account.

Responsibility:
    Loads the catalog snapshot and the account's records in one unit of
    work and runs the pure projector over them.  Optionally folds the
    per-currency balances into a single total in a target currency.

Failure modes (checked in this order):
    - NotFoundError("account") for an unknown handle.
    - UnknownCurrencyError for an unknown target currency.
    - NoRecordsError when the account has no records.
    - NegativeBalanceError / UnknownRecordKindError from the projector.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from ledger_kernel.db.store import LedgerStore, UnitOfWork
from ledger_kernel.domain.conversion import total_in
from ledger_kernel.domain.projection import project
from ledger_kernel.exceptions import NoRecordsError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.catalog_selector import CatalogSelector
from ledger_kernel.selectors.record_selector import RecordSelector

logger = get_logger("services.balance")


@dataclass(frozen=True)
class BalanceReport:
    """
    Balances of one account.

    ``balances`` always holds the per-currency projection.  When a target
    currency was requested, ``currency`` and ``total`` hold the single
    converted total.
    """

    account: str
    balances: Mapping[str, Decimal]
    currency: str | None = None
    total: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", MappingProxyType(dict(self.balances)))

    @property
    def single(self) -> tuple[str, Decimal] | None:
        """(currency, total) when a target currency was requested."""
        if self.currency is None or self.total is None:
            return None
        return (self.currency, self.total)


class BalanceService:
    """Read-side balance queries."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def balance(self, account: str, currency: str | None = None) -> BalanceReport:
        """Project ``account``; see module docstring for failures."""
        with LogContext.bind(operation="balance", account=account):
            report = self._store.with_unit_of_work(
                lambda uow: self._balance(uow, account, currency)
            )
            logger.debug(
                "balance_projected",
                extra={
                    "currencies": sorted(report.balances),
                    "target_currency": currency,
                },
            )
            return report

    def _balance(
        self, uow: UnitOfWork, account: str, currency: str | None
    ) -> BalanceReport:
        catalogs = CatalogSelector(uow.session)
        catalogs.account_catalog([account]).require(account, "account")
        currencies = catalogs.currency_catalog()
        if currency is not None:
            currencies.usd_price(currency)

        records = RecordSelector(uow.session).records_for_account(account)
        if not records:
            raise NoRecordsError(account)

        balances = project(records, currencies, account)
        if currency is None:
            return BalanceReport(account=account, balances=balances)
        return BalanceReport(
            account=account,
            balances=balances,
            currency=currency,
            total=total_in(balances, currency, currencies),
        )
