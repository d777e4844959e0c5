"""
LedgerService -- the entry point presentation layers call.

Responsibility:
    Wires the appender, retraction, balance and catalog services over one
    store, one lock registry and one clock, and turns the loose field sets
    of outer layers into typed requests.

Architecture position:
    Kernel > Services -- facade.  Holds no state of its own beyond its
    collaborators; every call opens its own unit(s) of work.

Usage:
    service = LedgerService(LedgerStore(get_session_factory()))
    service.append("onboard", "alice_01", "USD", "1000")
    service.append("swap", "alice_01", "USD", "100", dest_currency="EUR")
    service.balance("alice_01")
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ledger_kernel.db.store import LedgerStore
from ledger_kernel.domain.amounts import parse_record_id
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.records import RecordKind, RecordRequest, build_request, parse_kind
from ledger_kernel.exceptions import NotFoundError
from ledger_kernel.selectors.catalog_selector import (
    AccountView,
    CatalogSelector,
    CurrencyView,
)
from ledger_kernel.selectors.record_selector import RecordSelector, RecordView
from ledger_kernel.services.account_locks import AccountLockRegistry
from ledger_kernel.services.balance_service import BalanceReport, BalanceService
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.record_appender import (
    DEFAULT_MIN_MOVEMENT,
    AppendResult,
    RecordAppender,
)
from ledger_kernel.services.retraction_service import (
    RetractionResult,
    RetractionService,
)


class LedgerService:
    """
    Facade over the ledger engine.

    Contract:
        Every method either returns a frozen result or raises a typed
        LedgerKernelError.  Nothing is retried.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock | None = None,
        *,
        min_movement_amount: Decimal = DEFAULT_MIN_MOVEMENT,
        min_account_age_years: int = 18,
        handle_min_length: int = 5,
        handle_max_length: int = 20,
        lock_timeout_seconds: float = 10.0,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._locks = AccountLockRegistry(timeout=lock_timeout_seconds)
        self._appender = RecordAppender(
            store, self._locks, self._clock, min_movement_amount=min_movement_amount
        )
        self._retractions = RetractionService(store, self._locks)
        self._balances = BalanceService(store)
        self.catalog = CatalogService(
            store,
            self._locks,
            self._clock,
            min_account_age_years=min_account_age_years,
            handle_min_length=handle_min_length,
            handle_max_length=handle_max_length,
        )

    # Records

    def append(
        self,
        kind: RecordKind | str,
        account: str | None,
        currency: str | None,
        amount: object = None,
        dest_account: str | None = None,
        dest_currency: str | None = None,
    ) -> AppendResult:
        """Build the request for ``kind`` from loose fields and append it."""
        request = build_request(
            kind,
            account,
            currency,
            amount=amount,
            dest_account=dest_account,
            dest_currency=dest_currency,
        )
        return self._appender.append(request)

    def append_request(self, request: RecordRequest) -> AppendResult:
        return self._appender.append(request)

    def retract(self, record_id: object) -> RetractionResult:
        return self._retractions.retract(record_id)

    def balance(self, account: str, currency: str | None = None) -> BalanceReport:
        return self._balances.balance(account, currency)

    def get_record(self, record_id: object) -> RecordView:
        """
        Raises:
            NotANumberError: ``record_id`` is not a positive integer.
            NotFoundError: No record with that id.
        """
        seq = parse_record_id(record_id)
        view = self._store.with_unit_of_work(
            lambda uow: RecordSelector(uow.session).get_record(seq)
        )
        if view is None:
            raise NotFoundError("id", record_id)
        return view

    def list_records(
        self,
        account: str | None = None,
        currency: str | None = None,
        kind: RecordKind | str | None = None,
        source_account: str | None = None,
        dest_account: str | None = None,
    ) -> list[RecordView]:
        """
        Records in seq order, optionally filtered.

        ``account`` matches either side of a transfer; ``source_account``
        and ``dest_account`` match one side only.

        Raises:
            NotFoundError: A filter names an unknown account, currency or
                kind (``field`` is the filter's name).
        """
        record_kind = parse_kind(kind) if kind is not None else None
        account_filters = {
            "account": account,
            "source_account": source_account,
            "dest_account": dest_account,
        }

        def _list(uow) -> list[RecordView]:
            catalogs = CatalogSelector(uow.session)
            given = {name: h for name, h in account_filters.items() if h is not None}
            known = catalogs.account_catalog(given.values())
            for name, handle in given.items():
                known.require(handle, name)
            if currency is not None:
                catalogs.currency_catalog().require(currency, "currency")
            return RecordSelector(uow.session).list_records(
                currency=currency, kind=record_kind, **account_filters
            )

        return self._store.with_unit_of_work(_list)

    # Catalogs

    def create_currency(self, code: str, usd_price: object) -> CurrencyView:
        return self.catalog.create_currency(code, usd_price)

    def reprice_currency(self, code: str, usd_price: object) -> CurrencyView:
        return self.catalog.reprice_currency(code, usd_price)

    def delete_currency(self, code: str) -> None:
        self.catalog.delete_currency(code)

    def open_account(self, handle: str, opened_at: date) -> AccountView:
        return self.catalog.open_account(handle, opened_at)

    def rename_account(self, handle: str, new_handle: str) -> AccountView:
        return self.catalog.rename_account(handle, new_handle)

    def close_account(self, handle: str) -> None:
        self.catalog.close_account(handle)
