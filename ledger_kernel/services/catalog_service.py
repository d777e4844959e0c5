"""
CatalogService -- guarded maintenance of the currency and account catalogs.

Responsibility:
    Create, re-price and delete currencies; open, rename and close accounts.
    Only the rules that protect the ledger are enforced here: a catalog row
    referenced by any record can never be removed, and every row satisfies
    the format rules the record log relies on.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Currency codes are 3-4 uppercase ASCII letters; USD prices are > 0.
    - Account handles are handle_min_length..handle_max_length characters
      and the account was opened at least min_account_age_years before the
      clock's today.
    - Renames and closures hold the per-account locks so they never race an
      append on the same account.

Failure modes:
    - InvalidCurrencyCodeError, InvalidPriceError, CurrencyAlreadyExistsError,
      UnknownCurrencyError, UnchangedValueError, CurrencyReferencedError.
    - InvalidHandleError, AccountTooYoungError, AccountAlreadyExistsError,
      NotFoundError("account"), AccountReferencedError.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.store import LedgerStore, UnitOfWork
from ledger_kernel.domain.amounts import parse_amount
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import (
    AccountAlreadyExistsError,
    AccountReferencedError,
    AccountTooYoungError,
    CurrencyAlreadyExistsError,
    CurrencyReferencedError,
    InvalidCurrencyCodeError,
    InvalidHandleError,
    InvalidPriceError,
    NotANumberError,
    NotFoundError,
    UnchangedValueError,
    UnknownCurrencyError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.selectors.catalog_selector import (
    AccountView,
    CatalogSelector,
    CurrencyView,
)
from ledger_kernel.selectors.record_selector import RecordSelector
from ledger_kernel.services.account_locks import AccountLockRegistry

logger = get_logger("services.catalog")

_CURRENCY_CODE = re.compile(r"[A-Z]{3,4}")


def years_before(today: date, years: int) -> date:
    """Same calendar day ``years`` earlier; Feb 29 falls back to Feb 28."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


class CatalogService:
    """Currency and account catalog maintenance."""

    def __init__(
        self,
        store: LedgerStore,
        locks: AccountLockRegistry | None = None,
        clock: Clock | None = None,
        min_account_age_years: int = 18,
        handle_min_length: int = 5,
        handle_max_length: int = 20,
    ):
        self._store = store
        self._locks = locks or AccountLockRegistry()
        self._clock = clock or SystemClock()
        self._min_age = min_account_age_years
        self._handle_min = handle_min_length
        self._handle_max = handle_max_length

    # ------------------------------------------------------------------
    # Currencies
    # ------------------------------------------------------------------

    def create_currency(self, code: str, usd_price: object) -> CurrencyView:
        if not isinstance(code, str) or not _CURRENCY_CODE.fullmatch(code):
            raise InvalidCurrencyCodeError(code)
        price = self._parse_price(code, usd_price)

        def _create(uow: UnitOfWork) -> CurrencyView:
            if CatalogSelector(uow.session).find_currency(code) is not None:
                raise CurrencyAlreadyExistsError(code)
            try:
                with uow.savepoint():
                    uow.insert(Currency(code=code, usd_price=price))
            except IntegrityError as exc:
                raise CurrencyAlreadyExistsError(code) from exc
            return CurrencyView(code=code, usd_price=price)

        with LogContext.bind(operation="create_currency"):
            view = self._store.with_unit_of_work(_create)
            logger.info("currency_created", extra={"currency": code, "usd_price": price})
            return view

    def reprice_currency(self, code: str, usd_price: object) -> CurrencyView:
        """Replace the current USD quote of ``code``."""

        def _reprice(uow: UnitOfWork) -> CurrencyView:
            row = CatalogSelector(uow.session).find_currency(code, for_update=True)
            if row is None:
                raise UnknownCurrencyError(code)
            price = self._parse_price(code, usd_price)
            if price == row.usd_price:
                raise UnchangedValueError("usd_price", price)
            row.usd_price = price
            uow.session.flush()
            return CurrencyView(code=code, usd_price=price)

        with LogContext.bind(operation="reprice_currency"):
            view = self._store.with_unit_of_work(_reprice)
            logger.info(
                "currency_repriced",
                extra={"currency": code, "usd_price": view.usd_price},
            )
            return view

    def delete_currency(self, code: str) -> None:
        def _delete(uow: UnitOfWork) -> None:
            row = CatalogSelector(uow.session).find_currency(code, for_update=True)
            if row is None:
                raise UnknownCurrencyError(code)
            if RecordSelector(uow.session).currency_has_records(code):
                raise CurrencyReferencedError(code)
            try:
                with uow.savepoint():
                    uow.delete(row)
            except IntegrityError as exc:
                raise CurrencyReferencedError(code) from exc

        with LogContext.bind(operation="delete_currency"):
            self._store.with_unit_of_work(_delete)
            logger.info("currency_deleted", extra={"currency": code})

    def list_currencies(self) -> list[CurrencyView]:
        return self._store.with_unit_of_work(
            lambda uow: CatalogSelector(uow.session).list_currencies()
        )

    def _parse_price(self, code: str, usd_price: object) -> Decimal:
        try:
            price = parse_amount(usd_price, field="usd_price")
        except NotANumberError:
            raise InvalidPriceError(code, usd_price) from None
        if price <= 0:
            raise InvalidPriceError(code, usd_price)
        return price

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def open_account(self, handle: str, opened_at: date) -> AccountView:
        """
        Register a new account.

        Raises:
            InvalidHandleError: Handle length out of range.
            AccountTooYoungError: ``opened_at`` is less than the minimum age
                before the clock's today.
            AccountAlreadyExistsError: Handle already registered.
        """
        self._check_handle(handle)
        if isinstance(opened_at, datetime):
            opened_at = opened_at.date()
        if opened_at > years_before(self._clock.today(), self._min_age):
            raise AccountTooYoungError(handle, opened_at, self._min_age)

        def _open(uow: UnitOfWork) -> AccountView:
            if CatalogSelector(uow.session).find_account(handle) is not None:
                raise AccountAlreadyExistsError(handle)
            try:
                with uow.savepoint():
                    uow.insert(Account(handle=handle, opened_at=opened_at))
            except IntegrityError as exc:
                raise AccountAlreadyExistsError(handle) from exc
            return AccountView(handle=handle, opened_at=opened_at)

        with LogContext.bind(operation="open_account", account=handle):
            with self._locks.hold(handle):
                view = self._store.with_unit_of_work(_open)
            logger.info("account_opened", extra={"opened_at": opened_at})
            return view

    def rename_account(self, handle: str, new_handle: str) -> AccountView:
        def _rename(uow: UnitOfWork) -> AccountView:
            row = CatalogSelector(uow.session).find_account(handle, for_update=True)
            if row is None:
                raise NotFoundError("account", handle)
            self._check_handle(new_handle)
            if new_handle == handle:
                raise UnchangedValueError("handle", new_handle)
            if CatalogSelector(uow.session).find_account(new_handle) is not None:
                raise AccountAlreadyExistsError(new_handle)
            row.handle = new_handle
            uow.session.flush()
            return AccountView(handle=new_handle, opened_at=row.opened_at)

        with LogContext.bind(operation="rename_account", account=handle):
            with self._locks.hold(handle, new_handle):
                view = self._store.with_unit_of_work(_rename)
            logger.info("account_renamed", extra={"new_handle": new_handle})
            return view

    def close_account(self, handle: str) -> None:
        def _close(uow: UnitOfWork) -> None:
            row = CatalogSelector(uow.session).find_account(handle, for_update=True)
            if row is None:
                raise NotFoundError("account", handle)
            if RecordSelector(uow.session).account_has_records(handle):
                raise AccountReferencedError(handle)
            try:
                with uow.savepoint():
                    uow.delete(row)
            except IntegrityError as exc:
                raise AccountReferencedError(handle) from exc

        with LogContext.bind(operation="close_account", account=handle):
            with self._locks.hold(handle):
                self._store.with_unit_of_work(_close)
            logger.info("account_closed")

    def list_accounts(self) -> list[AccountView]:
        return self._store.with_unit_of_work(
            lambda uow: CatalogSelector(uow.session).list_accounts()
        )

    def _check_handle(self, handle: str) -> None:
        if not isinstance(handle, str) or not (
            self._handle_min <= len(handle) <= self._handle_max
        ):
            raise InvalidHandleError(handle, self._handle_min, self._handle_max)
