"""
Module: ledger_kernel.selectors.catalog_selector
Responsibility: Read-only access to the currency and account catalogs, and
    the immutable snapshots handed to conversion and projection.
Architecture position: Kernel > Selectors.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from ledger_kernel.domain.catalog import AccountCatalog, CurrencyCatalog
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class CurrencyView:
    code: str
    usd_price: Decimal


@dataclass(frozen=True)
class AccountView:
    handle: str
    opened_at: date


class CatalogSelector(BaseSelector):
    """Catalog lookups and snapshots."""

    def currency_catalog(self) -> CurrencyCatalog:
        """Snapshot of every currency's current USD price."""
        rows = self.session.execute(select(Currency.code, Currency.usd_price)).all()
        return CurrencyCatalog({code: price for code, price in rows})

    def account_catalog(self, handles: Iterable[str] | None = None) -> AccountCatalog:
        """
        Snapshot of valid account handles.

        With ``handles`` only those that exist are loaded; otherwise every
        account is.
        """
        statement = select(Account.handle)
        if handles is not None:
            statement = statement.where(Account.handle.in_(set(handles)))
        return AccountCatalog.of(self.session.execute(statement).scalars())

    def currency_rows(self, codes: Iterable[str]) -> dict[str, Currency]:
        """ORM rows of the given codes, for foreign keys of new records."""
        rows = self.session.execute(
            select(Currency).where(Currency.code.in_(set(codes)))
        ).scalars()
        return {row.code: row for row in rows}

    def find_currency(self, code: str, for_update: bool = False) -> Currency | None:
        statement = select(Currency).where(Currency.code == code)
        if for_update:
            statement = statement.with_for_update()
        return self.session.execute(statement).scalar_one_or_none()

    def find_account(self, handle: str, for_update: bool = False) -> Account | None:
        statement = select(Account).where(Account.handle == handle)
        if for_update:
            statement = statement.with_for_update()
        return self.session.execute(statement).scalar_one_or_none()

    def list_currencies(self) -> list[CurrencyView]:
        rows = self.session.execute(
            select(Currency.code, Currency.usd_price).order_by(Currency.code)
        ).all()
        return [CurrencyView(code=code, usd_price=price) for code, price in rows]

    def list_accounts(self) -> list[AccountView]:
        rows = self.session.execute(
            select(Account.handle, Account.opened_at).order_by(Account.handle)
        ).all()
        return [AccountView(handle=handle, opened_at=opened) for handle, opened in rows]
