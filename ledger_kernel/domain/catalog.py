"""
Catalog snapshots -- immutable views of currencies and accounts.

Engine calls never read ambient catalog state.  The services load a
snapshot inside the unit of work and pass it explicitly into conversion and
projection, so replays and tests are deterministic.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from ledger_kernel.exceptions import NotFoundError, UnknownCurrencyError


@dataclass(frozen=True)
class CurrencyCatalog:
    """
    Snapshot of currency code -> current USD price.

    Guarantees:
        - Immutable: the underlying mapping is a read-only proxy.
        - Every price is a positive Decimal.
    """

    prices: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for code, price in self.prices.items():
            if not isinstance(price, Decimal) or price <= 0:
                raise ValueError(f"USD price of {code} must be a positive Decimal")
        object.__setattr__(self, "prices", MappingProxyType(dict(self.prices)))

    @classmethod
    def of(cls, prices: Mapping[str, Decimal | str | int]) -> "CurrencyCatalog":
        """Build a snapshot from loosely typed prices (tests, fixtures)."""
        return cls({code: Decimal(str(price)) for code, price in prices.items()})

    def __contains__(self, code: object) -> bool:
        return code in self.prices

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(self.prices)

    def usd_price(self, code: str) -> Decimal:
        """
        Current USD price of ``code``.

        Raises:
            UnknownCurrencyError: If ``code`` is not in the snapshot.
        """
        try:
            return self.prices[code]
        except KeyError:
            raise UnknownCurrencyError(code) from None

    def require(self, code: str, field_name: str) -> str:
        """Return ``code`` or raise NotFoundError(field_name)."""
        if code not in self.prices:
            raise NotFoundError(field_name, code)
        return code


@dataclass(frozen=True)
class AccountCatalog:
    """Snapshot of the valid account handles."""

    handles: frozenset[str] = frozenset()

    @classmethod
    def of(cls, handles: Iterable[str]) -> "AccountCatalog":
        return cls(frozenset(handles))

    def __contains__(self, handle: object) -> bool:
        return handle in self.handles

    def __len__(self) -> int:
        return len(self.handles)

    def require(self, handle: str, field_name: str) -> str:
        """Return ``handle`` or raise NotFoundError(field_name)."""
        if handle not in self.handles:
            raise NotFoundError(field_name, handle)
        return handle
