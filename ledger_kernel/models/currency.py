"""
Module: ledger_kernel.models.currency
Responsibility: ORM persistence for the currency catalog -- one row per
    currency code with its single current USD quote.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - code is unique and at most 4 characters (format validated by
      CatalogService: 3-4 uppercase letters).
    - usd_price > 0 (CHECK constraint ck_currency_price_positive).
    - A referenced currency cannot be deleted: ledger_records FKs are
      ON DELETE RESTRICT.

Failure modes:
    - IntegrityError on duplicate code, non-positive price, or DELETE of a
      currency still referenced by a record.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import ExactDecimal


class Currency(TrackedBase):
    """
    Currency catalog entry.

    Contract:
        Holds the *current* USD price of one currency.  Every conversion in
        the ledger reads this price at the time of the operation; there is no
        rate history.

    Guarantees:
        - usd_price is an exact Decimal, never a float.

    Non-goals:
        - Does NOT keep historical quotes.  Re-pricing changes the value of
          every future conversion and every future balance total.
    """

    __tablename__ = "currencies"

    __table_args__ = (
        CheckConstraint(
            "CAST(usd_price AS NUMERIC) > 0",
            name="ck_currency_price_positive",
        ),
    )

    # Currency code, e.g. "USD", "USDT"
    code: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
        unique=True,
    )

    # Value of one unit in USD
    usd_price: Mapped[Decimal] = mapped_column(
        ExactDecimal(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Currency {self.code} = {self.usd_price} USD>"
