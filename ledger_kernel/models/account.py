"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for ledger accounts, identified by a unique
    human-readable handle.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - handle is unique and 5-20 characters long (CHECK ck_account_handle_length).
    - opened_at is at least 18 years before the clock's today when the account
      is created (validated by CatalogService, the clock is not available to
      the database).
    - A referenced account cannot be deleted: ledger_records FKs are
      ON DELETE RESTRICT.

Failure modes:
    - IntegrityError on duplicate handle, out-of-range handle length, or
      DELETE of an account still referenced by a record.
"""

from datetime import date

from sqlalchemy import CheckConstraint, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Account(TrackedBase):
    """
    Ledger account.

    Contract:
        An Account holds balances in any number of currencies.  Balances are
        never stored here; they are projected from the record log.

    Non-goals:
        - No account types, normal balances or hierarchy.  This is not a
          chart of accounts.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "length(handle) BETWEEN 5 AND 20",
            name="ck_account_handle_length",
        ),
    )

    handle: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
    )

    opened_at: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Account {self.handle}>"
