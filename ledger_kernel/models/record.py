"""
Module: ledger_kernel.models.record
Responsibility: ORM persistence for the append-style record log.  Every
    balance in the system is derived by replaying these rows.
Architecture position: Kernel > Models.  May import from db/ and sibling
    models.  MUST NOT import from services/, selectors/, domain/, or outer
    layers.

Invariants enforced:
    - seq is unique and allocated from the "ledger_record" sequence counter
      (never max(seq) + 1).  It is the public identifier of a record.
    - Shape per kind, mirrored in CHECK constraints:
        onboard   no dest account, no dest currency, amount >= 0
        transfer  dest account != source account, no dest currency
        swap      no dest account, dest currency != source currency
    - At most one onboard per (account, currency): partial unique index
      uq_record_onboard_pair.
    - FKs are ON DELETE RESTRICT so catalog rows referenced by a record
      cannot be removed.
    - Rows are never updated.  The only removal path is retraction.

Failure modes:
    - IntegrityError on any violated constraint above.  The appender checks
      every rule first; the constraints are the backstop under concurrency.

Audit relevance:
    The record log is the single source of truth.  Retraction hard-deletes
    the newest record of its accounts and leaves no compensating row.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, UUIDString
from ledger_kernel.db.types import ExactDecimal
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency

_ONBOARD_ONLY = text("kind = 'onboard'")


class LedgerRecord(Base):
    """
    One entry of the record log.

    Contract:
        ``account``/``currency`` columns hold the *source* side for every
        kind; ``dest_account_id`` is set only for transfers and
        ``dest_currency_id`` only for swaps.

    Guarantees:
        - amount is an exact Decimal >= 0.
        - created_at comes from the injected clock, not the database.

    Non-goals:
        - No stored balances, no running totals.
    """

    __tablename__ = "ledger_records"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_record_seq"),
        CheckConstraint(
            "kind IN ('onboard', 'transfer', 'swap')",
            name="ck_record_kind",
        ),
        CheckConstraint(
            "CAST(amount AS NUMERIC) >= 0",
            name="ck_record_amount_non_negative",
        ),
        CheckConstraint(
            "kind = 'transfer' OR dest_account_id IS NULL",
            name="ck_record_dest_account_transfer_only",
        ),
        CheckConstraint(
            "kind = 'swap' OR dest_currency_id IS NULL",
            name="ck_record_dest_currency_swap_only",
        ),
        CheckConstraint(
            "kind <> 'transfer' OR (dest_account_id IS NOT NULL "
            "AND dest_account_id <> source_account_id)",
            name="ck_record_transfer_accounts_differ",
        ),
        CheckConstraint(
            "kind <> 'swap' OR (dest_currency_id IS NOT NULL "
            "AND dest_currency_id <> source_currency_id)",
            name="ck_record_swap_currencies_differ",
        ),
        Index(
            "uq_record_onboard_pair",
            "source_account_id",
            "source_currency_id",
            unique=True,
            sqlite_where=_ONBOARD_ONLY,
            postgresql_where=_ONBOARD_ONLY,
        ),
        Index("idx_record_source_account", "source_account_id"),
        Index("idx_record_dest_account", "dest_account_id"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    # RecordKind value
    kind: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        ExactDecimal(),
        nullable=False,
    )

    source_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    )

    dest_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=True,
    )

    source_currency_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("currencies.id", ondelete="RESTRICT"),
        nullable=False,
    )

    dest_currency_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("currencies.id", ondelete="RESTRICT"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Relationships
    source_account: Mapped[Account] = relationship(
        foreign_keys=[source_account_id],
        lazy="joined",
    )

    dest_account: Mapped[Account | None] = relationship(
        foreign_keys=[dest_account_id],
        lazy="joined",
    )

    source_currency: Mapped[Currency] = relationship(
        foreign_keys=[source_currency_id],
        lazy="joined",
    )

    dest_currency: Mapped[Currency | None] = relationship(
        foreign_keys=[dest_currency_id],
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<LedgerRecord seq={self.seq} kind={self.kind} amount={self.amount}>"
