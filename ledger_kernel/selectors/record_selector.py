"""
Module: ledger_kernel.selectors.record_selector
Responsibility: Read-only queries over the record log: the ordered record
    sequence of an account (input of the projector), onboard lookups, the
    latest record per account (input of the retraction guard), and the
    record views exposed to presentation layers.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every sequence returned is ordered by seq ascending (append order).
    - Rows are mapped into the closed record variants; a stored kind outside
      onboard/transfer/swap raises UnknownRecordKindError with its 1-based
      position in the returned sequence.

Failure modes:
    - UnknownRecordKindError for a corrupt kind column.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_, select

from ledger_kernel.domain.records import (
    OnboardRecord,
    Record,
    RecordKind,
    SwapRecord,
    TransferRecord,
)
from ledger_kernel.exceptions import UnknownRecordKindError
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.record import LedgerRecord
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class RecordView:
    """A record as shown to callers: handles and codes instead of ids."""

    seq: int
    kind: RecordKind
    amount: Decimal
    source_account: str
    source_currency: str
    dest_account: str | None
    dest_currency: str | None
    created_at: datetime
    record: Record


def to_record(row: LedgerRecord, position: int = 1) -> Record:
    """Map an ORM row into its record variant."""
    if row.kind == RecordKind.ONBOARD.value:
        return OnboardRecord(
            seq=row.seq,
            account=row.source_account.handle,
            currency=row.source_currency.code,
            amount=row.amount,
            created_at=row.created_at,
        )
    if row.kind == RecordKind.TRANSFER.value:
        return TransferRecord(
            seq=row.seq,
            source_account=row.source_account.handle,
            dest_account=row.dest_account.handle,
            currency=row.source_currency.code,
            amount=row.amount,
            created_at=row.created_at,
        )
    if row.kind == RecordKind.SWAP.value:
        return SwapRecord(
            seq=row.seq,
            account=row.source_account.handle,
            source_currency=row.source_currency.code,
            dest_currency=row.dest_currency.code,
            amount=row.amount,
            created_at=row.created_at,
        )
    raise UnknownRecordKindError(position, row.kind)


def to_view(row: LedgerRecord, position: int = 1) -> RecordView:
    record = to_record(row, position)
    return RecordView(
        seq=row.seq,
        kind=record.kind,
        amount=row.amount,
        source_account=row.source_account.handle,
        source_currency=row.source_currency.code,
        dest_account=row.dest_account.handle if row.dest_account else None,
        dest_currency=row.dest_currency.code if row.dest_currency else None,
        created_at=row.created_at,
        record=record,
    )


def _touches_account(handle: str):
    return or_(
        LedgerRecord.source_account.has(Account.handle == handle),
        LedgerRecord.dest_account.has(Account.handle == handle),
    )


def _touches_currency(code: str):
    return or_(
        LedgerRecord.source_currency.has(Currency.code == code),
        LedgerRecord.dest_currency.has(Currency.code == code),
    )


class RecordSelector(BaseSelector):
    """Queries over the record log."""

    def _rows(self, *criteria) -> Sequence[LedgerRecord]:
        statement = select(LedgerRecord).order_by(LedgerRecord.seq)
        if criteria:
            statement = statement.where(*criteria)
        return self.session.execute(statement).scalars().all()

    def row_by_seq(self, seq: int) -> LedgerRecord | None:
        """ORM row for ``seq``; used by retraction, which deletes it."""
        return self.session.execute(
            select(LedgerRecord).where(LedgerRecord.seq == seq)
        ).scalar_one_or_none()

    def records_for_account(self, handle: str) -> list[Record]:
        """Every record touching ``handle`` in append order."""
        return [
            to_record(row, position)
            for position, row in enumerate(self._rows(_touches_account(handle)), start=1)
        ]

    def onboard_exists(self, handle: str, code: str) -> bool:
        statement = select(LedgerRecord.id).where(
            LedgerRecord.kind == RecordKind.ONBOARD.value,
            LedgerRecord.source_account.has(Account.handle == handle),
            LedgerRecord.source_currency.has(Currency.code == code),
        )
        return bool(self.session.execute(select(statement.exists())).scalar())

    def latest_seq_for_account(self, handle: str) -> int | None:
        """Highest seq among the records touching ``handle``."""
        return self.session.execute(
            select(func.max(LedgerRecord.seq)).where(_touches_account(handle))
        ).scalar()

    def latest_by_account(self, handles: Iterable[str]) -> dict[str, int | None]:
        return {handle: self.latest_seq_for_account(handle) for handle in handles}

    def account_has_records(self, handle: str) -> bool:
        statement = select(LedgerRecord.id).where(_touches_account(handle))
        return bool(self.session.execute(select(statement.exists())).scalar())

    def currency_has_records(self, code: str) -> bool:
        statement = select(LedgerRecord.id).where(_touches_currency(code))
        return bool(self.session.execute(select(statement.exists())).scalar())

    def get_record(self, seq: int) -> RecordView | None:
        row = self.row_by_seq(seq)
        return to_view(row) if row is not None else None

    def list_records(
        self,
        account: str | None = None,
        currency: str | None = None,
        kind: RecordKind | None = None,
        source_account: str | None = None,
        dest_account: str | None = None,
    ) -> list[RecordView]:
        """
        Record views ordered by seq.  Every filter given must match:
        ``account`` and ``currency`` on either side of the record,
        ``source_account`` only as the sending (or sole) account,
        ``dest_account`` only as the receiving account of a transfer.
        """
        criteria = []
        if account is not None:
            criteria.append(_touches_account(account))
        if source_account is not None:
            criteria.append(LedgerRecord.source_account.has(Account.handle == source_account))
        if dest_account is not None:
            criteria.append(LedgerRecord.dest_account.has(Account.handle == dest_account))
        if currency is not None:
            criteria.append(_touches_currency(currency))
        if kind is not None:
            criteria.append(LedgerRecord.kind == kind.value)
        return [
            to_view(row, position)
            for position, row in enumerate(self._rows(*criteria), start=1)
        ]
