"""
RetractionService -- hard-deletes the newest record of its accounts.

Responsibility:
    Removes a record from the log when, for every account the record
    references, it is still the most recent record touching that account.
    No compensating record is written; the record simply ceases to exist
    and balances are re-projected without it.

Architecture position:
    Kernel > Services -- imperative shell around the pure guard in
    domain/retraction.py.

Invariants enforced:
    - Retraction takes the same per-account locks as append, and re-reads
      the record inside the unit of work, so an append that lands between
      the lookup and the delete is always seen by the guard.
    - A transfer is retractable only when it is the latest record for both
      its source and its destination account.

Failure modes:
    - NotANumberError("id") for an id that is not a positive integer.
    - NotFoundError("id") if no record has that seq.
    - NotLatestRecordError naming the blocking accounts.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_kernel.db.store import LedgerStore, UnitOfWork
from ledger_kernel.domain.amounts import parse_record_id
from ledger_kernel.domain.records import Record
from ledger_kernel.domain.retraction import blocking_accounts
from ledger_kernel.exceptions import NotFoundError, NotLatestRecordError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.record_selector import RecordSelector, to_record
from ledger_kernel.services.account_locks import AccountLockRegistry

logger = get_logger("services.retraction")


@dataclass(frozen=True)
class RetractionResult:
    """The record that was removed."""

    record: Record

    @property
    def seq(self) -> int:
        return self.record.seq


class RetractionService:
    """
    Guarded hard delete of records.

    Non-goals:
        - No reversal entries and no undo of a retraction.
    """

    def __init__(self, store: LedgerStore, locks: AccountLockRegistry | None = None):
        self._store = store
        self._locks = locks or AccountLockRegistry()

    def retract(self, record_id: object) -> RetractionResult:
        """
        Retract the record whose public id (seq) is ``record_id``.

        Raises:
            NotANumberError: ``record_id`` is not a positive integer.
            NotFoundError: No such record.
            NotLatestRecordError: A newer record touches one of its accounts.
        """
        seq = parse_record_id(record_id)
        with LogContext.bind(operation="retract", record_seq=seq):
            view = self._store.with_unit_of_work(
                lambda uow: RecordSelector(uow.session).get_record(seq)
            )
            if view is None:
                raise NotFoundError("id", record_id)

            with self._locks.hold(*view.record.accounts):
                record = self._store.with_unit_of_work(
                    lambda uow: self._retract_locked(uow, seq, record_id)
                )

            logger.info(
                "record_retracted",
                extra={"kind": record.kind.value, "seq": record.seq},
            )
            return RetractionResult(record=record)

    def _retract_locked(self, uow: UnitOfWork, seq: int, record_id: object) -> Record:
        selector = RecordSelector(uow.session)
        row = selector.row_by_seq(seq)
        if row is None:
            raise NotFoundError("id", record_id)
        record = to_record(row)
        uow.lock_accounts(record.accounts)

        blocking = blocking_accounts(record, selector.latest_by_account(record.accounts))
        if blocking:
            logger.info(
                "retraction_refused",
                extra={"seq": seq, "blocking": blocking},
            )
            raise NotLatestRecordError(seq, blocking)

        uow.delete(row)
        return record
