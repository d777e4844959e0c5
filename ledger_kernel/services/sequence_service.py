"""
SequenceService -- monotonic record sequence allocation via locked counter rows.

Responsibility:
    Provides the strictly increasing ``seq`` of every appended record.  A
    dedicated counter table is locked with ``SELECT ... FOR UPDATE`` so
    concurrent appends never observe the same value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    RecordAppender once per inserted record (primary and dependent onboard).

Invariants enforced:
    - The aggregate max(seq)+1 pattern is never used; the locked counter row
      is the sole source of truth for the next value.
    - Transactional: an increment is only visible after the caller's unit of
      work commits.  Rollback returns the value.
    - Retraction does not rewind the counter, so a retracted seq is never
      reissued.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via savepoint
      rollback and retry).
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  The increment commits with the caller's transaction.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    LEDGER_RECORD = "ledger_record"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str = LEDGER_RECORD) -> int:
        """
        Get the next value for a named sequence.

        Preconditions: the caller is within an active database transaction.
        Postconditions: Returns an integer > 0 strictly greater than any
            value previously committed for this sequence.  The counter row
            stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use: another writer may create the row concurrently.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str = LEDGER_RECORD) -> int | None:
        """Current value of a sequence without incrementing; None if unused."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None
