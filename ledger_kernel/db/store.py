"""
Module: ledger_kernel.db.store
Responsibility: The narrow transactional-store contract the ledger engine
    depends on.  A LedgerStore hands out units of work; a UnitOfWork wraps one
    SQLAlchemy session transaction and exposes get_by_id / exists / insert /
    delete / query plus the account row locks and savepoints the services need.
Architecture position: Kernel > DB.  May import from db/ and models/.
    MUST NOT import from services/, selectors/ or domain/.

Invariants enforced:
    - All-or-nothing: a unit of work commits on normal exit and rolls back on
      any exception, so a failed append leaves no partial records.
    - Connectivity failures never leak driver exceptions: SQLAlchemy
      OperationalError / InterfaceError are re-raised as StoreUnavailableError
      after rollback.  Nothing is retried.

Failure modes:
    - StoreUnavailableError when the database cannot be reached or the
      connection drops mid-transaction.
    - Any other exception propagates unchanged after rollback.
"""

from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.base import Base
from ledger_kernel.exceptions import LedgerKernelError, StoreUnavailableError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account

logger = get_logger("db.store")

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")


class UnitOfWork:
    """
    One open session transaction.

    Contract:
        Obtained only from LedgerStore.unit_of_work().  Writes are flushed
        immediately so constraint violations surface at the call site, but
        nothing is visible to other sessions before the unit commits.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, model: type[ModelType], id_: Any) -> ModelType | None:
        return self.session.get(model, id_)

    def exists(self, statement: Select) -> bool:
        """True if ``statement`` matches at least one row."""
        return bool(self.session.execute(select(statement.exists())).scalar())

    def insert(self, entity: ModelType) -> ModelType:
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: Base) -> None:
        self.session.delete(entity)
        self.session.flush()

    def query(self, statement: Select) -> Sequence[Any]:
        """Ordered sequence of the scalars selected by ``statement``."""
        return self.session.execute(statement).scalars().all()

    def lock_accounts(self, handles: Iterable[str]) -> dict[str, Account]:
        """
        Lock the rows of the given accounts with SELECT ... FOR UPDATE.

        Rows are locked in handle order.  Unknown handles are simply absent
        from the result; callers decide whether that is an error.
        """
        ordered = sorted(set(handles))
        if not ordered:
            return {}
        rows = self.session.execute(
            select(Account)
            .where(Account.handle.in_(ordered))
            .order_by(Account.handle)
            .with_for_update()
        ).scalars()
        return {account.handle: account for account in rows}

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """SAVEPOINT scope: rolled back alone if the body raises."""
        with self.session.begin_nested():
            yield


class LedgerStore:
    """
    Factory of units of work over a SQLAlchemy session factory.

    Guarantees:
        - Each unit of work uses its own session; threads never share one.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def unit_of_work(self) -> Iterator[UnitOfWork]:
        """
        Transactional scope for one engine operation.

        Usage:
            with store.unit_of_work() as uow:
                uow.insert(record)
        """
        session = self._session_factory()
        try:
            yield UnitOfWork(session)
            session.commit()
        except (OperationalError, InterfaceError) as exc:
            session.rollback()
            logger.error("store_unavailable", exc_info=True)
            reason = str(exc.orig) if exc.orig is not None else str(exc)
            raise StoreUnavailableError(reason) from exc
        except LedgerKernelError as exc:
            session.rollback()
            logger.debug(
                "transaction_rolled_back",
                extra={"error_code": exc.code},
            )
            raise
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def with_unit_of_work(self, fn: Callable[[UnitOfWork], T]) -> T:
        """Run ``fn`` inside one unit of work and return its result."""
        with self.unit_of_work() as uow:
            return fn(uow)
