"""
RecordAppender -- validates and appends onboard, transfer and swap records.

Responsibility:
    The single write path of the record log.  For one typed request it
    checks every precondition against the current catalogs and the
    projected balances, then inserts the record together with its
    dependent onboard (if the destination pair is not held yet) in one
    unit of work.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes LedgerStore,
    AccountLockRegistry, SequenceService, the selectors and the pure
    projection/conversion functions.

Invariants enforced:
    - Check order: shared pre-checks (every account/currency field exists),
      then per kind:
        onboard   DuplicateOnboard
        transfer  SameAccount, AmountTooSmall, NotOnboarded,
                  InsufficientFunds, auto-onboard destination
        swap      SameCurrency, AmountTooSmall, NotOnboarded,
                  InsufficientFunds, auto-onboard destination
    - Validation and insert run under the per-account locks of every account
      the request touches, and inside one unit of work that also row-locks
      the account rows.  Either every record of the append is committed or
      none is.
    - The dependent onboard is inserted in a SAVEPOINT before the primary
      record, so it always has the lower seq.

Failure modes:
    - NotFoundError(field), SameAccountError, SameCurrencyError,
      AmountTooSmallError, DuplicateOnboardError, NotOnboardedError,
      InsufficientFundsError, AutoOnboardFailedError.
    - NegativeBalanceError / UnknownRecordKindError if the stored history of
      the source account is already inconsistent.
    - AccountBusyError, StoreUnavailableError from the infrastructure.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.store import LedgerStore, UnitOfWork
from ledger_kernel.domain.amounts import ZERO
from ledger_kernel.domain.catalog import AccountCatalog, CurrencyCatalog
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.projection import balance_in
from ledger_kernel.domain.records import (
    OnboardRecord,
    OnboardRequest,
    Record,
    RecordRequest,
    SwapRecord,
    SwapRequest,
    TransferRecord,
    TransferRequest,
)
from ledger_kernel.exceptions import (
    AmountTooSmallError,
    AutoOnboardFailedError,
    DuplicateOnboardError,
    InsufficientFundsError,
    LedgerKernelError,
    NotOnboardedError,
    SameAccountError,
    SameCurrencyError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.record import LedgerRecord
from ledger_kernel.selectors.catalog_selector import CatalogSelector
from ledger_kernel.selectors.record_selector import RecordSelector
from ledger_kernel.services.account_locks import AccountLockRegistry
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.record_appender")

DEFAULT_MIN_MOVEMENT = Decimal("0.1")


@dataclass(frozen=True)
class AppendResult:
    """Immutable result of a successful append.

    ``auto_onboard`` is the dependent onboard record created for the
    destination pair, or None when the pair was already held.
    """

    record: Record
    auto_onboard: OnboardRecord | None = None

    @property
    def records(self) -> tuple[Record, ...]:
        """Every record this append committed, in seq order."""
        if self.auto_onboard is None:
            return (self.record,)
        return (self.auto_onboard, self.record)


class _AppendContext:
    """Everything one append reads inside its unit of work."""

    def __init__(self, uow: UnitOfWork, accounts: dict[str, Account]):
        self.uow = uow
        self.accounts = accounts
        self.catalogs = CatalogSelector(uow.session)
        self.records = RecordSelector(uow.session)
        self.currencies: CurrencyCatalog = self.catalogs.currency_catalog()
        self.account_catalog = AccountCatalog.of(accounts)


class RecordAppender:
    """
    Validate-and-append for the three record kinds.

    Contract:
        ``append(request)`` either commits the request's record (plus its
        dependent onboard) and returns an AppendResult, or raises a typed
        error and leaves the record log untouched.

    Non-goals:
        - No retries.  A lock timeout or store failure is reported to the
          caller as is.
    """

    def __init__(
        self,
        store: LedgerStore,
        locks: AccountLockRegistry | None = None,
        clock: Clock | None = None,
        min_movement_amount: Decimal = DEFAULT_MIN_MOVEMENT,
    ):
        self._store = store
        self._locks = locks or AccountLockRegistry()
        self._clock = clock or SystemClock()
        self._min_movement = min_movement_amount

    def append(self, request: RecordRequest) -> AppendResult:
        """
        Append ``request`` atomically.

        Raises:
            See module docstring.
        """
        kind = request.kind.value
        with LogContext.bind(operation=f"append_{kind}", account=request.accounts[0]):
            try:
                with self._locks.hold(*request.accounts):
                    result = self._store.with_unit_of_work(
                        lambda uow: self._append_locked(uow, request)
                    )
            except LedgerKernelError as exc:
                logger.info(
                    "append_rejected",
                    extra={"kind": kind, "error_code": exc.code},
                )
                raise

            if result.auto_onboard is not None:
                logger.info(
                    "auto_onboard_appended",
                    extra={
                        "seq": result.auto_onboard.seq,
                        "dest_account": result.auto_onboard.account,
                        "currency": result.auto_onboard.currency,
                    },
                )
            logger.info(
                "record_appended",
                extra={
                    "kind": kind,
                    "seq": result.record.seq,
                    "amount": result.record.amount,
                },
            )
            return result

    # ------------------------------------------------------------------
    # Inside the unit of work
    # ------------------------------------------------------------------

    def _append_locked(self, uow: UnitOfWork, request: RecordRequest) -> AppendResult:
        ctx = _AppendContext(uow, uow.lock_accounts(request.accounts))

        if isinstance(request, OnboardRequest):
            return self._append_onboard(ctx, request)
        if isinstance(request, TransferRequest):
            return self._append_transfer(ctx, request)
        if isinstance(request, SwapRequest):
            return self._append_swap(ctx, request)
        raise TypeError(f"Unsupported request type: {type(request).__name__}")

    def _append_onboard(self, ctx: _AppendContext, request: OnboardRequest) -> AppendResult:
        ctx.account_catalog.require(request.account, "account")
        ctx.currencies.require(request.currency, "currency")

        if ctx.records.onboard_exists(request.account, request.currency):
            raise DuplicateOnboardError(request.account, request.currency)

        try:
            with ctx.uow.savepoint():
                record = self._insert_onboard(
                    ctx, request.account, request.currency, request.amount
                )
        except IntegrityError as exc:
            # Lost a race against another process for the same pair.
            raise DuplicateOnboardError(request.account, request.currency) from exc
        return AppendResult(record=record)

    def _append_transfer(
        self, ctx: _AppendContext, request: TransferRequest
    ) -> AppendResult:
        ctx.account_catalog.require(request.source_account, "account")
        ctx.account_catalog.require(request.dest_account, "dest_account")
        ctx.currencies.require(request.currency, "currency")

        if request.source_account == request.dest_account:
            raise SameAccountError(request.source_account)
        self._check_funds(ctx, request.source_account, request.currency, request.amount)

        auto_onboard = self._ensure_onboarded(ctx, request.dest_account, request.currency)

        seq = SequenceService(ctx.uow.session).next_value()
        created_at = self._clock.now()
        ctx.uow.insert(
            LedgerRecord(
                seq=seq,
                kind=request.kind.value,
                amount=request.amount,
                source_account_id=ctx.accounts[request.source_account].id,
                dest_account_id=ctx.accounts[request.dest_account].id,
                source_currency_id=self._currency_id(ctx, request.currency),
                created_at=created_at,
            )
        )
        record = TransferRecord(
            seq=seq,
            source_account=request.source_account,
            dest_account=request.dest_account,
            currency=request.currency,
            amount=request.amount,
            created_at=created_at,
        )
        return AppendResult(record=record, auto_onboard=auto_onboard)

    def _append_swap(self, ctx: _AppendContext, request: SwapRequest) -> AppendResult:
        ctx.account_catalog.require(request.account, "account")
        ctx.currencies.require(request.source_currency, "currency")
        ctx.currencies.require(request.dest_currency, "dest_currency")

        if request.source_currency == request.dest_currency:
            raise SameCurrencyError(request.source_currency)
        self._check_funds(ctx, request.account, request.source_currency, request.amount)

        auto_onboard = self._ensure_onboarded(ctx, request.account, request.dest_currency)

        seq = SequenceService(ctx.uow.session).next_value()
        created_at = self._clock.now()
        ctx.uow.insert(
            LedgerRecord(
                seq=seq,
                kind=request.kind.value,
                amount=request.amount,
                source_account_id=ctx.accounts[request.account].id,
                source_currency_id=self._currency_id(ctx, request.source_currency),
                dest_currency_id=self._currency_id(ctx, request.dest_currency),
                created_at=created_at,
            )
        )
        record = SwapRecord(
            seq=seq,
            account=request.account,
            source_currency=request.source_currency,
            dest_currency=request.dest_currency,
            amount=request.amount,
            created_at=created_at,
        )
        return AppendResult(record=record, auto_onboard=auto_onboard)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _check_funds(
        self,
        ctx: _AppendContext,
        account: str,
        currency: str,
        amount: Decimal,
    ) -> None:
        """AmountTooSmall, NotOnboarded and InsufficientFunds, in that order."""
        if amount < self._min_movement:
            raise AmountTooSmallError(amount, self._min_movement)
        if not ctx.records.onboard_exists(account, currency):
            raise NotOnboardedError(account, currency)

        available = balance_in(
            ctx.records.records_for_account(account),
            ctx.currencies,
            account,
            currency,
        )
        if available < amount:
            raise InsufficientFundsError(account, currency, available, amount)

    def _ensure_onboarded(
        self, ctx: _AppendContext, account: str, currency: str
    ) -> OnboardRecord | None:
        """Dependent onboard of the destination pair, inside a SAVEPOINT."""
        if ctx.records.onboard_exists(account, currency):
            return None
        try:
            with ctx.uow.savepoint():
                return self._insert_onboard(ctx, account, currency, ZERO)
        except IntegrityError as exc:
            raise AutoOnboardFailedError(account, currency, str(exc.orig)) from exc

    def _insert_onboard(
        self,
        ctx: _AppendContext,
        account: str,
        currency: str,
        amount: Decimal,
    ) -> OnboardRecord:
        seq = SequenceService(ctx.uow.session).next_value()
        created_at = self._clock.now()
        ctx.uow.insert(
            LedgerRecord(
                seq=seq,
                kind=OnboardRequest.kind.value,
                amount=amount,
                source_account_id=ctx.accounts[account].id,
                source_currency_id=self._currency_id(ctx, currency),
                created_at=created_at,
            )
        )
        return OnboardRecord(
            seq=seq,
            account=account,
            currency=currency,
            amount=amount,
            created_at=created_at,
        )

    def _currency_id(self, ctx: _AppendContext, code: str):
        return ctx.catalogs.currency_rows([code])[code].id
