"""
Projection -- replay an account's records into per-currency balances.

Responsibility:
    The Balance Projector.  Balances are never stored anywhere; every
    balance in the system is the result of project() over the record log.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Depends on the
    conversion helpers and the currency catalog snapshot only.

Invariants enforced:
    - Effects per record kind, seen from ``account``:
        onboard   +amount in its currency
        transfer  -amount (source side) / +amount (destination side), same
                  currency, no conversion
        swap      -amount in source currency and
                  +convert(amount, source, dest) in destination currency
    - All-or-nothing: any negative aggregate fails the whole projection
      with NegativeBalanceError; a partial balance set is never returned.

Failure modes:
    - UnknownRecordKindError(position) for a record outside the closed set
      (1-based position in the replayed sequence).
    - NegativeBalanceError(account) when an aggregate is below zero.
    - UnknownCurrencyError when a swap references a currency missing from
      the snapshot.
"""

from collections.abc import Iterable, Iterator
from decimal import Decimal, localcontext

from ledger_kernel.domain.amounts import MONEY_CONTEXT, ZERO
from ledger_kernel.domain.catalog import CurrencyCatalog
from ledger_kernel.domain.conversion import convert
from ledger_kernel.domain.records import (
    OnboardRecord,
    Record,
    SwapRecord,
    TransferRecord,
)
from ledger_kernel.exceptions import NegativeBalanceError, UnknownRecordKindError


def record_effects(
    position: int,
    record: Record,
    account: str,
    currencies: CurrencyCatalog,
) -> Iterator[tuple[str, Decimal]]:
    """
    Signed (currency, delta) effects of one record on ``account``.

    Records that do not reference ``account`` yield nothing.
    """
    if isinstance(record, OnboardRecord):
        if record.account == account:
            yield record.currency, record.amount
    elif isinstance(record, TransferRecord):
        if record.source_account == account:
            yield record.currency, -record.amount
        if record.dest_account == account:
            yield record.currency, record.amount
    elif isinstance(record, SwapRecord):
        if record.account == account:
            yield record.source_currency, -record.amount
            yield record.dest_currency, convert(
                record.amount,
                record.source_currency,
                record.dest_currency,
                currencies,
            )
    else:
        kind = getattr(record, "kind", type(record).__name__)
        raise UnknownRecordKindError(position, str(getattr(kind, "value", kind)))


def project(
    records: Iterable[Record],
    currencies: CurrencyCatalog,
    account: str,
) -> dict[str, Decimal]:
    """
    Replay ``records`` into the per-currency balances of ``account``.

    Preconditions: ``records`` are in append order (ascending seq).
    Postconditions: Returns {currency: balance} sorted by currency code,
        every balance >= 0.  Currencies whose records sum to zero are kept
        (an onboarded currency with a zero balance is still held).

    Raises:
        UnknownRecordKindError: Unrecognized record in the sequence.
        NegativeBalanceError: Some aggregate is negative.
    """
    totals: dict[str, Decimal] = {}
    with localcontext(MONEY_CONTEXT):
        for position, record in enumerate(records, start=1):
            for code, delta in record_effects(position, record, account, currencies):
                totals[code] = totals.get(code, ZERO) + delta

    negative = sorted(code for code, amount in totals.items() if amount < ZERO)
    if negative:
        raise NegativeBalanceError(account, negative)

    return dict(sorted(totals.items()))


def balance_in(
    records: Iterable[Record],
    currencies: CurrencyCatalog,
    account: str,
    currency: str,
) -> Decimal:
    """Projected balance of a single (account, currency) pair, 0 if never held."""
    return project(records, currencies, account).get(currency, ZERO)
