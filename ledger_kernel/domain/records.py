"""
Records -- the closed set of ledger record kinds.

Responsibility:
    Defines the three record variants (onboard, transfer, swap) twice: as
    *requests* (a candidate record before it has a sequence number) and as
    *records* (an appended entry with its seq).  Each variant carries only
    the fields its kind allows, so a swap can never hold a destination
    account and an onboard can never hold a destination currency.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Shape table: onboard(account, currency, amount>=0),
      transfer(source_account, dest_account, currency, amount),
      swap(account, source_currency, dest_currency, amount).
    - build_request() is the only way loose fields become a request; it
      rejects missing or forbidden fields per kind.

Failure modes:
    - MissingFieldError / UnexpectedFieldError for a field set that does not
      match the kind.
    - NotFoundError("kind") for a kind outside the closed set.
    - NotANumberError("amount") for an amount that does not parse.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Union

from ledger_kernel.domain.amounts import ZERO, parse_amount
from ledger_kernel.exceptions import (
    MissingFieldError,
    NotFoundError,
    UnexpectedFieldError,
)


class RecordKind(str, Enum):
    """Kinds of ledger records."""

    ONBOARD = "onboard"
    TRANSFER = "transfer"
    SWAP = "swap"


# ---------------------------------------------------------------------------
# Requests (candidate records)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OnboardRequest:
    """Activate ``currency`` on ``account`` with an initial amount."""

    account: str
    currency: str
    amount: Decimal = ZERO

    kind = RecordKind.ONBOARD

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.account,)


@dataclass(frozen=True, slots=True)
class TransferRequest:
    """Move ``amount`` of ``currency`` from one account to another."""

    source_account: str
    dest_account: str
    currency: str
    amount: Decimal

    kind = RecordKind.TRANSFER

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.source_account, self.dest_account)


@dataclass(frozen=True, slots=True)
class SwapRequest:
    """Convert ``amount`` of ``source_currency`` into ``dest_currency``."""

    account: str
    source_currency: str
    dest_currency: str
    amount: Decimal

    kind = RecordKind.SWAP

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.account,)


RecordRequest = Union[OnboardRequest, TransferRequest, SwapRequest]


# ---------------------------------------------------------------------------
# Appended records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OnboardRecord:
    seq: int
    account: str
    currency: str
    amount: Decimal
    created_at: datetime | None = None

    kind = RecordKind.ONBOARD

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.account,)


@dataclass(frozen=True, slots=True)
class TransferRecord:
    seq: int
    source_account: str
    dest_account: str
    currency: str
    amount: Decimal
    created_at: datetime | None = None

    kind = RecordKind.TRANSFER

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.source_account, self.dest_account)


@dataclass(frozen=True, slots=True)
class SwapRecord:
    seq: int
    account: str
    source_currency: str
    dest_currency: str
    amount: Decimal
    created_at: datetime | None = None

    kind = RecordKind.SWAP

    @property
    def accounts(self) -> tuple[str, ...]:
        return (self.account,)


Record = Union[OnboardRecord, TransferRecord, SwapRecord]


# ---------------------------------------------------------------------------
# Request construction from loose fields
# ---------------------------------------------------------------------------

# kind -> (required, forbidden) among the optional destination fields
_DEST_FIELDS = {
    RecordKind.ONBOARD: ((), ("dest_account", "dest_currency")),
    RecordKind.TRANSFER: (("dest_account",), ("dest_currency",)),
    RecordKind.SWAP: (("dest_currency",), ("dest_account",)),
}


def parse_kind(kind: RecordKind | str) -> RecordKind:
    """Resolve a kind name; NotFoundError("kind") if outside the closed set."""
    if isinstance(kind, RecordKind):
        return kind
    try:
        return RecordKind(str(kind).strip().lower())
    except ValueError:
        raise NotFoundError("kind", kind) from None


def build_request(
    kind: RecordKind | str,
    account: str | None,
    currency: str | None,
    amount: object = None,
    dest_account: str | None = None,
    dest_currency: str | None = None,
) -> RecordRequest:
    """
    Build a typed request from the loose field set used by outer layers.

    ``account`` and ``currency`` are the source account and source currency
    for every kind.

    Preconditions: none -- every field may be missing.
    Postconditions: Returns a request whose variant matches ``kind`` with a
        parsed, non-negative amount (onboard defaults to 0).

    Raises:
        NotFoundError: Unknown kind.
        MissingFieldError: A required field is None.
        UnexpectedFieldError: A forbidden field is present.
        NotANumberError: Amount does not parse.
    """
    record_kind = parse_kind(kind)
    supplied = {
        "account": account,
        "currency": currency,
        "dest_account": dest_account,
        "dest_currency": dest_currency,
    }

    required, forbidden = _DEST_FIELDS[record_kind]
    for field in ("account", "currency", *required):
        if supplied[field] is None:
            raise MissingFieldError(record_kind.value, field)
    for field in forbidden:
        if supplied[field] is not None:
            raise UnexpectedFieldError(record_kind.value, field)

    if record_kind is RecordKind.ONBOARD:
        parsed = ZERO if amount is None else parse_amount(amount)
        return OnboardRequest(account=account, currency=currency, amount=parsed)

    if amount is None:
        raise MissingFieldError(record_kind.value, "amount")
    parsed = parse_amount(amount)

    if record_kind is RecordKind.TRANSFER:
        return TransferRequest(
            source_account=account,
            dest_account=dest_account,
            currency=currency,
            amount=parsed,
        )
    return SwapRequest(
        account=account,
        source_currency=currency,
        dest_currency=dest_currency,
        amount=parsed,
    )
