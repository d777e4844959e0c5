"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (CLI, batch import, API) must react to a rejected
record precisely: an insufficient-funds rejection is shown to the user, a
store outage is surfaced as "try again later", a corrupt record is an
integrity alarm. Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.append("swap", "alice_01", "USD", "60", dest_currency="EUR")
    except InsufficientFundsError as e:
        notify(f"{e.account} holds only {e.available} {e.currency}")
    except LedgerKernelError as e:
        api_response(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- NotFoundError
    |   +-- NotANumberError
    |   +-- MissingFieldError
    |   +-- UnexpectedFieldError
    |   +-- SameCurrencyError
    |   +-- SameAccountError
    |   +-- AmountTooSmallError
    |
    +-- OnboardError
    |   +-- DuplicateOnboardError
    |   +-- NotOnboardedError
    |   +-- AutoOnboardFailedError
    |
    +-- BalanceError
    |   +-- InsufficientFundsError
    |   +-- NegativeBalanceError
    |   +-- NoRecordsError
    |
    +-- RecordIntegrityError
    |   +-- UnknownRecordKindError
    |
    +-- RetractionError
    |   +-- NotLatestRecordError
    |
    +-- CurrencyError
    |   +-- UnknownCurrencyError
    |
    +-- CatalogError
    |   +-- InvalidCurrencyCodeError
    |   +-- InvalidPriceError
    |   +-- CurrencyAlreadyExistsError
    |   +-- CurrencyReferencedError
    |   +-- InvalidHandleError
    |   +-- AccountTooYoungError
    |   +-- AccountAlreadyExistsError
    |   +-- AccountReferencedError
    |   +-- UnchangedValueError
    |
    +-- ConcurrencyError
    |   +-- AccountBusyError
    |
    +-- StoreError
        +-- StoreUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                  | When Raised
--------------|-----------------------|------------------------------------------
Validation    | NOT_FOUND             | Account/currency/record id not in catalog
              | NOT_A_NUMBER          | Amount or id does not parse
              | MISSING_FIELD         | Required field absent for the record kind
              | UNEXPECTED_FIELD      | Field must be absent for the record kind
              | SAME_CURRENCY         | Swap source == destination currency
              | SAME_ACCOUNT          | Transfer source == destination account
              | AMOUNT_TOO_SMALL      | Transfer/swap amount below the minimum
--------------|-----------------------|------------------------------------------
Onboard       | DUPLICATE_ONBOARD     | (account, currency) already onboarded
              | NOT_ONBOARDED         | Source pair was never onboarded
              | AUTO_ONBOARD_FAILED   | Dependent onboard of destination failed
--------------|-----------------------|------------------------------------------
Balance       | INSUFFICIENT_FUNDS    | Source balance below the requested amount
              | NEGATIVE_BALANCE      | Replayed history yields a negative total
              | NO_RECORDS            | Balance asked for an account with no records
--------------|-----------------------|------------------------------------------
Integrity     | UNKNOWN_RECORD_KIND   | Replayed record of an unrecognized kind
--------------|-----------------------|------------------------------------------
Retraction    | NOT_LATEST_RECORD     | Record is not the newest for its accounts
--------------|-----------------------|------------------------------------------
Currency      | UNKNOWN_CURRENCY      | Conversion or query on an unknown code
--------------|-----------------------|------------------------------------------
Catalog       | INVALID_CURRENCY_CODE | Code is not 3-4 uppercase letters
              | INVALID_PRICE         | USD price is not a positive decimal
              | CURRENCY_EXISTS       | Code already registered
              | CURRENCY_REFERENCED   | Currency used by a record, cannot delete
              | INVALID_HANDLE        | Handle length outside the allowed range
              | ACCOUNT_TOO_YOUNG     | Opening date less than 18 years ago
              | ACCOUNT_EXISTS        | Handle already registered
              | ACCOUNT_REFERENCED    | Account used by a record, cannot delete
              | UNCHANGED_VALUE       | Edit would not change anything
--------------|-----------------------|------------------------------------------
Concurrency   | ACCOUNT_BUSY          | Per-account lock not acquired in time
--------------|-----------------------|------------------------------------------
Store         | STORE_UNAVAILABLE     | Database connectivity failure

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception, not ValueError, so the whole
   family is catchable as a group without catching programming errors.
2. ``code`` is a class attribute: static per type, usable without an instance.
3. All context is stored as attributes; logs and API layers read them
   directly (see logging_config.StructuredFormatter).
4. No exception is retried inside the kernel. Validation and balance
   failures are permanent for a given input; store and concurrency errors
   are left to the caller's retry policy.

===============================================================================
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation exceptions


class ValidationError(LedgerKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class NotFoundError(ValidationError):
    """A referenced account, currency or record does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} not found: {value}")


class NotANumberError(ValidationError):
    """An amount or id field does not parse as the required number."""

    code: str = "NOT_A_NUMBER"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        if field == "amount":
            expected = "a non-negative decimal"
        else:
            expected = "an integer"
        super().__init__(f"{field} must be {expected}, got {value!r}")


class MissingFieldError(ValidationError):
    """A field required by the record kind was not supplied."""

    code: str = "MISSING_FIELD"

    def __init__(self, kind: str, field: str):
        self.kind = kind
        self.field = field
        super().__init__(f"{kind} requires {field}")


class UnexpectedFieldError(ValidationError):
    """A field that must be absent for the record kind was supplied."""

    code: str = "UNEXPECTED_FIELD"

    def __init__(self, kind: str, field: str):
        self.kind = kind
        self.field = field
        super().__init__(f"{kind} does not accept {field}")


class SameCurrencyError(ValidationError):
    """Swap source and destination currency are the same."""

    code: str = "SAME_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"Source and destination currency must differ (both {currency})"
        )


class SameAccountError(ValidationError):
    """Transfer source and destination account are the same."""

    code: str = "SAME_ACCOUNT"

    def __init__(self, account: str):
        self.account = account
        super().__init__(
            f"Source and destination account must differ (both {account})"
        )


class AmountTooSmallError(ValidationError):
    """Transfer or swap amount below the configured minimum."""

    code: str = "AMOUNT_TOO_SMALL"

    def __init__(self, amount: Decimal, minimum: Decimal):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Amount {amount} is below the minimum of {minimum}")


# Onboard-related exceptions


class OnboardError(LedgerKernelError):
    """Base exception for currency activation errors."""

    code: str = "ONBOARD_ERROR"


class DuplicateOnboardError(OnboardError):
    """The (account, currency) pair already has an onboard record."""

    code: str = "DUPLICATE_ONBOARD"

    def __init__(self, account: str, currency: str):
        self.account = account
        self.currency = currency
        super().__init__(f"{currency} is already onboarded on {account}")


class NotOnboardedError(OnboardError):
    """The source (account, currency) pair has no onboard record."""

    code: str = "NOT_ONBOARDED"

    def __init__(self, account: str, currency: str):
        self.account = account
        self.currency = currency
        super().__init__(f"{currency} has not been onboarded on {account}")


class AutoOnboardFailedError(OnboardError):
    """The dependent onboard of a transfer/swap destination failed."""

    code: str = "AUTO_ONBOARD_FAILED"

    def __init__(self, account: str, currency: str, reason: str):
        self.account = account
        self.currency = currency
        self.reason = reason
        super().__init__(
            f"Could not onboard {currency} on {account}: {reason}"
        )


# Balance-related exceptions


class BalanceError(LedgerKernelError):
    """Base exception for balance errors."""

    code: str = "BALANCE_ERROR"


class InsufficientFundsError(BalanceError):
    """The source balance does not cover the requested amount."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(
        self,
        account: str,
        currency: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.account = account
        self.currency = currency
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds on {account}: {available} {currency} "
            f"available, {requested} requested"
        )


class NegativeBalanceError(BalanceError):
    """Replaying the account's records yields a negative aggregate."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(self, account: str, currencies: list[str]):
        self.account = account
        self.currencies = currencies
        super().__init__(
            f"Records of {account} produce negative balances in "
            f"{', '.join(currencies)}"
        )


class NoRecordsError(BalanceError):
    """The account has no records at all."""

    code: str = "NO_RECORDS"

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"No records exist for {account}")


# Record integrity exceptions


class RecordIntegrityError(LedgerKernelError):
    """Base exception for corrupt stored records."""

    code: str = "RECORD_INTEGRITY_ERROR"


class UnknownRecordKindError(RecordIntegrityError):
    """A replayed record has a kind outside onboard/transfer/swap."""

    code: str = "UNKNOWN_RECORD_KIND"

    def __init__(self, position: int, kind: str):
        self.position = position
        self.kind = kind
        super().__init__(
            f"Record at position {position} has unrecognized kind {kind!r}"
        )


# Retraction-related exceptions


class RetractionError(LedgerKernelError):
    """Base exception for retraction errors."""

    code: str = "RETRACTION_ERROR"


class NotLatestRecordError(RetractionError):
    """The record is not the most recent one for every account it touches."""

    code: str = "NOT_LATEST_RECORD"

    def __init__(self, record_seq: int, blocking: dict[str, int | None]):
        self.record_seq = record_seq
        self.blocking = blocking
        detail = ", ".join(
            f"{account} (latest {latest})" for account, latest in blocking.items()
        )
        super().__init__(
            f"Record {record_seq} is not the latest record for: {detail}"
        )


# Currency-related exceptions


class CurrencyError(LedgerKernelError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class UnknownCurrencyError(CurrencyError):
    """The currency code is not present in the catalog snapshot."""

    code: str = "UNKNOWN_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unknown currency: {currency}")


# Catalog maintenance exceptions


class CatalogError(LedgerKernelError):
    """Base exception for currency/account catalog maintenance."""

    code: str = "CATALOG_ERROR"


class InvalidCurrencyCodeError(CatalogError):
    """Currency code is not 3-4 uppercase letters."""

    code: str = "INVALID_CURRENCY_CODE"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"Currency code must be 3 or 4 uppercase letters: {currency!r}"
        )


class InvalidPriceError(CatalogError):
    """USD price is missing, non-numeric, zero or negative."""

    code: str = "INVALID_PRICE"

    def __init__(self, currency: str, price: object):
        self.currency = currency
        self.price = price
        super().__init__(f"USD price of {currency} must be positive: {price!r}")


class CurrencyAlreadyExistsError(CatalogError):
    """Currency code already registered."""

    code: str = "CURRENCY_EXISTS"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Currency already exists: {currency}")


class CurrencyReferencedError(CatalogError):
    """Currency cannot be deleted because records reference it."""

    code: str = "CURRENCY_REFERENCED"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"Currency {currency} cannot be deleted: referenced by records"
        )


class InvalidHandleError(CatalogError):
    """Account handle length outside the allowed range."""

    code: str = "INVALID_HANDLE"

    def __init__(self, handle: str, min_length: int, max_length: int):
        self.handle = handle
        self.min_length = min_length
        self.max_length = max_length
        super().__init__(
            f"Handle must be {min_length}-{max_length} characters: {handle!r}"
        )


class AccountTooYoungError(CatalogError):
    """Account opening date is less than the minimum age before today."""

    code: str = "ACCOUNT_TOO_YOUNG"

    def __init__(self, handle: str, opened_at: object, min_years: int):
        self.handle = handle
        self.opened_at = opened_at
        self.min_years = min_years
        super().__init__(
            f"Account {handle} must be opened at least {min_years} years "
            f"ago (opened_at={opened_at})"
        )


class AccountAlreadyExistsError(CatalogError):
    """Account handle already registered."""

    code: str = "ACCOUNT_EXISTS"

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Account already exists: {handle}")


class AccountReferencedError(CatalogError):
    """Account cannot be deleted because records reference it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(
            f"Account {handle} cannot be deleted: referenced by records"
        )


class UnchangedValueError(CatalogError):
    """An edit would leave the value as it is."""

    code: str = "UNCHANGED_VALUE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"New {field} must differ from the current one ({value})")


# Concurrency exceptions


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class AccountBusyError(ConcurrencyError):
    """The per-account lock could not be acquired within the timeout."""

    code: str = "ACCOUNT_BUSY"

    def __init__(self, account: str, timeout: float):
        self.account = account
        self.timeout = timeout
        super().__init__(
            f"Account {account} is busy: lock not acquired within {timeout}s"
        )


# Store exceptions


class StoreError(LedgerKernelError):
    """Base exception for persistence boundary errors."""

    code: str = "STORE_ERROR"


class StoreUnavailableError(StoreError):
    """The store could not be reached; the unit of work was rolled back."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Ledger store unavailable: {reason}")
