"""
Amounts -- exact decimal parsing for record amounts and record ids.

Every amount entering the kernel passes through parse_amount().  Binary
floats are refused outright: a float has already lost the value the caller
meant, and money must never be derived from one.

Amounts are stored as NUMERIC(38, 9), so parse_amount() also refuses any
value that column could not hold exactly (more than 9 significant decimal
places, or more than 29 integer digits).  What the caller gets back from an
append is therefore always what a later read returns.
"""

from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation

from ledger_kernel.exceptions import NotANumberError

# Arithmetic context for conversion and projection.
MONEY_CONTEXT = Context(prec=38, rounding=ROUND_HALF_EVEN)

# Storage format of amounts and prices; ExactDecimal uses the same numbers.
MONEY_PRECISION = 38
MONEY_SCALE = 9

ZERO = Decimal("0")


def decimal_places(amount: Decimal) -> int:
    """Significant digits after the decimal point; trailing zeros don't count."""
    _, digits, exponent = amount.as_tuple()
    significant = "".join(map(str, digits)).rstrip("0")
    if not significant:
        return 0
    return max(0, -(exponent + len(digits) - len(significant)))


def is_storable(amount: Decimal) -> bool:
    """True if NUMERIC(MONEY_PRECISION, MONEY_SCALE) holds ``amount`` exactly."""
    if decimal_places(amount) > MONEY_SCALE:
        return False
    return amount.is_zero() or amount.adjusted() < MONEY_PRECISION - MONEY_SCALE


def parse_amount(value: object, field: str = "amount") -> Decimal:
    """
    Parse a non-negative exact decimal.

    Accepts Decimal, int and numeric strings.  Rejects floats, booleans,
    NaN, infinities, negative values and values with more precision than
    storage keeps (see is_storable).

    Raises:
        NotANumberError: If the value is not a non-negative finite decimal.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise NotANumberError(field, value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise NotANumberError(field, value) from None
    else:
        raise NotANumberError(field, value)

    if not amount.is_finite() or amount < ZERO or not is_storable(amount):
        raise NotANumberError(field, value)
    return amount


def parse_record_id(value: object, field: str = "id") -> int:
    """
    Parse a record id (the record's sequence number).

    Raises:
        NotANumberError: If the value is not a positive integer.
    """
    if isinstance(value, bool):
        raise NotANumberError(field, value)
    if isinstance(value, int):
        record_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        record_id = int(value.strip())
    else:
        raise NotANumberError(field, value)
    if record_id <= 0:
        raise NotANumberError(field, value)
    return record_id
