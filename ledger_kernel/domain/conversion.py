"""
Conversion -- USD-pivot currency conversion in exact decimal arithmetic.

Every currency has a single current USD quote.  Converting ``amount`` from
A to B computes its USD value at A's price and divides by B's price:

    amount' = amount * usd_price(A) / usd_price(B)

Multiplication happens before division so that whole-number prices stay
exact.  All arithmetic runs under MONEY_CONTEXT (38 significant digits,
banker's rounding); no value ever passes through a float.
"""

from collections.abc import Mapping
from decimal import Decimal, localcontext

from ledger_kernel.domain.amounts import MONEY_CONTEXT, ZERO
from ledger_kernel.domain.catalog import CurrencyCatalog


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    currencies: CurrencyCatalog,
) -> Decimal:
    """
    Convert ``amount`` between two currencies through their USD prices.

    Postconditions:
        - convert(x, c, c) == x exactly.
        - Result is a Decimal computed under MONEY_CONTEXT.

    Raises:
        UnknownCurrencyError: If either code is absent from ``currencies``.
    """
    currencies.usd_price(from_currency)  # raises for unknown codes, even when equal
    to_price = currencies.usd_price(to_currency)
    if from_currency == to_currency:
        return amount
    with localcontext(MONEY_CONTEXT):
        return to_usd(amount, from_currency, currencies) / to_price


def to_usd(amount: Decimal, currency: str, currencies: CurrencyCatalog) -> Decimal:
    """USD value of ``amount`` at the current quote of ``currency``."""
    with localcontext(MONEY_CONTEXT):
        return amount * currencies.usd_price(currency)


def total_in(
    balances: Mapping[str, Decimal],
    currency: str,
    currencies: CurrencyCatalog,
) -> Decimal:
    """
    Fold a per-currency mapping into a single total in ``currency``.

    Raises:
        UnknownCurrencyError: If ``currency`` or any balance currency is
            absent from ``currencies``.
    """
    currencies.usd_price(currency)
    total = ZERO
    with localcontext(MONEY_CONTEXT):
        for code, amount in balances.items():
            total += convert(amount, code, currency, currencies)
    return total
