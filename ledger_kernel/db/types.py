"""
Module: ledger_kernel.db.types
Responsibility: Exact decimal column type used by every amount and price
    column.
Architecture position: Kernel > DB.  May be imported by models/.  Takes its
    precision and scale from domain/amounts.py, which validates amounts
    against the same numbers; MUST NOT import from services/ or selectors/.

Invariants enforced:
    - No floats anywhere in the kernel.  On PostgreSQL amounts are
      NUMERIC(38, 9).  SQLite has no exact numeric storage (pysqlite round
      trips NUMERIC through float), so there the canonical decimal string is
      stored and parsed back verbatim.
"""

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

from ledger_kernel.domain.amounts import MONEY_PRECISION, MONEY_SCALE


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through binary floating point.

    Guarantees:
        - PostgreSQL: NUMERIC(38, 9), values returned as Decimal.
        - SQLite: VARCHAR(64) holding str(Decimal), returned as Decimal.
    """

    impl = Numeric(MONEY_PRECISION, MONEY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(
            Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return str(Decimal(value))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))

