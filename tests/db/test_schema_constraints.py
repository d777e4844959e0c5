"""
Database-level constraints on the record log.

The appender checks every rule first; these constraints are the backstop
when two processes race past the checks.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.engine import get_session, get_session_factory
from ledger_kernel.db.store import LedgerStore
from ledger_kernel.models import Account, Currency, LedgerRecord

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def rows(engine):
    session = get_session()
    usd = Currency(code="USD", usd_price=Decimal("1"))
    eur = Currency(code="EUR", usd_price=Decimal("2"))
    alice = Account(handle="alice_01", opened_at=date(1990, 1, 1))
    bob = Account(handle="bob_0002", opened_at=date(1990, 1, 1))
    session.add_all([usd, eur, alice, bob])
    session.commit()
    yield session, usd, eur, alice, bob
    session.rollback()
    session.close()


def _record(seq, kind, amount, account, currency, dest_account=None, dest_currency=None):
    return LedgerRecord(
        seq=seq,
        kind=kind,
        amount=Decimal(amount),
        source_account_id=account.id,
        dest_account_id=dest_account.id if dest_account else None,
        source_currency_id=currency.id,
        dest_currency_id=dest_currency.id if dest_currency else None,
        created_at=NOW,
    )


class TestRecordConstraints:
    def test_valid_records(self, rows):
        session, usd, eur, alice, bob = rows
        session.add(_record(1, "onboard", "10", alice, usd))
        session.add(_record(2, "transfer", "1", alice, usd, dest_account=bob))
        session.add(_record(3, "swap", "1", alice, usd, dest_currency=eur))
        session.commit()

        amounts = session.execute(select(LedgerRecord.amount).order_by(LedgerRecord.seq)).scalars().all()
        assert amounts == [Decimal("10"), Decimal("1"), Decimal("1")]
        assert all(isinstance(a, Decimal) for a in amounts)

    def test_amount_keeps_full_precision(self, rows):
        session, usd, _, alice, _ = rows
        session.add(_record(1, "onboard", "0.123456789", alice, usd))
        session.commit()
        assert session.execute(select(LedgerRecord.amount)).scalar_one() == Decimal("0.123456789")

    @pytest.mark.parametrize(
        "build",
        [
            lambda usd, eur, alice, bob: _record(1, "refund", "1", alice, usd),
            lambda usd, eur, alice, bob: _record(1, "onboard", "-1", alice, usd),
            lambda usd, eur, alice, bob: _record(1, "onboard", "1", alice, usd, dest_account=bob),
            lambda usd, eur, alice, bob: _record(1, "onboard", "1", alice, usd, dest_currency=eur),
            lambda usd, eur, alice, bob: _record(1, "transfer", "1", alice, usd),
            lambda usd, eur, alice, bob: _record(1, "transfer", "1", alice, usd, dest_account=alice),
            lambda usd, eur, alice, bob: _record(1, "swap", "1", alice, usd, dest_currency=usd),
            lambda usd, eur, alice, bob: _record(1, "swap", "1", alice, usd, dest_account=bob, dest_currency=eur),
        ],
    )
    def test_shape_violations(self, rows, build):
        session, usd, eur, alice, bob = rows
        session.add(build(usd, eur, alice, bob))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_one_onboard_per_pair(self, rows):
        session, usd, _, alice, _ = rows
        session.add(_record(1, "onboard", "1", alice, usd))
        session.flush()
        session.add(_record(2, "onboard", "1", alice, usd))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_seq_is_unique(self, rows):
        session, usd, eur, alice, _ = rows
        session.add(_record(1, "onboard", "1", alice, usd))
        session.flush()
        session.add(_record(1, "onboard", "1", alice, eur))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_referenced_account_cannot_be_deleted(self, rows):
        session, usd, _, alice, _ = rows
        session.add(_record(1, "onboard", "1", alice, usd))
        session.commit()
        session.delete(alice)
        with pytest.raises(IntegrityError):
            session.flush()


class TestCatalogConstraints:
    def test_price_must_be_positive(self, engine):
        session = get_session()
        try:
            session.add(Currency(code="ZZZ", usd_price=Decimal("0")))
            with pytest.raises(IntegrityError):
                session.flush()
        finally:
            session.rollback()
            session.close()

    def test_handle_length(self, engine):
        session = get_session()
        try:
            session.add(Account(handle="abc", opened_at=date(1990, 1, 1)))
            with pytest.raises(IntegrityError):
                session.flush()
        finally:
            session.rollback()
            session.close()


class TestUnitOfWork:
    def test_rollback_on_error(self, engine):
        store = LedgerStore(get_session_factory())

        with pytest.raises(RuntimeError):
            with store.unit_of_work() as uow:
                uow.insert(Currency(code="GBP", usd_price=Decimal("1.3")))
                raise RuntimeError("boom")

        with store.unit_of_work() as uow:
            assert not uow.exists(select(Currency).where(Currency.code == "GBP"))

    def test_commit_and_query(self, engine):
        store = LedgerStore(get_session_factory())
        store.with_unit_of_work(
            lambda uow: uow.insert(Currency(code="GBP", usd_price=Decimal("1.3")))
        )
        codes = store.with_unit_of_work(
            lambda uow: list(uow.query(select(Currency.code).order_by(Currency.code)))
        )
        assert codes == ["GBP"]

    def test_savepoint_rolls_back_alone(self, engine):
        store = LedgerStore(get_session_factory())
        with store.unit_of_work() as uow:
            uow.insert(Currency(code="GBP", usd_price=Decimal("1.3")))
            with pytest.raises(IntegrityError):
                with uow.savepoint():
                    uow.insert(Currency(code="GBP", usd_price=Decimal("1.4")))

        prices = store.with_unit_of_work(
            lambda uow: list(uow.query(select(Currency.usd_price)))
        )
        assert prices == [Decimal("1.3")]

    def test_get_by_id_and_delete(self, engine):
        store = LedgerStore(get_session_factory())
        row_id = store.with_unit_of_work(
            lambda uow: uow.insert(Currency(code="GBP", usd_price=Decimal("1.3"))).id
        )

        with store.unit_of_work() as uow:
            row = uow.get_by_id(Currency, row_id)
            assert row.code == "GBP"
            uow.delete(row)

        assert store.with_unit_of_work(lambda uow: uow.get_by_id(Currency, row_id)) is None
