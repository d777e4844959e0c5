"""
Concurrency tests for the append path.

Writers on the same account are serialized by the per-account lock registry
and, across service instances, by the database (BEGIN IMMEDIATE on SQLite,
SELECT ... FOR UPDATE on PostgreSQL).

Skip with: pytest -m "not concurrency"
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from ledger_kernel.domain.records import RecordKind
from ledger_kernel.exceptions import InsufficientFundsError
from ledger_kernel.services.ledger_service import LedgerService
from tests.conftest import ALICE, BOB, CAROL

pytestmark = [pytest.mark.concurrency, pytest.mark.slow_locks]


def _race(calls):
    """Run zero-argument callables at the same time; return (results, errors)."""
    barrier = Barrier(len(calls))

    def _run(call):
        barrier.wait(timeout=10)
        try:
            return call(), None
        except Exception as exc:  # collected and asserted by the caller
            return None, exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        outcomes = list(pool.map(_run, calls))
    results = [r for r, e in outcomes if e is None]
    errors = [e for r, e in outcomes if e is not None]
    return results, errors


class TestDoubleSpend:
    def test_two_swaps_against_one_balance(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")

        swap = lambda: seeded_ledger.append("swap", ALICE, "USD", "60", dest_currency="EUR")
        results, errors = _race([swap, swap])

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InsufficientFundsError)
        assert seeded_ledger.balance(ALICE).balances == {
            "EUR": Decimal("30"),
            "USD": Decimal("40"),
        }

    def test_two_service_instances_share_the_database(
        self, seeded_ledger, store, deterministic_clock
    ):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        other = LedgerService(store, deterministic_clock, lock_timeout_seconds=5)

        results, errors = _race([
            lambda: seeded_ledger.append("transfer", ALICE, "USD", "60", dest_account=BOB),
            lambda: other.append("transfer", ALICE, "USD", "60", dest_account=CAROL),
        ])

        assert len(results) == 1
        assert [type(e) for e in errors] == [InsufficientFundsError]
        assert seeded_ledger.balance(ALICE).balances == {"USD": Decimal("40")}


class TestAutoOnboardRace:
    def test_single_onboard_for_shared_destination(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("onboard", CAROL, "USD", "100")

        results, errors = _race([
            lambda: seeded_ledger.append("transfer", ALICE, "USD", "10", dest_account=BOB),
            lambda: seeded_ledger.append("transfer", CAROL, "USD", "10", dest_account=BOB),
        ])

        assert errors == []
        assert sum(r.auto_onboard is not None for r in results) == 1
        onboards = seeded_ledger.list_records(account=BOB, kind=RecordKind.ONBOARD)
        assert len(onboards) == 1
        assert seeded_ledger.balance(BOB).balances == {"USD": Decimal("20")}


class TestSequenceUnderConcurrency:
    def test_seqs_are_unique_and_dense(self, seeded_ledger):
        calls = [
            lambda code=code, handle=handle: seeded_ledger.append("onboard", handle, code, "1")
            for handle in (ALICE, BOB, CAROL)
            for code in ("USD", "EUR")
        ]
        results, errors = _race(calls)

        assert errors == []
        seqs = sorted(r.record.seq for r in results)
        assert seqs == list(range(1, len(calls) + 1))
