"""Service tests for record queries and the LedgerService facade."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from ledger_kernel.db.store import LedgerStore
from ledger_kernel.domain.records import RecordKind, SwapRecord
from ledger_kernel.exceptions import (
    NotANumberError,
    NotFoundError,
    StoreUnavailableError,
)
from ledger_kernel.services.ledger_service import LedgerService
from tests.conftest import ALICE, BOB, CAROL


@pytest.fixture
def history(seeded_ledger):
    seeded_ledger.append("onboard", ALICE, "USD", "1000")              # 1
    seeded_ledger.append("swap", ALICE, "USD", "100", dest_currency="EUR")  # 2, 3
    seeded_ledger.append("transfer", ALICE, "EUR", "20", dest_account=BOB)  # 4, 5
    seeded_ledger.append("onboard", CAROL, "BTC", "1")                 # 6
    return seeded_ledger


class TestGetRecord:
    def test_view_has_handles_and_codes(self, history):
        view = history.get_record("3")
        assert view.seq == 3
        assert view.kind is RecordKind.SWAP
        assert view.source_account == ALICE
        assert view.source_currency == "USD"
        assert view.dest_currency == "EUR"
        assert view.dest_account is None
        assert view.amount == Decimal("100")
        assert isinstance(view.record, SwapRecord)
        assert view.created_at is not None

    def test_unknown(self, history):
        with pytest.raises(NotFoundError):
            history.get_record(42)

    def test_not_a_number(self, history):
        with pytest.raises(NotANumberError):
            history.get_record("three")


class TestListRecords:
    def test_all_in_seq_order(self, history):
        assert [v.seq for v in history.list_records()] == [1, 2, 3, 4, 5, 6]

    def test_by_account_matches_either_side(self, history):
        assert [v.seq for v in history.list_records(account=BOB)] == [4, 5]
        assert [v.seq for v in history.list_records(account=ALICE)] == [1, 2, 3, 5]

    def test_by_currency_matches_either_side(self, history):
        assert [v.seq for v in history.list_records(currency="EUR")] == [2, 3, 4, 5]

    def test_by_kind(self, history):
        assert [v.seq for v in history.list_records(kind="onboard")] == [1, 2, 4, 6]

    def test_by_source_and_destination(self, history):
        assert [v.seq for v in history.list_records(source_account=ALICE)] == [1, 2, 3, 5]
        assert [v.seq for v in history.list_records(source_account=BOB)] == [4]
        assert [v.seq for v in history.list_records(dest_account=BOB)] == [5]
        assert history.list_records(dest_account=ALICE) == []

    def test_source_and_destination_together(self, history):
        views = history.list_records(source_account=ALICE, dest_account=BOB, currency="EUR")
        assert [(v.source_account, v.dest_account, v.seq) for v in views] == [(ALICE, BOB, 5)]
        assert history.list_records(source_account=BOB, dest_account=ALICE) == []

    def test_combined_filters(self, history):
        views = history.list_records(account=ALICE, currency="EUR", kind=RecordKind.TRANSFER)
        assert [v.seq for v in views] == [5]
        assert views[0].dest_account == BOB

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"account": "nobody_99"}, "account"),
            ({"currency": "GBP"}, "currency"),
            ({"kind": "refund"}, "kind"),
            ({"source_account": "nobody_99"}, "source_account"),
            ({"account": ALICE, "dest_account": "nobody_99"}, "dest_account"),
        ],
    )
    def test_unknown_filters(self, history, kwargs, field):
        with pytest.raises(NotFoundError) as exc_info:
            history.list_records(**kwargs)
        assert exc_info.value.field == field


class _UnreachableSession:
    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def rollback(self):
        pass

    def close(self):
        pass


class TestStoreUnavailable:
    def test_operational_error_is_translated(self, deterministic_clock):
        ledger = LedgerService(LedgerStore(_UnreachableSession), deterministic_clock)

        with pytest.raises(StoreUnavailableError) as exc_info:
            ledger.balance(ALICE)
        assert "connection refused" in exc_info.value.reason
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_append_reports_store_unavailable(self, deterministic_clock, captured_logs):
        ledger = LedgerService(LedgerStore(_UnreachableSession), deterministic_clock)

        with pytest.raises(StoreUnavailableError):
            ledger.append("onboard", ALICE, "USD", "1")
        rejected = [r for r in captured_logs() if r["message"] == "append_rejected"]
        assert rejected[0]["error_code"] == "STORE_UNAVAILABLE"
