"""Service tests for record retraction."""

from decimal import Decimal

import pytest

from ledger_kernel.domain.records import OnboardRecord, TransferRecord
from ledger_kernel.exceptions import (
    NoRecordsError,
    NotANumberError,
    NotFoundError,
    NotLatestRecordError,
)
from tests.conftest import ALICE, BOB, CAROL


class TestRetract:
    def test_retract_latest_onboard(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")

        result = seeded_ledger.retract(1)

        assert isinstance(result.record, OnboardRecord)
        assert result.seq == 1
        with pytest.raises(NoRecordsError):
            seeded_ledger.balance(ALICE)

    def test_onboard_under_newer_transfer_is_refused(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("transfer", ALICE, "USD", "10", dest_account=BOB)

        with pytest.raises(NotLatestRecordError) as exc_info:
            seeded_ledger.retract(1)
        assert exc_info.value.record_seq == 1
        assert exc_info.value.blocking == {ALICE: 3}
        assert len(seeded_ledger.list_records()) == 3

    def test_retractions_unwind_in_reverse_order(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("transfer", ALICE, "USD", "10", dest_account=BOB)

        assert isinstance(seeded_ledger.retract("3").record, TransferRecord)
        assert seeded_ledger.balance(ALICE).balances == {"USD": Decimal("100")}
        assert seeded_ledger.balance(BOB).balances == {"USD": Decimal("0")}

        seeded_ledger.retract(2)  # bob's auto-onboard
        seeded_ledger.retract(1)
        assert seeded_ledger.list_records() == []

    def test_transfer_blocked_by_destination_activity(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("transfer", ALICE, "USD", "10", dest_account=BOB)
        seeded_ledger.append("onboard", BOB, "EUR", "1")

        with pytest.raises(NotLatestRecordError) as exc_info:
            seeded_ledger.retract(3)
        assert exc_info.value.blocking == {BOB: 4}

    def test_unrelated_accounts_do_not_block(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("onboard", CAROL, "USD", "100")

        seeded_ledger.retract(1)
        assert [view.seq for view in seeded_ledger.list_records()] == [2]

    def test_retracted_seq_is_not_reused(self, seeded_ledger):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.retract(1)
        result = seeded_ledger.append("onboard", ALICE, "USD", "50")
        assert result.record.seq == 2

    def test_unknown_id(self, seeded_ledger):
        with pytest.raises(NotFoundError) as exc_info:
            seeded_ledger.retract(99)
        assert exc_info.value.field == "id"

    @pytest.mark.parametrize("record_id", ["abc", "1.5", -1])
    def test_non_numeric_id(self, seeded_ledger, record_id):
        with pytest.raises(NotANumberError) as exc_info:
            seeded_ledger.retract(record_id)
        assert exc_info.value.field == "id"

    def test_logs(self, seeded_ledger, captured_logs):
        seeded_ledger.append("onboard", ALICE, "USD", "100")
        seeded_ledger.append("swap", ALICE, "USD", "10", dest_currency="EUR")
        with pytest.raises(NotLatestRecordError):
            seeded_ledger.retract(1)
        seeded_ledger.retract(3)

        logs = captured_logs()
        refused = [r for r in logs if r["message"] == "retraction_refused"]
        retracted = [r for r in logs if r["message"] == "record_retracted"]
        assert refused[0]["record_seq"] == "1"
        assert retracted[0]["kind"] == "swap"
