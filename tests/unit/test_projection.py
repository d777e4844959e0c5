"""Unit tests for the balance projector."""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from ledger_kernel.domain.catalog import CurrencyCatalog
from ledger_kernel.domain.projection import balance_in, project
from ledger_kernel.domain.records import OnboardRecord, SwapRecord, TransferRecord
from ledger_kernel.exceptions import NegativeBalanceError, UnknownRecordKindError

CURRENCIES = CurrencyCatalog.of({"USD": "1", "EUR": "2"})
A = "alice_01"
B = "bob_0002"


@dataclass(frozen=True)
class RefundRecord:
    seq: int
    kind: str = "refund"


class TestProject:
    def test_onboard_then_swap(self):
        records = [
            OnboardRecord(1, A, "USD", Decimal("1000")),
            OnboardRecord(2, A, "EUR", Decimal("0")),
            SwapRecord(3, A, "USD", "EUR", Decimal("100")),
        ]
        assert project(records, CURRENCIES, A) == {
            "EUR": Decimal("50"),
            "USD": Decimal("900"),
        }

    def test_transfer_seen_from_both_sides(self):
        records = [
            OnboardRecord(1, A, "USD", Decimal("100")),
            OnboardRecord(2, B, "USD", Decimal("0")),
            TransferRecord(3, A, B, "USD", Decimal("30")),
        ]
        assert project(records, CURRENCIES, A) == {"USD": Decimal("70")}
        assert project(records, CURRENCIES, B) == {"USD": Decimal("30")}

    def test_records_of_other_accounts_are_ignored(self):
        records = [
            OnboardRecord(1, B, "EUR", Decimal("5")),
            OnboardRecord(2, A, "USD", Decimal("1")),
        ]
        assert project(records, CURRENCIES, A) == {"USD": Decimal("1")}

    def test_zero_balance_currency_is_kept(self):
        records = [OnboardRecord(1, A, "EUR", Decimal("0"))]
        assert project(records, CURRENCIES, A) == {"EUR": Decimal("0")}

    def test_no_records(self):
        assert project([], CURRENCIES, A) == {}

    def test_negative_aggregate_fails_whole_projection(self):
        records = [
            OnboardRecord(1, A, "USD", Decimal("10")),
            OnboardRecord(2, A, "EUR", Decimal("10")),
            SwapRecord(3, A, "USD", "EUR", Decimal("25")),
        ]
        with pytest.raises(NegativeBalanceError) as exc_info:
            project(records, CURRENCIES, A)
        assert exc_info.value.account == A
        assert exc_info.value.currencies == ["USD"]

    def test_unknown_record_kind_reports_position(self):
        records = [OnboardRecord(1, A, "USD", Decimal("10")), RefundRecord(2)]
        with pytest.raises(UnknownRecordKindError) as exc_info:
            project(records, CURRENCIES, A)
        assert exc_info.value.position == 2
        assert exc_info.value.kind == "refund"

    def test_balance_in(self):
        records = [OnboardRecord(1, A, "USD", Decimal("10"))]
        assert balance_in(records, CURRENCIES, A, "USD") == Decimal("10")
        assert balance_in(records, CURRENCIES, A, "EUR") == Decimal("0")
