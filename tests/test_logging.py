"""
Structured logging: the JSON lines the ledger services emit and the
handler setup in ledger_kernel/logging_config.py.
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from ledger_kernel.exceptions import InsufficientFundsError, NotLatestRecordError
from ledger_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)
from tests.conftest import ALICE, BOB


def _messages(logs, message):
    return [r for r in logs if r["message"] == message]


class TestLedgerEvents:
    """What a log consumer sees for real ledger operations."""

    def test_append_carries_operation_context(self, seeded_ledger, captured_logs):
        seeded_ledger.append("onboard", ALICE, "USD", "100.50")

        (entry,) = _messages(captured_logs(), "record_appended")
        assert entry["operation"] == "append_onboard"
        assert entry["account"] == ALICE
        assert entry["kind"] == "onboard"
        assert entry["seq"] == 1
        assert entry["amount"] == "100.50"
        assert entry["logger"] == "ledger_kernel.services.record_appender"

    def test_rejection_logs_error_code(self, seeded_ledger, captured_logs):
        seeded_ledger.append("onboard", ALICE, "USD", "10")
        with pytest.raises(InsufficientFundsError):
            seeded_ledger.append("transfer", ALICE, "USD", "11", dest_account=BOB)

        (entry,) = _messages(captured_logs(), "append_rejected")
        assert entry["error_code"] == "INSUFFICIENT_FUNDS"
        assert entry["operation"] == "append_transfer"
        assert entry["level"] == "INFO"

    def test_retraction_events(self, seeded_ledger, captured_logs):
        seeded_ledger.append("onboard", ALICE, "USD", "10")
        seeded_ledger.append("transfer", ALICE, "USD", "5", dest_account=BOB)
        with pytest.raises(NotLatestRecordError):
            seeded_ledger.retract(1)
        seeded_ledger.retract(3)

        logs = captured_logs()
        (refused,) = _messages(logs, "retraction_refused")
        assert refused["record_seq"] == "1"
        assert refused["blocking"] == {ALICE: 3}

        (retracted,) = _messages(logs, "record_retracted")
        assert retracted["operation"] == "retract"
        assert retracted["kind"] == "transfer"
        assert retracted["seq"] == 3

    def test_context_does_not_leak_after_operation(self, seeded_ledger, captured_logs):
        seeded_ledger.append("onboard", ALICE, "USD", "1")
        get_logger("test").info("after")

        (after,) = _messages(captured_logs(), "after")
        assert "operation" not in after
        assert "account" not in after


class TestExceptionFields:
    def test_kernel_error_fields_flattened(self, captured_logs):
        try:
            raise NotLatestRecordError(4, {ALICE: 7, BOB: None})
        except NotLatestRecordError:
            get_logger("test").error("retract_failed", exc_info=True)

        (entry,) = _messages(captured_logs(), "retract_failed")
        assert entry["exc_type"] == "NotLatestRecordError"
        assert entry["exc_code"] == "NOT_LATEST_RECORD"
        assert entry["exc_record_seq"] == 4
        assert entry["exc_blocking"] == {ALICE: 7, BOB: None}
        assert "Traceback" in entry["traceback"]

    def test_foreign_error_has_no_code(self, captured_logs):
        try:
            raise KeyError("currency")
        except KeyError:
            get_logger("test").warning("lookup_failed", exc_info=True)

        (entry,) = _messages(captured_logs(), "lookup_failed")
        assert entry["exc_type"] == "KeyError"
        assert "exc_code" not in entry


class TestLogContext:
    def test_nested_binds_overlay_and_restore(self):
        with LogContext.bind(operation="balance", account=ALICE):
            with LogContext.bind(account=BOB, record_seq=9):
                assert LogContext.current() == {
                    "operation": "balance",
                    "account": BOB,
                    "record_seq": "9",
                }
            assert LogContext.current() == {"operation": "balance", "account": ALICE}
        assert LogContext.current() == {}

    def test_none_values_skipped(self):
        with LogContext.bind(operation="retract", account=None):
            assert LogContext.current() == {"operation": "retract"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(event_id="x"):
                pass

    def test_restored_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(operation="append_swap"):
                raise RuntimeError
        assert LogContext.current() == {}


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _unconfigured(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_second_call_keeps_first_handler(self):
        first, second = StringIO(), StringIO()
        configure_logging(stream=first)
        configure_logging(stream=second)

        get_logger("services.balance").warning("balance_projected")

        assert json.loads(first.getvalue())["message"] == "balance_projected"
        assert second.getvalue() == ""

    def test_level_by_name(self):
        stream = StringIO()
        configure_logging(stream=stream, level="WARNING")
        logger = get_logger("services.record_appender")
        logger.info("record_appended")
        logger.warning("account_lock_timeout", extra={"timeout": Decimal("2.5")})

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["timeout"] == "2.5"

    def test_reset_removes_only_its_own_handler(self):
        foreign = logging.NullHandler()
        kernel_logger = logging.getLogger("ledger_kernel")
        kernel_logger.addHandler(foreign)
        try:
            configure_logging(stream=StringIO())
            reset_logging()
            assert foreign in kernel_logger.handlers
            configure_logging(stream=StringIO())
            names = [h.get_name() for h in kernel_logger.handlers]
            assert names.count("ledger_kernel.structured") == 1
        finally:
            kernel_logger.removeHandler(foreign)
