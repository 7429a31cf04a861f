"""Unit tests for structured logging and correlation ids."""

import json

import pytest
import structlog

from governance_ledger.infrastructure.observability import (
    configure_structlog,
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    operation_context,
    set_correlation_id,
    stringify_large_ints,
)


@pytest.fixture(autouse=True)
def _reset_logging():
    set_correlation_id("")
    yield
    set_correlation_id("")
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestCorrelationId:
    def test_generated_ids_are_unique(self) -> None:
        assert generate_correlation_id() != generate_correlation_id()

    def test_processor_adds_current_id(self) -> None:
        set_correlation_id("abc-123")
        event = correlation_id_processor(None, "info", {"event": "x"})
        assert event["correlation_id"] == "abc-123"

    def test_processor_keeps_bound_id(self) -> None:
        set_correlation_id("abc-123")
        event = correlation_id_processor(None, "info", {"correlation_id": "explicit"})
        assert event["correlation_id"] == "explicit"

    def test_processor_skips_when_unset(self) -> None:
        assert get_correlation_id() == ""
        assert "correlation_id" not in correlation_id_processor(None, "info", {})

    def test_operation_context_scopes_id_and_operation(self) -> None:
        with operation_context("reconcile-user") as cid:
            assert get_correlation_id() == cid
            assert structlog.contextvars.get_contextvars()["operation"] == "reconcile-user"
        assert get_correlation_id() == ""
        assert "operation" not in structlog.contextvars.get_contextvars()

    def test_operation_context_accepts_explicit_id(self) -> None:
        with operation_context("stats", correlation_id="fixed") as cid:
            assert cid == "fixed"
            assert get_correlation_id() == "fixed"

    def test_nested_operation_restores_outer(self) -> None:
        with operation_context("reconcile-all", correlation_id="outer"):
            with operation_context("reconcile-user", correlation_id="inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"
            assert structlog.contextvars.get_contextvars()["operation"] == "reconcile-all"


class TestStringifyLargeInts:
    def test_large_values_become_strings(self) -> None:
        power = 3 * 10**18
        event = stringify_large_ints(None, "info", {"voting_power": power, "amount": 95})
        assert event["voting_power"] == str(power)
        assert event["amount"] == 95

    def test_booleans_and_negative_large_values(self) -> None:
        event = stringify_large_ints(None, "info", {"support": True, "delta": -(2**60)})
        assert event["support"] is True
        assert event["delta"] == str(-(2**60))


class TestConfigureStructlog:
    def test_production_emits_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")
        set_correlation_id("cid-1")

        structlog.get_logger("test").info("ledger_entry_finalized", status="CONFIRMED")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "ledger_entry_finalized"
        assert payload["status"] == "CONFIRMED"
        assert payload["correlation_id"] == "cid-1"
        assert payload["level"] == "info"
        assert "timestamp" in payload

    def test_log_level_filter(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        configure_structlog(environment="production")

        structlog.get_logger("test").info("dropped")

        assert capsys.readouterr().out == ""

    def test_production_json_keeps_tally_precision(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_structlog(environment="production")
        tally = 2**256 - 1

        with operation_context("reconcile-proposal", correlation_id="cid-2"):
            structlog.get_logger("test").info("vote_tally_rebuilt", for_votes=tally)

        payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert payload["for_votes"] == str(tally)
        assert payload["operation"] == "reconcile-proposal"
        assert payload["correlation_id"] == "cid-2"
