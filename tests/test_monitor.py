"""Tests for the cost monitor."""

from datetime import timedelta
import logging

import pytest

from hidrazy.models import UsageLimits
from hidrazy.monitor import CostMonitor
from hidrazy.policy import (
    Allowed,
    AllowedDegraded,
    DeniedWithFallback,
    DeniedWithMessage,
    RequestType,
)
from hidrazy.storage import InMemoryLedger, LedgerUnavailableError

from conftest import NOW, make_entry


class BrokenLedger:
    """Ledger whose storage is down."""

    def append(self, entry):
        raise LedgerUnavailableError("connection refused")

    def entries_since(self, user_id, cutoff):
        raise LedgerUnavailableError("connection refused")


def premium_entries(ledger, count, user_id="user_1"):
    for i in range(count):
        ledger.append(make_entry(
            user_id=user_id,
            model="gpt-4.1-2025-04-14",
            cost=0.01,
            timestamp=NOW - timedelta(days=1, minutes=i),
        ))


class TestGetUsage:
    """Usage display."""

    def test_report_body(self):
        ledger = InMemoryLedger()
        ledger.append(make_entry(model="gpt-4o-mini", cost=0.002))
        monitor = CostMonitor(ledger)

        body = monitor.get_usage("user_1", NOW).to_dict()
        assert body["monthlyStats"] == {
            "totalCost": pytest.approx(0.002),
            "premiumModelCalls": 0,
            "totalCalls": 1,
            "ttsUnits": 0,
        }
        assert body["dailyStats"]["conversationTurns"] == 1
        assert body["limits"] == {
            "dailyConversationTurns": 50,
            "monthlyPremiumModelCalls": 20,
            "monthlyTTSUnits": 10_000,
            "monthlyCostAlertThreshold": 10.0,
        }
        assert body["warnings"] == []
        assert body["costOptimizationEnabled"] is True

    def test_cost_warning(self):
        ledger = InMemoryLedger()
        ledger.append(make_entry(cost=12.0))
        report = CostMonitor(ledger).get_usage("user_1", NOW)
        assert report.warnings == ["Monthly cost ($12.00) exceeds $10.00"]

    def test_repeated_reads_identical(self):
        ledger = InMemoryLedger()
        premium_entries(ledger, 3)
        ledger.append(make_entry(model="tts-1", input_tokens=80))
        monitor = CostMonitor(ledger)

        first = monitor.get_usage("user_1", NOW)
        second = monitor.get_usage("user_1", NOW)
        assert first.monthly == second.monthly
        assert first.daily == second.daily

    def test_storage_failure_raises(self):
        monitor = CostMonitor(BrokenLedger())
        with pytest.raises(LedgerUnavailableError):
            monitor.get_usage("user_1", NOW)

    def test_limits_shared_with_checks(self):
        """Display and enforcement use the same limits value."""
        limits = UsageLimits(daily_conversation_turns=2)
        ledger = InMemoryLedger()
        ledger.append(make_entry())
        ledger.append(make_entry())
        monitor = CostMonitor(ledger, limits=limits)

        assert monitor.get_usage("user_1", NOW).limits is limits
        assert monitor.check_limits("user_1", "chat", NOW).allowed is False


class TestCheckLimits:
    """Pre-request quota checks."""

    def test_premium_quota_exhausted(self):
        """A learner with 20 premium calls this month gets the efficient model."""
        ledger = InMemoryLedger()
        premium_entries(ledger, 20)
        check = CostMonitor(ledger).check_limits("user_1", RequestType.PREMIUM_CHAT, NOW)

        assert isinstance(check.decision, DeniedWithFallback)
        assert check.decision.fallback_model == "gpt-4o-mini"
        assert check.decision.message.startswith("Monthly premium limit reached")
        assert check.to_dict()["fallback"] == "gpt-4o-mini"

    def test_premium_quota_available(self):
        ledger = InMemoryLedger()
        premium_entries(ledger, 19)
        check = CostMonitor(ledger).check_limits("user_1", "premium-chat", NOW)
        assert check.decision == Allowed()

    def test_other_users_do_not_count(self):
        ledger = InMemoryLedger()
        premium_entries(ledger, 25, user_id="user_2")
        check = CostMonitor(ledger).check_limits("user_1", "premium-chat", NOW)
        assert check.allowed is True

    def test_tts_quota(self):
        ledger = InMemoryLedger()
        ledger.append(make_entry(model="tts-1", input_tokens=10_000))
        check = CostMonitor(ledger).check_limits("user_1", "speech-synthesis", NOW)
        assert isinstance(check.decision, DeniedWithMessage)

    def test_daily_cap(self):
        ledger = InMemoryLedger()
        for _ in range(50):
            ledger.append(make_entry())
        check = CostMonitor(ledger).check_limits("user_1", "chat", NOW)
        assert check.decision.message.startswith("Daily conversation limit reached")

    def test_storage_failure_fails_open(self, caplog):
        monitor = CostMonitor(BrokenLedger())

        with caplog.at_level(logging.ERROR, logger="hidrazy.cost_monitoring"):
            check = monitor.check_limits("user_1", "premium-chat", NOW)

        assert isinstance(check.decision, AllowedDegraded)
        assert check.allowed is True
        assert check.to_dict()["allowed"] is True
        assert "connection refused" in caplog.text

    def test_warnings_attached(self):
        ledger = InMemoryLedger()
        ledger.append(make_entry(cost=11.0))
        check = CostMonitor(ledger).check_limits("user_1", "chat", NOW)
        assert check.allowed is True
        assert check.to_dict()["warnings"] == ["Monthly cost ($11.00) exceeds $10.00"]


class TestRecordUsage:
    """Ledger recording."""

    def test_chat_cost_estimated(self):
        ledger = InMemoryLedger()
        entry = CostMonitor(ledger).record_usage(
            "user_1", "gpt-4o-mini", "chat",
            input_tokens=1000, output_tokens=1000, timestamp=NOW,
        )
        assert entry.estimated_cost == pytest.approx(0.00015 + 0.0006)
        assert entry.request_type == "chat"
        assert ledger.entries() == [entry]

    def test_speech_cost_per_character(self):
        ledger = InMemoryLedger()
        entry = CostMonitor(ledger).record_usage(
            "user_1", "tts-1", RequestType.SPEECH_SYNTHESIS, input_tokens=1000, timestamp=NOW,
        )
        assert entry.estimated_cost == pytest.approx(0.015)
        assert entry.request_type == "speech-synthesis"

    def test_explicit_cost(self):
        entry = CostMonitor(InMemoryLedger()).record_usage(
            "user_1", "gpt-4o-mini", "chat", input_tokens=10, estimated_cost=0.5,
        )
        assert entry.estimated_cost == 0.5

    def test_unknown_model_costs_nothing(self):
        entry = CostMonitor(InMemoryLedger()).record_usage(
            "user_1", "mystery-model", "chat", input_tokens=10,
        )
        assert entry.estimated_cost == 0.0

    def test_recorded_entries_feed_checks(self):
        ledger = InMemoryLedger()
        monitor = CostMonitor(ledger, limits=UsageLimits(monthly_premium_model_calls=1))
        assert monitor.check_limits("user_1", "premium-chat", NOW).allowed is True

        monitor.record_usage("user_1", "gpt-4.1-2025-04-14", "premium-chat",
                             input_tokens=100, timestamp=NOW)
        assert monitor.check_limits("user_1", "premium-chat", NOW).allowed is False
