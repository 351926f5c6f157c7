"""
Cost monitoring for Hidrazy.

Features:
- Per-user usage display with advisory warnings
- Pre-request quota checks that fail open when the ledger is unavailable
- Ledger recording for every billable AI call
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from hidrazy.config import estimate_chat_cost, estimate_speech_cost, get_limits, get_models
from hidrazy.models import DailyStats, MonthlyStats, UsageLimits, UsageLogEntry
from hidrazy.policy import AllowedDegraded, Decision, RequestType, evaluate, usage_warnings
from hidrazy.storage import LedgerBackend, LedgerUnavailableError
from hidrazy.usage import UsageAggregator, local_now

logger = logging.getLogger("hidrazy.cost_monitoring")


@dataclass
class UsageReport:
    """Usage figures shown to the learner."""
    monthly: MonthlyStats
    daily: DailyStats
    limits: UsageLimits
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "monthlyStats": self.monthly.to_dict(),
            "dailyStats": self.daily.to_dict(),
            "limits": self.limits.to_dict(),
            "warnings": list(self.warnings),
            "costOptimizationEnabled": True,
        }


@dataclass
class LimitCheck:
    """Outcome of a pre-request quota check."""
    decision: Decision
    warnings: List[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.decision.allowed

    def to_dict(self) -> dict:
        result = self.decision.to_dict()
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


class CostMonitor:
    """
    Usage display, quota checks and ledger recording for one deployment.

    The user is always passed in explicitly; the monitor keeps no identity.

    Example:
        ```python
        monitor = CostMonitor(SQLiteLedger("hidrazy.db"))

        check = monitor.check_limits("user_123", RequestType.PREMIUM_CHAT)
        if check.allowed:
            ...  # call the provider
            monitor.record_usage("user_123", "gpt-4.1-2025-04-14",
                                 RequestType.PREMIUM_CHAT, input_tokens=420,
                                 output_tokens=180)
        ```
    """

    def __init__(
        self,
        ledger: LedgerBackend,
        limits: Optional[UsageLimits] = None,
        models: Optional[dict] = None,
    ):
        self.ledger = ledger
        self.limits = limits or get_limits()
        self.models = models or get_models()
        self.aggregator = UsageAggregator(ledger, models=self.models)

    def get_usage(self, user_id: str, now: Optional[datetime] = None) -> UsageReport:
        """
        Usage statistics for display.

        Raises:
            LedgerUnavailableError: If the ledger cannot be read.
        """
        try:
            snapshot = self.aggregator.snapshot(user_id, now)
        except LedgerUnavailableError:
            logger.error("Failed to read usage for user %s", user_id, exc_info=True)
            raise

        return UsageReport(
            monthly=snapshot.monthly,
            daily=snapshot.daily,
            limits=self.limits,
            warnings=usage_warnings(snapshot.monthly, snapshot.daily, self.limits),
        )

    def check_limits(
        self,
        user_id: str,
        request_type: Union[str, RequestType],
        now: Optional[datetime] = None,
    ) -> LimitCheck:
        """
        Check a request against the quotas before spending money on it.

        A ledger outage yields AllowedDegraded instead of an error.
        """
        try:
            snapshot = self.aggregator.snapshot(user_id, now)
        except LedgerUnavailableError as exc:
            logger.error(
                "Usage check failed for user %s, allowing request: %s", user_id, exc
            )
            return LimitCheck(decision=AllowedDegraded(reason=str(exc)))

        decision = evaluate(
            request_type,
            snapshot.monthly,
            snapshot.daily,
            self.limits,
            fallback_model=self.models["efficient"],
        )
        if not decision.allowed:
            logger.info(
                "Denied %s for user %s: %s",
                RequestType.parse(request_type).value, user_id, decision.message,
            )

        return LimitCheck(
            decision=decision,
            warnings=usage_warnings(snapshot.monthly, snapshot.daily, self.limits),
        )

    def record_usage(
        self,
        user_id: str,
        model: str,
        request_type: Union[str, RequestType],
        input_tokens: int,
        output_tokens: int = 0,
        estimated_cost: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> UsageLogEntry:
        """
        Append one ledger entry for a completed AI call.

        For speech synthesis ``input_tokens`` is the number of characters.
        When ``estimated_cost`` is omitted it is taken from the pricing table.
        """
        if estimated_cost is None:
            if model == self.models["speech"]:
                estimated_cost = estimate_speech_cost(input_tokens, model)
            else:
                estimated_cost = estimate_chat_cost(model, input_tokens, output_tokens)

        entry = UsageLogEntry(
            user_id=user_id,
            model_used=model,
            estimated_cost=estimated_cost,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            request_type=RequestType.parse(request_type).value,
            timestamp=timestamp or local_now(),
        )
        self.ledger.append(entry)
        logger.debug(
            "Recorded %s for user %s: %d in / %d out, $%.6f",
            model, user_id, input_tokens, output_tokens, estimated_cost,
        )
        return entry
