"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass(frozen=True)
class UsageLogEntry:
    """Record of a single billable AI call. Never mutated once written."""
    user_id: str
    model_used: str
    estimated_cost: float
    input_tokens: int = 0  # speech-synthesis entries store the character count here
    output_tokens: int = 0
    request_type: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if self.estimated_cost < 0:
            raise ValueError("estimated_cost must be non-negative")
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts must be non-negative")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass
class UsageLimits:
    """Quota configuration for one deployment."""
    daily_conversation_turns: int = 50
    monthly_premium_model_calls: int = 20
    monthly_tts_units: int = 10_000
    monthly_cost_alert_threshold: float = 10.0

    def to_dict(self) -> dict:
        return {
            "dailyConversationTurns": self.daily_conversation_turns,
            "monthlyPremiumModelCalls": self.monthly_premium_model_calls,
            "monthlyTTSUnits": self.monthly_tts_units,
            "monthlyCostAlertThreshold": self.monthly_cost_alert_threshold,
        }


@dataclass
class MonthlyStats:
    """Usage since the first day of the current month."""
    total_cost: float = 0.0
    premium_model_calls: int = 0
    total_calls: int = 0
    tts_units: int = 0

    def to_dict(self) -> dict:
        return {
            "totalCost": self.total_cost,
            "premiumModelCalls": self.premium_model_calls,
            "totalCalls": self.total_calls,
            "ttsUnits": self.tts_units,
        }


@dataclass
class DailyStats:
    """Usage since midnight today."""
    conversation_turns: int = 0
    daily_cost: float = 0.0

    def to_dict(self) -> dict:
        return {
            "conversationTurns": self.conversation_turns,
            "dailyCost": self.daily_cost,
        }
