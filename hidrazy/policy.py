"""
Limit policy.

Decides whether a costly request may proceed given a user's usage.

Evaluation order (first match wins):
1. Premium chat over the monthly premium quota - fall back to the efficient model
2. Speech synthesis over the monthly TTS quota - deny
3. Daily conversation cap, for every request type - deny
4. Allow

Quota denials are returned as data. Nothing here raises for a denial.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from hidrazy.config import get_models
from hidrazy.models import DailyStats, MonthlyStats, UsageLimits


PREMIUM_LIMIT_MESSAGE = "Monthly premium limit reached, using efficient model instead"
TTS_LIMIT_MESSAGE = "Monthly TTS limit reached. Click 🔊 for on-demand audio."
DAILY_LIMIT_MESSAGE = "Daily conversation limit reached. See you tomorrow! 😊"


class RequestType(str, Enum):
    """Kinds of request checked against the quotas."""
    PREMIUM_CHAT = "premium-chat"
    SPEECH_SYNTHESIS = "speech-synthesis"
    CHAT = "chat"

    @classmethod
    def parse(cls, value: Union[str, "RequestType", None]) -> "RequestType":
        """Map a wire value to a request type. Unknown values count as chat."""
        if isinstance(value, RequestType):
            return value
        return _ALIASES.get((value or "").strip().lower(), cls.CHAT)


_ALIASES = {
    "premium-chat": RequestType.PREMIUM_CHAT,
    "gpt-4.1": RequestType.PREMIUM_CHAT,
    "speech-synthesis": RequestType.SPEECH_SYNTHESIS,
    "tts": RequestType.SPEECH_SYNTHESIS,
    "chat": RequestType.CHAT,
}


@dataclass(frozen=True)
class Allowed:
    allowed = True

    def to_dict(self) -> dict:
        return {"allowed": True}


@dataclass(frozen=True)
class AllowedDegraded:
    """Allowed because usage could not be checked (fail-open)."""
    reason: str
    allowed = True

    def to_dict(self) -> dict:
        return {"allowed": True, "degraded": True}


@dataclass(frozen=True)
class DeniedWithFallback:
    fallback_model: str
    message: str
    allowed = False

    def to_dict(self) -> dict:
        return {"allowed": False, "fallback": self.fallback_model, "message": self.message}


@dataclass(frozen=True)
class DeniedWithMessage:
    message: str
    allowed = False

    def to_dict(self) -> dict:
        return {"allowed": False, "message": self.message}


Decision = Union[Allowed, AllowedDegraded, DeniedWithFallback, DeniedWithMessage]


def evaluate(
    request_type: Union[str, RequestType],
    monthly: MonthlyStats,
    daily: DailyStats,
    limits: UsageLimits,
    fallback_model: Optional[str] = None,
) -> Decision:
    """
    Decide whether a request may proceed.

    Args:
        request_type: What the caller is about to do.
        monthly: Usage since the start of the month.
        daily: Usage since midnight.
        limits: Deployment quotas.
        fallback_model: Model named in a premium fallback. Defaults to the
            configured efficient model.

    Returns:
        One of Allowed, DeniedWithFallback or DeniedWithMessage.
    """
    kind = RequestType.parse(request_type)

    if (kind is RequestType.PREMIUM_CHAT
            and monthly.premium_model_calls >= limits.monthly_premium_model_calls):
        return DeniedWithFallback(
            fallback_model=fallback_model or get_models()["efficient"],
            message=PREMIUM_LIMIT_MESSAGE,
        )

    if (kind is RequestType.SPEECH_SYNTHESIS
            and monthly.tts_units >= limits.monthly_tts_units):
        return DeniedWithMessage(TTS_LIMIT_MESSAGE)

    # Global across request types, checked last so per-resource denials win.
    if daily.conversation_turns >= limits.daily_conversation_turns:
        return DeniedWithMessage(DAILY_LIMIT_MESSAGE)

    return Allowed()


def usage_warnings(
    monthly: MonthlyStats,
    daily: DailyStats,
    limits: UsageLimits,
) -> List[str]:
    """Advisory warnings for display. They never affect a decision."""
    warnings = []
    if monthly.total_cost > limits.monthly_cost_alert_threshold:
        warnings.append(
            f"Monthly cost (${monthly.total_cost:.2f}) exceeds "
            f"${limits.monthly_cost_alert_threshold:.2f}"
        )
    if monthly.premium_model_calls >= limits.monthly_premium_model_calls:
        warnings.append("Monthly premium limit reached - using efficient models")
    if daily.conversation_turns >= limits.daily_conversation_turns:
        warnings.append("Daily conversation limit reached")
    return warnings
