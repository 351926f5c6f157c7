"""
Model and speech selection.

Cost-shaping heuristics that run independently of quota state:
- Default to the efficient chat model, escalate only on a signal of need
- Synthesize speech only when it teaches something or the learner asked
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from hidrazy.config import get_models

logger = logging.getLogger("hidrazy.cost_optimization")


COMPLEX_REASONING_KEYWORDS = [
    "explain culture", "why is this wrong", "help me understand",
    "cultural difference", "grammar rule", "pronunciation", "ielts",
    "business etiquette", "professional", "formal", "academic",
]

COMPLEX_CONVERSATION_TYPES = {
    "cultural_explanation", "advanced_grammar", "ielts_assessment",
    "business_coaching", "cultural_bridge", "pronunciation_correction",
    "ielts_practice", "business_english",
}

ALWAYS_SPEAK = {
    "new_vocabulary_word",
    "pronunciation_correction",
    "cultural_phrase",
    "grammar_example",
    "ielts_speaking_practice",
}

NEVER_SPEAK = {
    "simple_acknowledgment",  # "Good job!", "I understand"
    "repeat_response",
    "system_message",
    "error_message",
}


@dataclass
class ModelContext:
    """What the tutor knows about the turn being answered."""
    user_message: str
    conversation_type: str = "free-chat"
    user_level: str = "beginner"
    wants_detailed: bool = False


@dataclass
class ModelSelection:
    model: str
    tier: str  # "premium" or "efficient"
    reason: str


@dataclass
class SpeechPreferences:
    auto_tts: bool = False
    on_demand_tts: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SpeechPreferences":
        if not data:
            return cls()
        return cls(
            auto_tts=data.get("autoTTS", data.get("auto_tts")) is True,
            on_demand_tts=data.get("onDemandTTS", data.get("on_demand_tts")) is True,
        )


@dataclass
class SpeechDecision:
    synthesize: bool
    reason: str


def _needs_premium(context: ModelContext) -> Optional[str]:
    if context.wants_detailed:
        return "Learner asked for a detailed response"

    message = context.user_message.lower()
    for keyword in COMPLEX_REASONING_KEYWORDS:
        if keyword in message:
            return f"Message needs complex reasoning ({keyword!r})"

    if context.conversation_type in COMPLEX_CONVERSATION_TYPES:
        return f"Complex conversation type ({context.conversation_type})"

    if context.user_level == "advanced":
        return "Advanced learner"

    return None


def select_model(context: ModelContext, models: Optional[dict] = None) -> ModelSelection:
    """Pick the chat model tier for a turn. Efficient unless there is a reason not to be."""
    models = models or get_models()
    reason = _needs_premium(context)

    if reason:
        logger.info("Using premium model: %s", reason)
        return ModelSelection(model=models["premium"], tier="premium", reason=reason)

    logger.debug("Using efficient model for standard conversation")
    return ModelSelection(
        model=models["efficient"],
        tier="efficient",
        reason="Standard conversation",
    )


def should_synthesize(
    message_type: Optional[str],
    preferences: Optional[SpeechPreferences] = None,
) -> SpeechDecision:
    """Decide whether a message is worth turning into audio."""
    if message_type in ALWAYS_SPEAK:
        logger.info("Using TTS for high-value case: %s", message_type)
        return SpeechDecision(True, f"High-value message type: {message_type}")

    if message_type in NEVER_SPEAK:
        logger.info("Skipping TTS for low-value case: %s", message_type)
        return SpeechDecision(False, f"Low-value message type: {message_type}")

    preferences = preferences or SpeechPreferences()
    if preferences.auto_tts or preferences.on_demand_tts:
        return SpeechDecision(True, "Audio requested by learner preferences")

    return SpeechDecision(False, "Audio not requested for this message")
