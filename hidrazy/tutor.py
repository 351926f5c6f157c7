"""
Razia tutor chat.

The call site for chat completions: picks a model tier, consults the limit
policy, calls OpenAI and writes one ledger entry per completed call.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from openai import OpenAI, OpenAIError

from hidrazy.monitor import CostMonitor
from hidrazy.policy import DeniedWithFallback, RequestType
from hidrazy.selector import ModelContext, select_model
from hidrazy.storage import LedgerUnavailableError

logger = logging.getLogger("hidrazy.tutor")

HISTORY_TURNS = 8
MAX_RESPONSE_TOKENS = 500

SYSTEM_PROMPT = (
    "You are Razia, a warm and patient English tutor for Arabic speakers. "
    "The learner is at {level} level and this is a {conversation_type} session. "
    "Keep answers short, correct mistakes gently, and explain cultural context "
    "when it helps."
)


class TutorProviderError(Exception):
    """Raised when the chat provider call fails."""


@dataclass
class TutorReply:
    allowed: bool
    model: Optional[str] = None
    response: Optional[str] = None
    notice: Optional[str] = None  # quota message shown alongside or instead of a reply

    def to_dict(self) -> dict:
        result = {"allowed": self.allowed, "model": self.model, "response": self.response}
        if self.notice:
            result["notice"] = self.notice
        return result


class TutorChat:
    """Quota-aware chat with the tutor."""

    def __init__(
        self,
        monitor: CostMonitor,
        api_key: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        self.monitor = monitor
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise TutorProviderError("OpenAI API key not configured")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _messages(
        self,
        context: ModelContext,
        history: Iterable[Mapping[str, str]],
    ) -> list[dict]:
        messages = [{
            "role": "system",
            "content": SYSTEM_PROMPT.format(
                level=context.user_level,
                conversation_type=context.conversation_type,
            ),
        }]
        for turn in list(history)[-HISTORY_TURNS:]:
            role = "user" if turn.get("type", turn.get("role")) == "user" else "assistant"
            messages.append({"role": role, "content": turn.get("content", "")})
        messages.append({"role": "user", "content": context.user_message})
        return messages

    def reply(
        self,
        user_id: str,
        context: ModelContext,
        history: Iterable[Mapping[str, str]] = (),
    ) -> TutorReply:
        """
        Answer one learner message.

        Raises:
            TutorProviderError: If the chat provider call fails.
        """
        selection = select_model(context, self.monitor.models)
        request_type = (
            RequestType.PREMIUM_CHAT if selection.tier == "premium" else RequestType.CHAT
        )

        check = self.monitor.check_limits(user_id, request_type)
        model = selection.model
        notice = None
        if isinstance(check.decision, DeniedWithFallback):
            model = check.decision.fallback_model
            notice = check.decision.message
            request_type = RequestType.CHAT
            # The fallback call is still a conversation turn.
            check = self.monitor.check_limits(user_id, request_type)
        if not check.allowed:
            return TutorReply(allowed=False, notice=check.decision.message)

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self._messages(context, history),
                max_tokens=MAX_RESPONSE_TOKENS,
                temperature=0.8,
            )
        except OpenAIError as exc:
            logger.error("OpenAI API error for user %s: %s", user_id, exc)
            raise TutorProviderError(f"OpenAI API error: {exc}") from exc

        try:
            self.monitor.record_usage(
                user_id,
                model,
                request_type,
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
            )
        except LedgerUnavailableError:
            logger.error("Failed to record chat usage for user %s", user_id, exc_info=True)
        return TutorReply(
            allowed=True,
            model=model,
            response=response.choices[0].message.content or "",
            notice=notice,
        )
