"""Text-to-speech through the OpenAI audio API."""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from openai import OpenAI, OpenAIError

from hidrazy.policy import RequestType
from hidrazy.selector import SpeechPreferences, should_synthesize
from hidrazy.storage import LedgerUnavailableError

if TYPE_CHECKING:
    from hidrazy.monitor import CostMonitor

logger = logging.getLogger("hidrazy.tts")

DEFAULT_VOICE = "alloy"


class SpeechProviderError(Exception):
    """Raised when the speech provider call fails."""


@dataclass
class SpeechResult:
    audio_content: str  # base64 MP3
    audio_url: str      # playable data URI
    characters: int

    def to_dict(self) -> dict:
        return {"audioContent": self.audio_content, "audioUrl": self.audio_url}


class SpeechSynthesizer:
    """
    Wraps the OpenAI speech endpoint.

    Requires OPENAI_API_KEY unless a client is passed in.
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[OpenAI] = None):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise SpeechProviderError("OPENAI_API_KEY is not configured")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        model: str = "tts-1",
    ) -> SpeechResult:
        """
        Convert text to MP3 speech.

        Raises:
            ValueError: If text is empty.
            SpeechProviderError: If the provider call fails.
        """
        if not text:
            raise ValueError("Text is required")

        try:
            response = self.client.audio.speech.create(
                model=model,
                voice=voice or DEFAULT_VOICE,
                input=text,
                response_format="mp3",
            )
            audio = response.content
        except OpenAIError as exc:
            logger.error("OpenAI API error: %s", exc)
            raise SpeechProviderError(f"OpenAI API error: {exc}") from exc

        logger.info("Audio generated successfully, size: %d", len(audio))
        encoded = base64.b64encode(audio).decode("ascii")
        return SpeechResult(
            audio_content=encoded,
            audio_url=f"data:audio/mpeg;base64,{encoded}",
            characters=len(text),
        )


@dataclass
class SpeechOutcome:
    """Either synthesized audio or the reason it was skipped."""
    result: Optional[SpeechResult] = None
    skipped_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.result is None

    def to_dict(self) -> dict:
        if self.result is not None:
            return self.result.to_dict()
        return {
            "audioContent": None,
            "audioUrl": None,
            "skipped": True,
            "reason": self.skipped_reason,
        }


def speak_for_user(
    monitor: "CostMonitor",
    synthesizer: SpeechSynthesizer,
    user_id: str,
    text: str,
    message_type: Optional[str] = None,
    preferences: Optional[SpeechPreferences] = None,
    voice: Optional[str] = None,
    model: Optional[str] = None,
) -> SpeechOutcome:
    """
    Synthesize ``text`` for a user if it is worth it and within quota.

    The selector runs first, so a skip never touches the ledger. A quota
    denial is also reported as a skip. Successful calls are recorded with
    the character count as units; a failed write is logged and the audio
    is still returned.

    Raises:
        ValueError: If text is empty.
        SpeechProviderError: If the provider call fails.
    """
    if not text:
        raise ValueError("Text is required")

    verdict = should_synthesize(message_type, preferences)
    if not verdict.synthesize:
        return SpeechOutcome(skipped_reason=verdict.reason)

    check = monitor.check_limits(user_id, RequestType.SPEECH_SYNTHESIS)
    if not check.allowed:
        return SpeechOutcome(skipped_reason=check.decision.message)

    model = model or monitor.models["speech"]
    result = synthesizer.synthesize(text, voice=voice, model=model)
    try:
        monitor.record_usage(
            user_id,
            model,
            RequestType.SPEECH_SYNTHESIS,
            input_tokens=result.characters,
        )
    except LedgerUnavailableError:
        logger.error(
            "Failed to record speech usage for user %s", user_id, exc_info=True
        )
    return SpeechOutcome(result=result)
