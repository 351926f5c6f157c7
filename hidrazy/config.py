"""Global configuration for Hidrazy."""

from __future__ import annotations

import copy
import json
import os
from dataclasses import fields
from typing import Dict, Any

from hidrazy.models import UsageLimits


# USD per 1K tokens for chat models, per character for speech.
DEFAULT_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-5-2025-08-07": {"input": 0.01, "output": 0.03},
    "gpt-4.1-2025-04-14": {"input": 0.005, "output": 0.015},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "tts-1": {"per_char": 0.000015},
}

DEFAULT_MODELS: Dict[str, str] = {
    "premium": "gpt-4.1-2025-04-14",
    "efficient": "gpt-4o-mini",
    "speech": "tts-1",
    # Ledger entries whose model name contains this tag count as premium calls.
    "premium_tag": "gpt-4.1",
}

DEFAULT_DB_PATH = "hidrazy.db"

_pricing: Dict[str, Dict[str, float]] = copy.deepcopy(DEFAULT_PRICING)
_models: Dict[str, str] = copy.deepcopy(DEFAULT_MODELS)


def _parse_json_env(var_name: str) -> Dict[str, Any] | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def get_pricing() -> Dict[str, Dict[str, float]]:
    """Return pricing configuration, with optional env override."""
    parsed = _parse_json_env("HIDRAZY_PRICING_JSON")
    if parsed:
        return parsed
    return _pricing


def set_pricing(pricing: Dict[str, Dict[str, float]]) -> None:
    """Set pricing at runtime."""
    if not isinstance(pricing, dict) or not pricing:
        raise ValueError("pricing must be a non-empty dict")
    for model, rates in pricing.items():
        if not isinstance(rates, dict):
            raise ValueError(f"pricing for {model} must be a dict")
        if "per_char" not in rates and ("input" not in rates or "output" not in rates):
            raise ValueError(f"pricing for {model} must include 'input' and 'output' or 'per_char'")
    global _pricing
    _pricing = copy.deepcopy(pricing)


def get_models() -> Dict[str, str]:
    """Return model configuration, with optional env override."""
    parsed = _parse_json_env("HIDRAZY_MODELS_JSON")
    if parsed:
        merged = copy.deepcopy(_models)
        merged.update(parsed)
        return merged
    return _models


def set_models(
    *,
    premium: str | None = None,
    efficient: str | None = None,
    speech: str | None = None,
    premium_tag: str | None = None,
) -> None:
    """Set model defaults at runtime."""
    global _models
    updated = copy.deepcopy(_models)
    if premium:
        updated["premium"] = premium
    if efficient:
        updated["efficient"] = efficient
    if speech:
        updated["speech"] = speech
    if premium_tag:
        updated["premium_tag"] = premium_tag
    _models = updated


def reset() -> None:
    """Restore default pricing and models."""
    global _pricing, _models
    _pricing = copy.deepcopy(DEFAULT_PRICING)
    _models = copy.deepcopy(DEFAULT_MODELS)


def get_limits() -> UsageLimits:
    """Build the deployment's usage limits.

    ``HIDRAZY_LIMITS_JSON`` may override any field by its snake_case name,
    e.g. ``{"daily_conversation_turns": 100}``. Unknown keys are ignored.
    """
    limits = UsageLimits()
    parsed = _parse_json_env("HIDRAZY_LIMITS_JSON")
    if not parsed:
        return limits
    known = {f.name for f in fields(UsageLimits)}
    for key, value in parsed.items():
        if key not in known or isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value < 0:
            raise ValueError(f"limit {key} must be non-negative")
        setattr(limits, key, value)
    return limits


def get_db_path() -> str:
    return os.getenv("HIDRAZY_DB_PATH", DEFAULT_DB_PATH)


def get_jwt_secret() -> str | None:
    return os.getenv("HIDRAZY_JWT_SECRET")


def estimate_chat_cost(model: str, input_tokens: int, output_tokens: int = 0) -> float:
    """Estimated USD cost of a chat completion. Unknown models cost nothing."""
    rates = get_pricing().get(model)
    if not rates or "input" not in rates:
        return 0.0
    return (input_tokens * rates["input"] + output_tokens * rates.get("output", 0.0)) / 1000


def estimate_speech_cost(characters: int, model: str | None = None) -> float:
    """Estimated USD cost of synthesizing ``characters`` characters."""
    model = model or get_models()["speech"]
    rates = get_pricing().get(model, {})
    return characters * rates.get("per_char", 0.0)
