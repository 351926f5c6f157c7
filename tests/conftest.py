"""Shared fixtures."""

from datetime import datetime, timezone

import pytest

from hidrazy import config
from hidrazy.models import UsageLogEntry


# Mid-month, mid-afternoon so both windows have room on either side.
NOW = datetime(2026, 10, 17, 15, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Each test starts from default configuration."""
    for var in ("HIDRAZY_PRICING_JSON", "HIDRAZY_MODELS_JSON", "HIDRAZY_LIMITS_JSON"):
        monkeypatch.delenv(var, raising=False)
    config.reset()
    yield
    config.reset()


def make_entry(
    user_id="user_1",
    model="gpt-4o-mini",
    cost=0.001,
    input_tokens=100,
    output_tokens=0,
    timestamp=NOW,
):
    return UsageLogEntry(
        user_id=user_id,
        model_used=model,
        estimated_cost=cost,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        timestamp=timestamp,
    )
