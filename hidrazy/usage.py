"""
Usage aggregation.

Monthly and daily statistics are recomputed from the ledger on every read;
nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from hidrazy.config import get_models
from hidrazy.models import DailyStats, MonthlyStats, UsageLogEntry
from hidrazy.storage import LedgerBackend


def local_now() -> datetime:
    """Current instant in the server's local timezone."""
    return datetime.now().astimezone()


def _attach_zone(wall: datetime, now: datetime) -> datetime:
    """
    Attach the zone of ``now`` to the naive local time ``wall``.

    ``local_now()`` carries a fixed offset, which is only right for today.
    When ``now`` is in the server's local zone, the offset in force at
    ``wall`` is looked up again so DST changes inside the window are honoured.
    """
    if isinstance(now.tzinfo, timezone) and now.utcoffset() == now.astimezone().utcoffset():
        return wall.astimezone()
    return wall.replace(tzinfo=now.tzinfo)


def start_of_month(now: datetime) -> datetime:
    return _attach_zone(datetime(now.year, now.month, 1), now)


def start_of_day(now: datetime) -> datetime:
    return _attach_zone(datetime(now.year, now.month, now.day), now)


@dataclass
class UsageSnapshot:
    """Monthly and daily statistics for one user at one instant."""
    user_id: str
    monthly: MonthlyStats
    daily: DailyStats
    computed_at: datetime


def monthly_stats(
    entries: Iterable[UsageLogEntry],
    premium_tag: str,
    speech_model: str,
) -> MonthlyStats:
    stats = MonthlyStats()
    for entry in entries:
        stats.total_calls += 1
        stats.total_cost += entry.estimated_cost
        if premium_tag in entry.model_used:
            stats.premium_model_calls += 1
        if entry.model_used == speech_model:
            stats.tts_units += entry.input_tokens
    return stats


def daily_stats(entries: Iterable[UsageLogEntry]) -> DailyStats:
    stats = DailyStats()
    for entry in entries:
        stats.conversation_turns += 1
        stats.daily_cost += entry.estimated_cost
    return stats


class UsageAggregator:
    """Computes a user's usage statistics from the ledger."""

    def __init__(self, ledger: LedgerBackend, models: Optional[dict] = None):
        self.ledger = ledger
        self._models = models

    @property
    def models(self) -> dict:
        return self._models or get_models()

    def snapshot(self, user_id: str, now: Optional[datetime] = None) -> UsageSnapshot:
        """
        Aggregate usage for ``user_id``.

        Windows are computed in the timezone of ``now``. The day window is
        always inside the month window, so the ledger is read once.

        Raises:
            LedgerUnavailableError: If the ledger cannot be read.
        """
        now = now or local_now()
        month_entries = self.ledger.entries_since(user_id, start_of_month(now))
        day_start = start_of_day(now)

        models = self.models
        return UsageSnapshot(
            user_id=user_id,
            monthly=monthly_stats(month_entries, models["premium_tag"], models["speech"]),
            daily=daily_stats(e for e in month_entries if e.timestamp >= day_start),
            computed_at=now,
        )
