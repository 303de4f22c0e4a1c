"""
Analytics aggregation for the dashboard.

Reduces every stored session and generation record into summary
statistics: totals, daily and weekly counts, top referrers and goals,
recent activity and cost estimates.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from prd_forge.storage.models import (
    GENERATION_PREFIX,
    SESSION_PREFIX,
    GenerationRecord,
    SessionRecord,
    decode_record,
)
from prd_forge.storage.repository import KeyValueStore, StorageError, load_values
from .pricing import fallback_cost

TOP_N = 5
RECENT_ACTIVITY_LIMIT = 10


class AnalyticsLoadError(Exception):
    """Raised when analytics records cannot be loaded."""


@dataclass(frozen=True)
class RankedItem:
    """A label and how often it occurred."""
    name: str
    count: int


@dataclass(frozen=True)
class CostMetrics:
    """Cost totals and extrapolations in dollars."""
    total_cost: float
    avg_cost_per_generation: float
    projected_monthly_cost: float


@dataclass(frozen=True)
class AnalyticsSummary:
    """Dashboard statistics computed from all stored records."""
    total_sessions: int
    total_generations: int
    user_stories: int
    prds: int
    today_generations: int
    this_week_generations: int
    avg_per_session: str
    cost_metrics: CostMetrics
    top_referrers: List[RankedItem] = field(default_factory=list)
    top_goals: List[RankedItem] = field(default_factory=list)
    recent_activity: List[GenerationRecord] = field(default_factory=list)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp into an aware datetime.

    A trailing "Z" is accepted. Naive values are taken as local time.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _try_parse_timestamp(value: str) -> Optional[datetime]:
    try:
        return parse_timestamp(value or "")
    except ValueError:
        return None


def load_records(store: KeyValueStore) -> Tuple[List[SessionRecord], List[GenerationRecord]]:
    """Fetch and decode every session and generation record.

    Raises:
        AnalyticsLoadError: If any read or decode fails
    """
    try:
        sessions = [
            SessionRecord.from_dict(decode_record(value))
            for value in load_values(store, SESSION_PREFIX)
        ]
        generations = [
            GenerationRecord.from_dict(decode_record(value))
            for value in load_values(store, GENERATION_PREFIX)
        ]
    except (StorageError, ValueError) as e:
        raise AnalyticsLoadError(f"Failed to load analytics: {e}") from e
    return sessions, generations


def compute_analytics(store: KeyValueStore, now: Optional[datetime] = None) -> AnalyticsSummary:
    """Compute dashboard statistics from the shared store.

    Any read error aborts the whole computation; there are no partial
    results.

    Args:
        store: Shared analytics store
        now: Reference time, defaults to the current time

    Returns:
        AnalyticsSummary for all records in the store

    Raises:
        AnalyticsLoadError: If records cannot be read or decoded
    """
    sessions, generations = load_records(store)
    return summarize(sessions, generations, now=now)


def summarize(
    sessions: List[SessionRecord],
    generations: List[GenerationRecord],
    now: Optional[datetime] = None
) -> AnalyticsSummary:
    """Reduce already loaded records into an AnalyticsSummary.

    Generations without a parseable timestamp count toward the totals and
    costs but not toward the today and this-week windows.
    """
    now = (now or datetime.now(timezone.utc)).astimezone()
    week_ago = now - timedelta(days=7)

    timestamps = [_try_parse_timestamp(g.timestamp) for g in generations]

    total_cost = sum(
        g.cost if g.cost else fallback_cost(g.type)
        for g in generations
    )

    today = now.date()
    dated = [ts for ts in timestamps if ts is not None]
    today_count = sum(1 for ts in dated if ts.astimezone().date() == today)
    week_count = sum(1 for ts in dated if ts > week_ago)

    # Undated records sort after every dated one
    recent = [
        g for _, g in sorted(
            zip(timestamps, generations),
            key=lambda pair: (pair[0] is not None, pair[0] or now),
            reverse=True
        )
    ][:RECENT_ACTIVITY_LIMIT]

    if sessions:
        avg_per_session = f"{len(generations) / len(sessions):.1f}"
    else:
        avg_per_session = "0.0"

    return AnalyticsSummary(
        total_sessions=len(sessions),
        total_generations=len(generations),
        user_stories=sum(1 for g in generations if g.type == "user_story"),
        prds=sum(1 for g in generations if g.type == "prd"),
        today_generations=today_count,
        this_week_generations=week_count,
        avg_per_session=avg_per_session,
        cost_metrics=CostMetrics(
            total_cost=total_cost,
            avg_cost_per_generation=total_cost / max(len(generations), 1),
            projected_monthly_cost=total_cost * 30 / 7
        ),
        top_referrers=_top_counts(s.referrer or "Direct" for s in sessions),
        top_goals=_top_counts(g.business_goal for g in generations if g.business_goal),
        recent_activity=recent
    )


def _top_counts(labels: Iterable[str], limit: int = TOP_N) -> List[RankedItem]:
    # Counter.most_common keeps first-seen order among equal counts
    return [RankedItem(name=name, count=count) for name, count in Counter(labels).most_common(limit)]
