"""Aggregate statistics over the relevant videos.

Pure functions producing the market metrics, the top-vs-bottom quality
spread and the recency profile that every downstream score is built from.
All three take an explicit ``now`` so one request is evaluated against a
single clock.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from models import (
    ContentItem,
    FreshnessAnalysis,
    MarketMetrics,
    QualityDistribution,
    round_half_up,
)

RECENT_WINDOW = timedelta(days=90)
EMERGING_RECENT_SHARE = 0.3
EMERGING_RECENT_VS_OLDER = 0.5
TOP_PERFORMER_SHARE = 0.1
BOTTOM_PERFORMER_SHARE = 0.5
OUTLIER_RATIO_CAP = 100


def age_in_days(item: ContentItem, now: datetime) -> Optional[int]:
    """Whole days since publication, or ``None`` when the date is unknown."""
    if item.published_at is None:
        return None
    return max(0, (now - item.published_at).days)


def is_recent(item: ContentItem, now: datetime) -> bool:
    if item.published_at is None:
        return False
    return (now - item.published_at) < RECENT_WINDOW


def calculate_market_metrics(items: Sequence[ContentItem], now: datetime) -> MarketMetrics:
    """Volume, central tendency and velocity over positively-viewed items.

    Items with non-positive view counts are dropped from the statistics but
    still counted in ``item_count``. Velocity is the mean of per-item
    views/day (age floored at 1 day) so one very old hit cannot dominate.
    """
    if not items:
        return MarketMetrics()

    viewed = [item for item in items if item.view_count > 0]
    if not viewed:
        return MarketMetrics(item_count=len(items))

    views = [item.view_count for item in viewed]
    total_views = sum(views)
    ordered = sorted(views)
    median_views = ordered[len(ordered) // 2]

    per_day: List[float] = []
    for item in viewed:
        age = age_in_days(item, now)
        if age is not None:
            per_day.append(item.view_count / max(1, age))
    avg_views_per_day = sum(per_day) / len(per_day) if per_day else 0.0

    return MarketMetrics(
        total_views=total_views,
        avg_views=round_half_up(total_views / len(views)),
        median_views=median_views,
        avg_views_per_day=round_half_up(avg_views_per_day),
        item_count=len(items),
    )


def calculate_quality_distribution(items: Sequence[ContentItem]) -> QualityDistribution:
    """Spread between the top 10% and the bottom 50% of view counts."""
    views = sorted((item.view_count for item in items if item.view_count > 0), reverse=True)

    if len(views) < 3:
        return QualityDistribution(
            top_performer_views=views[0] if views else 0,
            bottom_performer_views=views[-1] if views else 0,
            outlier_ratio=0,
        )

    top_count = max(1, int(len(views) * TOP_PERFORMER_SHARE))
    top = views[:top_count]
    top_avg = sum(top) / len(top)

    bottom_count = max(1, int(len(views) * BOTTOM_PERFORMER_SHARE))
    bottom = views[-bottom_count:]
    bottom_avg = sum(bottom) / len(bottom)

    if bottom_avg > 0:
        ratio = top_avg / bottom_avg
    else:
        ratio = OUTLIER_RATIO_CAP if top_avg > 0 else 0

    return QualityDistribution(
        top_performer_views=round_half_up(top_avg),
        bottom_performer_views=round_half_up(bottom_avg),
        outlier_ratio=min(OUTLIER_RATIO_CAP, round_half_up(ratio)),
    )


def calculate_freshness_analysis(items: Sequence[ContentItem], now: datetime) -> FreshnessAnalysis:
    """Recency profile and the "emerging topic" flag.

    Emerging needs both supply (at least 30% of items are recent) and
    traction (recent items average at least half the views of older ones).
    """
    if not items:
        return FreshnessAnalysis()

    ages = [age for age in (age_in_days(item, now) for item in items) if age is not None]
    avg_age_days = sum(ages) / len(ages) if ages else 0.0

    recent = [item for item in items if is_recent(item, now)]
    older = [item for item in items if item.published_at is not None and not is_recent(item, now)]
    recent_avg = sum(item.view_count for item in recent) / len(recent) if recent else 0.0
    older_avg = sum(item.view_count for item in older) / len(older) if older else 0.0

    is_emerging = (
        len(recent) >= len(items) * EMERGING_RECENT_SHARE
        and recent_avg >= older_avg * EMERGING_RECENT_VS_OLDER
    )

    return FreshnessAnalysis(
        avg_age_days=round_half_up(avg_age_days),
        recent_item_count=len(recent),
        recent_avg_views=round_half_up(recent_avg),
        is_emerging_topic=is_emerging,
    )
