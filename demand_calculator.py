"""Demand signal composer.

``compute_demand_signal`` is the single entry point: it filters the
fetched videos down to the ones that actually mention the searched
ingredients, aggregates them, runs the barrier/opportunity model and
blends everything into a 0-100 demand score with a band, a content gap
and a list of opportunities.

Everything here is a pure function of its arguments. The only clock read
happens once per call (or never, when ``now`` is passed in) so repeated
calls with the same inputs serialize identically.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Sequence, Union

from market_metrics import (
    calculate_freshness_analysis,
    calculate_market_metrics,
    calculate_quality_distribution,
)
from models import (
    ContentGap,
    ContentItem,
    ContentOpportunity,
    DemandSignal,
    FreshnessAnalysis,
    MarketMetrics,
    TrendSignal,
    clamp,
    coerce_datetime,
    normalize_search_terms,
    round_half_up,
)
from opportunity_classifier import classify_opportunity, features_from_signal
from opportunity_engine import generate_opportunities
from opportunity_scoring import calculate_content_gap
from relevance_filter import average_relevance, filter_relevant

if TYPE_CHECKING:  # pragma: no cover
    from calibration import CalibrationLookup

logger = logging.getLogger("pipeline.demand_calculator")

MIN_RELEVANT_ITEMS = 3
UNPROVEN_MIN_TERMS = 3
UNPROVEN_MAX_ITEMS = 15
UNPROVEN_SCORE = 25
UNPROVEN_CONFIDENCE = 0.3
UNTAPPED_GAP_SCORE = 80

ItemLike = Union[ContentItem, Mapping[str, Any]]


def demand_band_for(score: int, item_count: int, gap_type: str) -> str:
    """Band from the final score, with saturated markets capped at ``stable``."""
    if score >= 75:
        band = "hot"
    elif score >= 55:
        band = "growing"
    elif score >= 35:
        band = "stable"
    elif item_count >= 3:
        band = "niche"
    else:
        band = "unknown"

    # hot/growing imply an opening, which a saturated market does not have
    if gap_type == "saturated" and band in ("hot", "growing"):
        band = "stable"
    return band


def calculate_demand_score(
    metrics: MarketMetrics,
    gap: ContentGap,
    freshness: FreshnessAnalysis,
    trend_signal: Optional[TrendSignal] = None,
) -> tuple[int, str]:
    """
    Blend volume, gap, velocity, freshness and search interest into (score, band).

    With positive search interest the weights are 30/30%/10 for views, gap
    and velocity; without it they are 40/35%/15.
    """
    has_trends = trend_signal is not None and trend_signal.interest_score > 0
    view_cap, view_weight = (30, 6) if has_trends else (40, 8)
    gap_weight = 0.30 if has_trends else 0.35
    velocity_cap, velocity_weight = (10, 3.33) if has_trends else (15, 5)

    score = 0.0
    score += min(view_cap, math.log10(max(1, metrics.avg_views)) * view_weight)
    score += gap.score * gap_weight
    score += min(velocity_cap, math.log10(max(1, metrics.avg_views_per_day)) * velocity_weight)

    if freshness.is_emerging_topic:
        score += 10
    elif freshness.recent_avg_views > metrics.avg_views:
        score += 5

    if trend_signal is not None:
        score += min(10, trend_signal.interest_score / 10)
        growth = trend_signal.week_over_week_growth
        if growth > 50:
            score += 5
        elif growth > 20:
            score += 3
        elif growth > 0:
            score += 1
        if trend_signal.is_breakout:
            score += 5

    final = round_half_up(clamp(score))
    return final, demand_band_for(final, metrics.item_count, gap.type)


def calculate_confidence(
    sample_size: int,
    metrics: MarketMetrics,
    trend_signal: Optional[TrendSignal] = None,
) -> float:
    confidence = min(0.6, sample_size / 25)
    if metrics.avg_views > 10_000:
        confidence += 0.1
    if metrics.item_count >= 10:
        confidence += 0.1
    if trend_signal is not None and trend_signal.interest_score > 0:
        confidence += 0.1
        if trend_signal.interest_score > 50:
            confidence += 0.1
    return round(clamp(confidence, 0.0, 1.0), 2)


def _unknown_signal() -> DemandSignal:
    return DemandSignal(
        demand_score=0,
        demand_band="unknown",
        market_metrics=MarketMetrics(),
        content_gap=ContentGap(score=0, type="balanced", reasoning="Insufficient data to analyze demand."),
        opportunities=[],
        confidence=0.0,
        sample_size=0,
    )


def _sparse_signal(relevant_count: int) -> DemandSignal:
    """Signal for searches with fewer than three on-topic videos."""
    if relevant_count == 0:
        return DemandSignal(
            demand_score=0,
            demand_band="unknown",
            market_metrics=MarketMetrics(),
            content_gap=ContentGap(
                score=0, type="balanced", reasoning="No videos found for this specific combination."
            ),
            opportunities=[],
            confidence=0.0,
            sample_size=0,
        )

    plural = "s" if relevant_count > 1 else ""
    return DemandSignal(
        demand_score=0,
        demand_band="niche",
        market_metrics=MarketMetrics(item_count=relevant_count),
        content_gap=ContentGap(
            score=UNTAPPED_GAP_SCORE,
            type="underserved",
            reasoning=f"Only {relevant_count} video{plural} found for this combination. Potential opportunity.",
        ),
        opportunities=[
            ContentOpportunity(
                type="underserved",
                title="Untapped Combination",
                description=(
                    "Very few videos exist for this ingredient combination. "
                    "This could be a unique content opportunity."
                ),
                priority="high",
            )
        ],
        confidence=0.0,
        sample_size=relevant_count,
    )


def _unproven_signal(relevant_count: int, relevance: float) -> DemandSignal:
    """Signal for long multi-term searches without enough fully-matching videos."""
    metrics = MarketMetrics(item_count=relevant_count)
    gap = ContentGap(
        score=50,
        type="underserved",
        reasoning=(
            f"Unproven combination - only {relevant_count} videos partially match "
            f"({round_half_up(relevance * 100)}% average relevance), view counts come from related content"
        ),
    )
    return DemandSignal(
        demand_score=UNPROVEN_SCORE,
        demand_band=demand_band_for(UNPROVEN_SCORE, metrics.item_count, gap.type),
        market_metrics=metrics,
        content_gap=gap,
        opportunities=[
            ContentOpportunity(
                type="underserved",
                title="Unproven Combination",
                description=(
                    "No video covers every ingredient in this combination yet. Demand is unproven, "
                    "but a first video would face little direct competition."
                ),
                priority="medium",
            )
        ],
        confidence=UNPROVEN_CONFIDENCE,
        sample_size=relevant_count,
    )


def _coerce_items(items: Iterable[ItemLike]) -> List[ContentItem]:
    return [item if isinstance(item, ContentItem) else ContentItem.from_dict(item) for item in items]


def compute_demand_signal(
    items: Sequence[ItemLike],
    terms: Sequence[str],
    trend_signal: Optional[TrendSignal] = None,
    *,
    now: Optional[datetime] = None,
    calibration: Optional["CalibrationLookup"] = None,
) -> DemandSignal:
    """
    Score the demand for a set of search terms from the videos already fetched.

    ``items`` may be ``ContentItem`` instances or raw dicts. ``calibration``
    only moves the confidence, never the score or band.
    """
    content_items = _coerce_items(items)
    search_terms = normalize_search_terms(terms)
    # naive or unparsable clocks degrade to UTC and to the current time
    now = coerce_datetime(now) or datetime.now(timezone.utc)

    if not content_items:
        logger.debug("No items for %s; returning unknown signal", search_terms)
        return _unknown_signal()

    relevant = filter_relevant(content_items, search_terms)
    relevant_items = [result.item for result in relevant]

    if len(relevant_items) < MIN_RELEVANT_ITEMS:
        logger.debug("Only %d relevant items for %s", len(relevant_items), search_terms)
        return _sparse_signal(len(relevant_items))

    relevance = average_relevance(relevant)
    if (
        len(search_terms) >= UNPROVEN_MIN_TERMS
        and len(relevant_items) < UNPROVEN_MAX_ITEMS
        and relevance < 1.0
    ):
        logger.debug("Unproven combination for %s (relevance %.2f)", search_terms, relevance)
        return _unproven_signal(len(relevant_items), relevance)

    metrics = calculate_market_metrics(relevant_items, now)
    quality = calculate_quality_distribution(relevant_items)
    freshness = calculate_freshness_analysis(relevant_items, now)
    gap = calculate_content_gap(
        metrics,
        quality,
        freshness,
        term_count=len(search_terms),
        trend_signal=trend_signal,
        sample_size=len(relevant_items),
    )
    score, band = calculate_demand_score(metrics, gap, freshness, trend_signal)
    opportunities = generate_opportunities(metrics, quality, freshness, gap, trend_signal)
    confidence = calculate_confidence(len(relevant_items), metrics, trend_signal)

    signal = DemandSignal(
        demand_score=score,
        demand_band=band,
        market_metrics=metrics,
        content_gap=gap,
        opportunities=opportunities,
        confidence=confidence,
        sample_size=len(relevant_items),
        trends_boost=trend_signal,
    )

    if calibration is not None:
        tier = classify_opportunity(features_from_signal(signal, freshness.recent_item_count), calibration).tier
        rate = calibration.get(band, tier)
        if rate is not None:
            adjusted = round(clamp((confidence + rate) / 2, 0.0, 1.0), 2)
            logger.debug("Calibrated confidence %.2f -> %.2f (%s/%s)", confidence, adjusted, band, tier)
            signal = DemandSignal(
                demand_score=score,
                demand_band=band,
                market_metrics=metrics,
                content_gap=gap,
                opportunities=opportunities,
                confidence=adjusted,
                sample_size=len(relevant_items),
                trends_boost=trend_signal,
            )

    return signal


__all__ = [
    "calculate_confidence",
    "calculate_demand_score",
    "compute_demand_signal",
    "demand_band_for",
]
