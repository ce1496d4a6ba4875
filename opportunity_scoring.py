"""
Competition and Opportunity Scoring

Turns market metrics and freshness into two opposing 0-100 axes:

* competition barrier: how hard it is for a new video to rank
* opportunity score: how good the opening is for a new creator

and a rule-based market classification built on both. Every component is
a literal step table; the breakpoints are part of the output contract and
must not be smoothed into continuous formulas.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from models import (
    ContentGap,
    FreshnessAnalysis,
    MarketMetrics,
    QualityDistribution,
    TrendSignal,
    clamp,
    round_half_up,
)


@dataclass
class BarrierBreakdown:
    """Competition barrier with its point components."""
    score: int  # 0-100, higher is harder
    view_barrier: int  # 0-40
    incumbent_advantage: int  # 0-30
    supply_pressure: int  # 0-20
    algorithm_lock_in: int  # 0-10
    notes: List[str] = field(default_factory=list)


@dataclass
class OpportunityBreakdown:
    """Opportunity score with its point components."""
    score: int  # 0-100, higher is better
    accessibility: int  # 0-35
    demand_validation: int  # 5-25
    timing_bonus: int  # 0-25
    niche_advantage: int  # 0-15
    notes: List[str] = field(default_factory=list)


# Classification reasoning - fixed strings per branch
REASON_SPARSE_COMBINATION = (
    "Sparse multi-ingredient combination - few matching videos, "
    "popular single-ingredient content does not compete directly"
)
REASON_HIGH_COMPETITION = "High competition - established content dominates rankings"
REASON_DIFFICULT_MARKET = "Difficult market - significant barrier to compete"
REASON_EMERGING = "Emerging trend - time-sensitive opportunity"
REASON_GOOD_OPPORTUNITY = "Good opportunity - validated demand with accessible competition"
REASON_NICHE_OPPORTUNITY = "Niche opportunity - smaller audience but very accessible"
REASON_BALANCED = "Moderate competition with uncertain opportunity"

QUALITY_BONUS_RATIO = 20
QUALITY_BONUS_POINTS = 10


def compute_view_barrier(avg_views: int) -> tuple[int, str]:
    """
    View barrier (0-40).
    High average views mean established videos already own the rankings.
    """
    if avg_views >= 1_000_000:
        return 40, "1M+ avg views"
    if avg_views >= 500_000:
        return 35, "500K+ avg views"
    if avg_views >= 100_000:
        return 30, "100K+ avg views"
    if avg_views >= 50_000:
        return 20, "50K+ avg views"
    if avg_views >= 10_000:
        return 10, "10K+ avg views"
    return 0, "low avg views"


def compute_incumbent_advantage(recent_count: int, item_count: int) -> tuple[int, str]:
    """
    Incumbent advantage (0-30).
    Few recent uploads means the ranking is locked to old content.
    """
    recent_ratio = recent_count / item_count if item_count > 0 else 0
    if recent_ratio < 0.1:
        return 30, "under 10% recent"
    if recent_ratio < 0.2:
        return 20, "10-20% recent"
    if recent_ratio < 0.4:
        return 10, "20-40% recent"
    return 0, "40%+ recent"


def compute_supply_pressure(item_count: int) -> tuple[int, str]:
    """Supply pressure (0-20). More videos compete for the same ranking."""
    if item_count > 50:
        return 20, "50+ videos"
    if item_count > 30:
        return 15, "30+ videos"
    if item_count > 15:
        return 10, "15+ videos"
    if item_count > 5:
        return 5, "5+ videos"
    return 0, "few videos"


def compute_algorithm_lock_in(avg_age_days: int, recent_count: int) -> tuple[int, str]:
    """Algorithm lock-in (0-10): old catalogue and almost nothing new."""
    if avg_age_days > 365 and recent_count < 3:
        return 10, "old catalogue, few new uploads"
    return 0, ""


def score_competition_barrier(metrics: MarketMetrics, freshness: FreshnessAnalysis) -> BarrierBreakdown:
    view_points, view_note = compute_view_barrier(metrics.avg_views)
    incumbent_points, incumbent_note = compute_incumbent_advantage(
        freshness.recent_item_count, metrics.item_count
    )
    supply_points, supply_note = compute_supply_pressure(metrics.item_count)
    lock_points, lock_note = compute_algorithm_lock_in(freshness.avg_age_days, freshness.recent_item_count)

    total = view_points + incumbent_points + supply_points + lock_points
    return BarrierBreakdown(
        score=int(clamp(total)),
        view_barrier=view_points,
        incumbent_advantage=incumbent_points,
        supply_pressure=supply_points,
        algorithm_lock_in=lock_points,
        notes=[note for note in (view_note, incumbent_note, supply_note, lock_note) if note],
    )


def calculate_competition_barrier(metrics: MarketMetrics, freshness: FreshnessAnalysis) -> int:
    """Competition barrier score (0-100). Higher = harder to compete."""
    return score_competition_barrier(metrics, freshness).score


def compute_accessibility(barrier: int) -> tuple[int, str]:
    """Accessibility (0-35), the inverse of the barrier."""
    if barrier <= 20:
        return 35, "very accessible"
    if barrier <= 40:
        return 28, "accessible"
    if barrier <= 60:
        return 18, "contested"
    if barrier <= 80:
        return 8, "hard to enter"
    return 0, "locked"


def compute_demand_validation(avg_views: int) -> tuple[int, str]:
    """
    Demand validation (5-25).
    Never zero: any positive view count proves some audience exists.
    """
    if avg_views >= 50_000:
        return 25, "strong proven audience"
    if avg_views >= 20_000:
        return 20, "proven audience"
    if avg_views >= 10_000:
        return 15, "moderate audience"
    if avg_views >= 5_000:
        return 10, "small audience"
    return 5, "minimal audience"


def compute_timing_bonus(
    metrics: MarketMetrics,
    freshness: FreshnessAnalysis,
    trend_signal: Optional[TrendSignal] = None,
) -> tuple[int, str]:
    """
    Timing bonus (0-25).
    External momentum and recent videos outperforming are additive before the cap.
    """
    bonus = 0
    notes = []
    if trend_signal is not None and trend_signal.is_breakout:
        bonus += 15
        notes.append("search breakout")
    elif trend_signal is not None and trend_signal.week_over_week_growth > 30:
        bonus += 10
        notes.append("search growth 30%+")
    elif trend_signal is not None and trend_signal.week_over_week_growth > 10:
        bonus += 5
        notes.append("search growth 10%+")

    if freshness.recent_avg_views > metrics.avg_views * 1.2:
        bonus += 10
        notes.append("recent videos outperform")

    return min(25, bonus), ", ".join(notes)


def compute_niche_advantage(term_count: int, metrics: MarketMetrics) -> tuple[int, str]:
    """Niche advantage (0-15): long-tail searches and small validated niches."""
    points = 0
    notes = []
    if term_count >= 3:
        points += 10
        notes.append("long-tail combination")
    elif term_count >= 2:
        points += 5
        notes.append("specific combination")

    if metrics.item_count < 10 and metrics.avg_views >= 10_000:
        points += 5
        notes.append("small but validated niche")
    return points, ", ".join(notes)


def score_opportunity(
    metrics: MarketMetrics,
    freshness: FreshnessAnalysis,
    barrier: int,
    term_count: int,
    trend_signal: Optional[TrendSignal] = None,
) -> OpportunityBreakdown:
    access_points, access_note = compute_accessibility(barrier)
    demand_points, demand_note = compute_demand_validation(metrics.avg_views)
    timing_points, timing_note = compute_timing_bonus(metrics, freshness, trend_signal)
    niche_points, niche_note = compute_niche_advantage(term_count, metrics)

    total = access_points + demand_points + timing_points + niche_points
    return OpportunityBreakdown(
        score=int(clamp(total)),
        accessibility=access_points,
        demand_validation=demand_points,
        timing_bonus=timing_points,
        niche_advantage=niche_points,
        notes=[note for note in (access_note, demand_note, timing_note, niche_note) if note],
    )


def calculate_opportunity_score(
    metrics: MarketMetrics,
    freshness: FreshnessAnalysis,
    barrier: int,
    term_count: int,
    trend_signal: Optional[TrendSignal] = None,
) -> int:
    """Opportunity score (0-100). Higher = better opening for new creators."""
    return score_opportunity(metrics, freshness, barrier, term_count, trend_signal).score


def classifier_timing_bonus(freshness: FreshnessAnalysis, trend_signal: Optional[TrendSignal] = None) -> int:
    """
    Timing bonus used only by the emerging-market rule.

    Deliberately separate from ``compute_timing_bonus``: it is uncapped,
    ignores the 10%+ growth tier and keys on the emerging-topic flag rather
    than recent-vs-overall views, so the two can disagree at the margins.
    """
    bonus = 0
    if trend_signal is not None and trend_signal.is_breakout:
        bonus += 15
    elif trend_signal is not None and trend_signal.week_over_week_growth > 30:
        bonus += 10
    if freshness.recent_avg_views > 0 and freshness.is_emerging_topic:
        bonus += 10
    return bonus


def classify_market(
    barrier: int,
    opportunity: int,
    freshness: FreshnessAnalysis,
    sample_size: int,
    term_count: int,
    trend_signal: Optional[TrendSignal] = None,
) -> tuple[str, str]:
    """
    Classify the market as underserved / saturated / emerging / balanced.

    Rules are evaluated in order and the first match wins.
    """
    # Sparse multi-term combinations inherit view counts from popular
    # single-ingredient videos; never call them saturated.
    if term_count >= 3 and sample_size < 10:
        return "underserved", REASON_SPARSE_COMBINATION

    if barrier > 60:
        return "saturated", REASON_HIGH_COMPETITION

    if barrier > 40 and opportunity < 40:
        return "saturated", REASON_DIFFICULT_MARKET

    if opportunity > 60 and classifier_timing_bonus(freshness, trend_signal) >= 15:
        return "emerging", REASON_EMERGING

    if barrier < 40 and opportunity > 50:
        return "underserved", REASON_GOOD_OPPORTUNITY

    if barrier < 30 and opportunity >= 30:
        return "underserved", REASON_NICHE_OPPORTUNITY

    return "balanced", REASON_BALANCED


def calculate_content_gap(
    metrics: MarketMetrics,
    quality: QualityDistribution,
    freshness: FreshnessAnalysis,
    term_count: int = 1,
    trend_signal: Optional[TrendSignal] = None,
    sample_size: Optional[int] = None,
) -> ContentGap:
    """
    Build the content gap from the barrier/opportunity model.

    The gap score is the opportunity score plus a quality bonus when top
    performers dwarf the rest (quality can still win there).
    """
    barrier = calculate_competition_barrier(metrics, freshness)
    opportunity = calculate_opportunity_score(metrics, freshness, barrier, term_count, trend_signal)
    gap_type, reasoning = classify_market(
        barrier,
        opportunity,
        freshness,
        sample_size if sample_size is not None else metrics.item_count,
        term_count,
        trend_signal,
    )

    score = opportunity
    if quality.outlier_ratio > QUALITY_BONUS_RATIO:
        score += QUALITY_BONUS_POINTS

    return ContentGap(score=round_half_up(clamp(score)), type=gap_type, reasoning=reasoning)
