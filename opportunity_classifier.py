"""Rule-based opportunity tier classifier.

Collapses a demand signal into a ``high`` / ``medium`` / ``low`` tier with
a confidence and a short human-readable reasoning. When a calibration
lookup is supplied (observed success rates per demand band and tier), the
confidence follows the calibrated rate and a poorly performing ``high``
tier is downgraded. No ML dependencies: just a weighted composite and
thresholds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from models import DemandSignal, round_half_up

if TYPE_CHECKING:  # pragma: no cover
    from calibration import CalibrationLookup

HIGH_COMPOSITE = 70
HIGH_GAP = 50
MEDIUM_COMPOSITE = 45
MEDIUM_GAP = 30

DEFAULT_CONFIDENCE = {"high": 0.7, "medium": 0.5, "low": 0.6}
LIMITED_DATA_ITEMS = 5
LIMITED_DATA_FACTOR = 0.7


@dataclass(frozen=True)
class OpportunityFeatures:
    demand_score: int
    content_gap_score: int
    avg_views: int
    item_count: int
    recent_ratio: float  # share of videos from the last 90 days (0-1)
    demand_band: str


@dataclass(frozen=True)
class ClassificationResult:
    tier: str
    confidence: float
    reasoning: str
    calibration_based: bool = False


def features_from_signal(signal: DemandSignal, recent_item_count: int = 0) -> OpportunityFeatures:
    metrics = signal.market_metrics
    recent_ratio = recent_item_count / metrics.item_count if metrics.item_count else 0.0
    return OpportunityFeatures(
        demand_score=signal.demand_score,
        content_gap_score=signal.content_gap.score,
        avg_views=metrics.avg_views,
        item_count=metrics.item_count,
        recent_ratio=recent_ratio,
        demand_band=signal.demand_band,
    )


def calculate_composite_score(features: OpportunityFeatures) -> int:
    # Log-scaled views, 1M views maps to 100.
    normalized_views = min(100.0, math.log10(max(features.avg_views, 1)) / 6 * 100)
    freshness_bonus = 10 if features.recent_ratio > 0.3 else 0
    composite = (
        features.demand_score * 0.35
        + features.content_gap_score * 0.30
        + normalized_views * 0.20
        + freshness_bonus * 0.15
    )
    return round_half_up(composite)


def _base_tier(composite: int, gap_score: int) -> str:
    if composite >= HIGH_COMPOSITE and gap_score >= HIGH_GAP:
        return "high"
    if composite >= MEDIUM_COMPOSITE and gap_score >= MEDIUM_GAP:
        return "medium"
    return "low"


def build_reasoning(tier: str, features: OpportunityFeatures, composite: int) -> str:
    parts: List[str] = []

    if features.demand_band == "hot":
        parts.append("High viewer demand")
    elif features.demand_band == "growing":
        parts.append("Growing interest")
    elif features.demand_band == "niche":
        parts.append("Niche audience")

    if features.content_gap_score >= 70:
        parts.append("significant content gap")
    elif features.content_gap_score >= 50:
        parts.append("moderate content gap")
    elif features.content_gap_score < 30:
        parts.append("saturated market")

    if features.avg_views >= 100_000:
        parts.append(f"strong view potential ({round_half_up(features.avg_views / 1000)}K avg)")
    elif features.avg_views >= 50_000:
        parts.append(f"good view potential ({round_half_up(features.avg_views / 1000)}K avg)")

    if features.recent_ratio > 0.4:
        parts.append("trending topic")
    elif features.recent_ratio < 0.1 and features.item_count > 10:
        parts.append("established category")

    text = ", ".join(parts) if parts else "Based on composite analysis"
    return f"{tier.upper()}: {text} (score: {composite})"


def classify_opportunity_simple(features: OpportunityFeatures) -> ClassificationResult:
    """Classification without calibration data, for quick estimates."""
    composite = calculate_composite_score(features)
    tier = _base_tier(composite, features.content_gap_score)
    return ClassificationResult(
        tier=tier,
        confidence=DEFAULT_CONFIDENCE[tier],
        reasoning=build_reasoning(tier, features, composite),
    )


def classify_opportunity(
    features: OpportunityFeatures,
    calibration: Optional["CalibrationLookup"] = None,
) -> ClassificationResult:
    """Classify an opportunity, letting calibrated success rates steer confidence."""

    composite = calculate_composite_score(features)
    tier = _base_tier(composite, features.content_gap_score)

    rates = {}
    if calibration is not None:
        for name in ("high", "medium", "low"):
            rates[name] = calibration.get(features.demand_band, name)
    has_calibration = rates.get("high") is not None or rates.get("medium") is not None

    reasoning = build_reasoning(tier, features, composite)
    rate = rates.get(tier)

    if tier == "high":
        confidence = rate if rate is not None else DEFAULT_CONFIDENCE["high"]
        if rate is not None and rate < 0.4:
            tier = "medium"
            reasoning += " (Downgraded: calibration shows lower success rate)"
    elif tier == "medium":
        confidence = rate if rate is not None else DEFAULT_CONFIDENCE["medium"]
        if rate is not None and rate > 0.7:
            reasoning += " (Calibration shows this tier performs well)"
    else:
        confidence = 1 - rate if rate is not None else DEFAULT_CONFIDENCE["low"]

    if features.item_count < LIMITED_DATA_ITEMS:
        confidence *= LIMITED_DATA_FACTOR
        reasoning += " (Limited data)"

    return ClassificationResult(
        tier=tier,
        confidence=round(confidence, 2),
        reasoning=reasoning,
        calibration_based=has_calibration,
    )
