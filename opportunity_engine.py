"""Opportunity Engine
=====================

Pure functions that turn a scored market into concrete, prioritized
content opportunities for a creator. No network calls and no storage:
every function takes the already-computed metrics and returns plain
dataclasses or strings.

Key responsibilities
--------------------
* Emit typed opportunity flags (quality gap, freshness gap, underserved,
  trending, search breakout, velocity mismatch) from the scored market.
* Suppress every opportunity flag for saturated markets.
* Render markdown briefs for one or many demand signals.
* Load runtime configuration (defaults merged with an optional JSON file).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Mapping, MutableMapping, Optional, Sequence

from models import (
    ContentGap,
    ContentOpportunity,
    DemandSignal,
    FreshnessAnalysis,
    MarketMetrics,
    QualityDistribution,
    TrendSignal,
    round_half_up,
)

DEFAULT_CONFIG_PATH = Path("demand_config.json")

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def load_config(config_path: Optional[str | Path] = None) -> dict:
    """Load runtime settings, merging any user config onto defaults."""

    base = {
        "logging": {
            "level": "INFO",
        },
        "batch": {
            "workers": 4,
        },
        "briefs": {
            "top_k": 10,
        },
        "calibration": {
            "ttl_seconds": 3600,
            "min_outcomes": 3,
            "database_url": None,
        },
    }

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        user = json.loads(path.read_text(encoding="utf-8"))
        base = _deep_merge(base, user)
    return base


def _deep_merge(base: MutableMapping, override: Mapping) -> MutableMapping:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def format_views(views: float) -> str:
    if views >= 1_000_000:
        return f"{views / 1_000_000:.1f}M"
    if views >= 1_000:
        return f"{views / 1_000:.1f}K"
    return str(int(views))


def generate_opportunities(
    metrics: MarketMetrics,
    quality: QualityDistribution,
    freshness: FreshnessAnalysis,
    gap: ContentGap,
    trend_signal: Optional[TrendSignal] = None,
) -> List[ContentOpportunity]:
    """Emit opportunity flags for a scored market, highest priority first."""

    # Saturated markets never advertise an opening.
    if gap.type == "saturated":
        return []

    opportunities: List[ContentOpportunity] = []

    if quality.outlier_ratio > 15 and quality.bottom_performer_views < quality.top_performer_views * 0.1:
        opportunities.append(
            ContentOpportunity(
                type="quality_gap",
                title="Quality Opportunity",
                description=(
                    f"Top videos average {format_views(quality.top_performer_views)} views while most get "
                    f"{format_views(quality.bottom_performer_views)}. High-quality content could capture "
                    "significant audience."
                ),
                priority="high" if quality.outlier_ratio > 25 else "medium",
            )
        )

    if (
        gap.type != "balanced"
        and freshness.recent_item_count < 3
        and 30_000 < metrics.avg_views < 300_000
        and metrics.item_count < 15
    ):
        opportunities.append(
            ContentOpportunity(
                type="freshness_gap",
                title="Content Freshness Gap",
                description=(
                    f"Few recent uploads among top-ranking videos ({freshness.recent_item_count} of "
                    f"{metrics.item_count} from last 90 days). With {format_views(metrics.avg_views)} avg views, "
                    "new quality content could rank well."
                ),
                priority="high",
            )
        )

    if gap.type == "underserved":
        opportunities.append(
            ContentOpportunity(type="underserved", title="Good Opportunity", description=gap.reasoning, priority="high")
        )

    if gap.type == "emerging":
        opportunities.append(
            ContentOpportunity(type="trending", title="Emerging Trend", description=gap.reasoning, priority="high")
        )
    elif freshness.is_emerging_topic and freshness.recent_avg_views > 10_000:
        opportunities.append(
            ContentOpportunity(
                type="trending",
                title="Growing Topic",
                description=(
                    f"{freshness.recent_item_count} recent videos averaging "
                    f"{format_views(freshness.recent_avg_views)} views. This topic is gaining momentum."
                ),
                priority="medium",
            )
        )

    if trend_signal is not None:
        growth = trend_signal.week_over_week_growth
        # A breakout flag needs real supporting growth behind it.
        if trend_signal.is_breakout and growth > 10:
            growth_label = ">100%" if growth > 100 else f"+{round_half_up(growth)}%"
            opportunities.append(
                ContentOpportunity(
                    type="google_breakout",
                    title="Search Trends Breakout",
                    description=(
                        f"This ingredient is experiencing explosive search growth ({growth_label} "
                        "week-over-week). First-mover advantage available."
                    ),
                    priority="high",
                )
            )

        if growth > 30 and freshness.recent_item_count < 5 and not trend_signal.is_breakout:
            opportunities.append(
                ContentOpportunity(
                    type="velocity_mismatch",
                    title="Search Demand Outpacing Content",
                    description=(
                        f"Searches growing +{round_half_up(growth)}% but only {freshness.recent_item_count} "
                        "new videos in 90 days. Supply gap widening."
                    ),
                    priority="high",
                )
            )

    return rank_opportunities(opportunities)


def rank_opportunities(opportunities: Sequence[ContentOpportunity]) -> List[ContentOpportunity]:
    """Stable sort by priority (high, medium, low); emission order breaks ties."""
    return sorted(opportunities, key=lambda opp: PRIORITY_ORDER.get(opp.priority, len(PRIORITY_ORDER)))


def render_signal_brief(signal: DemandSignal, terms: Sequence[str]) -> List[str]:
    metrics = signal.market_metrics
    label = " + ".join(terms) if terms else "Untitled search"
    lines = [f"## {label}"]
    lines.append("")
    lines.append(
        f"**Demand:** {signal.demand_score}/100 ({signal.demand_band}), "
        f"confidence {signal.confidence:.0%} from {signal.sample_size} videos."
    )
    lines.append(f"**Market:** {signal.content_gap.type} - {signal.content_gap.reasoning}.")
    lines.append(
        f"**Views:** avg {format_views(metrics.avg_views)}, median {format_views(metrics.median_views)}, "
        f"{format_views(metrics.avg_views_per_day)}/day."
    )
    if signal.trends_boost is not None:
        boost = signal.trends_boost
        lines.append(
            f"**Search interest:** {boost.interest_score:.0f}/100, "
            f"{boost.week_over_week_growth:+.0f}% week-over-week"
            + (" (breakout)" if boost.is_breakout else "")
            + "."
        )
    if signal.opportunities:
        lines.append("**Opportunities:**")
        lines.extend(f"- [{opp.priority}] {opp.title}: {opp.description}" for opp in signal.opportunities)
    else:
        lines.append("**Opportunities:** none detected.")
    lines.append("")
    return lines


def render_opportunity_briefs(
    results: Sequence[tuple[Sequence[str], DemandSignal]],
    top_k: int = 10,
) -> str:
    """Markdown briefs for the ``top_k`` highest-scoring (terms, signal) pairs."""
    lines = ["# Opportunity Briefs\n"]
    if not results:
        lines.append("No searches scored.")
        return "\n".join(lines)

    ranked = sorted(results, key=lambda pair: pair[1].demand_score, reverse=True)
    for terms, signal in ranked[:top_k]:
        lines.extend(render_signal_brief(signal, terms))
    return "\n".join(lines)


__all__ = [
    "format_views",
    "generate_opportunities",
    "load_config",
    "rank_opportunities",
    "render_opportunity_briefs",
    "render_signal_brief",
]
