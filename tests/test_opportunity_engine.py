import json

from models import (
    ContentGap,
    ContentOpportunity,
    DemandSignal,
    FreshnessAnalysis,
    MarketMetrics,
    QualityDistribution,
    TrendSignal,
)
from opportunity_engine import (
    format_views,
    generate_opportunities,
    load_config,
    rank_opportunities,
    render_opportunity_briefs,
    render_signal_brief,
)

METRICS = MarketMetrics(total_views=600_000, avg_views=60_000, median_views=60_000, avg_views_per_day=500, item_count=10)
QUALITY = QualityDistribution(top_performer_views=60_000, bottom_performer_views=60_000, outlier_ratio=1)
FRESHNESS = FreshnessAnalysis(avg_age_days=60, recent_item_count=5, recent_avg_views=60_000)
UNDERSERVED = ContentGap(score=58, type="underserved", reasoning="Good opportunity - validated demand with accessible competition")
BALANCED = ContentGap(score=40, type="balanced", reasoning="Moderate competition with uncertain opportunity")
SATURATED = ContentGap(score=25, type="saturated", reasoning="High competition - established content dominates rankings")


def _types(opportunities):
    return [opp.type for opp in opportunities]


def test_format_views():
    assert format_views(1_200_000) == "1.2M"
    assert format_views(45_000) == "45.0K"
    assert format_views(999) == "999"


def test_underserved_gap_is_mirrored_verbatim():
    opportunities = generate_opportunities(METRICS, QUALITY, FRESHNESS, UNDERSERVED)
    assert _types(opportunities) == ["underserved"]
    assert opportunities[0].priority == "high"
    assert opportunities[0].description == UNDERSERVED.reasoning


def test_saturated_market_suppresses_every_flag():
    skewed = QualityDistribution(top_performer_views=500_000, bottom_performer_views=1_000, outlier_ratio=100)
    trend = TrendSignal(interest_score=90, week_over_week_growth=400, is_breakout=True)
    assert generate_opportunities(METRICS, skewed, FreshnessAnalysis(), SATURATED, trend) == []


def test_quality_gap_priority_depends_on_spread():
    wide = QualityDistribution(top_performer_views=30_000, bottom_performer_views=1_000, outlier_ratio=30)
    narrow = QualityDistribution(top_performer_views=20_000, bottom_performer_views=1_000, outlier_ratio=20)
    assert generate_opportunities(METRICS, wide, FRESHNESS, BALANCED)[0].priority == "high"
    assert generate_opportunities(METRICS, narrow, FRESHNESS, BALANCED)[0].priority == "medium"


def test_quality_gap_requires_weak_bottom():
    even = QualityDistribution(top_performer_views=30_000, bottom_performer_views=5_000, outlier_ratio=30)
    assert generate_opportunities(METRICS, even, FRESHNESS, BALANCED) == []


def test_freshness_gap_conditions():
    stale = FreshnessAnalysis(avg_age_days=400, recent_item_count=1, recent_avg_views=20_000)
    assert "freshness_gap" in _types(generate_opportunities(METRICS, QUALITY, stale, UNDERSERVED))
    # balanced markets never get a freshness flag
    assert generate_opportunities(METRICS, QUALITY, stale, BALANCED) == []
    crowded = MarketMetrics(avg_views=60_000, item_count=15)
    assert "freshness_gap" not in _types(generate_opportunities(crowded, QUALITY, stale, UNDERSERVED))


def test_emerging_gap_is_not_flagged_twice():
    emerging_gap = ContentGap(score=70, type="emerging", reasoning="Emerging trend - time-sensitive opportunity")
    fresh = FreshnessAnalysis(recent_item_count=6, recent_avg_views=50_000, is_emerging_topic=True)
    opportunities = generate_opportunities(METRICS, QUALITY, fresh, emerging_gap)
    assert _types(opportunities) == ["trending"]
    assert opportunities[0].title == "Emerging Trend"


def test_growing_topic_backup_flag():
    fresh = FreshnessAnalysis(recent_item_count=6, recent_avg_views=50_000, is_emerging_topic=True)
    opportunities = generate_opportunities(METRICS, QUALITY, fresh, BALANCED)
    assert _types(opportunities) == ["trending"]
    assert opportunities[0].priority == "medium"
    assert opportunities[0].title == "Growing Topic"


def test_breakout_needs_supporting_growth():
    weak = TrendSignal(interest_score=50, week_over_week_growth=5, is_breakout=True)
    strong = TrendSignal(interest_score=50, week_over_week_growth=250, is_breakout=True)
    assert "google_breakout" not in _types(generate_opportunities(METRICS, QUALITY, FRESHNESS, BALANCED, weak))
    breakout = generate_opportunities(METRICS, QUALITY, FRESHNESS, BALANCED, strong)
    assert _types(breakout) == ["google_breakout"]
    assert ">100%" in breakout[0].description


def test_velocity_mismatch_excludes_breakout():
    quiet = FreshnessAnalysis(recent_item_count=2, recent_avg_views=5_000)
    growth = TrendSignal(interest_score=40, week_over_week_growth=40)
    assert _types(generate_opportunities(METRICS, QUALITY, quiet, BALANCED, growth)) == ["velocity_mismatch"]

    breakout = TrendSignal(interest_score=40, week_over_week_growth=40, is_breakout=True)
    assert _types(generate_opportunities(METRICS, QUALITY, quiet, BALANCED, breakout)) == ["google_breakout"]


def test_opportunities_are_sorted_by_priority():
    narrow = QualityDistribution(top_performer_views=20_000, bottom_performer_views=1_000, outlier_ratio=20)
    opportunities = generate_opportunities(METRICS, narrow, FRESHNESS, UNDERSERVED)
    assert _types(opportunities) == ["underserved", "quality_gap"]


def test_rank_opportunities_is_stable():
    first = ContentOpportunity(type="quality_gap", title="a", description="", priority="high")
    second = ContentOpportunity(type="underserved", title="b", description="", priority="high")
    low = ContentOpportunity(type="trending", title="c", description="", priority="low")
    assert rank_opportunities([low, first, second]) == [first, second, low]


def test_load_config_defaults():
    cfg = load_config("does-not-exist.json")
    assert cfg["batch"]["workers"] == 4
    assert cfg["briefs"]["top_k"] == 10
    assert cfg["calibration"]["ttl_seconds"] == 3600
    assert cfg["calibration"]["min_outcomes"] == 3


def test_load_config_merges_user_values(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"calibration": {"ttl_seconds": 60}, "logging": {"level": "DEBUG"}}))
    cfg = load_config(path)
    assert cfg["calibration"]["ttl_seconds"] == 60
    assert cfg["calibration"]["min_outcomes"] == 3
    assert cfg["logging"]["level"] == "DEBUG"


def _signal(score: int, trend=None) -> DemandSignal:
    return DemandSignal(
        demand_score=score,
        demand_band="stable",
        market_metrics=METRICS,
        content_gap=UNDERSERVED,
        opportunities=generate_opportunities(METRICS, QUALITY, FRESHNESS, UNDERSERVED),
        confidence=0.6,
        sample_size=10,
        trends_boost=trend,
    )


def test_render_signal_brief():
    lines = render_signal_brief(_signal(50, TrendSignal(interest_score=70, week_over_week_growth=12)), ["tofu", "kimchi"])
    text = "\n".join(lines)
    assert lines[0] == "## tofu + kimchi"
    assert "50/100 (stable)" in text
    assert "60.0K" in text
    assert "+12% week-over-week" in text
    assert "[high] Good Opportunity" in text


def test_render_opportunity_briefs_ranks_and_limits():
    results = [(["salmon"], _signal(30)), (["tofu"], _signal(80)), (["kimchi"], _signal(55))]
    text = render_opportunity_briefs(results, top_k=2)
    assert text.index("## tofu") < text.index("## kimchi")
    assert "## salmon" not in text


def test_render_opportunity_briefs_empty():
    assert "No searches scored." in render_opportunity_briefs([])
