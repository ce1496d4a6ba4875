from datetime import datetime, timezone

from models import (
    ContentGap,
    ContentItem,
    DemandSignal,
    MarketMetrics,
    TrendSignal,
    clamp,
    coerce_datetime,
    coerce_view_count,
    normalize_search_terms,
    round_half_up,
)


def test_round_half_up_rounds_halves_away_from_even():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(83.52) == 84


def test_clamp_bounds():
    assert clamp(-3) == 0
    assert clamp(140) == 100
    assert clamp(0.4, 0.0, 1.0) == 0.4


def test_coerce_view_count_degrades_to_zero():
    assert coerce_view_count(1500) == 1500
    assert coerce_view_count("1,234") == 1234
    assert coerce_view_count("12.7") == 12
    assert coerce_view_count(99.9) == 99
    assert coerce_view_count(None) == 0
    assert coerce_view_count("n/a") == 0
    assert coerce_view_count("") == 0
    assert coerce_view_count(True) == 0
    assert coerce_view_count(float("nan")) == 0
    # negatives survive so aggregation can drop them
    assert coerce_view_count(-5) == -5


def test_coerce_datetime_handles_z_suffix_and_naive_values():
    parsed = coerce_datetime("2024-01-01T12:00:00Z")
    assert parsed == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    naive = coerce_datetime(datetime(2024, 1, 1))
    assert naive.tzinfo is timezone.utc

    assert coerce_datetime("yesterday") is None
    assert coerce_datetime(None) is None
    assert coerce_datetime("") is None


def test_normalize_search_terms_dedupes_and_collapses_whitespace():
    assert normalize_search_terms(["  Soy   Sauce ", "soy sauce", "", "Tofu", None]) == ["soy sauce", "tofu"]


def test_content_item_from_flat_dict():
    item = ContentItem.from_dict(
        {"id": "abc", "title": "Kimchi fried rice", "viewCount": "12,000", "publishedAt": "2024-03-01T00:00:00Z"}
    )
    assert item.view_count == 12000
    assert item.published_at == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert item.description is None
    assert "kimchi" in item.text.lower()


def test_content_item_from_video_platform_shape():
    item = ContentItem.from_dict(
        {
            "id": "vid1",
            "snippet": {
                "title": "Gochujang noodles",
                "description": "Spicy and quick",
                "publishedAt": "2024-05-01T08:30:00Z",
            },
            "statistics": {"viewCount": "4500"},
        }
    )
    assert item.title == "Gochujang noodles"
    assert item.description == "Spicy and quick"
    assert item.view_count == 4500
    assert item.published_at.year == 2024


def test_content_item_with_missing_fields():
    item = ContentItem.from_dict({"title": "No stats here"})
    assert item.id == ""
    assert item.view_count == 0
    assert item.published_at is None


def test_trend_signal_from_dict_accepts_both_key_styles():
    assert TrendSignal.from_dict(None) is None
    assert TrendSignal.from_dict({}) is None

    camel = TrendSignal.from_dict({"interestScore": 70, "weekOverWeekGrowth": 35.5, "isBreakout": True})
    snake = TrendSignal.from_dict({"interest_score": 70, "week_over_week_growth": 35.5, "is_breakout": True})
    assert camel == snake
    assert camel.interest_score == 70.0

    junk = TrendSignal.from_dict({"interestScore": "high"})
    assert junk.interest_score == 0.0


def test_content_item_constructor_coerces_like_from_dict():
    item = ContentItem(id=7, title=None, view_count=None, published_at="2024-03-01T12:00:00Z")
    assert item.id == "7"
    assert item.title == ""
    assert item.view_count == 0
    assert item.published_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    naive = ContentItem(id="a", title="t", view_count=5.9, published_at=datetime(2024, 1, 1))
    assert naive.view_count == 5
    assert naive.published_at.tzinfo is timezone.utc


def test_trend_signal_breakout_flag_parses_strings():
    assert TrendSignal.from_dict({"interestScore": 10, "isBreakout": "false"}).is_breakout is False
    assert TrendSignal.from_dict({"interestScore": 10, "isBreakout": "maybe"}).is_breakout is False
    assert TrendSignal.from_dict({"interestScore": 10, "isBreakout": 0}).is_breakout is False
    for raw in ("true", "TRUE", "1", "yes", 1):
        assert TrendSignal.from_dict({"interestScore": 10, "isBreakout": raw}).is_breakout is True


def _signal(trend=None) -> DemandSignal:
    return DemandSignal(
        demand_score=42,
        demand_band="stable",
        market_metrics=MarketMetrics(total_views=100, avg_views=50, median_views=50, avg_views_per_day=5, item_count=2),
        content_gap=ContentGap(score=30, type="balanced", reasoning="Moderate competition"),
        confidence=0.4,
        sample_size=2,
        trends_boost=trend,
    )


def test_demand_signal_to_dict_omits_missing_trend():
    payload = _signal().to_dict()
    assert "trends_boost" not in payload
    assert payload["market_metrics"]["item_count"] == 2
    assert payload["content_gap"]["type"] == "balanced"

    with_trend = _signal(TrendSignal(interest_score=10)).to_dict()
    assert with_trend["trends_boost"]["interest_score"] == 10


def test_demand_signal_hash_is_deterministic():
    assert _signal().compute_hash() == _signal().compute_hash()
    assert _signal().compute_hash() != _signal(TrendSignal(interest_score=10)).compute_hash()
