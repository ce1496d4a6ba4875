"""Canonical data models for content-demand scoring.

These models give the scoring core a stable shape regardless of which
collaborator fetched the videos or resolved the trend signal, so the
matcher, aggregators, and composer can treat every request uniformly.
"""
from __future__ import annotations

import hashlib
import json
import math
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

_WHITESPACE_RE = re.compile(r"\s+")

DEMAND_BANDS = ("hot", "growing", "stable", "niche", "unknown")
CONTENT_GAP_TYPES = ("underserved", "saturated", "balanced", "emerging")
OPPORTUNITY_TYPES = (
    "quality_gap",
    "freshness_gap",
    "underserved",
    "trending",
    "google_breakout",
    "velocity_mismatch",
)
PRIORITIES = ("high", "medium", "low")


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def coerce_view_count(value: Any) -> int:
    """Return an integer view count, degrading unusable values to 0."""

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        try:
            return int(cleaned)
        except ValueError:
            try:
                parsed = float(cleaned)
            except ValueError:
                return 0
            return int(parsed) if math.isfinite(parsed) else 0
    return 0


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Parse a publish timestamp into an aware UTC datetime, or ``None``."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_search_terms(terms: Iterable[str]) -> List[str]:
    """Case-fold, trim, collapse whitespace and de-duplicate search terms."""

    normalized: List[str] = []
    for term in terms:
        if not isinstance(term, str):
            continue
        cleaned = _WHITESPACE_RE.sub(" ", term.casefold()).strip()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


@dataclass(frozen=True, slots=True)
class ContentItem:
    """One video's public metadata as supplied by the fetcher."""

    id: str
    title: str
    view_count: int
    published_at: Optional[datetime]
    description: Optional[str] = None

    def __post_init__(self) -> None:
        # Directly constructed items get the same coercion as from_dict.
        object.__setattr__(self, "id", str(self.id or ""))
        object.__setattr__(self, "title", str(self.title or ""))
        object.__setattr__(self, "view_count", coerce_view_count(self.view_count))
        object.__setattr__(self, "published_at", coerce_datetime(self.published_at))
        if self.description is not None:
            object.__setattr__(self, "description", str(self.description))

    @property
    def text(self) -> str:
        return f"{self.title} {self.description or ''}"

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ContentItem":
        snippet = payload.get("snippet") or {}
        statistics = payload.get("statistics") or {}
        title = payload.get("title", snippet.get("title"))
        description = payload.get("description", snippet.get("description"))
        views = _first_present(payload, ("viewCount", "view_count", "views"), statistics.get("viewCount"))
        published = _first_present(payload, ("publishedAt", "published_at"), snippet.get("publishedAt"))
        return cls(
            id=str(payload.get("id") or ""),
            title=str(title or ""),
            description=str(description) if description is not None else None,
            view_count=coerce_view_count(views),
            published_at=coerce_datetime(published),
        )


def _first_present(payload: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


@dataclass(frozen=True, slots=True)
class TrendSignal:
    """External search-interest signal for the same terms (read-only here)."""

    interest_score: float = 0.0  # 0-100
    week_over_week_growth: float = 0.0  # percentage
    is_breakout: bool = False

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> Optional["TrendSignal"]:
        if not payload:
            return None
        interest = _first_present(payload, ("interestScore", "interest_score"), 0)
        growth = _first_present(
            payload,
            ("weekOverWeekGrowth", "weekOverWeekGrowthPct", "week_over_week_growth", "week_over_week_growth_pct"),
            0,
        )
        return cls(
            interest_score=_coerce_float(interest),
            week_over_week_growth=_coerce_float(growth),
            is_breakout=coerce_flag(_first_present(payload, ("isBreakout", "is_breakout"), False)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


_TRUE_STRINGS = ("true", "1", "yes")


def coerce_flag(value: Any) -> bool:
    """Boolean from JSON-ish input; unrecognised values are False."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().casefold() in _TRUE_STRINGS
    return False


def _coerce_float(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


@dataclass(frozen=True, slots=True)
class RelevanceResult:
    item: ContentItem
    matched_fraction: float


@dataclass(frozen=True, slots=True)
class MarketMetrics:
    total_views: int = 0
    avg_views: int = 0
    median_views: int = 0
    avg_views_per_day: int = 0
    item_count: int = 0


@dataclass(frozen=True, slots=True)
class QualityDistribution:
    top_performer_views: int = 0
    bottom_performer_views: int = 0
    outlier_ratio: int = 0  # 0-100, capped


@dataclass(frozen=True, slots=True)
class FreshnessAnalysis:
    avg_age_days: int = 0
    recent_item_count: int = 0
    recent_avg_views: int = 0
    is_emerging_topic: bool = False


@dataclass(frozen=True, slots=True)
class ContentGap:
    score: int
    type: str
    reasoning: str


@dataclass(frozen=True, slots=True)
class ContentOpportunity:
    type: str
    title: str
    description: str
    priority: str


@dataclass(frozen=True, slots=True)
class DemandSignal:
    """Final output handed back to collaborators."""

    demand_score: int
    demand_band: str
    market_metrics: MarketMetrics
    content_gap: ContentGap
    opportunities: List[ContentOpportunity] = field(default_factory=list)
    confidence: float = 0.0
    sample_size: int = 0
    trends_boost: Optional[TrendSignal] = None

    def to_dict(self) -> dict:
        payload = asdict(self)
        if self.trends_boost is None:
            payload.pop("trends_boost")
        return payload

    def compute_hash(self) -> str:
        """Deterministic hash of the serialized signal for change tracking."""

        return hashlib.sha256(json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")).hexdigest()
