"""Batch orchestration for demand scoring.

Loads scoring requests from disk, scores them in parallel against one
shared clock, and writes JSON, CSV and markdown outputs so every run can be
inspected or diffed later. The scoring core stays pure; logging setup,
threading and file I/O all live here.
"""
from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence
from uuid import uuid4

import pandas as pd
from tqdm import tqdm

from demand_calculator import compute_demand_signal
from models import ContentItem, DemandSignal, TrendSignal, coerce_datetime, normalize_search_terms
from opportunity_engine import render_opportunity_briefs

_LOG_CONTEXT = {"batch_id": "-"}


@dataclass
class ScoringRequest:
    """One search to score: the terms plus the videos already fetched for them."""

    terms: List[str]
    items: List[ContentItem] = field(default_factory=list)
    trend_signal: Optional[TrendSignal] = None
    request_id: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], index: int = 0) -> "ScoringRequest":
        raw_terms = payload.get("terms") or payload.get("ingredients") or []
        if isinstance(raw_terms, str):
            raw_terms = [raw_terms]
        terms = normalize_search_terms(raw_terms)
        if not terms:
            raise ValueError(f"Request {index} has no search terms")
        return cls(
            terms=terms,
            items=[ContentItem.from_dict(item) for item in payload.get("items") or payload.get("videos") or []],
            trend_signal=TrendSignal.from_dict(payload.get("trend_signal") or payload.get("trendSignal")),
            request_id=str(payload.get("id") or payload.get("request_id") or index),
        )


@dataclass
class ScoredRequest:
    request: ScoringRequest
    signal: DemandSignal

    def to_dict(self) -> dict:
        return {
            "request_id": self.request.request_id,
            "terms": self.request.terms,
            "signal": self.signal.to_dict(),
            "signal_hash": self.signal.compute_hash(),
        }


def configure_logging(batch_id: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("pipeline")
    _LOG_CONTEXT["batch_id"] = batch_id or "-"
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if logger.handlers:
        return logger
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(levelname)s [batch:%(batch_id)s] %(message)s")

    class ContextFilter(logging.Filter):
        def filter(self, record):
            record.batch_id = _LOG_CONTEXT.get("batch_id", "-")
            return True

    handler.addFilter(ContextFilter())
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def load_requests(path: str | Path) -> List[ScoringRequest]:
    """Read a single request object, a JSON list of requests, or JSON lines."""
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read request file {source}: {exc}") from exc

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        try:
            payload = [json.loads(line) for line in text.splitlines() if line.strip()]
        except json.JSONDecodeError as exc:
            raise ValueError(f"{source} is neither JSON nor JSON lines: {exc}") from exc

    if isinstance(payload, Mapping):
        payload = payload.get("requests", [payload])
    if not isinstance(payload, list):
        raise ValueError(f"{source} must contain a request object or a list of requests")
    return [ScoringRequest.from_dict(entry, index) for index, entry in enumerate(payload)]


def parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = coerce_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value}")
    return parsed


def score_request(request: ScoringRequest, now: datetime, calibration=None) -> ScoredRequest:
    signal = compute_demand_signal(
        request.items,
        request.terms,
        request.trend_signal,
        now=now,
        calibration=calibration,
    )
    return ScoredRequest(request=request, signal=signal)


def run_batch(
    requests: Sequence[ScoringRequest],
    workers: int = 4,
    now: Optional[datetime] = None,
    calibration=None,
    show_progress: bool = True,
) -> List[ScoredRequest]:
    """Score every request in parallel; results keep the input order."""
    logger = logging.getLogger("pipeline")
    now = now or datetime.now(timezone.utc)
    if not requests:
        return []

    logger.info("Scoring %d requests with %d workers", len(requests), workers)
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        results = list(
            tqdm(
                executor.map(lambda req: score_request(req, now, calibration), requests),
                total=len(requests),
                desc="Scoring searches",
                unit="search",
                leave=True,
                disable=not show_progress,
            )
        )
    logger.info("Scored %d requests", len(results))
    return results


def signals_to_json(batch_id: str, meta: dict, results: Iterable[ScoredRequest]) -> dict:
    return {
        "batch_id": batch_id,
        "batch_meta": meta,
        "results": [result.to_dict() for result in results],
    }


def signals_to_dataframe(results: Sequence[ScoredRequest]) -> pd.DataFrame:
    """One flat row per scored search, sorted by demand score."""
    if not results:
        return pd.DataFrame()

    rows = []
    for result in results:
        signal = result.signal
        metrics = signal.market_metrics
        rows.append(
            {
                "request_id": result.request.request_id,
                "terms": " + ".join(result.request.terms),
                "demand_score": signal.demand_score,
                "demand_band": signal.demand_band,
                "confidence": signal.confidence,
                "sample_size": signal.sample_size,
                "gap_type": signal.content_gap.type,
                "gap_score": signal.content_gap.score,
                "avg_views": metrics.avg_views,
                "median_views": metrics.median_views,
                "avg_views_per_day": metrics.avg_views_per_day,
                "item_count": metrics.item_count,
                "opportunity_types": ";".join(opp.type for opp in signal.opportunities),
            }
        )

    df = pd.DataFrame(rows)
    for numeric_col in ["demand_score", "confidence", "gap_score", "avg_views", "item_count"]:
        df[numeric_col] = pd.to_numeric(df[numeric_col], errors="coerce")
    return df.sort_values("demand_score", ascending=False, kind="stable").reset_index(drop=True)


def write_outputs(
    output_dir: Path,
    results: Sequence[ScoredRequest],
    top_k: int = 10,
    batch_id: Optional[str] = None,
    meta: Optional[dict] = None,
) -> dict:
    """Write signals.json, signals.csv and briefs.md; returns the paths written."""
    output_dir.mkdir(parents=True, exist_ok=True)
    batch_id = batch_id or str(uuid4())

    json_path = output_dir / "signals.json"
    csv_path = output_dir / "signals.csv"
    brief_path = output_dir / "briefs.md"

    payload = signals_to_json(batch_id, meta or {}, results)
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    signals_to_dataframe(results).to_csv(csv_path, index=False)
    brief_path.write_text(
        render_opportunity_briefs([(result.request.terms, result.signal) for result in results], top_k=top_k),
        encoding="utf-8",
    )
    return {"json": json_path, "csv": csv_path, "briefs": brief_path}
