"""Calibration lookup for opportunity confidence.

Calibration data records how often past opportunities actually worked out,
bucketed by demand band and opportunity tier. The scoring core never
fetches it: callers refresh a ``CalibrationCache`` (backed by a
``CalibrationStore`` or any loader) and pass the resolved
``CalibrationSnapshot`` in, so every scoring call sees one immutable view.
"""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Protocol, Tuple

from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger("pipeline.calibration")

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///data/calibration.db"
DEFAULT_TTL_SECONDS = 3600
DEFAULT_MIN_OUTCOMES = 3

CalibrationKey = Tuple[str, str]


class CalibrationLookup(Protocol):
    def get(self, demand_band: str, opportunity_tier: str) -> Optional[float]:
        ...


@dataclass(frozen=True)
class CalibrationEntry:
    success_rate: float
    total_outcomes: int


@dataclass(frozen=True)
class CalibrationSnapshot:
    """Immutable view of calibration buckets keyed by (band, tier)."""

    entries: Mapping[CalibrationKey, CalibrationEntry] = field(default_factory=dict)

    def get(self, demand_band: str, opportunity_tier: str) -> Optional[float]:
        entry = self.entries.get((demand_band, opportunity_tier))
        return entry.success_rate if entry is not None else None

    def __len__(self) -> int:
        return len(self.entries)


class CalibrationCache:
    """Time-boxed cache around a calibration loader.

    ``refresh_if_stale`` is the only method that may touch the loader; ``get``
    and ``snapshot`` only read what was loaded last.
    """

    def __init__(
        self,
        loader: Callable[[], Mapping[CalibrationKey, CalibrationEntry]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot = CalibrationSnapshot()
        self._loaded_at: Optional[float] = None

    def is_stale(self, now: Optional[float] = None) -> bool:
        if self._loaded_at is None:
            return True
        current = self._clock() if now is None else now
        return current - self._loaded_at >= self._ttl_seconds

    def refresh_if_stale(self, now: Optional[float] = None) -> bool:
        """Reload when the TTL has expired. Returns True when a load happened."""
        current = self._clock() if now is None else now
        if not self.is_stale(current):
            return False
        try:
            entries = dict(self._loader())
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Failed to load calibration data: %s", exc)
            entries = {}
        self._snapshot = CalibrationSnapshot(entries=entries)
        self._loaded_at = current
        logger.debug("Loaded %d calibration entries", len(entries))
        return True

    def get(self, demand_band: str, opportunity_tier: str) -> Optional[float]:
        return self._snapshot.get(demand_band, opportunity_tier)

    def snapshot(self) -> CalibrationSnapshot:
        return self._snapshot


class OpportunityCalibrationRow(Base):
    __tablename__ = "opportunity_calibration"
    __table_args__ = (UniqueConstraint("demand_band", "opportunity_tier", name="uq_calibration_bucket"),)

    id = Column(Integer, primary_key=True)
    demand_band = Column(String, nullable=False)
    opportunity_tier = Column(String, nullable=False)
    success_rate = Column(Float, nullable=False)
    total_outcomes = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class CalibrationStore:
    """Small helper around SQLAlchemy sessions for calibration buckets."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        if self.database_url.startswith("sqlite:///data/"):
            Path("data").mkdir(exist_ok=True)
        self.engine = create_engine(self.database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    @contextmanager
    def session(self) -> Session:
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def upsert(self, demand_band: str, opportunity_tier: str, success_rate: float, total_outcomes: int) -> None:
        with self.session() as session:
            row = (
                session.query(OpportunityCalibrationRow)
                .filter_by(demand_band=demand_band, opportunity_tier=opportunity_tier)
                .one_or_none()
            )
            if row is None:
                row = OpportunityCalibrationRow(demand_band=demand_band, opportunity_tier=opportunity_tier)
                session.add(row)
            row.success_rate = max(0.0, min(1.0, success_rate))
            row.total_outcomes = total_outcomes
            row.updated_at = datetime.now(timezone.utc)

    def load_entries(self, min_outcomes: int = DEFAULT_MIN_OUTCOMES) -> Dict[CalibrationKey, CalibrationEntry]:
        """Buckets with enough outcomes to be trusted."""
        with self.session() as session:
            rows = (
                session.query(OpportunityCalibrationRow)
                .filter(OpportunityCalibrationRow.total_outcomes >= min_outcomes)
                .all()
            )
            return {
                (row.demand_band, row.opportunity_tier): CalibrationEntry(
                    success_rate=row.success_rate,
                    total_outcomes=row.total_outcomes,
                )
                for row in rows
            }

    def cache(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        min_outcomes: int = DEFAULT_MIN_OUTCOMES,
    ) -> CalibrationCache:
        return CalibrationCache(lambda: self.load_entries(min_outcomes), ttl_seconds=ttl_seconds)
