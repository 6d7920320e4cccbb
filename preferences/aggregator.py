"""Adaptive preference subsystem.

``compute_profile`` reduces the rating log to a ``PreferenceProfile``: what
the user's highly rated (>= 4 stars) results have in common.  Each field is
an independent mode over the high-rated records, ties going to the value
seen first.  The boolean fields are majority votes under the same rule.

``PreferenceAggregator`` records ratings into the persisted ``RatingLog`` and
keeps the profile as a cache that can be rebuilt from the log at any time.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from storage.ratings import RatingLog
from studio.config import HIGH_RATING_THRESHOLD
from studio.models import MaterialType, RatingRecord, ShadowIntensity

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANGLE_BUCKET = 45


class PreferenceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    shadow_intensity: ShadowIntensity | None = None
    material: MaterialType | None = None
    enhanced_lighting: bool | None = None
    floating: bool | None = None
    shadow_angle_bucket: int | None = None
    sample_size: int = 0  # number of high-rated records behind the profile

    @property
    def is_empty(self) -> bool:
        return self.sample_size == 0


EMPTY_PROFILE = PreferenceProfile()


def angle_bucket(angle: int) -> int:
    """Snap an angle to the nearest multiple of 45 degrees (360 wraps to 0)."""
    return (round(angle / ANGLE_BUCKET) * ANGLE_BUCKET) % 360


def _mode(values: Sequence[T]) -> T:
    """Most frequent value; ties go to the value that occurs first."""
    counts = Counter(values)
    best = max(counts.values())
    return next(v for v in values if counts[v] == best)


def compute_profile(
    records: Iterable[RatingRecord],
    threshold: int = HIGH_RATING_THRESHOLD,
) -> PreferenceProfile:
    """Derive the preference profile from a rating log (pure)."""
    liked = [r for r in records if r.rating >= threshold]
    if not liked:
        return EMPTY_PROFILE

    configs = [r.config for r in liked]
    return PreferenceProfile(
        shadow_intensity=_mode([c.shadow_intensity for c in configs]),
        material=_mode([c.material.type for c in configs]),
        enhanced_lighting=_mode([c.enhanced_lighting for c in configs]),
        floating=_mode([not c.is_grounded for c in configs]),
        shadow_angle_bucket=_mode([angle_bucket(c.shadow_angle) for c in configs]),
        sample_size=len(liked),
    )


class PreferenceAggregator:
    """Records ratings and serves the cached profile."""

    def __init__(self, log: RatingLog) -> None:
        self._log = log
        self._profile = compute_profile(log.records)

    @property
    def profile(self) -> PreferenceProfile:
        return self._profile

    def record_rating(self, record: RatingRecord) -> PreferenceProfile:
        """Append-or-replace ``record`` in the log and refresh the profile."""
        self._log.upsert(record)
        self._profile = compute_profile(self._log.records)
        logger.info(
            "Recorded %d-star rating for %s; profile built from %d record(s)",
            record.rating, record.job_id, self._profile.sample_size,
        )
        return self._profile

    def rebuild(self) -> PreferenceProfile:
        self._profile = compute_profile(self._log.records)
        return self._profile
