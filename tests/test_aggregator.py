"""Tests for preferences.aggregator — profile derivation from the rating log."""

from __future__ import annotations

from pathlib import Path

import pytest

from preferences.aggregator import (
    EMPTY_PROFILE,
    PreferenceAggregator,
    angle_bucket,
    compute_profile,
)
from storage.json_store import JsonFileStore
from storage.ratings import RatingLog
from studio.models import GenerationConfig, RatingRecord, make_material


def _record(job_id: str, rating: int, **config) -> RatingRecord:
    return RatingRecord(job_id=job_id, rating=rating, config=GenerationConfig(**config))


class TestAngleBucket:
    @pytest.mark.parametrize(
        ("angle", "bucket"),
        [(0, 0), (20, 0), (23, 45), (135, 135), (150, 135), (340, 0), (360, 0)],
    )
    def test_snaps_to_45(self, angle: int, bucket: int) -> None:
        assert angle_bucket(angle) == bucket


class TestComputeProfile:
    def test_empty_log(self) -> None:
        assert compute_profile([]) == EMPTY_PROFILE
        assert EMPTY_PROFILE.is_empty

    def test_only_low_ratings_gives_empty_profile(self) -> None:
        profile = compute_profile([_record("a", 3), _record("b", 1)])
        assert profile.is_empty

    def test_high_rated_shadow_intensity_wins(self) -> None:
        records = [
            _record("a", 4, shadow_intensity="soft"),
            _record("b", 5, shadow_intensity="soft"),
            _record("c", 3, shadow_intensity="hard"),
        ]
        profile = compute_profile(records)
        assert profile.shadow_intensity == "soft"
        assert profile.sample_size == 2

    def test_material_mode(self) -> None:
        records = [
            _record("a", 5, material=make_material("metal")),
            _record("b", 4, material=make_material("silver")),
            _record("c", 5, material=make_material("metal", patina_intensity=70)),
        ]
        assert compute_profile(records).material == "metal"

    def test_tie_goes_to_first_seen(self) -> None:
        records = [
            _record("a", 5, shadow_intensity="long", enhanced_lighting=True),
            _record("b", 5, shadow_intensity="hard", enhanced_lighting=False),
        ]
        profile = compute_profile(records)
        assert profile.shadow_intensity == "long"
        assert profile.enhanced_lighting is True

    def test_floating_majority(self) -> None:
        records = [
            _record("a", 5, elevation=40),
            _record("b", 4, elevation=20),
            _record("c", 4, elevation=0),
        ]
        assert compute_profile(records).floating is True

    def test_angle_bucket_mode(self) -> None:
        records = [
            _record("a", 5, shadow_angle=130),
            _record("b", 5, shadow_angle=140),
            _record("c", 5, shadow_angle=270),
        ]
        assert compute_profile(records).shadow_angle_bucket == 135


class TestPreferenceAggregator:
    def test_rerating_keeps_latest_value(self, tmp_path: Path) -> None:
        log = RatingLog(JsonFileStore(tmp_path))
        aggregator = PreferenceAggregator(log)

        aggregator.record_rating(_record("job-1", 5, shadow_intensity="hard"))
        profile = aggregator.record_rating(_record("job-1", 2, shadow_intensity="hard"))

        assert len(log) == 1
        assert log.get("job-1").rating == 2
        assert profile.is_empty

    def test_profile_survives_restart(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path)
        PreferenceAggregator(RatingLog(store)).record_rating(
            _record("job-1", 5, shadow_intensity="long")
        )

        log = RatingLog(store)
        log.load()
        assert PreferenceAggregator(log).profile.shadow_intensity == "long"
