"""Tests for studio.session.StudioSession — the end-to-end workflow."""

from __future__ import annotations

from pathlib import Path

import pytest

from studio.config import StudioConfig
from storage.json_store import JsonFileStore
from studio.errors import QueueCapacityError, StorageError, UploadRejected
from studio.models import JobStatus
from studio.session import StudioSession
from studio.uploads import INVALID_UPLOAD_MESSAGE


def _make_config(tmp_path: Path, **overrides) -> StudioConfig:
    return StudioConfig(
        data_dir=tmp_path / "data",
        export_dir=tmp_path / "exports",
        **overrides,
    )


def _make_image(tmp_path: Path, name: str, data: bytes = b"\x89PNG fake") -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


@pytest.fixture()
def session(tmp_path: Path, generator, credentials, sleep) -> StudioSession:
    s = StudioSession(generator, credentials, _make_config(tmp_path), sleep=sleep)
    yield s
    s.close()


# ── Uploads ──────────────────────────────────────────────────────────────────


class TestUpload:
    def test_each_job_snapshots_current_settings(self, tmp_path: Path, session: StudioSession) -> None:
        session.select_material("metal")
        session.update_material(patina_intensity=50)
        jobs = session.upload_paths([_make_image(tmp_path, "mug.png")])

        session.update_settings(shadow_intensity="hard")
        session.select_material("stone")

        assert jobs[0].config.material.type == "metal"
        assert jobs[0].config.material.patina_intensity == 50
        assert jobs[0].config.shadow_intensity == "soft"

    def test_only_invalid_files_sets_banner(self, tmp_path: Path, session: StudioSession) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("not an image")
        with pytest.raises(UploadRejected):
            session.upload_paths([notes])
        assert session.banner == INVALID_UPLOAD_MESSAGE
        assert len(session.store) == 0

    def test_mixed_batch_keeps_valid_files(self, tmp_path: Path, session: StudioSession) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("not an image")
        jobs = session.upload_paths([notes, _make_image(tmp_path, "a.png")])
        assert [j.filename for j in jobs] == ["a.png"]
        assert "Skipped 1 file" in session.banner

    def test_capacity_error_sets_banner(self, tmp_path: Path, generator, credentials, sleep) -> None:
        session = StudioSession(
            generator, credentials, _make_config(tmp_path, max_queue_size=1), sleep=sleep,
        )
        paths = [_make_image(tmp_path, "a.png"), _make_image(tmp_path, "b.png")]
        with pytest.raises(QueueCapacityError):
            session.upload_paths(paths)
        assert "Queue limit reached (1)" in session.banner
        assert len(session.store) == 0
        assert session.can_upload()

    def test_listeners_are_notified(self, tmp_path: Path, session: StudioSession) -> None:
        calls = []
        session.subscribe(lambda: calls.append(1))
        session.upload_paths([_make_image(tmp_path, "a.png")])
        assert calls


# ── Processing, rating & learning ────────────────────────────────────────────


class TestWorkflow:
    @pytest.mark.asyncio
    async def test_rating_feeds_preferences(self, tmp_path: Path, session: StudioSession) -> None:
        session.update_settings(shadow_intensity="long")
        [job] = session.upload_paths([_make_image(tmp_path, "a.png")])
        session.start_queue()
        await session.queue.drain()

        session.rate(job.id, 5)

        assert session.profile.shadow_intensity == "long"
        assert session.profile.sample_size == 1

    @pytest.mark.asyncio
    async def test_failed_rating_write_leaves_job_unrated(
        self, tmp_path: Path, session: StudioSession, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        [job] = session.upload_paths([_make_image(tmp_path, "a.png")])
        session.start_queue()
        await session.queue.drain()

        def disk_full(self, key, value):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(JsonFileStore, "save", disk_full)
        with pytest.raises(StorageError, match="No space left"):
            session.rate(job.id, 5)

        assert job.rating is None
        assert len(session.ratings) == 0
        assert session.profile.sample_size == 0
        assert "Could not save rating" in session.banner

        monkeypatch.undo()
        session.rate(job.id, 5)
        assert job.rating == 5
        assert session.profile.sample_size == 1

    @pytest.mark.asyncio
    async def test_profile_survives_restart(
        self, tmp_path: Path, session: StudioSession, generator, credentials, sleep,
    ) -> None:
        [job] = session.upload_paths([_make_image(tmp_path, "a.png")])
        session.start_queue()
        await session.queue.drain()
        session.rate(job.id, 4)

        restarted = StudioSession(generator, credentials, _make_config(tmp_path), sleep=sleep)
        assert restarted.profile.sample_size == 1
        assert len(restarted.store) == 0

    @pytest.mark.asyncio
    async def test_resubmit_uses_current_settings(self, tmp_path: Path, session: StudioSession) -> None:
        [job] = session.upload_paths([_make_image(tmp_path, "a.png")])
        session.start_queue()
        await session.queue.drain()

        session.update_settings(elevation=40)
        session.resubmit(job.id)

        assert job.status == JobStatus.QUEUED
        assert job.config.elevation == 40

    @pytest.mark.asyncio
    async def test_clear_history_keeps_ratings(self, tmp_path: Path, session: StudioSession) -> None:
        [job] = session.upload_paths([_make_image(tmp_path, "a.png")])
        session.start_queue()
        await session.queue.drain()
        session.rate(job.id, 5)
        session.upload_paths([_make_image(tmp_path, "b.png")])
        session.start_queue()

        session.clear_history()

        assert len(session.store) == 0
        assert not session.queue.is_running
        assert len(session.ratings) == 1

    @pytest.mark.asyncio
    async def test_export_completed(self, tmp_path: Path, session: StudioSession) -> None:
        session.select_material("metal")
        session.update_material(patina_intensity=40)
        session.upload_paths([_make_image(tmp_path, "Red Mug.png")])
        session.start_queue()
        await session.queue.drain()

        paths = session.export_completed()

        assert [p.name for p in paths] == ["pro_red_mug_metal_pat40_ang135.png"]
        assert paths[0].read_bytes() == b"generated:\x89PNG fake"
        assert session.banner.startswith("Exported 1 image")

    @pytest.mark.asyncio
    async def test_acquire_credential(self, session: StudioSession, credentials) -> None:
        credentials.valid = False
        session.set_banner("API Key session expired. Please select your key again.")
        assert await session.acquire_credential()
        assert session.banner is None


# ── Presets & status ─────────────────────────────────────────────────────────


class TestPresets:
    def test_save_apply_delete(self, session: StudioSession) -> None:
        session.select_material("silver")
        session.update_material(patina_intensity=70)
        preset = session.save_preset("Antique silver")

        session.select_material("standard")
        session.apply_preset(preset.id)
        assert session.settings.material.type == "silver"
        assert session.settings.material.patina_intensity == 70

        assert session.delete_preset(preset.id)
        assert session.apply_preset(preset.id) is None


class TestQueueStatus:
    def test_reports_counts_and_capacity(self, tmp_path: Path, session: StudioSession) -> None:
        session.upload_paths([_make_image(tmp_path, "a.png"), _make_image(tmp_path, "b.png")])
        status = session.queue_status()
        assert "paused" in status
        assert "2 queued" in status
        assert "28/30 slots free" in status
