"""Studio session — wires the backend systems together.

``StudioSession`` is the central coordinator.  It owns:
- ``settings``    — the global ``GenerationConfig`` stamped onto new uploads
- ``store``       — the ``JobRecordStore`` (every job and its lifecycle)
- ``queue``       — the ``QueueController`` that dispatches queued jobs
- ``ratings``     — the persisted ``RatingLog``
- ``preferences`` — the ``PreferenceAggregator`` fed by every rating
- ``presets``     — the user's saved ``MaterialPreset`` library
- ``banner``      — the latest user-facing notice, if any

The session is free of UI concerns so it can be tested directly.  The
Textual layer calls its public methods and subscribes for change
notifications; it never mutates the store itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from preferences.aggregator import PreferenceAggregator, PreferenceProfile
from storage.json_store import JsonFileStore
from storage.presets import PresetLibrary
from storage.ratings import RatingLog
from studio.collaborators import CredentialProvider, ImageGenerator
from studio.config import StudioConfig
from studio.errors import QueueCapacityError, StorageError, UploadRejected
from studio.export import export_jobs
from studio.job_store import JobRecordStore, StoreEvent
from studio.models import (
    GenerationConfig,
    Job,
    JobStatus,
    MaterialPreset,
    RatingRecord,
    switch_material,
)
from studio.queue import QueueController, Sleep
from studio.uploads import INVALID_UPLOAD_MESSAGE, UploadedFile, load_uploads

logger = logging.getLogger(__name__)

SessionListener = Callable[[], None]


class StudioSession:
    """Instantiated once per app run.  The UI should only call public methods."""

    def __init__(
        self,
        generator: ImageGenerator,
        credentials: CredentialProvider,
        config: StudioConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config or StudioConfig()
        self.credentials = credentials
        self.settings = GenerationConfig(resolution=self.config.image_size)
        self.banner: str | None = None
        self._listeners: list[SessionListener] = []

        self._files = JsonFileStore(self.config.data_dir)
        self.ratings = RatingLog(self._files)
        self.ratings.load()
        self.preferences = PreferenceAggregator(self.ratings)
        self.presets = PresetLibrary(self._files)
        self.presets.load()

        self.store = JobRecordStore(
            capacity=self.config.max_queue_size,
            rating_sink=self.preferences.record_rating,
        )
        self.queue = QueueController(
            self.store,
            generator,
            credentials,
            profile_source=lambda: self.preferences.profile,
            throttle_seconds=self.config.throttle_seconds,
            cooldown_seconds=self.config.rate_limit_cooldown_seconds,
            on_message=self.set_banner,
            sleep=sleep,
        )
        self.store.subscribe(self._on_store_event)

    # ── Change notification ─────────────────────────────────────────────

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _on_store_event(self, event: StoreEvent) -> None:
        self._changed()

    def set_banner(self, message: str | None) -> None:
        self.banner = message
        if message:
            logger.info("Banner: %s", message)
        self._changed()

    def dismiss_banner(self) -> None:
        self.set_banner(None)

    # ── Settings ────────────────────────────────────────────────────────

    @property
    def profile(self) -> PreferenceProfile:
        return self.preferences.profile

    def update_settings(self, **changes) -> GenerationConfig:
        """Apply ``changes`` to the global settings.  Existing jobs keep their snapshot."""
        self.settings = self.settings.with_changes(**changes)
        self._changed()
        return self.settings

    def select_material(self, material_type: str) -> GenerationConfig:
        material = switch_material(self.settings.material, material_type)
        self.settings = self.settings.model_copy(update={"material": material})
        self._changed()
        return self.settings

    def update_material(self, **params) -> GenerationConfig:
        """Change parameters of the current material variant (e.g. patina)."""
        data = self.settings.material.model_dump()
        data.update(params)
        return self.update_settings(material=data)

    # ── Uploads ─────────────────────────────────────────────────────────

    def can_upload(self) -> bool:
        return self.store.remaining_capacity > 0

    def upload_paths(self, paths: Iterable[str | Path]) -> list[Job]:
        """Validate files from disk and submit them as one batch."""
        accepted, rejected = load_uploads(paths, self.config.max_upload_bytes)
        if not accepted:
            self.set_banner(INVALID_UPLOAD_MESSAGE)
            raise UploadRejected(INVALID_UPLOAD_MESSAGE)
        jobs = self.upload(accepted)
        if rejected:
            self.set_banner(f"Skipped {len(rejected)} file(s) that were not images under 10MB.")
        return jobs

    def upload(self, files: Iterable[UploadedFile]) -> list[Job]:
        """Create one job per file, each with its own snapshot of ``settings``."""
        jobs = [
            Job.from_upload(f.filename, f.data, f.media_type, self.settings)
            for f in files
        ]
        try:
            self.store.submit(jobs)
        except QueueCapacityError as exc:
            self.set_banner(str(exc))
            raise
        if self.banner:
            self.dismiss_banner()
        return jobs

    # ── Job actions ─────────────────────────────────────────────────────

    def rate(self, job_id: str, value: int) -> RatingRecord | None:
        """Rate a completed job.  A failed write leaves the job unrated."""
        try:
            return self.store.rate(job_id, value)
        except OSError as exc:
            logger.exception("Could not save rating for %s", job_id)
            message = f"Could not save rating: {exc}"
            self.set_banner(message)
            raise StorageError(message) from exc

    def resubmit(self, job_id: str) -> Job | None:
        """Requeue a finished job with the current global settings."""
        try:
            return self.store.resubmit(job_id, self.settings)
        except QueueCapacityError as exc:
            self.set_banner(str(exc))
            raise

    def remove(self, job_id: str) -> bool:
        return self.store.remove(job_id)

    def clear_history(self) -> None:
        """Drop all jobs and pause the queue.  The rating log is kept."""
        self.store.clear()

    def start_queue(self) -> None:
        self.dismiss_banner()
        self.queue.start()

    def pause_queue(self) -> None:
        self.queue.pause()
        self._changed()

    def toggle_queue(self) -> bool:
        if self.queue.is_running:
            self.pause_queue()
        else:
            self.start_queue()
        return self.queue.is_running

    async def acquire_credential(self) -> bool:
        """Run the credential flow; returns whether a credential is now available."""
        await self.credentials.acquire_credential()
        ok = self.credentials.has_valid_credential()
        if ok:
            self.dismiss_banner()
        return ok

    # ── Presets ─────────────────────────────────────────────────────────

    def save_preset(self, name: str) -> MaterialPreset:
        preset = self.presets.add(name, self.settings.material)
        self._changed()
        return preset

    def apply_preset(self, preset_id: str) -> GenerationConfig | None:
        preset = self.presets.get(preset_id)
        if preset is None:
            return None
        self.settings = self.settings.model_copy(update={"material": preset.material})
        self._changed()
        return self.settings

    def delete_preset(self, preset_id: str) -> bool:
        removed = self.presets.remove(preset_id)
        if removed:
            self._changed()
        return removed

    # ── Export & status ─────────────────────────────────────────────────

    def export_completed(self, directory: Path | None = None) -> list[Path]:
        paths = export_jobs(self.store.jobs, directory or self.config.export_dir)
        if paths:
            self.set_banner(f"Exported {len(paths)} image(s) to {paths[0].parent}")
        return paths

    def queue_status(self) -> str:
        """One-line summary for the status bar."""
        counts = self.store.counts()
        state = "running" if self.queue.is_running else "paused"
        return (
            f"Queue {state} · {counts[JobStatus.QUEUED]} queued · "
            f"{counts[JobStatus.GENERATING]} generating · "
            f"{counts[JobStatus.COMPLETED]} done · {counts[JobStatus.FAILED]} failed · "
            f"{self.store.remaining_capacity}/{self.store.capacity} slots free"
        )

    def close(self) -> None:
        self.queue.close()
