"""Job Record Store — the single source of truth for job lifecycle state.

Jobs are kept newest-first for display.  Dispatch order is separate: every
(re)queue stamps the job with a monotonically increasing sequence number and
``next_queued()`` returns the queued job with the lowest one, so the queue is
first-in-first-out even though new batches are prepended.

Every mutation is announced to subscribers as a ``StoreEvent``.  The queue
controller uses this as its work-available signal; the UI uses it to refresh.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import NamedTuple

from studio.config import MAX_QUEUE_SIZE
from studio.errors import (
    FailureKind,
    InvalidRatingError,
    QueueCapacityError,
    SingleFlightViolation,
)
from studio.models import (
    GenerationConfig,
    ImagePayload,
    Job,
    JobStatus,
    RatingRecord,
)

logger = logging.getLogger(__name__)


class StoreEventKind(str, Enum):
    SUBMITTED = "submitted"
    UPDATED = "updated"
    RATED = "rated"
    RESUBMITTED = "resubmitted"
    REMOVED = "removed"
    CLEARED = "cleared"


class StoreEvent(NamedTuple):
    kind: StoreEventKind
    job_ids: tuple[str, ...] = ()


StoreListener = Callable[[StoreEvent], None]
RatingSink = Callable[[RatingRecord], None]


class JobRecordStore:
    """Ordered, observable collection of jobs."""

    def __init__(
        self,
        capacity: int = MAX_QUEUE_SIZE,
        rating_sink: RatingSink | None = None,
    ) -> None:
        self.capacity = capacity
        self._rating_sink = rating_sink
        self._jobs: list[Job] = []
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()
        self._listeners: list[StoreListener] = []

    # ── Observation ─────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register ``listener`` and return a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: StoreEventKind, job_ids: Iterable[str] = ()) -> None:
        event = StoreEvent(kind, tuple(job_ids))
        for listener in list(self._listeners):
            listener(event)

    # ── Reads ───────────────────────────────────────────────────────────

    @property
    def jobs(self) -> list[Job]:
        """All jobs, newest first."""
        return list(self._jobs)

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self, job_id: str) -> Job | None:
        for job in self._jobs:
            if job.id == job_id:
                return job
        return None

    def next_queued(self) -> Job | None:
        """Return the queued job that has waited longest, or None."""
        queued = [j for j in self._jobs if j.status == JobStatus.QUEUED]
        if not queued:
            return None
        return min(queued, key=lambda j: self._sequence[j.id])

    @property
    def active_count(self) -> int:
        return sum(1 for j in self._jobs if j.is_active)

    @property
    def generating(self) -> list[Job]:
        return [j for j in self._jobs if j.status == JobStatus.GENERATING]

    def counts(self) -> dict[JobStatus, int]:
        result = {status: 0 for status in JobStatus}
        for job in self._jobs:
            result[job.status] += 1
        return result

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.capacity - self.active_count)

    # ── Mutations ───────────────────────────────────────────────────────

    def submit(self, jobs: list[Job]) -> None:
        """Prepend ``jobs`` as one batch, all or nothing.

        Raises ``QueueCapacityError`` (leaving the store untouched) if the
        batch would push queued + generating over ``capacity``.
        """
        if not jobs:
            return
        active = self.active_count
        if active + len(jobs) > self.capacity:
            raise QueueCapacityError(self.capacity, active, len(jobs))

        for job in jobs:
            job.status = JobStatus.QUEUED
            self._sequence[job.id] = next(self._counter)
        self._jobs[:0] = jobs
        logger.info("Submitted %d job(s); %d active", len(jobs), self.active_count)
        self._emit(StoreEventKind.SUBMITTED, (j.id for j in jobs))

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        result: ImagePayload | None = None,
        error: str | None = None,
        failure_kind: FailureKind | None = None,
    ) -> Job | None:
        """Move one job to ``status``.  Unknown ids are ignored (returns None).

        Terminal states purge the raw source bytes.  Entering ``generating``
        while another job is generating raises ``SingleFlightViolation``.
        """
        job = self.get(job_id)
        if job is None:
            logger.debug("Ignoring status %s for unknown job %s", status.value, job_id)
            return None

        if status == JobStatus.GENERATING:
            others = [j.id for j in self.generating if j.id != job_id]
            if others:
                raise SingleFlightViolation(
                    f"Job {others[0]} is already generating; refusing to start {job_id}"
                )

        job.status = status
        if status == JobStatus.COMPLETED:
            job.result = result
            job.error = None
            job.failure_kind = None
        elif status == JobStatus.FAILED:
            job.error = error
            job.failure_kind = failure_kind
        if status in (JobStatus.COMPLETED, JobStatus.FAILED):
            job.source = None
        job.touch()

        self._emit(StoreEventKind.UPDATED, (job_id,))
        return job

    def rate(self, job_id: str, value: int) -> RatingRecord | None:
        """Rate a completed job (1-5) and forward the record to the rating sink."""
        if not 1 <= value <= 5:
            raise InvalidRatingError(f"Rating must be between 1 and 5, got {value}")
        job = self.get(job_id)
        if job is None:
            return None
        if job.status != JobStatus.COMPLETED:
            raise InvalidRatingError("Only completed images can be rated")

        record = RatingRecord(job_id=job.id, rating=value, config=job.config)
        if self._rating_sink is not None:
            self._rating_sink(record)
        job.rating = value
        job.touch()
        self._emit(StoreEventKind.RATED, (job_id,))
        return record

    def resubmit(self, job_id: str, config: GenerationConfig) -> Job | None:
        """Requeue a finished job with ``config`` (the current global settings).

        The image is cloned back from the preview since the source bytes were
        purged.  The job goes to the back of the queue.
        """
        job = self.get(job_id)
        if job is None:
            return None
        if job.is_active:
            return job
        if self.active_count + 1 > self.capacity:
            raise QueueCapacityError(self.capacity, self.active_count, 1)

        job.source = ImagePayload.from_data_uri(job.preview)
        job.config = config
        job.status = JobStatus.QUEUED
        job.result = None
        job.rating = None
        job.error = None
        job.failure_kind = None
        job.touch()
        self._sequence[job.id] = next(self._counter)

        logger.info("Resubmitted job %s", job_id)
        self._emit(StoreEventKind.RESUBMITTED, (job_id,))
        return job

    def remove(self, job_id: str) -> bool:
        """Delete one job.  A job that is generating can not be removed."""
        job = self.get(job_id)
        if job is None or job.status == JobStatus.GENERATING:
            return False
        self._jobs.remove(job)
        self._sequence.pop(job_id, None)
        self._emit(StoreEventKind.REMOVED, (job_id,))
        return True

    def clear(self) -> None:
        """Drop every job.  Listeners get a CLEARED event (the queue pauses on it)."""
        count = len(self._jobs)
        self._jobs.clear()
        self._sequence.clear()
        logger.info("Cleared %d job(s) from history", count)
        self._emit(StoreEventKind.CLEARED)
