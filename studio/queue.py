"""Queue Controller — the single-flight scheduler.

At most one job is ever ``generating``.  The controller starts paused; once
started it repeatedly picks the oldest queued job, waits the throttle delay,
compiles the request and calls the image generator, then writes the outcome
back into the ``JobRecordStore``.

Failure policy (see ``studio.errors.classify_failure``):

- credential expired: invalidate the credential flag, tell the user, pause
- rate limited:       hold the in-flight slot for the cooldown, then continue
- missing input / other: release immediately and continue

The loop is driven by store notifications through an ``asyncio.Event``:
a submission, resubmission or ``start()`` wakes it; running out of queued
jobs pauses it (idle exit).  Pausing never cancels the call in flight, it only
stops the next dequeue.  A result that arrives after its job was cleared is
dropped because updates to unknown ids are no-ops.  There is no timeout on
the generator call; a hung call stalls the queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from directives.compiler import compile_request
from preferences.aggregator import EMPTY_PROFILE, PreferenceProfile
from studio.collaborators import CredentialProvider, ImageGenerator
from studio.config import RATE_LIMIT_COOLDOWN_SECONDS, THROTTLE_SECONDS
from studio.errors import (
    USER_MESSAGES,
    FailureKind,
    GenerationError,
    MissingInputError,
    classify_failure,
)
from studio.job_store import JobRecordStore, StoreEvent, StoreEventKind
from studio.models import Job, JobStatus

logger = logging.getLogger(__name__)

CREDENTIAL_REQUIRED_MESSAGE = "An API key is required before images can be generated."

Sleep = Callable[[float], Awaitable[None]]


class QueueController:
    """Serialised dispatcher between the job store and the image generator."""

    def __init__(
        self,
        store: JobRecordStore,
        generator: ImageGenerator,
        credentials: CredentialProvider,
        profile_source: Callable[[], PreferenceProfile] | None = None,
        throttle_seconds: float = THROTTLE_SECONDS,
        cooldown_seconds: float = RATE_LIMIT_COOLDOWN_SECONDS,
        on_message: Callable[[str], None] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._generator = generator
        self._credentials = credentials
        self._profile_source = profile_source or (lambda: EMPTY_PROFILE)
        self.throttle_seconds = throttle_seconds
        self.cooldown_seconds = cooldown_seconds
        self._on_message = on_message
        self._sleep = sleep

        self._running = False
        # Id of the job holding the single-flight slot.
        self._in_flight: str | None = None
        self._wake = asyncio.Event()
        self._unsubscribe = store.subscribe(self._on_store_event)

    # ── Run flag ────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> str | None:
        return self._in_flight

    @property
    def is_busy(self) -> bool:
        return self._in_flight is not None

    def start(self) -> None:
        if not self._running:
            logger.info("Queue started")
        self._running = True
        self._wake.set()

    def pause(self) -> None:
        if self._running:
            logger.info("Queue paused")
        self._running = False

    def toggle(self) -> bool:
        """Flip the run flag; returns the new state."""
        if self._running:
            self.pause()
        else:
            self.start()
        return self._running

    def close(self) -> None:
        self.pause()
        self._unsubscribe()

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.kind == StoreEventKind.CLEARED:
            self.pause()
        self._wake.set()

    def _notify(self, message: str) -> None:
        if self._on_message is not None:
            self._on_message(message)

    # ── Loop ────────────────────────────────────────────────────────────

    async def run_forever(self) -> None:
        """Wait for work signals and drain the queue while running."""
        while True:
            await self._wake.wait()
            self._wake.clear()
            await self.drain()

    async def drain(self) -> int:
        """Process queued jobs until paused, idle or blocked.  Returns jobs handled."""
        handled = 0
        while self._running and self._in_flight is None:
            job = await self.process_next()
            if job is None:
                break
            handled += 1
        return handled

    async def process_next(self) -> Job | None:
        """Run one scan: dispatch the next queued job and record its outcome.

        Returns the job that was handled, or None if nothing was dispatched.
        """
        if self._in_flight is not None:
            return None

        job = self._store.next_queued()
        if job is None:
            logger.info("No queued jobs left; pausing")
            self._running = False
            return None

        if not self._credentials.has_valid_credential():
            logger.warning("No valid credential; pausing before job %s", job.id)
            self._running = False
            self._notify(CREDENTIAL_REQUIRED_MESSAGE)
            return None

        # Check-and-set with no await in between.
        self._in_flight = job.id
        try:
            self._store.update_status(job.id, JobStatus.GENERATING)
            await self._sleep(self.throttle_seconds)

            if self._store.get(job.id) is None:
                logger.debug("Job %s disappeared during throttle; skipping", job.id)
                return job

            await self._dispatch(job)
        except asyncio.CancelledError:
            logger.warning("Job %s cancelled while generating", job.id)
            self._store.update_status(
                job.id, JobStatus.FAILED, error="Generation was cancelled", failure_kind=FailureKind.GENERIC,
            )
            raise
        finally:
            self._in_flight = None
        return job

    async def _dispatch(self, job: Job) -> None:
        source = job.source
        try:
            if source is None or not source.data or not source.media_type:
                raise MissingInputError("Missing image data for processing")
            request = compile_request(job.config, self._profile_source())
            logger.info("Generating job %s (%s)", job.id, job.config.material.type)
            result = await self._generator.generate(source.data, source.media_type, request)
            if result is None or not result.data:
                raise GenerationError("No image generated.")
        except Exception as exc:
            kind = classify_failure(exc)
            logger.warning("Job %s failed (%s): %s", job.id, kind.value, exc, exc_info=True)
            self._store.update_status(
                job.id, JobStatus.FAILED, error=str(exc), failure_kind=kind,
            )
            await self._handle_failure(kind)
            return

        if self._store.update_status(job.id, JobStatus.COMPLETED, result=result) is None:
            logger.info("Dropping result for job %s; it is no longer in the store", job.id)
        else:
            logger.info("Job %s completed", job.id)

    async def _handle_failure(self, kind: FailureKind) -> None:
        if kind == FailureKind.CREDENTIAL_EXPIRED:
            self._credentials.invalidate()
            self._running = False
            self._notify(USER_MESSAGES[kind])
        elif kind == FailureKind.RATE_LIMITED:
            self._notify(USER_MESSAGES[kind])
            logger.info("Rate limited; holding the queue for %.1fs", self.cooldown_seconds)
            await self._sleep(self.cooldown_seconds)
