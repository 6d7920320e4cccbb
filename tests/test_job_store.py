"""Tests for studio.job_store.JobRecordStore."""

from __future__ import annotations

import pytest

from studio.errors import (
    FailureKind,
    InvalidRatingError,
    QueueCapacityError,
    SingleFlightViolation,
)
from studio.job_store import JobRecordStore, StoreEventKind
from studio.models import (
    GenerationConfig,
    ImagePayload,
    Job,
    JobStatus,
    RatingRecord,
    make_material,
)


def _make_job(name: str = "mug.png", config: GenerationConfig | None = None) -> Job:
    return Job.from_upload(name, name.encode(), "image/png", config or GenerationConfig())


def _result() -> ImagePayload:
    return ImagePayload(data=b"result", media_type="image/png")


def _complete(store: JobRecordStore, job: Job) -> None:
    store.update_status(job.id, JobStatus.GENERATING)
    store.update_status(job.id, JobStatus.COMPLETED, result=_result())


# ── Submission & capacity ────────────────────────────────────────────────────


class TestSubmit:
    def test_new_batch_is_prepended(self) -> None:
        store = JobRecordStore()
        first = [_make_job("a.png")]
        second = [_make_job("b.png"), _make_job("c.png")]
        store.submit(first)
        store.submit(second)
        assert [j.filename for j in store.jobs] == ["b.png", "c.png", "a.png"]

    def test_dispatch_order_is_fifo(self) -> None:
        store = JobRecordStore()
        a, b, c = _make_job("a.png"), _make_job("b.png"), _make_job("c.png")
        store.submit([a])
        store.submit([b, c])
        assert store.next_queued().id == a.id

    def test_over_capacity_rejects_whole_batch(self) -> None:
        store = JobRecordStore(capacity=3)
        store.submit([_make_job("a.png"), _make_job("b.png")])
        before = store.jobs

        with pytest.raises(QueueCapacityError) as info:
            store.submit([_make_job("c.png"), _make_job("d.png")])

        assert store.jobs == before
        assert info.value.capacity == 3
        assert "1 more" in str(info.value)

    def test_terminal_jobs_do_not_count_against_capacity(self) -> None:
        store = JobRecordStore(capacity=1)
        job = _make_job()
        store.submit([job])
        _complete(store, job)
        store.submit([_make_job("next.png")])
        assert store.active_count == 1

    def test_submit_notifies_subscribers(self) -> None:
        store = JobRecordStore()
        events = []
        store.subscribe(events.append)
        job = _make_job()
        store.submit([job])
        assert events[-1].kind == StoreEventKind.SUBMITTED
        assert events[-1].job_ids == (job.id,)

    def test_unsubscribe(self) -> None:
        store = JobRecordStore()
        events = []
        unsubscribe = store.subscribe(events.append)
        unsubscribe()
        store.submit([_make_job()])
        assert events == []


# ── Status transitions ──────────────────────────────────────────────────────


class TestUpdateStatus:
    def test_single_flight(self) -> None:
        store = JobRecordStore()
        a, b = _make_job("a.png"), _make_job("b.png")
        store.submit([a, b])
        store.update_status(a.id, JobStatus.GENERATING)
        with pytest.raises(SingleFlightViolation):
            store.update_status(b.id, JobStatus.GENERATING)
        assert len(store.generating) == 1

    def test_terminal_state_purges_source(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        _complete(store, job)
        assert job.source is None
        assert job.result == _result()
        assert job.preview

    def test_failure_records_kind_and_message(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        store.update_status(
            job.id, JobStatus.FAILED, error="quota", failure_kind=FailureKind.RATE_LIMITED,
        )
        assert job.error == "quota"
        assert job.failure_kind == FailureKind.RATE_LIMITED
        assert job.source is None

    def test_unknown_id_is_a_no_op(self) -> None:
        store = JobRecordStore()
        events = []
        store.subscribe(events.append)
        assert store.update_status("missing", JobStatus.COMPLETED, result=_result()) is None
        assert events == []


# ── Rating ──────────────────────────────────────────────────────────────────


class TestRate:
    def test_rating_forwards_record_to_sink(self) -> None:
        records: list[RatingRecord] = []
        store = JobRecordStore(rating_sink=records.append)
        job = _make_job()
        store.submit([job])
        _complete(store, job)

        store.rate(job.id, 5)

        assert job.rating == 5
        assert len(records) == 1
        assert records[0].job_id == job.id
        assert records[0].config == job.config

    @pytest.mark.parametrize("value", [0, 6, -1])
    def test_out_of_range(self, value: int) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        _complete(store, job)
        with pytest.raises(InvalidRatingError):
            store.rate(job.id, value)

    def test_only_completed_jobs_can_be_rated(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        with pytest.raises(InvalidRatingError):
            store.rate(job.id, 4)

    def test_unknown_job(self) -> None:
        assert JobRecordStore().rate("missing", 4) is None


# ── Resubmission ─────────────────────────────────────────────────────────────


class TestResubmit:
    def test_restamps_with_current_settings(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        store.update_status(job.id, JobStatus.FAILED, error="boom")

        current = GenerationConfig(material=make_material("metal", patina_intensity=30))
        store.resubmit(job.id, current)

        assert job.status == JobStatus.QUEUED
        assert job.config == current
        assert job.error is None
        assert job.source is not None
        assert job.source.data == b"mug.png"

    def test_completed_job_can_be_regenerated(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        _complete(store, job)
        store.rate(job.id, 3)

        store.resubmit(job.id, GenerationConfig(shadow_intensity="hard"))

        assert job.status == JobStatus.QUEUED
        assert job.result is None
        assert job.rating is None

    def test_resubmitted_job_goes_to_back_of_queue(self) -> None:
        store = JobRecordStore()
        old, waiting = _make_job("old.png"), _make_job("waiting.png")
        store.submit([old])
        store.update_status(old.id, JobStatus.FAILED, error="x")
        store.submit([waiting])

        store.resubmit(old.id, GenerationConfig())

        assert store.next_queued().id == waiting.id

    def test_respects_capacity(self) -> None:
        store = JobRecordStore(capacity=1)
        failed, queued = _make_job("f.png"), _make_job("q.png")
        store.submit([failed])
        store.update_status(failed.id, JobStatus.FAILED, error="x")
        store.submit([queued])
        with pytest.raises(QueueCapacityError):
            store.resubmit(failed.id, GenerationConfig())
        assert failed.status == JobStatus.FAILED


# ── Removal ──────────────────────────────────────────────────────────────────


class TestRemoveAndClear:
    def test_remove(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        assert store.remove(job.id)
        assert store.get(job.id) is None

    def test_generating_job_can_not_be_removed(self) -> None:
        store = JobRecordStore()
        job = _make_job()
        store.submit([job])
        store.update_status(job.id, JobStatus.GENERATING)
        assert not store.remove(job.id)

    def test_clear_empties_store_and_emits_event(self) -> None:
        store = JobRecordStore()
        events = []
        store.subscribe(events.append)
        store.submit([_make_job("a.png"), _make_job("b.png")])
        store.clear()
        assert len(store) == 0
        assert store.next_queued() is None
        assert events[-1].kind == StoreEventKind.CLEARED
