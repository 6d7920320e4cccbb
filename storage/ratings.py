"""Persisted rating log.

The log is the durable source of truth for the preference subsystem.  It
holds at most one ``RatingRecord`` per job id and is written back to the
store after every change, independently of the job history, so ratings
survive clearing the queue.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from storage.json_store import JsonFileStore
from studio.models import RatingRecord

logger = logging.getLogger(__name__)

RATINGS_KEY = "ratings"


class RatingLog:
    def __init__(self, store: JsonFileStore, key: str = RATINGS_KEY) -> None:
        self._store = store
        self._key = key
        self._records: list[RatingRecord] = []

    def load(self) -> list[RatingRecord]:
        """Read the log from the store, skipping records that fail validation."""
        records: list[RatingRecord] = []
        for raw in self._store.load(self._key, default=[]) or []:
            try:
                records.append(RatingRecord.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed rating record: %r", raw)
        self._records = records
        logger.debug("Loaded %d rating record(s)", len(records))
        return self.records

    def save(self) -> None:
        self._write(self._records)

    def _write(self, records: list[RatingRecord]) -> None:
        self._store.save(self._key, [r.model_dump(mode="json") for r in records])

    @property
    def records(self) -> list[RatingRecord]:
        """Records in first-rated order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, job_id: str) -> RatingRecord | None:
        for record in self._records:
            if record.job_id == job_id:
                return record
        return None

    def upsert(self, record: RatingRecord) -> None:
        """Append ``record``, or replace the existing record for its job in place.

        The in-memory log only changes once the write succeeds.
        """
        records = list(self._records)
        for i, existing in enumerate(records):
            if existing.job_id == record.job_id:
                records[i] = record
                break
        else:
            records.append(record)
        self._write(records)
        self._records = records
