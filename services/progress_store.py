"""
services/progress_store.py
────────────────────────────────────────────────────────────────────────
In-process "latest progress" snapshots, keyed by generation job id.

The generate endpoint writes through `callback_for(job_id)`; the polling
endpoint reads with `get(job_id)`.  Nothing is persisted – a restart
forgets every job, and only the most recent `max_jobs` are kept.
"""
from __future__ import annotations

from collections import OrderedDict

from core.progress import ProgressCallback, ProgressEvent


class ProgressStore:
    def __init__(self, max_jobs: int = 256) -> None:
        self._events: OrderedDict[str, ProgressEvent] = OrderedDict()
        self._max_jobs = max_jobs

    def record(self, job_id: str, event: ProgressEvent) -> None:
        self._events[job_id] = event
        self._events.move_to_end(job_id)
        while len(self._events) > self._max_jobs:
            self._events.popitem(last=False)

    def callback_for(self, job_id: str) -> ProgressCallback:
        def _callback(event: ProgressEvent) -> None:
            self.record(job_id, event)

        return _callback

    def get(self, job_id: str) -> ProgressEvent | None:
        return self._events.get(job_id)


progress_store = ProgressStore()
