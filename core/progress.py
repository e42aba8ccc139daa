"""
Progress side-channel for a generation run.

The orchestrator talks to `ProgressReporter`; the reporter forwards a
`ProgressEvent` to the caller's callback and makes sure a misbehaving
callback can never abort generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

_LOG = logging.getLogger(__name__)


class ProgressStage(str, Enum):
    STARTED = "started"
    DAY_COMPLETED = "day_completed"
    FALLBACK = "fallback"
    VARIETY_CHECK = "variety_check"


@dataclass(frozen=True)
class ProgressEvent:
    stage: ProgressStage
    message: str
    completed: int
    total: int
    day_label: str | None = None


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressReporter:
    def __init__(self, callback: ProgressCallback | None, total: int) -> None:
        self._callback = callback
        self.total = total
        self.completed = 0

    def _emit(self, event: ProgressEvent) -> None:
        _LOG.info("%s", event.message)
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception:
            _LOG.exception("progress callback failed (stage=%s)", event.stage.value)

    def started(self) -> None:
        self._emit(ProgressEvent(
            ProgressStage.STARTED,
            f"Starte parallele Tagesgenerierung (0/{self.total})...",
            0, self.total,
        ))

    def day_completed(self, day_label: str) -> None:
        self.completed += 1
        self._emit(ProgressEvent(
            ProgressStage.DAY_COMPLETED,
            f"Tag fertig ({self.completed}/{self.total}): {day_label}",
            self.completed, self.total, day_label,
        ))

    def fallback(self, failed: int) -> None:
        self._emit(ProgressEvent(
            ProgressStage.FALLBACK,
            f"Wiederhole fehlende Tage ({failed}) mit erweitertem Timeout...",
            self.completed, self.total,
        ))

    def variety_check(self) -> None:
        self._emit(ProgressEvent(
            ProgressStage.VARIETY_CHECK,
            f"Prüfe Varianz der Mahlzeiten ({self.completed}/{self.total})...",
            self.completed, self.total,
        ))
