"""
core/errors.py
────────────────────────────────────────────────────────────────────────
Failure taxonomy for meal-plan generation.

Per-attempt failures (`FailureKind`, `AttemptFailure`) are absorbed by the
day generator and turned into the next prompt's correction hint.  Only the
`PlanGenerationError` family ever reaches a caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class FailureKind(str, Enum):
    TIMEOUT = "TIMEOUT"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"      # EMPTY_OR_TRUNCATED
    TRUNCATED = "TRUNCATED"                # EMPTY_OR_TRUNCATED
    PARSE_FAILURE = "PARSE_FAILURE"
    SCHEMA_INVALID = "SCHEMA_INVALID"
    DAY_LABEL_MISMATCH = "DAY_LABEL_MISMATCH"
    CALORIE_FLOOR_VIOLATION = "CALORIE_FLOOR_VIOLATION"
    DIETARY_RESTRICTION_VIOLATION = "DIETARY_RESTRICTION_VIOLATION"


@dataclass(frozen=True)
class AttemptFailure:
    kind: FailureKind
    message: str     # log / error text
    hint: str        # steering text for the next prompt


# ───────────────────────── attempt-level ──────────────────────────────
class ModelInvocationError(Exception):
    """A single model call failed before yielding usable text."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ResponseParseError(ValueError):
    """No JSON object could be extracted from the raw model text."""

    kind = FailureKind.PARSE_FAILURE


class SchemaValidationError(ValueError):
    """JSON was found but does not match the day-plan schema."""

    kind = FailureKind.SCHEMA_INVALID


# ───────────────────────── day-level ──────────────────────────────────
class DayGenerationError(Exception):
    """Every attempt of the matrix failed for one day."""

    def __init__(self, day_label: str, last_failure: AttemptFailure | None) -> None:
        detail = last_failure.message if last_failure else "Die KI-Antwort war unvollständig."
        super().__init__(f"{day_label}: {detail} Bitte erneut versuchen.")
        self.day_label = day_label
        self.last_failure = last_failure


# ───────────────────────── caller-facing ──────────────────────────────
class PlanGenerationError(Exception):
    code = "PLAN_GENERATION_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class DayGenerationFailed(PlanGenerationError):
    code = "DAY_GENERATION_FAILED"

    def __init__(self, day_labels: Iterable[str]) -> None:
        self.day_labels = list(day_labels)
        super().__init__(
            "Einige Tage konnten nicht generiert werden "
            f"({', '.join(self.day_labels)}). Bitte erneut versuchen."
        )


class PlanNotVaried(PlanGenerationError):
    code = "PLAN_NOT_VARIED"

    def __init__(self, day_labels: Iterable[str]) -> None:
        self.day_labels = list(day_labels)
        super().__init__(
            "Der Plan ist noch nicht abwechslungsreich genug. Bitte erneut generieren."
        )


class PlanSchemaInvalid(PlanGenerationError):
    code = "PLAN_SCHEMA_INVALID"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Der zusammengesetzte Ernährungsplan ist ungültig.")
