"""
core/day_generator.py
────────────────────────────────────────────────────────────────────────
Generate ONE validated day of a meal plan.

Each day walks an attempt matrix (prompt mode × output-token budget),
two raw attempts per entry:

    fast    compact/1400 → ultra/1600
    stable  normal/1600  → compact/2000 → ultra/2400

Every rejected attempt – timeout, transport error, empty/truncated reply,
unparseable JSON, schema mismatch, wrong day label, calorie floor,
meat or allergen found – becomes a correction hint naming the defect,
which is threaded into the next prompt.  The first accepted day wins;
running out of attempts raises `DayGenerationError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from core.dietary import allergen_hits, meat_hits, requests_no_meat
from core.errors import (
    AttemptFailure,
    DayGenerationError,
    FailureKind,
    ModelInvocationError,
    ResponseParseError,
    SchemaValidationError,
)
from core.model_invoker import ModelBackend, invoke_model
from core.models.patient import PatientProfile
from core.models.plan import DayPlan
from core.prompt_builder import PromptMode, build_day_prompts
from core.response_parser import parse_day_plan

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptConfig:
    mode: PromptMode
    max_tokens: int


FAST_ATTEMPTS: tuple[AttemptConfig, ...] = (
    AttemptConfig(PromptMode.COMPACT, 1400),
    AttemptConfig(PromptMode.ULTRA, 1600),
)
STABLE_ATTEMPTS: tuple[AttemptConfig, ...] = (
    AttemptConfig(PromptMode.NORMAL, 1600),
    AttemptConfig(PromptMode.COMPACT, 2000),
    AttemptConfig(PromptMode.ULTRA, 2400),
)
RETRIES_PER_ATTEMPT = 2


def attempt_sequence(fast_mode: bool) -> Iterator[AttemptConfig]:
    for cfg in FAST_ATTEMPTS if fast_mode else STABLE_ATTEMPTS:
        for _ in range(RETRIES_PER_ATTEMPT):
            yield cfg


# ───────────────────────── failure → hint ─────────────────────────────
def failure_from_error(exc: Exception) -> AttemptFailure:
    kind = getattr(exc, "kind", FailureKind.TRANSPORT_ERROR)
    if kind in (FailureKind.TIMEOUT, FailureKind.TRANSPORT_ERROR):
        return AttemptFailure(
            kind,
            "Timeout oder API-Fehler bei der Tagesgenerierung.",
            "Die letzte Anfrage war zu langsam oder fehlerhaft. "
            "Antworte schnell und exakt nur als JSON-Objekt.",
        )
    if kind == FailureKind.EMPTY_RESPONSE:
        return AttemptFailure(
            kind,
            "Die KI-Antwort war leer.",
            "Die letzte Antwort war leer. Gib das vollständige JSON-Objekt "
            "im exakt geforderten Format zurück.",
        )
    if kind == FailureKind.TRUNCATED:
        return AttemptFailure(
            kind,
            "Die KI-Antwort war unvollständig.",
            "Die letzte Antwort war abgeschnitten. Gib ein kompaktes, vollständiges "
            "JSON im exakt geforderten Format zurück.",
        )
    if kind == FailureKind.PARSE_FAILURE:
        return AttemptFailure(
            kind,
            "Die KI-Antwort konnte nicht verarbeitet werden.",
            "Die letzte Antwort war kein valides JSON. Antworte ausschließlich mit "
            "einem gültigen JSON-Objekt ohne Zusatztext.",
        )
    return AttemptFailure(
        FailureKind.SCHEMA_INVALID,
        "Die KI-Antwort entsprach nicht dem erwarteten Format.",
        f"Die letzte Antwort hatte ein ungültiges Format ({exc}). "
        "Nutze exakt die geforderten Felder und Datentypen.",
    )


class DayPlanGenerator:
    def __init__(
        self,
        backend: ModelBackend,
        *,
        min_daily_kcal: int = 1800,
        temperature: float = 0.2,
        current_year: int | None = None,
    ) -> None:
        self._backend = backend
        self.min_daily_kcal = min_daily_kcal
        self.temperature = temperature
        self.current_year = current_year

    # ───────────────────────────── public ─────────────────────────── #
    async def generate(
        self,
        patient: PatientProfile,
        day_label: str,
        additional_notes: str | None = None,
        *,
        fast_mode: bool = False,
        excluded_meal_names: Sequence[str] = (),
        timeout_s: float,
    ) -> DayPlan:
        needs_no_meat = requests_no_meat(additional_notes)
        last_failure: AttemptFailure | None = None

        for n, cfg in enumerate(attempt_sequence(fast_mode), start=1):
            prompts = build_day_prompts(
                patient,
                day_label,
                additional_notes,
                cfg.mode,
                excluded_meal_names,
                last_failure.hint if last_failure else None,
                min_daily_kcal=self.min_daily_kcal,
                current_year=self.current_year,
            )
            _LOG.debug("%s: attempt %d mode=%s max_tokens=%d", day_label, n, cfg.mode.value, cfg.max_tokens)

            try:
                raw = await invoke_model(
                    self._backend,
                    prompts,
                    max_tokens=cfg.max_tokens,
                    timeout_s=timeout_s,
                    temperature=self.temperature,
                )
                day = parse_day_plan(raw)
            except (ModelInvocationError, ResponseParseError, SchemaValidationError) as exc:
                last_failure = failure_from_error(exc)
            else:
                day = day.model_copy(update={"daily_kcal": day.effective_daily_kcal})
                last_failure = self.inspect(day, day_label, patient, needs_no_meat)
                if last_failure is None:
                    return day

            _LOG.warning(
                "%s: attempt %d (%s) rejected – %s: %s",
                day_label, n, cfg.mode.value, last_failure.kind.value, last_failure.message,
            )

        raise DayGenerationError(day_label, last_failure)

    # ─────────────────────────── domain checks ────────────────────── #
    def inspect(
        self,
        day: DayPlan,
        day_label: str,
        patient: PatientProfile,
        needs_no_meat: bool,
    ) -> AttemptFailure | None:
        """Return the first domain defect of an already-parsed day, if any."""
        if day.day_name != day_label:
            return AttemptFailure(
                FailureKind.DAY_LABEL_MISMATCH,
                f"Die KI hat einen falschen Wochentag geliefert ({day.day_name!r}).",
                f'Verwende exakt den Wochentag "{day_label}" in dayName.',
            )

        kcal = day.effective_daily_kcal
        if kcal < self.min_daily_kcal:
            return AttemptFailure(
                FailureKind.CALORIE_FLOOR_VIOLATION,
                f"{day_label} unterschreitet {self.min_daily_kcal} kcal.",
                f"Die letzte Antwort hatte {kcal} kcal und war zu niedrig. Erhöhe auf "
                f"mindestens {self.min_daily_kcal} kcal durch größere Portionen und "
                "energiedichte, ausgewogene Zutaten (z.B. Hülsenfrüchte, Vollkorn, "
                "gesunde Öle), Allergien weiterhin beachten.",
            )

        if needs_no_meat:
            hits = meat_hits(day)
            if hits:
                return AttemptFailure(
                    FailureKind.DIETARY_RESTRICTION_VIOLATION,
                    f"{day_label} enthält Fleisch trotz Vorgabe ohne Fleisch ({', '.join(hits)}).",
                    "Die letzte Antwort enthielt Fleisch/Fisch/Wurst. Erstelle eine strikt "
                    "fleischfreie Variante (vegetarisch), bei gleicher Kalorienvorgabe.",
                )

        hits = allergen_hits(day, patient.allergies)
        if hits:
            return AttemptFailure(
                FailureKind.DIETARY_RESTRICTION_VIOLATION,
                f"{day_label} enthält Allergene ({', '.join(hits)}).",
                f"Die letzte Antwort enthielt {', '.join(hits)} trotz Allergie/Unverträglichkeit. "
                "Entferne diese Zutaten vollständig und ersetze sie gleichwertig.",
            )
        return None
