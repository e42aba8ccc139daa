"""
core/plan_orchestrator.py
────────────────────────────────────────────────────────────────────────
Multi-day meal-plan generation.

Pipeline
--------
1.  Day labels            Montag … Sonntag, then "Montag (Woche 2)" …
2.  First pass            bounded worker pool (max_parallel_days) over the
                          days, short per-call timeout, failures isolated
3.  Fallback pass         failed days again, one at a time, stable mode,
                          long timeout
4.  Completeness          any day still missing → DayGenerationFailed
5.  Variety               (meal type, normalised name) may repeat only up
                          to its allowance; in stable mode offending days
                          are regenerated one at a time with every other
                          day's dishes excluded; any repeat left over
                          → PlanNotVaried (fast mode skips the repair)
6.  Final validation      MealPlan schema → PlanSchemaInvalid

All public I/O happens through `MealPlanGenerator.generate(...)` or the
`generate_meal_plan(...)` convenience wrapper.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import defaultdict
from typing import Mapping, Sequence

from pydantic import ValidationError

from config import Settings, settings as default_settings
from core.day_generator import DayPlanGenerator
from core.dietary import normalize_text
from core.errors import DayGenerationError, DayGenerationFailed, PlanNotVaried, PlanSchemaInvalid
from core.model_invoker import ModelBackend
from core.models.patient import PatientProfile
from core.models.plan import DayPlan, GenerationRequest, GenerationResult, MealPlan, MealType
from core.progress import ProgressCallback, ProgressReporter
from core.prompt_builder import patient_context, provenance

_LOG = logging.getLogger(__name__)

WEEKDAYS = (
    "Montag",
    "Dienstag",
    "Mittwoch",
    "Donnerstag",
    "Freitag",
    "Samstag",
    "Sonntag",
)


# ──────────────────────────────── labels ──────────────────────────────
def day_label(index: int) -> str:
    weekday = WEEKDAYS[index % len(WEEKDAYS)]
    cycle = index // len(WEEKDAYS) + 1
    return weekday if cycle == 1 else f"{weekday} (Woche {cycle})"


def day_labels(num_days: int) -> list[str]:
    return [day_label(i) for i in range(num_days)]


# ──────────────────────────────── variety ─────────────────────────────
def normalize_meal_name(name: str) -> str:
    cleaned = re.sub(r"[^a-z0-9\s]", " ", normalize_text(name))
    return re.sub(r"\s+", " ", cleaned).strip()


def find_variety_issues(
    days: Sequence[DayPlan],
    allowances: Mapping[MealType, int] | None = None,
    default_allowance: int = 1,
) -> list[int]:
    """
    Indexes of days that push a (meal type, dish) pair past its allowance.

    The earliest days using a dish keep it; every later one is flagged.
    """
    allowances = allowances or {}
    used_on: dict[tuple[MealType, str], list[int]] = defaultdict(list)
    for idx, day in enumerate(days):
        for meal in day.meals:
            used_on[(meal.meal_type, normalize_meal_name(meal.name))].append(idx)

    flagged: set[int] = set()
    for (meal_type, _), indexes in used_on.items():
        allowed = allowances.get(meal_type, default_allowance)
        flagged.update(indexes[allowed:])
    return sorted(flagged)


def excluded_meal_names(days: Sequence[DayPlan], skip_index: int = -1) -> list[str]:
    names: dict[str, None] = {}
    for idx, day in enumerate(days):
        if idx == skip_index:
            continue
        for meal in day.meals:
            names.setdefault(meal.name, None)
    return list(names)


# ──────────────────────────────── generator ───────────────────────────
class MealPlanGenerator:
    def __init__(
        self,
        backend: ModelBackend,
        settings: Settings | None = None,
        *,
        current_year: int | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._current_year = current_year
        self._days = DayPlanGenerator(
            backend,
            min_daily_kcal=self._settings.min_daily_kcal,
            temperature=self._settings.generation_temperature,
            current_year=current_year,
        )

    @property
    def variety_allowances(self) -> dict[MealType, int]:
        return {MealType.SNACK: self._settings.snack_repeat_allowance}

    async def generate(
        self, patient: PatientProfile, request: GenerationRequest
    ) -> GenerationResult:
        cfg = self._settings
        labels = day_labels(request.num_days)
        notes = request.additional_notes
        timeout_s = request.request_timeout_s or (
            cfg.fast_request_timeout_s if request.fast_mode else cfg.day_request_timeout_s
        )
        progress = ProgressReporter(request.on_progress, len(labels))
        progress.started()

        slots = await self._first_pass(
            patient, labels, notes, request.fast_mode, timeout_s, progress
        )

        failed = [i for i, day in enumerate(slots) if day is None]
        if failed:
            progress.fallback(len(failed))
            await self._fallback_pass(patient, labels, notes, slots, failed, progress)

        unresolved = [labels[i] for i, day in enumerate(slots) if day is None]
        if unresolved:
            raise DayGenerationFailed(unresolved)

        days: list[DayPlan] = [day for day in slots if day is not None]

        progress.variety_check()
        if not request.fast_mode:
            await self._repair_variety(patient, labels, notes, days, timeout_s)
        remaining = find_variety_issues(
            days, self.variety_allowances, cfg.meal_repeat_allowance
        )
        if remaining:
            raise PlanNotVaried(labels[i] for i in remaining)

        try:
            plan = MealPlan(days=days)
        except ValidationError as exc:
            raise PlanSchemaInvalid(str(exc)) from exc

        ctx = patient_context(patient, notes, self._current_year)
        _LOG.info("meal plan ready: %d days (fast_mode=%s)", len(days), request.fast_mode)
        return GenerationResult(plan=plan, prompt=provenance(ctx))

    # ───────────────────────────── passes ─────────────────────────── #
    async def _first_pass(
        self,
        patient: PatientProfile,
        labels: list[str],
        notes: str | None,
        fast_mode: bool,
        timeout_s: float,
        progress: ProgressReporter,
    ) -> list[DayPlan | None]:
        # each worker owns the index it pulled, so slots are written disjointly
        slots: list[DayPlan | None] = [None] * len(labels)
        cursor = 0

        async def worker() -> None:
            nonlocal cursor
            while cursor < len(labels):
                idx = cursor
                cursor += 1
                try:
                    slots[idx] = await self._days.generate(
                        patient, labels[idx], notes,
                        fast_mode=fast_mode, timeout_s=timeout_s,
                    )
                except DayGenerationError as exc:
                    _LOG.warning("first pass failed for %s: %s", labels[idx], exc)
                    continue
                progress.day_completed(labels[idx])

        pool = min(max(self._settings.max_parallel_days, 1), len(labels))
        await asyncio.gather(*(worker() for _ in range(pool)))
        return slots

    async def _fallback_pass(
        self,
        patient: PatientProfile,
        labels: list[str],
        notes: str | None,
        slots: list[DayPlan | None],
        failed: list[int],
        progress: ProgressReporter,
    ) -> None:
        for idx in failed:
            try:
                slots[idx] = await self._days.generate(
                    patient, labels[idx], notes,
                    fast_mode=False, timeout_s=self._settings.fallback_timeout_s,
                )
            except DayGenerationError as exc:
                _LOG.warning("fallback failed for %s: %s", labels[idx], exc)
                continue
            progress.day_completed(labels[idx])

    async def _repair_variety(
        self,
        patient: PatientProfile,
        labels: list[str],
        notes: str | None,
        days: list[DayPlan],
        timeout_s: float,
    ) -> None:
        allowances = self.variety_allowances
        default = self._settings.meal_repeat_allowance

        issues = find_variety_issues(days, allowances, default)
        if issues:
            _LOG.info("regenerating for variety: %s", [labels[i] for i in issues])
        for idx in issues:
            try:
                days[idx] = await self._days.generate(
                    patient, labels[idx], notes,
                    fast_mode=False,
                    excluded_meal_names=excluded_meal_names(days, skip_index=idx),
                    timeout_s=timeout_s,
                )
            except DayGenerationError as exc:
                raise DayGenerationFailed([labels[idx]]) from exc


async def generate_meal_plan(
    patient: PatientProfile,
    additional_notes: str | None = None,
    *,
    num_days: int = 7,
    fast_mode: bool = False,
    request_timeout_s: float | None = None,
    on_progress: ProgressCallback | None = None,
    backend: ModelBackend | None = None,
    settings: Settings | None = None,
) -> GenerationResult:
    if backend is None:
        from services.gemini import GeminiBackend

        backend = GeminiBackend(settings or default_settings)
    request = GenerationRequest(
        num_days=num_days,
        additional_notes=additional_notes,
        fast_mode=fast_mode,
        request_timeout_s=request_timeout_s,
        on_progress=on_progress,
    )
    return await MealPlanGenerator(backend, settings).generate(patient, request)
