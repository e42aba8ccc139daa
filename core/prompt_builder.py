"""
core/prompt_builder.py
────────────────────────────────────────────────────────────────────────
System / user instructions for generating ONE day of a meal plan.

`mode` trades completeness for output size:

    normal  · compact   → ≤5 ingredients, ≤100-char descriptions
    ultra               → ≤3 ingredients, ≤60-char descriptions

Pure functions only: the same inputs (and the same `current_year`) always
give the same prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Sequence

from core.models.patient import PatientProfile


class PromptMode(str, Enum):
    NORMAL = "normal"
    COMPACT = "compact"
    ULTRA = "ultra"


@dataclass(frozen=True)
class DayPrompts:
    system: str
    user: str


@dataclass(frozen=True)
class PatientContext:
    age: int
    allergies_text: str
    notes_text: str
    autonomy_text: str


def patient_context(
    patient: PatientProfile,
    additional_notes: str | None = None,
    current_year: int | None = None,
) -> PatientContext:
    year = current_year if current_year is not None else date.today().year
    return PatientContext(
        age=year - patient.birth_year,
        allergies_text=", ".join(patient.allergies) if patient.allergies else "Keine bekannt",
        notes_text=additional_notes or "Keine besonderen Hinweise",
        autonomy_text=patient.autonomy_notes or "Keine Absprachen",
    )


def _limits(mode: PromptMode) -> tuple[int, int]:
    """(max ingredients per meal, max description chars)"""
    if mode == PromptMode.ULTRA:
        return 3, 60
    return 5, 100


def _system_prompt(day_label: str, mode: PromptMode, min_daily_kcal: int) -> str:
    max_ingredients, max_description = _limits(mode)
    return f"""Du bist ein spezialisierter Ernährungsplaner.
Erstelle GENAU EINEN Tagesplan als valides JSON-Objekt.

Format:
{{
  "dayName": "{day_label}",
  "meals": [
    {{
      "mealType": "Frühstück" | "Mittagessen" | "Abendessen" | "Snack",
      "name": "string",
      "description": "string",
      "recipe": "string (Zubereitung in 4-7 klaren Schritten, durch ';' getrennt, insgesamt ca. 320-650 Zeichen)",
      "kcal": number,
      "protein": number,
      "carbs": number,
      "fat": number,
      "ingredients": [
        {{
          "name": "string",
          "amount": number,
          "unit": "g" | "ml" | "Stück" | "EL" | "TL",
          "category": "Gemüse & Obst" | "Protein" | "Milchprodukte" | "Kohlenhydrate" | "Sonstiges"
        }}
      ]
    }}
  ],
  "dailyKcal": number
}}

Regeln:
- dayName MUSS exakt "{day_label}" sein
- Genau 4 Mahlzeiten: Frühstück, Mittagessen, Abendessen, Snack
- dailyKcal mindestens {min_daily_kcal}
- Jede Mahlzeit des Tages muss sich deutlich unterscheiden (keine Dubletten)
- Pro Mahlzeit maximal {max_ingredients} Zutaten
- Beschreibung kurz halten (max. {max_description} Zeichen)
- recipe muss pro Mahlzeit vorhanden sein (4-7 klare Schritte, mit ';' trennen)
- recipe soll praxisnah und mittel-lang sein (ca. 320-650 Zeichen, weder zu knapp noch ausschweifend)
- Nur alltagstaugliche Zutaten in Deutschland
- Allergien strikt beachten
- Gib AUSSCHLIESSLICH ein valides JSON-Objekt aus
- KEIN Fließtext, KEINE Erklärungen, KEIN Markdown, KEINE Codeblöcke"""


def build_day_prompts(
    patient: PatientProfile,
    day_label: str,
    additional_notes: str | None = None,
    mode: PromptMode = PromptMode.NORMAL,
    excluded_meal_names: Sequence[str] = (),
    correction_hint: str | None = None,
    *,
    min_daily_kcal: int = 1800,
    current_year: int | None = None,
) -> DayPrompts:
    ctx = patient_context(patient, additional_notes, current_year)

    lines = [
        "Patientendaten:",
        f"- Alter: {ctx.age}",
        f"- Aktuelles Gewicht: {patient.current_weight:g} kg",
        f"- Zielgewicht: {patient.target_weight:g} kg",
        f"- Allergien/Unverträglichkeiten: {ctx.allergies_text}",
        f"- Besondere Hinweise: {ctx.notes_text}",
        f"- Selbstständigkeit/Absprachen: {ctx.autonomy_text}",
        "",
        f"Erstelle den Plan für {day_label}.",
    ]
    if excluded_meal_names:
        lines.append(
            "WICHTIG: Verwende KEINE der folgenden bereits genutzten Gerichte: "
            f"{', '.join(excluded_meal_names)}."
        )
    if correction_hint:
        lines.append(f"KORREKTURHINWEIS: {correction_hint}")

    return DayPrompts(
        system=_system_prompt(day_label, mode, min_daily_kcal),
        user="\n".join(lines),
    )


def provenance(ctx: PatientContext) -> str:
    """Short audit line describing what a plan was generated from."""
    return (
        f"Parallele Taggenerierung | Alter: {ctx.age} | Allergien: {ctx.allergies_text}"
        f" | Hinweise: {ctx.notes_text} | Absprachen: {ctx.autonomy_text}"
    )
