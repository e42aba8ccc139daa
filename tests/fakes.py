"""
Scripted stand-in for the Gemini backend.

Replies are queued per day label (read back out of the system prompt);
once a label's queue is empty the backend answers with a valid day built
by `make_day()`.  A queued reply may be:

    str          → returned as the model text
    Completion   → returned as-is (e.g. truncated=True)
    Exception    → raised (transport failure)
    Sleep        → awaited first, then its `then` reply is used
"""
from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from core.model_invoker import Completion

_LABEL_RE = re.compile(r'dayName MUSS exakt "(.+?)" sein')

RECIPE = (
    "Zutaten waschen, vorbereiten und abwiegen; Pfanne bei mittlerer Hitze erhitzen "
    "und etwas Rapsöl zugeben; Hauptzutaten etwa acht Minuten garen und dabei wenden; "
    "Mit Kräutern und Gewürzen abschmecken; Auf einem Teller anrichten und servieren"
)

MEAL_TYPES = ("Frühstück", "Mittagessen", "Abendessen", "Snack")


def make_meal(meal_type: str, name: str, kcal: float, ingredients: list[str] | None = None) -> dict:
    return {
        "mealType": meal_type,
        "name": name,
        "description": f"{name}, einfach und sättigend",
        "recipe": RECIPE,
        "kcal": kcal,
        "protein": 25,
        "carbs": 60,
        "fat": 15,
        "ingredients": [
            {"name": ing, "amount": 100, "unit": "g", "category": "Sonstiges"}
            for ing in (ingredients or ["Haferflocken", "Linsen", "Vollkornreis"])
        ],
    }


def make_day(
    label: str,
    *,
    names: dict[str, str] | None = None,
    kcal: tuple[float, float, float, float] = (500, 700, 650, 250),
    daily_kcal: float | None = None,
    ingredients: dict[str, list[str]] | None = None,
) -> dict:
    """A valid wire-format day; meal names are unique per label by default."""
    names = names or {}
    ingredients = ingredients or {}
    meals = [
        make_meal(t, names.get(t, f"{t}-Teller {label}"), k, ingredients.get(t))
        for t, k in zip(MEAL_TYPES, kcal)
    ]
    return {
        "dayName": label,
        "meals": meals,
        "dailyKcal": sum(kcal) if daily_kcal is None else daily_kcal,
    }


def day_json(label: str, **kwargs: Any) -> str:
    return json.dumps(make_day(label, **kwargs), ensure_ascii=False)


@dataclass
class Sleep:
    seconds: float
    then: Any = None


@dataclass
class Call:
    label: str
    system: str
    user: str
    max_tokens: int
    temperature: float


@dataclass
class ScriptedBackend:
    script: dict[str, list[Any]] = field(default_factory=dict)
    default: Callable[[str], Any] = day_json
    delay: float = 0.0
    calls: list[Call] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0

    def calls_for(self, label: str) -> list[Call]:
        return [c for c in self.calls if c.label == label]

    async def complete(self, system_prompt, user_prompt, *, max_tokens, temperature):
        match = _LABEL_RE.search(system_prompt)
        label = match.group(1) if match else "?"
        self.calls.append(Call(label, system_prompt, user_prompt, max_tokens, temperature))

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            queue = self.script.get(label)
            reply = queue.pop(0) if queue else self.default(label)
            if self.delay:
                await asyncio.sleep(self.delay)
            if isinstance(reply, Sleep):
                await asyncio.sleep(reply.seconds)
                reply = reply.then if reply.then is not None else self.default(label)
            if isinstance(reply, Exception):
                raise reply
            if isinstance(reply, Completion):
                return reply
            return Completion(text=reply)
        finally:
            self.in_flight -= 1
