# tests/test_response_parser.py
from __future__ import annotations

import json

import pytest

from core.errors import ResponseParseError, SchemaValidationError
from core.models.plan import MealType, Unit
from core.response_parser import extract_json, parse_day_plan, validate_day
from fakes import make_day

DAY = make_day("Montag")
BARE = json.dumps(DAY, ensure_ascii=False)


# ── layered extraction ──────────────────────────────────────────────
@pytest.mark.parametrize(
    "raw",
    [
        BARE,
        f"```json\n{BARE}\n```",
        f"```JSON\n{BARE}\n```",
        f"```\n{BARE}\n```",
        f"Hier ist der Plan:\n```json\n{BARE}\n```\nGuten Appetit!",
        f"Gerne! Hier ist dein Tagesplan: {BARE} Viel Erfolg.",
    ],
    ids=["bare", "fenced-json", "fenced-upper", "fenced-plain", "fenced-in-prose", "prose"],
)
def test_all_wrappings_yield_same_structure(raw):
    assert extract_json(raw) == DAY


def test_garbage_fence_before_json_is_not_recoverable():
    # the fence holds garbage and the first-{ / last-} span starts inside it
    with pytest.raises(ResponseParseError):
        extract_json("```json\n{kaputt\n```\n" + BARE)


def test_brace_span_used_when_fence_missing():
    assert extract_json("Antwort -> " + BARE + " <- Ende") == DAY


@pytest.mark.parametrize("raw", ["", "kein json", "{ nope }", "} rückwärts {"])
def test_unparseable_text_raises(raw):
    with pytest.raises(ResponseParseError):
        extract_json(raw)


# ── schema ──────────────────────────────────────────────────────────
def test_valid_day_parses_to_models():
    day = parse_day_plan(BARE)
    assert day.day_name == "Montag"
    assert [m.meal_type for m in day.meals] == list(MealType)
    assert day.meals[0].ingredients[0].unit is Unit.GRAMS
    assert day.daily_kcal == 2100
    assert len(day.meals[0].recipe_steps) == 5


def test_missing_field_is_schema_error():
    bad = make_day("Montag")
    del bad["meals"][1]["kcal"]
    with pytest.raises(SchemaValidationError) as exc:
        validate_day(bad)
    assert "kcal" in str(exc.value)


def test_unknown_enum_value_is_schema_error():
    bad = make_day("Montag")
    bad["meals"][0]["ingredients"][0]["unit"] = "Prise"
    with pytest.raises(SchemaValidationError):
        validate_day(bad)


def test_three_meals_is_schema_error():
    bad = make_day("Montag")
    bad["meals"] = bad["meals"][:3]
    with pytest.raises(SchemaValidationError):
        validate_day(bad)


def test_duplicate_meal_type_is_schema_error():
    bad = make_day("Montag")
    bad["meals"][3]["mealType"] = "Frühstück"
    with pytest.raises(SchemaValidationError):
        validate_day(bad)


@pytest.mark.parametrize("recipe", ["Kurz; knapp", "x" * 1201])
def test_recipe_length_bounds(recipe):
    bad = make_day("Montag")
    bad["meals"][0]["recipe"] = recipe
    with pytest.raises(SchemaValidationError):
        validate_day(bad)


def test_json_array_is_schema_error():
    with pytest.raises(SchemaValidationError):
        parse_day_plan(json.dumps([DAY]))


def test_string_typed_numbers_are_schema_errors():
    bad = make_day("Montag")
    bad["meals"][0]["kcal"] = "500"
    bad["dailyKcal"] = "2100"
    with pytest.raises(SchemaValidationError) as exc:
        validate_day(bad)
    assert "kcal" in str(exc.value)


def test_string_typed_amount_is_schema_error():
    bad = make_day("Montag")
    bad["meals"][2]["ingredients"][0]["amount"] = "100"
    with pytest.raises(SchemaValidationError):
        validate_day(bad)


def test_deeply_nested_reply_is_parse_error():
    with pytest.raises(ResponseParseError):
        extract_json("[" * 200_000)
