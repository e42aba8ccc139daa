"""
core/response_parser.py
────────────────────────────────────────────────────────────────────────
Turn raw model text into a validated `DayPlan`.

Model output is not guaranteed to be bare JSON – it may be wrapped in a
markdown fence or surrounded by prose – so extraction tries, in order:

1. the whole text
2. the first ```-fenced block (optional `json` tag)
3. the span from the first `{` to the last `}`

The first strategy whose candidate parses wins.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

from pydantic import ValidationError

from core.errors import ResponseParseError, SchemaValidationError
from core.models.plan import DayPlan

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _whole_text(raw: str) -> str | None:
    return raw


def _fenced_block(raw: str) -> str | None:
    match = _FENCE_RE.search(raw)
    return match.group(1) if match and match.group(1) else None


def _brace_span(raw: str) -> str | None:
    first, last = raw.find("{"), raw.rfind("}")
    if first == -1 or last <= first:
        return None
    return raw[first : last + 1]


EXTRACTION_STRATEGIES: list[Callable[[str], str | None]] = [
    _whole_text,
    _fenced_block,
    _brace_span,
]


def extract_json(raw: str) -> Any:
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(raw)
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except (ValueError, RecursionError):
            # RecursionError: pathologically nested arrays/objects
            continue
    raise ResponseParseError("no valid JSON found in model response")


def _summarise(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    more = len(exc.errors()) - limit
    if more > 0:
        parts.append(f"+{more} more")
    return "; ".join(parts)


def validate_day(data: Any) -> DayPlan:
    try:
        return DayPlan.model_validate(data)
    except ValidationError as exc:
        raise SchemaValidationError(_summarise(exc)) from exc


def parse_day_plan(raw: str) -> DayPlan:
    """extract → validate; raises ResponseParseError / SchemaValidationError"""
    return validate_day(extract_json(raw))
