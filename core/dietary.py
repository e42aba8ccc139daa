"""
core/dietary.py
────────────────────────────────────────────────────────────────────────
Keyword checks that a generated day honours dietary restrictions.

* `requests_no_meat()`  – do the free-text notes ask for a meat-free plan?
* `meat_hits()`         – meat keywords found in a day's meals
* `allergen_hits()`     – patient allergens found in ingredient / meal names

All matching runs on `normalize_text()` output (lower-case, accents
stripped).  German stems match inside compound words ("Putenbrust",
"Bratwurst"); English keywords only match whole words so that "ham"
never fires on "Champignons".  An occurrence directly followed by a
"free" suffix in the same word ("fleischfrei", "laktosefreie",
"meat-free") is a qualifier, not an ingredient, and is ignored, as are
the produce words in `MEAT_FREE_COMPOUNDS` ("Fleischtomate").
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Iterable, Sequence

from core.models.plan import DayPlan

_LOG = logging.getLogger(__name__)

MEAT_STEMS = (
    "fleisch", "huhn", "hahnchen", "geflugel", "pute", "rind", "schwein",
    "salami", "schinken", "wurst", "speck", "fisch", "lachs", "garnele",
)
MEAT_WORDS = (
    "meat", "bacon", "chicken", "beef", "pork", "ham", "turkey",
    "sausage", "fish", "salmon", "tuna",
)
# meat-free compounds that contain a meat stem
MEAT_FREE_COMPOUNDS = (
    "fleischtomate", "fruchtfleisch", "kokosfleisch",
    "parmesanrinde", "kaserinde", "brotrinde",
)

_NO_MEAT_RE = re.compile(
    r"\bohne\s*fleisch\b|\bvegetar|\bvegan|\bfleischlos|\bno\s+meat\b|\bmeat-?free\b"
)
_TOKEN_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
_FREE_SUFFIX_RE = re.compile(r"[a-z]{0,2}-?(?:frei|free|los)")
_ALLERGY_SUFFIX_RE = re.compile(
    r"[\s-]*(?:allergie|allergy|unvertraglichkeit|intoleranz|intolerance)$"
)


def normalize_text(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def requests_no_meat(additional_notes: str | None) -> bool:
    if not additional_notes:
        return False
    return bool(_NO_MEAT_RE.search(normalize_text(additional_notes)))


# ───────────────────────── keyword scanning ───────────────────────────
def _stem_hit(token: str, stem: str) -> bool:
    start = token.find(stem)
    while start != -1:
        suffix = token[start + len(stem):]
        if not _FREE_SUFFIX_RE.match(suffix):
            return True
        start = token.find(stem, start + 1)
    return False


def _word_hit(token: str, word: str) -> bool:
    parts = token.split("-")
    for i, part in enumerate(parts):
        if part not in (word, word + "s"):
            continue
        qualified = i + 1 < len(parts) and parts[i + 1].startswith(("free", "frei"))
        if not qualified:
            return True
    return False


def keyword_hits(
    texts: Iterable[str],
    stems: Sequence[str] = (),
    words: Sequence[str] = (),
    phrases: Sequence[str] = (),
    ignore: Sequence[str] = (),
) -> list[str]:
    """
    Return the keywords (in declaration order) present in `texts`.

    Words that contain one of `ignore` are blanked out before matching.
    """
    haystack = normalize_text(" ".join(texts))
    for word in ignore:
        haystack = re.sub(rf"[a-z0-9]*{re.escape(word)}[a-z0-9]*", " ", haystack)
    tokens = _TOKEN_RE.findall(haystack)
    hits = [s for s in stems if any(_stem_hit(t, s) for t in tokens)]
    hits += [w for w in words if any(_word_hit(t, w) for t in tokens)]
    hits += [p for p in phrases if p in haystack]
    return hits


def _meal_texts(day: DayPlan) -> list[str]:
    texts: list[str] = []
    for meal in day.meals:
        texts += [meal.name, meal.description, meal.recipe]
        texts += [i.name for i in meal.ingredients]
    return texts


def meat_hits(day: DayPlan) -> list[str]:
    return keyword_hits(_meal_texts(day), MEAT_STEMS, MEAT_WORDS, ignore=MEAT_FREE_COMPOUNDS)


def contains_meat(day: DayPlan) -> bool:
    return bool(meat_hits(day))


# ───────────────────────── allergens ──────────────────────────────────
def allergen_terms(allergies: Iterable[str]) -> tuple[list[str], list[str]]:
    """
    Normalise free-text allergies into (stems, phrases).

    "Erdnüsse" → stem "erdnuss", "Laktoseintoleranz" → "laktos",
    "Glutenhaltiges Getreide" → phrase.  Terms under 3 chars are dropped
    because they match far too much ("ei" ⊂ "reis").
    """
    stems: list[str] = []
    phrases: list[str] = []
    for raw in allergies:
        term = _ALLERGY_SUFFIX_RE.sub("", normalize_text(raw).strip()).strip(" -")
        if " " in term:
            phrases.append(term)
            continue
        if len(term) > 4 and term[-1] in "ens":
            term = term[:-1]
        if len(term) < 3:
            _LOG.warning("allergy %r too short to scan for, relying on the prompt only", raw)
        elif term not in stems:
            stems.append(term)
    return stems, phrases


def allergen_hits(day: DayPlan, allergies: Iterable[str]) -> list[str]:
    stems, phrases = allergen_terms(allergies)
    if not stems and not phrases:
        return []
    texts = [m.name for m in day.meals]
    texts += [i.name for m in day.meals for i in m.ingredients]
    return keyword_hits(texts, stems=stems, phrases=phrases)
