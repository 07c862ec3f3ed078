"""
Feedback intent classification.

The allocation engine never reads free text.  It consumes a mapping of
``SpendingCategory → AdjustmentDirection`` produced by any object that
satisfies the ``IntentClassifier`` protocol.  ``KeywordIntentClassifier`` is
the deterministic default; an NLP model can replace it without touching the
engine.

Keyword rules
-------------
1. Lower-case the text and split it into clauses on ``, ; . ! ?`` and the
   words "and" / "but".
2. In each clause, find category mentions (names and synonyms, e.g.
   "rent" → housing, "groceries" → food) and direction words
   ("more", "increase" … vs "less", "reduce" …).
3. A clause with categories but no direction word inherits the direction of
   the previous clause ("more food and transport").
4. When a category is mentioned in several clauses, the last one wins.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol

from budget_planner.taxonomy.category_taxonomy import AdjustmentDirection, SpendingCategory

logger = logging.getLogger(__name__)

CATEGORY_SYNONYMS: dict[SpendingCategory, tuple[str, ...]] = {
    SpendingCategory.HOUSING: (
        "housing", "house", "home", "rent", "mortgage", "utilities", "apartment",
    ),
    SpendingCategory.FOOD: (
        "food", "groceries", "grocery", "dining", "restaurants", "restaurant",
        "eating out", "meals",
    ),
    SpendingCategory.TRANSPORTATION: (
        "transportation", "transport", "commute", "car", "fuel", "gas", "transit",
        "travel",
    ),
    SpendingCategory.ENTERTAINMENT: (
        "entertainment", "fun", "leisure", "hobbies", "hobby", "movies",
        "subscriptions", "going out",
    ),
    SpendingCategory.HEALTHCARE: (
        "healthcare", "health", "medical", "medicine", "doctor", "insurance",
        "gym", "fitness",
    ),
    SpendingCategory.OTHER: ("other", "miscellaneous", "misc"),
}

INCREASE_WORDS: tuple[str, ...] = (
    "more", "increase", "higher", "raise", "boost", "extra", "add",
)
DECREASE_WORDS: tuple[str, ...] = (
    "less", "reduce", "decrease", "lower", "cut", "fewer", "trim", "spend less",
)

_CLAUSE_SPLIT = re.compile(r"[,;.!?]|\band\b|\bbut\b")


class IntentClassifier(Protocol):
    """Maps free-text feedback to per-category adjustment directions."""

    def classify(self, text: str) -> dict[SpendingCategory, AdjustmentDirection]:
        """Return the adjustment intents expressed in ``text`` (possibly empty)."""
        ...


class KeywordIntentClassifier:
    """Deterministic keyword / synonym matcher.

    Args:
        synonyms: Category → phrases override; defaults to ``CATEGORY_SYNONYMS``.
    """

    def __init__(
        self,
        synonyms: Optional[dict[SpendingCategory, tuple[str, ...]]] = None,
    ) -> None:
        self._patterns = {
            category: _phrase_pattern(phrases)
            for category, phrases in (synonyms or CATEGORY_SYNONYMS).items()
        }
        self._increase = _phrase_pattern(INCREASE_WORDS)
        self._decrease = _phrase_pattern(DECREASE_WORDS)

    def classify(self, text: str) -> dict[SpendingCategory, AdjustmentDirection]:
        intents: dict[SpendingCategory, AdjustmentDirection] = {}
        carried: Optional[AdjustmentDirection] = None

        for clause in _CLAUSE_SPLIT.split(text.lower()):
            clause = clause.strip()
            if not clause:
                continue
            direction = self._direction(clause) or carried
            mentioned = [c for c, pattern in self._patterns.items() if pattern.search(clause)]
            if direction is not None:
                for category in mentioned:
                    intents[category] = direction
            carried = direction

        logger.debug("Classified feedback %r -> %s", text, {c.value: d.value for c, d in intents.items()})
        return {c: intents[c] for c in SpendingCategory if c in intents}

    def _direction(self, clause: str) -> Optional[AdjustmentDirection]:
        """Direction of the earliest direction word in the clause, if any."""
        inc = self._increase.search(clause)
        dec = self._decrease.search(clause)
        if inc and dec:
            return AdjustmentDirection.INCREASE if inc.start() < dec.start() else AdjustmentDirection.DECREASE
        if inc:
            return AdjustmentDirection.INCREASE
        if dec:
            return AdjustmentDirection.DECREASE
        return None


def _phrase_pattern(phrases: tuple[str, ...]) -> re.Pattern[str]:
    # Longest phrases first so "spend less" wins over "less".
    ordered = sorted(phrases, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in ordered) + r")\b")
