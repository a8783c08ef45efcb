"""Recipe-count estimation.

Turns how specific a request is into a bounded number of recipes to produce:
a precise ask ("a quick Thai chicken dinner") gets one answer, a vague one
("dinner ideas?") gets an exploratory spread.
"""

import re
from typing import Optional

from src.models.models import ConversationContext, EntityType, Intent
from src.utils.config import config
from src.utils.logger import logger

MIN_RECIPES = 1
MAX_RECIPES = 7

# "3 recipes", "3 quick pasta ideas": up to three words between the number and the noun
EXPLICIT_COUNT = re.compile(
    r"\b(\d+)\s*(?:[a-z-]+\s+){0,3}?(recipe|option|idea|suggestion)s?\b",
    re.IGNORECASE,
)

# Larger quantities first so "a couple" reads as 2, not 1
QUANTITY_WORDS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (7, ("all", "everything", "comprehensive", "extensive")),
    (5, ("many", "lots", "bunch", "variety")),
    (3, ("few", "several", "some")),
    (2, ("couple", "two", "pair")),
    (1, ("a", "one", "single")),
)

SPECIFICITY_WEIGHTS = {
    "ingredient": 0.3,
    "cuisine": 0.2,
    "meal_type": 0.2,
    "urgency": 0.2,
    "restrictions": 0.1,
}

# (exclusive lower bound on specificity, recipe count), highest bound first
SPECIFICITY_BREAKPOINTS = ((0.8, 1), (0.6, 2), (0.4, 3), (0.2, 5))


def clamp_count(n: int) -> int:
    return max(MIN_RECIPES, min(MAX_RECIPES, n))


class RecipeCountEstimator:
    """Decides how many recipe variants a turn should produce (1-7).

    Args:
        max_recipes: Upper cap applied after estimation. Defaults to config.MAX_RECIPES.
    """

    def __init__(self, max_recipes: Optional[int] = None) -> None:
        self.max_recipes = clamp_count(max_recipes if max_recipes is not None else config.MAX_RECIPES)

    def explicit_count(self, text: str) -> Optional[int]:
        match = EXPLICIT_COUNT.search(text)
        return clamp_count(int(match.group(1))) if match else None

    def quantity_word_count(self, text: str) -> Optional[int]:
        for count, words in QUANTITY_WORDS:
            if any(re.search(rf"\b{word}\b", text, re.IGNORECASE) for word in words):
                return count
        return None

    def specificity(self, intent: Intent, context: Optional[ConversationContext] = None) -> float:
        """Score in [0, 1]: how narrowly the request pins down a single dish."""
        entity_types = {entity.type for entity in intent.entities}
        score = 0.0
        if EntityType.INGREDIENT in entity_types:
            score += SPECIFICITY_WEIGHTS["ingredient"]
        if EntityType.CUISINE in entity_types:
            score += SPECIFICITY_WEIGHTS["cuisine"]
        if EntityType.MEAL_TYPE in entity_types:
            score += SPECIFICITY_WEIGHTS["meal_type"]
        if context is not None:
            if context.urgency == "high":
                score += SPECIFICITY_WEIGHTS["urgency"]
            if context.profile.dietary_restrictions:
                score += SPECIFICITY_WEIGHTS["restrictions"]
        return min(1.0, round(score, 2))

    @staticmethod
    def count_for_specificity(specificity: float) -> int:
        for bound, count in SPECIFICITY_BREAKPOINTS:
            if specificity > bound:
                return count
        return MAX_RECIPES

    def estimate_count(self, utterance: str, intent: Intent, context: Optional[ConversationContext] = None) -> int:
        """Estimate the number of recipes to generate.

        Order of precedence: explicit "<N> recipes/options/ideas/suggestions"
        (clamped to 1-7), then quantity words, then the specificity score.

        Args:
            utterance: Raw user text.
            intent: Classified intent (entities feed the specificity score).
            context: Optional per-turn context (urgency, profile restrictions).

        Returns:
            Recipe count in [1, max_recipes].
        """
        text = utterance or ""
        count = self.explicit_count(text)
        source = "explicit"
        if count is None:
            count = self.quantity_word_count(text)
            source = "quantity word"
        if count is None:
            specificity = self.specificity(intent, context)
            count = self.count_for_specificity(specificity)
            source = f"specificity {specificity:.2f}"

        count = min(count, self.max_recipes)
        logger.debug(f"Recipe count {count} ({source})")
        return count
