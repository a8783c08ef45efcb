"""Keyword and phrase tables for the conversation pipeline.

Plain data only: every table maps a label to a tuple of compiled,
case-insensitive regexes (or keyword lists). Tables are built once at import.
Matching helpers live next to the tables so callers never touch `re` directly.
"""

import re
from typing import Iterable, Pattern

from src.models.models import EntityType, IntentType


def _compile(*patterns: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def count_matches(patterns: Iterable[Pattern[str]], text: str) -> int:
    """Number of patterns that match anywhere in text."""
    return sum(1 for pattern in patterns if pattern.search(text))


def any_match(patterns: Iterable[Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def contains_keyword(text: str, keyword: str) -> bool:
    """Whole-word, case-insensitive keyword test. Multi-word keywords match as phrases."""
    return re.search(rf"\b{re.escape(keyword)}\b", text, re.IGNORECASE) is not None


def contains_keyword_prefix(text: str, keyword: str) -> bool:
    """Keyword at the start of a word, so compounds match: 'cheese' finds 'cheesecake'."""
    return re.search(rf"\b{re.escape(keyword)}", text, re.IGNORECASE) is not None


def remove_phrases(text: str, phrases: Iterable[str]) -> str:
    """Text with every whole-word occurrence of phrases blanked out."""
    for phrase in phrases:
        text = re.sub(rf"\b{re.escape(phrase)}\b", " ", text, flags=re.IGNORECASE)
    return text


# ============================================================================
# Intents
# ============================================================================

INTENT_PATTERNS: dict[IntentType, tuple[Pattern[str], ...]] = {
    IntentType.RECIPE_REQUEST: _compile(
        r"\b(recipe|cook|make|prepare|dish|meal)\b",
        r"what (can|should) i (cook|make|prepare)",
        r"(show me|give me|find me|suggest).*(recipe|dish)",
        r"i want to (cook|make|prepare)",
    ),
    IntentType.INGREDIENT_BASED_COOKING: _compile(
        r"(i have|using|with|from).*(ingredient|chicken|beef|vegetable)",
        r"(what can i make with|cook with|use)",
        r"(leftover|remaining|available).*(ingredient|food)",
        r"in my (fridge|pantry|kitchen)",
    ),
    IntentType.NUTRITIONAL_ADVICE: _compile(
        r"nutrition|nutritional|healthy|health|diet|calorie|macro|vitamin|mineral",
        r"lose weight|gain weight|build muscle|heart health",
        r"is.*healthy|nutritional value|health benefit",
        r"dietitian|nutritionist|diet plan",
    ),
    IntentType.COOKING_TECHNIQUE_HELP: _compile(
        r"how to (cook|prepare|make)|cooking (method|technique|tip)",
        r"sauté|braise|roast|grill|steam|boil|fry|bake",
        r"cooking (time|temperature)|how long|what temperature",
        r"technique|method|skill|tip|trick",
    ),
    IntentType.MEAL_PLANNING: _compile(
        r"meal plan|weekly plan|menu|planning",
        r"week of (meals|food)|meal prep|batch cook",
        r"plan my (meals|week|menu)",
        r"grocery list|shopping list",
    ),
    IntentType.DIETARY_MODIFICATION: _compile(
        r"modify|change|adapt|substitute|replace|alternative",
        r"make it (vegan|vegetarian|gluten.free|dairy.free)",
        r"without|instead of|substitute for",
        r"allergy|intolerance|restriction|can't eat",
    ),
    IntentType.COOKING_TROUBLESHOOTING: _compile(
        r"help|problem|issue|wrong|failed|disaster",
        r"overcooked|undercooked|burnt|soggy|dry|tough",
        r"went wrong|didn't work|fix|save|rescue",
        r"why (did|is)|what happened|troubleshoot",
    ),
}

# Minimum confidence at which an intent is acted on without a clarifying question
INTENT_CONFIDENCE_THRESHOLDS: dict[IntentType, float] = {
    IntentType.RECIPE_REQUEST: 0.6,
    IntentType.INGREDIENT_BASED_COOKING: 0.7,
    IntentType.NUTRITIONAL_ADVICE: 0.8,
    IntentType.COOKING_TECHNIQUE_HELP: 0.7,
    IntentType.MEAL_PLANNING: 0.8,
    IntentType.DIETARY_MODIFICATION: 0.8,
    IntentType.COOKING_TROUBLESHOOTING: 0.7,
}

# Context boost triggers
MODIFICATION_KEYWORDS = re.compile(r"modify|change|adapt|substitute", re.IGNORECASE)
HEALTH_KEYWORDS = re.compile(r"nutrition|health|diet|calories|macro", re.IGNORECASE)
RECIPE_KEYWORDS = re.compile(r"recipe|cook|make|prepare", re.IGNORECASE)

# Meal windows (local hour, inclusive ranges) that favour recipe_request
MEAL_WINDOWS = ((11, 13), (17, 20))


# ============================================================================
# Entities
# ============================================================================

ENTITY_PATTERNS: dict[EntityType, Pattern[str]] = {
    EntityType.INGREDIENT: re.compile(
        r"\b(chicken|beef|pork|fish|salmon|shrimp|tofu|eggs|rice|pasta|potato|tomato|onion|garlic|cheese|milk"
        r"|flour|sugar|salt|pepper|oil|butter|herbs?|spices?|vegetables?|fruits?)\b",
        re.IGNORECASE,
    ),
    EntityType.CUISINE: re.compile(
        r"\b(italian|chinese|mexican|indian|thai|japanese|french|mediterranean|american|korean|vietnamese"
        r"|greek|spanish|moroccan|lebanese)\b",
        re.IGNORECASE,
    ),
    EntityType.MEAL_TYPE: re.compile(
        r"\b(breakfast|lunch|dinner|snack|dessert|appetizer|brunch|supper)\b",
        re.IGNORECASE,
    ),
    EntityType.COOKING_METHOD: re.compile(
        r"(?<!\w)(bake|baking|roast|roasting|grill|grilling|fry|frying|sauté|sautéing|steam|steaming|boil|boiling"
        r"|simmer|simmering|braise|braising|stir.fry)(?!\w)",
        re.IGNORECASE,
    ),
    EntityType.DIETARY_RESTRICTION: re.compile(
        r"\b(vegetarian|vegan|gluten.free|dairy.free|nut.free|keto|paleo|low.carb|low.fat|low.sodium|sugar.free)\b",
        re.IGNORECASE,
    ),
}

ENTITY_CONFIDENCE = 0.8

# One requirement phrase per extracted entity
ENTITY_REQUIREMENT_TEMPLATES: dict[EntityType, str] = {
    EntityType.INGREDIENT: "using {value}",
    EntityType.CUISINE: "{value} cuisine",
    EntityType.MEAL_TYPE: "suitable for {value}",
    EntityType.COOKING_METHOD: "cooked by {value}",
    EntityType.DIETARY_RESTRICTION: "{value} compliant",
}

# Free-text requirements, checked in order, each added at most once
REQUIREMENT_PATTERNS: tuple[tuple[Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), requirement)
    for pattern, requirement in (
        (r"\b(quick|fast|rapid|speedy|hurry)\b", "quick preparation"),
        (r"\b(slow|leisurely|weekend|elaborate)\b", "elaborate preparation"),
        (r"\b(easy|simple|basic|beginner)\b", "easy difficulty"),
        (r"\b(challenging|advanced|complex|professional)\b", "advanced difficulty"),
        (r"\b(healthy|nutritious|wholesome|clean)\b", "healthy options"),
        (r"\b(low.calorie|diet|weight.loss)\b", "low calorie"),
        (r"\b(baked?|baking|oven)\b", "baked dishes"),
        (r"\b(grilled?|grilling|bbq)\b", "grilled dishes"),
        (r"\b(fried?|frying|pan.fried)\b", "fried dishes"),
    )
)


# ============================================================================
# Meal context, emotion, mood, occasion
# ============================================================================

URGENCY_HIGH = re.compile(r"\b(quick|fast|urgent|hurry)\b", re.IGNORECASE)
URGENCY_LOW = re.compile(r"\b(slow|leisurely|weekend)\b", re.IGNORECASE)
SERVING_SIZE = re.compile(r"\bfor (\d+)\s*(people|persons|servings|guests)\b", re.IGNORECASE)

# Checked in order; first hit wins
EMOTIONAL_STATE_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("frustrated", re.compile(r"\b(frustrated|difficult|hard|struggling)\b", re.IGNORECASE)),
    ("overwhelmed", re.compile(r"\b(overwhelmed|too much|confused)\b", re.IGNORECASE)),
    ("excited", re.compile(r"\b(excited|amazing|love|can't wait)\b", re.IGNORECASE)),
    ("curious", re.compile(r"\b(how|why|what)\b", re.IGNORECASE)),
    ("confident", re.compile(r"\b(easy|simple|confident)\b", re.IGNORECASE)),
)

MOOD_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("comfort", re.compile(r"\b(comfort|comforting|cozy|hearty|warm)\b", re.IGNORECASE)),
    ("healthy", re.compile(r"\b(healthy|light|fresh|clean)\b", re.IGNORECASE)),
    ("indulgent", re.compile(r"\b(indulgent|treat|decadent|rich)\b", re.IGNORECASE)),
    ("experimental", re.compile(r"\b(experiment|experimental|creative|fusion)\b", re.IGNORECASE)),
    ("adventure", re.compile(r"\b(adventure|adventurous|exotic|new|different)\b", re.IGNORECASE)),
)

OCCASION_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("special", re.compile(r"\b(special|party|date|anniversary|birthday|guests|celebrat\w*)\b", re.IGNORECASE)),
    ("weekend", re.compile(r"\b(weekend|saturday|sunday|brunch)\b", re.IGNORECASE)),
    ("weekday", re.compile(r"\b(weeknight|weekday|tonight|after work|busy)\b", re.IGNORECASE)),
)

LEARNING_GOAL = re.compile(r"\b(learn|teach|technique|improve|master)\b", re.IGNORECASE)

# Preference statements learned into long-term memory
LIKE_STATEMENT = re.compile(r"\b(love|like|favorite|favourite|prefer|enjoy)\b", re.IGNORECASE)
DISLIKE_STATEMENT = re.compile(
    r"\b(hate|dislike|don't like|do not like|allergic to|can't stand)\s+(\w+(?:\s\w+)?)", re.IGNORECASE
)
