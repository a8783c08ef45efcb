"""Recipe enhancement and ranking.

Scores every drafted recipe on independent 1-10 axes, attaches the result as
SmartMetadata together with a nutrition estimate, and ranks recipes by a
fixed weighted composite.

Axes (each starts at 5, fixed deltas, clamped to [1, 10]):
- difficulty: ingredient count, cook time, named techniques; capped/floored by skill
- time: bucketed minutes; capped/floored by the cooking-time preference
- learning value: learning goal, techniques new to this session, ingredient diversity
- confidence boost: frustration, beginner-friendly difficulty, remembered interests

Mood and occasion match are "high"/"medium" labels from keyword co-occurrence.

Everything here is a pure function of (recipe, context): enhancing the same
input twice gives identical metadata, and ranking is a stable sort.
"""

import re
from typing import Optional

from src.models.models import (
    ConversationContext,
    CookingTimePreference,
    Recipe,
    SkillLevel,
    SmartMetadata,
)
from src.pipeline.nutrition import estimate_nutrition
from src.utils.logger import logger

# technique name -> pattern found in instruction text
TECHNIQUE_PATTERNS: dict[str, re.Pattern] = {
    "sauté": re.compile(r"\bsaut[eé]", re.IGNORECASE),
    "braise": re.compile(r"\bbrais", re.IGNORECASE),
    "roast": re.compile(r"\broast", re.IGNORECASE),
    "grill": re.compile(r"\bgrill", re.IGNORECASE),
    "fry": re.compile(r"fr(y|ied|ies|ying)\b", re.IGNORECASE),
    "steam": re.compile(r"\bsteam", re.IGNORECASE),
    "poach": re.compile(r"\bpoach", re.IGNORECASE),
    "blanch": re.compile(r"\bblanch", re.IGNORECASE),
    "caramelize": re.compile(r"\bcarameli[sz]", re.IGNORECASE),
}

# Techniques that raise difficulty
DIFFICULTY_TECHNIQUES = ("sauté", "braise", "roast", "grill", "fry", "steam", "poach")

MOOD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "comfort": ("soup", "stew", "pasta", "comfort", "comforting", "hearty", "creamy", "warm"),
    "adventure": ("exotic", "fusion", "spicy", "international", "adventurous"),
    "healthy": ("healthy", "fresh", "salad", "light", "grilled", "steamed"),
    "indulgent": ("rich", "decadent", "chocolate", "creamy", "cheesy", "fried"),
    "experimental": ("fusion", "twist", "modern", "innovative", "unusual"),
}

SPECIAL_OCCASION_KEYWORDS = ("special", "elegant", "fancy", "gourmet")

TECHNIQUE_TIPS = {
    "sauté": "Heat the pan before the oil goes in so ingredients sear instead of stewing.",
    "braise": "Keep the braising liquid at a bare simmer; a hard boil toughens the meat.",
    "roast": "Spread everything in a single layer so it roasts rather than steams.",
    "grill": "Oil the food, not the grates, and leave it alone until it releases easily.",
    "fry": "Fry in small batches so the oil temperature stays steady.",
    "steam": "Keep the lid on; every peek lets the steam and the heat escape.",
    "poach": "Look for small bubbles at the bottom of the pot, never a rolling boil.",
    "blanch": "Have an ice bath ready before the vegetables go into the boiling water.",
    "caramelize": "Give onions time on medium-low heat; rushing them only burns the sugars.",
}

TECHNIQUE_TROUBLESHOOTING = {
    "sauté": "Ingredients steaming instead of browning? The pan is overcrowded; cook in batches.",
    "braise": "Meat still tough? It needs more time, not more heat.",
    "roast": "Browning unevenly? Rotate the tray halfway through.",
    "grill": "Sticking to the grill? It isn't ready to flip yet; wait another minute.",
    "fry": "Greasy results mean the oil was too cool; let it come back to temperature between batches.",
    "steam": "Vegetables soggy? Pull them a minute earlier; they keep cooking off the heat.",
    "poach": "Eggs spreading out? Use the freshest eggs and a splash of vinegar in the water.",
    "blanch": "Lost the bright color? Shock the vegetables in ice water straight away.",
    "caramelize": "Onions burning at the edges? Add a splash of water and lower the heat.",
}

RESTRICTION_VARIATIONS = {
    "vegan": "Make it vegan by swapping animal products for tofu, beans or plant milk.",
    "vegetarian": "Go vegetarian with mushrooms or chickpeas in place of the meat.",
    "gluten-free": "Use gluten-free pasta or tamari to keep it gluten-free.",
    "dairy-free": "Swap butter and cream for olive oil and coconut cream for a dairy-free version.",
    "keto": "Serve it over cauliflower rice to keep it keto-friendly.",
    "low-carb": "Replace the starch with extra vegetables for a low-carb plate.",
    "paleo": "Skip grains and dairy and add roasted sweet potato for a paleo take.",
}

GENERIC_VARIATIONS = (
    "Finish with a handful of fresh herbs to brighten it up.",
    "Double the batch and freeze portions for busy days.",
)

GENERIC_TROUBLESHOOTING = "Tastes flat? A pinch of salt or a squeeze of lemon usually fixes it."

MAX_LIST_ITEMS = 3

COMPOSITE_WEIGHTS = {
    "confidence_boost": 0.30,
    "difficulty": 0.20,
    "learning_value": 0.20,
    "time": 0.15,
    "mood": 0.10,
    "occasion": 0.05,
}


def clamp_score(value: float) -> int:
    return int(max(1, min(10, round(value))))


def parse_minutes(cooking_time: str) -> Optional[int]:
    """Total minutes from free text like '25 minutes', '1 hour 15 min', '1.5 hours' or '40'.

    Returns:
        Minutes, or None when the text holds no usable number.
    """
    text = (cooking_time or "").lower()
    total = 0.0
    found = False

    hours = re.search(r"(\d+(?:\.\d+)?)\s*(hours?|hrs?|h)\b", text)
    if hours:
        total += float(hours.group(1)) * 60
        found = True
    minutes = re.search(r"(\d+)\s*(minutes?|mins?|m)\b", text)
    if minutes:
        total += int(minutes.group(1))
        found = True

    if not found:
        bare = re.search(r"\d+", text)
        if bare:
            return int(bare.group(0))
        if "hour" in text:
            return 60
        return None
    return int(total)


def techniques_in(recipe: Recipe) -> list[str]:
    """Named techniques appearing in the instructions, in table order."""
    text = " ".join(recipe.instructions)
    return [name for name, pattern in TECHNIQUE_PATTERNS.items() if pattern.search(text)]


def skill_label(difficulty: int) -> SkillLevel:
    if difficulty <= 3:
        return SkillLevel.BEGINNER
    if difficulty <= 6:
        return SkillLevel.INTERMEDIATE
    if difficulty <= 8:
        return SkillLevel.ADVANCED
    return SkillLevel.EXPERT


def _recipe_text(recipe: Recipe) -> str:
    return " ".join([recipe.title, recipe.description, *recipe.tags]).lower()


class RecipeEnhancer:
    """Attaches SmartMetadata, nutrition and a composite score to recipes, and ranks them."""

    def difficulty_score(self, recipe: Recipe, context: ConversationContext) -> int:
        score = 5
        count = len(recipe.ingredients)
        if count > 15:
            score += 2
        elif count < 5:
            score -= 1

        if "hour" in recipe.cooking_time.lower():
            score += 2
        else:
            minutes = parse_minutes(recipe.cooking_time)
            if minutes is not None and minutes < 30:
                score -= 1

        score += sum(1 for name in techniques_in(recipe) if name in DIFFICULTY_TECHNIQUES)
        score = clamp_score(score)

        skill = context.profile.skill_level
        if skill == SkillLevel.BEGINNER:
            score = min(score, 6)
        elif skill == SkillLevel.EXPERT:
            score = max(score, 4)
        return score

    def time_score(self, recipe: Recipe, context: ConversationContext) -> int:
        minutes = parse_minutes(recipe.cooking_time)
        if minutes is None:
            score = 6
        elif minutes < 15:
            score = 2
        elif minutes < 30:
            score = 4
        elif minutes < 60:
            score = 6
        elif minutes < 120:
            score = 8
        else:
            score = 10

        preference = context.profile.cooking_time
        if preference == CookingTimePreference.QUICK:
            score = min(score, 4)
        elif preference == CookingTimePreference.EXTENDED:
            score = max(score, 6)
        return clamp_score(score)

    def mood_match(self, recipe: Recipe, context: ConversationContext) -> str:
        if not context.mood:
            return "medium"
        text = _recipe_text(recipe)
        return "high" if any(keyword in text for keyword in MOOD_KEYWORDS[context.mood]) else "medium"

    def occasion_match(self, recipe: Recipe, context: ConversationContext) -> str:
        if not context.occasion:
            return "medium"
        text = _recipe_text(recipe)
        if context.occasion == "weekday":
            minutes = parse_minutes(recipe.cooking_time)
            matched = "quick" in text or (minutes is not None and minutes <= 30)
        elif context.occasion == "weekend":
            matched = "hour" in recipe.cooking_time.lower() or len(recipe.ingredients) > 10
        else:
            matched = any(keyword in text for keyword in SPECIAL_OCCASION_KEYWORDS)
        return "high" if matched else "medium"

    def learning_value(self, recipe: Recipe, context: ConversationContext) -> int:
        score = 5
        if context.learning_goal:
            score += 2
        seen = set(context.techniques_seen)
        score += sum(1 for name in techniques_in(recipe) if name not in seen)
        if len({ingredient.lower() for ingredient in recipe.ingredients}) > 8:
            score += 1
        return clamp_score(score)

    def _interests(self, context: ConversationContext) -> list[str]:
        interests = list(context.interests) + list(context.profile.cuisine_preferences)
        if context.memory:
            interests += context.memory.long_term.favorite_ingredients()
        return [interest.lower() for interest in interests if interest]

    def confidence_boost(self, recipe: Recipe, context: ConversationContext, difficulty: int) -> int:
        score = 5
        if context.emotional_state == "frustrated":
            score += 2
        if context.profile.skill_level == SkillLevel.BEGINNER and difficulty <= 4:
            score += 2
        title_and_tags = " ".join([recipe.title, *recipe.tags]).lower()
        if any(interest in title_and_tags for interest in self._interests(context)):
            score += 1
        return clamp_score(score)

    def _emotional_appeal(self, recipe: Recipe, difficulty: int, learning: int, mood: str) -> list[str]:
        text = _recipe_text(recipe)
        minutes = parse_minutes(recipe.cooking_time)
        appeal = []
        if minutes is not None and minutes <= 30:
            appeal.append("quick win")
        if any(keyword in text for keyword in MOOD_KEYWORDS["comfort"]):
            appeal.append("comfort food")
        if difficulty >= 7:
            appeal.append("impressive")
        if any(keyword in text for keyword in MOOD_KEYWORDS["healthy"]):
            appeal.append("healthy choice")
        if learning >= 7:
            appeal.append("learning opportunity")
        if mood == "high" and not appeal:
            appeal.append("just what you asked for")
        return appeal[:MAX_LIST_ITEMS]

    def _tips(self, recipe: Recipe, context: ConversationContext, techniques: list[str]) -> list[str]:
        tips = []
        if context.profile.skill_level == SkillLevel.BEGINNER:
            tips.append("Read the whole recipe and prep every ingredient before you turn on the heat.")
        tips.extend(TECHNIQUE_TIPS[name] for name in techniques)
        minutes = parse_minutes(recipe.cooking_time)
        if minutes is not None and minutes > 60:
            tips.append("Most of the cooking time is hands-off; use it to prepare a side.")
        tips.append("Taste and adjust the seasoning just before serving.")
        return tips[:MAX_LIST_ITEMS]

    def _variations(self, context: ConversationContext) -> list[str]:
        variations = [
            RESTRICTION_VARIATIONS[restriction]
            for restriction in context.profile.dietary_restrictions
            if restriction in RESTRICTION_VARIATIONS
        ]
        if context.profile.cuisine_preferences:
            variations.append(f"Give it a {context.profile.cuisine_preferences[0]} twist with your favourite spices.")
        variations.extend(GENERIC_VARIATIONS)
        return variations[:MAX_LIST_ITEMS]

    def _troubleshooting(self, techniques: list[str]) -> list[str]:
        hints = [TECHNIQUE_TROUBLESHOOTING[name] for name in techniques]
        hints.append(GENERIC_TROUBLESHOOTING)
        return hints[:MAX_LIST_ITEMS]

    def build_metadata(self, recipe: Recipe, context: ConversationContext) -> SmartMetadata:
        difficulty = self.difficulty_score(recipe, context)
        learning = self.learning_value(recipe, context)
        mood = self.mood_match(recipe, context)
        techniques = techniques_in(recipe)
        return SmartMetadata(
            difficulty_score=difficulty,
            time_score=self.time_score(recipe, context),
            skill_match=skill_label(difficulty),
            mood_match=mood,
            occasion_match=self.occasion_match(recipe, context),
            learning_value=learning,
            confidence_boost=self.confidence_boost(recipe, context, difficulty),
            emotional_appeal=self._emotional_appeal(recipe, difficulty, learning, mood),
            tips=self._tips(recipe, context, techniques),
            variations=self._variations(context),
            troubleshooting=self._troubleshooting(techniques),
        )

    @staticmethod
    def composite_score(metadata: SmartMetadata) -> float:
        """Weighted relevance score used for ranking."""
        score = (
            metadata.confidence_boost * COMPOSITE_WEIGHTS["confidence_boost"]
            + (10 - metadata.difficulty_score) * COMPOSITE_WEIGHTS["difficulty"]
            + metadata.learning_value * COMPOSITE_WEIGHTS["learning_value"]
            + (10 - metadata.time_score) * COMPOSITE_WEIGHTS["time"]
            + (10 if metadata.mood_match == "high" else 5) * COMPOSITE_WEIGHTS["mood"]
            + (10 if metadata.occasion_match == "high" else 5) * COMPOSITE_WEIGHTS["occasion"]
        )
        return round(score, 2)

    def enhance(self, recipe: Recipe, context: ConversationContext) -> Recipe:
        """Return a copy of the recipe with SmartMetadata, nutrition and composite score attached.

        Args:
            recipe: Recipe drafted by the oracle (or a previously enhanced one).
            context: Per-turn context; the only input besides the recipe.

        Returns:
            New Recipe. The input recipe is not modified.
        """
        metadata = self.build_metadata(recipe, context)
        nutrition = recipe.nutrition or estimate_nutrition(recipe)
        return recipe.model_copy(
            update={
                "smart_metadata": metadata,
                "nutrition": nutrition,
                "composite_score": self.composite_score(metadata),
            }
        )

    def rank(self, recipes: list[Recipe], context: ConversationContext) -> list[Recipe]:
        """Enhance and order recipes by composite score, highest first.

        The sort is stable, so equal scores keep generation order.
        """
        enhanced = [self.enhance(recipe, context) for recipe in recipes]
        ranked = sorted(enhanced, key=lambda recipe: recipe.composite_score, reverse=True)
        logger.debug("Ranked recipes: " + ", ".join(f"{r.title}={r.composite_score}" for r in ranked))
        return ranked
