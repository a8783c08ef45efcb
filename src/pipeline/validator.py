"""Profile conflict validation.

Checks a request against the user's standing profile before anything is
generated. Three checks run in priority order and the first that fires wins:

1. Dietary: a forbidden ingredient for an active restriction. Hard block,
   generation must not proceed; alternatives are proposed instead.
2. Cuisine: a cuisine outside the user's preferred list. Advisory only.
3. Skill: a technique or ingredient too demanding for a beginner or
   intermediate cook. Advisory only.

The asymmetry is intentional: dietary conflicts are about safety, the others
about preference.
"""

import re
from typing import Optional

from src.models.models import ConflictResult, ConflictType, SkillLevel, UserProfile
from src.pipeline.patterns import contains_keyword, contains_keyword_prefix, remove_phrases
from src.utils.logger import logger

_LOW_CARB = ["rice", "pasta", "bread", "potatoes", "sugar", "honey", "maple syrup"]

DIETARY_CONFLICTS: dict[str, list[str]] = {
    "vegan": [
        "chicken", "beef", "pork", "lamb", "fish", "shrimp", "salmon", "tuna",
        "eggs", "milk", "cheese", "yogurt", "butter", "cream", "honey", "gelatin",
    ],
    "vegetarian": ["chicken", "beef", "pork", "lamb", "fish", "shrimp", "salmon", "tuna"],
    "gluten-free": ["wheat", "barley", "rye", "bread", "pasta", "flour", "soy sauce", "beer"],
    "dairy-free": ["milk", "cheese", "yogurt", "butter", "cream", "ice cream", "sour cream"],
    "keto": _LOW_CARB,
    "low-carb": _LOW_CARB,
    "paleo": ["grains", "legumes", "dairy", "processed foods", "refined sugar"],
}

# Phrases that start with a forbidden keyword without containing the ingredient
DIETARY_EXEMPTIONS = [
    "peanut butter", "almond butter", "cashew butter", "cocoa butter", "butternut",
    "coconut milk", "almond milk", "oat milk", "soy milk", "coconut cream", "cream of tartar",
    "creamy", "honeydew", "fishing", "flourless", "cauliflower rice",
]

_MEAT_ALTERNATIVES = {
    "chicken": ["tofu", "tempeh", "seitan", "chickpeas", "lentils", "mushrooms"],
    "beef": ["portobello mushrooms", "jackfruit", "lentils", "black beans", "quinoa"],
    "fish": ["seaweed", "algae", "mushrooms", "tofu", "tempeh"],
}
_DAIRY_ALTERNATIVES = {
    "milk": ["almond milk", "soy milk", "oat milk", "coconut milk", "cashew milk"],
    "cheese": ["nutritional yeast", "cashew cheese", "tofu ricotta", "dairy-free cheese alternatives"],
}

DIETARY_ALTERNATIVES: dict[str, dict[str, list[str]]] = {
    "vegan": {
        **_MEAT_ALTERNATIVES,
        "eggs": ["flax seeds", "chia seeds", "banana", "applesauce", "silken tofu"],
        **_DAIRY_ALTERNATIVES,
    },
    "vegetarian": dict(_MEAT_ALTERNATIVES),
    "gluten-free": {
        "wheat": ["almond flour", "coconut flour", "rice flour", "quinoa flour", "tapioca flour"],
        "bread": ["gluten-free bread", "lettuce wraps", "collard green wraps", "coconut wraps"],
        "pasta": ["zucchini noodles", "spaghetti squash", "rice noodles", "quinoa pasta"],
        "soy sauce": ["tamari", "coconut aminos", "liquid aminos"],
    },
    "dairy-free": {
        **_DAIRY_ALTERNATIVES,
        "butter": ["coconut oil", "olive oil", "avocado oil", "dairy-free butter alternatives"],
        "cream": ["coconut cream", "cashew cream", "dairy-free cream alternatives"],
    },
}

CUISINE_KEYWORDS: dict[str, list[str]] = {
    "italian": ["pasta", "pizza", "risotto", "carbonara", "bolognese", "italian"],
    "asian": ["sushi", "stir fry", "curry", "noodles", "asian", "chinese", "japanese", "thai", "vietnamese"],
    "mexican": ["tacos", "enchiladas", "quesadilla", "mexican", "salsa", "guacamole"],
    "indian": ["curry", "naan", "biryani", "indian", "masala", "dal"],
    "mediterranean": ["hummus", "falafel", "mediterranean", "greek", "lebanese"],
    "french": ["ratatouille", "coq au vin", "french", "béarnaise", "hollandaise"],
    "american": ["burger", "hot dog", "american", "bbq", "barbecue", "comfort food"],
}

COMPLEX_ITEMS: dict[SkillLevel, list[str]] = {
    SkillLevel.BEGINNER: ["sous vide", "confit", "foie gras", "truffle", "quail", "duck", "lobster"],
    SkillLevel.INTERMEDIATE: ["sous vide", "confit", "foie gras", "truffle"],
}

MAX_PROMPT_ALTERNATIVES = 3
MAX_SUGGESTED_ALTERNATIVES = 5


def _join(items: list[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return f"{', '.join(items[:-1])} or {items[-1]}"


class ProfileValidator:
    """Checks requests against a UserProfile and proposes alternatives."""

    def find_dietary_conflicts(self, text: str, profile: UserProfile) -> list[tuple[str, str]]:
        """All (restriction, forbidden item) pairs found in text, in profile order."""
        text = remove_phrases(text, DIETARY_EXEMPTIONS)
        conflicts: list[tuple[str, str]] = []
        for restriction in profile.dietary_restrictions:
            for item in DIETARY_CONFLICTS.get(restriction, []):
                if contains_keyword_prefix(text, item):
                    conflicts.append((restriction, item))
        return conflicts

    def detect_cuisine(self, text: str) -> Optional[str]:
        for cuisine, keywords in CUISINE_KEYWORDS.items():
            if any(contains_keyword(text, keyword) for keyword in keywords):
                return cuisine
        return None

    @staticmethod
    def _cuisine_is_preferred(cuisine: str, profile: UserProfile) -> bool:
        # A preference for "thai" also covers the broader "asian" family
        keywords = CUISINE_KEYWORDS.get(cuisine, [])
        return any(pref == cuisine or pref in keywords for pref in profile.cuisine_preferences)

    def alternatives_for(self, restriction: str, item: str) -> list[str]:
        return list(DIETARY_ALTERNATIVES.get(restriction, {}).get(item, []))

    def _dietary_result(self, conflicts: list[tuple[str, str]]) -> ConflictResult:
        restriction, item = conflicts[0]
        alternatives = self.alternatives_for(restriction, item)[:MAX_PROMPT_ALTERNATIVES]
        items: list[str] = []
        for _, conflicting in conflicts:
            if conflicting not in items:
                items.append(conflicting)

        if alternatives:
            alternative_prompt = (
                f"Would you like me to suggest a delicious {restriction} alternative using "
                f"{', '.join(alternatives)} instead?"
            )
        else:
            alternative_prompt = f"Would you like me to suggest a delicious {restriction} alternative instead?"

        return ConflictResult(
            is_valid=False,
            conflict_type=ConflictType.DIETARY,
            conflicting_items=items,
            suggestion=(
                f"I notice you've selected {restriction} as a dietary preference, but you're asking for {item}."
            ),
            alternative_prompt=alternative_prompt,
            should_generate_recipe=False,
            restriction=restriction,
            alternatives=alternatives,
        )

    def _cuisine_result(self, cuisine: str, profile: UserProfile) -> ConflictResult:
        preferred = profile.cuisine_preferences[:3]
        return ConflictResult(
            is_valid=False,
            conflict_type=ConflictType.CUISINE,
            conflicting_items=[cuisine],
            suggestion=(
                f"You're asking for {cuisine} food, while your saved preferences lean towards "
                f"{_join(preferred)}."
            ),
            alternative_prompt=(
                f"I'll go ahead with {cuisine}. Would you also like a {preferred[0]} take on it?"
            ),
            should_generate_recipe=True,
        )

    def _skill_result(self, item: str, skill: SkillLevel) -> ConflictResult:
        return ConflictResult(
            is_valid=False,
            conflict_type=ConflictType.INGREDIENT,
            conflicting_items=[item],
            suggestion=f"Heads up: {item} can be challenging at the {skill.value} level.",
            alternative_prompt=f"Would you like a simpler version without {item}, or extra step-by-step guidance?",
            should_generate_recipe=True,
        )

    def validate(self, utterance: str, profile: UserProfile) -> ConflictResult:
        """Check a request against the profile.

        Args:
            utterance: Raw user text.
            profile: The user's standing profile.

        Returns:
            ConflictResult. Only a dietary conflict sets should_generate_recipe=False.
        """
        text = utterance or ""

        conflicts = self.find_dietary_conflicts(text, profile)
        if conflicts:
            result = self._dietary_result(conflicts)
            logger.info(f"✗ Dietary conflict: {result.restriction} vs {result.conflicting_items}")
            return result

        if profile.cuisine_preferences:
            cuisine = self.detect_cuisine(text)
            if cuisine and not self._cuisine_is_preferred(cuisine, profile):
                logger.info(f"Advisory cuisine conflict: {cuisine} not in {profile.cuisine_preferences}")
                return self._cuisine_result(cuisine, profile)

        for item in COMPLEX_ITEMS.get(profile.skill_level, []):
            if contains_keyword(text, item):
                logger.info(f"Advisory skill conflict: {item} for {profile.skill_level.value}")
                return self._skill_result(item, profile.skill_level)

        return ConflictResult()

    def suggest_alternatives(self, item: str, restrictions: list[str]) -> list[str]:
        """Alternatives for one item across all restrictions, deduplicated, at most five."""
        suggestions: list[str] = []
        for restriction in restrictions:
            for alternative in self.alternatives_for(restriction, item.lower()):
                if alternative not in suggestions:
                    suggestions.append(alternative)
        return suggestions[:MAX_SUGGESTED_ALTERNATIVES]

    def create_compliant_prompt(self, utterance: str, profile: UserProfile) -> str:
        """Rewrite forbidden items in the request to their first alternative.

        Items without a known alternative are left untouched; the request is
        still flagged by validate().
        """
        rewritten = utterance
        for restriction, item in self.find_dietary_conflicts(utterance, profile):
            alternatives = self.alternatives_for(restriction, item)
            if alternatives:
                rewritten = re.sub(rf"\b{re.escape(item)}\b", alternatives[0], rewritten, flags=re.IGNORECASE)
        return rewritten

    @staticmethod
    def conflict_message(result: ConflictResult) -> str:
        """User-facing text for a conflict ('' when there is none)."""
        if result.conflict_type == ConflictType.NONE:
            return ""
        return f"{result.suggestion} {result.alternative_prompt}".strip()
