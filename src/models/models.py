"""Data models and schemas for the recipe conversation assistant.

Defines Pydantic models for the pipeline's domain objects: intents and entities
produced by the extractor, the user profile and conflict results used by the
validator, recipes and their derived scoring metadata, conversation memory,
and the response handed back to the caller.

All models use Pydantic v2. Models that cross the caller boundary serialize
with camelCase aliases (followUpQuestions, cookingTime, imageUrl, ...) and
accept either spelling on input, so raw oracle JSON validates directly.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: strips strings, serializes camelCase, accepts snake_case too."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Extractor
# ============================================================================


class IntentType(str, Enum):
    RECIPE_REQUEST = "recipe_request"
    INGREDIENT_BASED_COOKING = "ingredient_based_cooking"
    NUTRITIONAL_ADVICE = "nutritional_advice"
    COOKING_TECHNIQUE_HELP = "cooking_technique_help"
    MEAL_PLANNING = "meal_planning"
    DIETARY_MODIFICATION = "dietary_modification"
    COOKING_TROUBLESHOOTING = "cooking_troubleshooting"


class EntityType(str, Enum):
    INGREDIENT = "ingredient"
    CUISINE = "cuisine"
    MEAL_TYPE = "meal_type"
    COOKING_METHOD = "cooking_method"
    DIETARY_RESTRICTION = "dietary_restriction"


class Utterance(BaseModel):
    """Raw user text for one turn. Created once, never mutated."""

    model_config = ConfigDict(frozen=True)

    text: str
    session_id: str
    timestamp: datetime = Field(default_factory=datetime.now)


class Entity(CamelModel):
    """Typed span of text extracted from an utterance."""

    type: EntityType
    value: Annotated[str, Field(min_length=1, description="Matched text, lowercased")]
    confidence: Annotated[float, Field(0.8, ge=0.0, le=1.0)]
    start: Annotated[int, Field(0, ge=0)]
    end: Annotated[int, Field(0, ge=0)]


class Intent(CamelModel):
    """Classified purpose of an utterance plus everything extracted alongside it.

    Confidence is always clamped into [0.1, 1.0], whatever the caller passes.
    """

    type: IntentType = IntentType.RECIPE_REQUEST
    confidence: float = 0.5
    entities: List[Entity] = Field(default_factory=list)
    recipe_count_preference: Annotated[Optional[int], Field(None, ge=1, le=7)]
    requirements: List[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        """Clamp confidence into [0.1, 1.0]."""
        return max(0.1, min(1.0, float(v)))

    def entities_of(self, entity_type: EntityType) -> List[str]:
        """Return entity values of one type, in match order, without duplicates."""
        values: List[str] = []
        for entity in self.entities:
            if entity.type == entity_type and entity.value not in values:
                values.append(entity.value)
        return values


# ============================================================================
# Profile & validation
# ============================================================================


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class CookingTimePreference(str, Enum):
    QUICK = "quick"
    MODERATE = "moderate"
    EXTENDED = "extended"


def _dedupe_lower(values: List[str]) -> List[str]:
    result: List[str] = []
    for value in values or []:
        normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        if normalized and normalized != "none" and normalized not in result:
            result.append(normalized)
    return result


class UserProfile(CamelModel):
    """Standing preferences of one user.

    Read by the pipeline, written only through explicit preference updates
    (see src.store.profile_store.update_profile).
    """

    dietary_restrictions: Annotated[
        List[str], Field(default_factory=list, description="Deduplicated, lowercased; 'none' is dropped")
    ]
    cuisine_preferences: Annotated[
        List[str], Field(default_factory=list, description="Ordered, first = most preferred")
    ]
    skill_level: SkillLevel = SkillLevel.INTERMEDIATE
    cooking_time: CookingTimePreference = CookingTimePreference.MODERATE
    health_goals: List[str] = Field(default_factory=list)

    @field_validator("dietary_restrictions", mode="before")
    @classmethod
    def normalize_restrictions(cls, v: List[str]) -> List[str]:
        """Lowercase, hyphenate ("gluten free" -> "gluten-free"), dedupe, drop the 'none' sentinel."""
        return _dedupe_lower(v)

    @field_validator("cuisine_preferences", mode="before")
    @classmethod
    def normalize_cuisines(cls, v: List[str]) -> List[str]:
        """Lowercase and dedupe while keeping preference order."""
        return _dedupe_lower(v)


class ConflictType(str, Enum):
    DIETARY = "dietary"
    CUISINE = "cuisine"
    INGREDIENT = "ingredient"
    NONE = "none"


class ConflictResult(CamelModel):
    """Outcome of checking a request against the user's profile.

    Dietary conflicts block generation; cuisine and skill conflicts are
    advisory and keep should_generate_recipe True.
    """

    is_valid: bool = True
    conflict_type: ConflictType = ConflictType.NONE
    conflicting_items: List[str] = Field(default_factory=list)
    suggestion: str = ""
    alternative_prompt: str = ""
    should_generate_recipe: bool = True
    restriction: Optional[str] = None
    alternatives: Annotated[List[str], Field(default_factory=list, max_length=3)]

    @model_validator(mode="after")
    def dietary_conflicts_block(self) -> "ConflictResult":
        """A dietary conflict can never allow generation."""
        if self.conflict_type == ConflictType.DIETARY and self.should_generate_recipe:
            raise ValueError("dietary conflicts must set should_generate_recipe=False")
        return self


# ============================================================================
# Recipes
# ============================================================================


class NutritionEstimate(CamelModel):
    """Per-serving nutrition, either from the oracle or estimated from ingredients."""

    calories: Annotated[int, Field(ge=0)]
    protein_g: Annotated[float, Field(0.0, ge=0.0)]
    carbs_g: Annotated[float, Field(0.0, ge=0.0)]
    fat_g: Annotated[float, Field(0.0, ge=0.0)]
    estimated: bool = True


Score = Annotated[int, Field(ge=1, le=10)]
MatchLabel = Literal["high", "medium"]


class SmartMetadata(CamelModel):
    """Derived scoring data attached to a recipe. Recomputed on every enhance()."""

    difficulty_score: Score
    time_score: Score
    skill_match: SkillLevel
    mood_match: MatchLabel = "medium"
    occasion_match: MatchLabel = "medium"
    learning_value: Score
    confidence_boost: Score
    emotional_appeal: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    variations: List[str] = Field(default_factory=list)
    troubleshooting: List[str] = Field(default_factory=list)


class Recipe(CamelModel):
    """Recipe drafted by the generation oracle and enriched by the enhancer.

    The enhancer attaches nutrition, smart_metadata, composite_score and an
    image_url on a copy; the drafted fields are never rewritten.
    """

    id: Annotated[str, Field(min_length=1)]
    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[str, Field("", max_length=2000)]
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    cooking_time: Annotated[str, Field("30 minutes", description="Free text, e.g. '25 minutes' or '1 hour'")]
    servings: Annotated[int, Field(4, ge=1, le=100)]
    difficulty: Optional[Literal["Easy", "Medium", "Hard"]] = None
    tags: List[str] = Field(default_factory=list)
    calories: Annotated[Optional[int], Field(None, ge=0)]
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None
    nutrition: Optional[NutritionEstimate] = None
    smart_metadata: Optional[SmartMetadata] = None
    composite_score: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v) -> str:
        return str(v)

    @field_validator("cooking_time", mode="before")
    @classmethod
    def coerce_cooking_time(cls, v) -> str:
        """Oracles sometimes answer a bare number of minutes."""
        if isinstance(v, (int, float)):
            return f"{int(v)} minutes"
        return v or "30 minutes"

    @field_validator("servings", mode="before")
    @classmethod
    def coerce_servings(cls, v) -> int:
        """Leading integer of answers like "4 servings" or "4-6"; unusable values fall back to 4."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return min(100, max(1, int(v)))
        match = re.search(r"\d+", str(v or ""))
        return min(100, max(1, int(match.group()))) if match else 4

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        label = str(v).strip().capitalize()
        return label if label in ("Easy", "Medium", "Hard") else None

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def flatten_items(cls, v) -> List[str]:
        """Accept plain strings or {amount, unit, name} objects."""
        items: List[str] = []
        for item in v or []:
            if isinstance(item, dict):
                parts = [str(item.get(key, "")).strip() for key in ("amount", "unit", "name")]
                text = " ".join(part for part in parts if part)
            else:
                text = str(item).strip()
            if text:
                items.append(text)
        return items

    @field_validator("tags", mode="before")
    @classmethod
    def lowercase_tags(cls, v) -> List[str]:
        return [str(tag).strip().lower() for tag in v or [] if str(tag).strip()]

    @field_validator("calories", mode="before")
    @classmethod
    def coerce_calories(cls, v) -> Optional[int]:
        if v is None or v == "":
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return None


# Cuisine tags tracked for variety across sequential generation calls
VARIETY_CUISINE_TAGS = (
    "italian", "mexican", "asian", "american", "indian", "mediterranean", "french", "thai", "chinese", "japanese",
)


class VarietyState(BaseModel):
    """Used ingredients/cuisines accumulated across one multi-recipe generation.

    Immutable: record() returns a new state, so each generation call sees
    exactly the recipes produced before it.
    """

    model_config = ConfigDict(frozen=True)

    used_ingredients: tuple[str, ...] = ()
    used_cuisines: tuple[str, ...] = ()

    def record(self, recipe: Recipe) -> "VarietyState":
        """Return a new state that also covers this recipe's main ingredient and cuisine."""
        ingredients = self.used_ingredients
        if recipe.ingredients:
            words = recipe.ingredients[0].lower().split()
            main = words[-1] if words else ""
            if main and main not in ingredients:
                ingredients = ingredients + (main,)

        cuisines = self.used_cuisines
        cuisine = next((tag for tag in recipe.tags if tag in VARIETY_CUISINE_TAGS), None)
        if cuisine and cuisine not in cuisines:
            cuisines = cuisines + (cuisine,)

        return VarietyState(used_ingredients=ingredients, used_cuisines=cuisines)

    @property
    def is_empty(self) -> bool:
        return not self.used_ingredients and not self.used_cuisines


# ============================================================================
# Conversation memory
# ============================================================================


PreferenceType = Literal["dietary", "cuisine", "ingredient", "skill", "time"]


class Preference(CamelModel):
    """One learned preference, upserted by (type, value)."""

    type: PreferenceType
    value: Annotated[str, Field(min_length=1)]
    strength: Annotated[float, Field(0.5, ge=0.0, le=1.0)]
    last_updated: datetime = Field(default_factory=datetime.now)


class ConversationTurn(CamelModel):
    user_message: str
    assistant_message: str = ""
    intent: IntentType = IntentType.RECIPE_REQUEST
    recipes: List[str] = Field(default_factory=list, description="Titles of recipes shown")
    timestamp: datetime = Field(default_factory=datetime.now)


class ConversationSummary(CamelModel):
    created_at: datetime = Field(default_factory=datetime.now)
    key_topics: List[str] = Field(default_factory=list)
    learned_preferences: List[str] = Field(default_factory=list)
    recipe_interests: List[str] = Field(default_factory=list)


class ShortTermMemory(CamelModel):
    """Session-scoped state, discarded at session end."""

    turns: List[ConversationTurn] = Field(default_factory=list)
    recent_ingredients: List[str] = Field(default_factory=list)
    shown_ingredients: List[str] = Field(default_factory=list)
    recent_recipes: List[str] = Field(default_factory=list)
    techniques_seen: List[str] = Field(default_factory=list)


class LongTermMemory(CamelModel):
    """Cross-session state. Append/merge only."""

    dietary_restrictions: List[str] = Field(default_factory=list)
    preferences: List[Preference] = Field(default_factory=list)
    skill_level: Optional[SkillLevel] = None
    preferred_cuisines: List[str] = Field(default_factory=list)
    conversation_summaries: List[ConversationSummary] = Field(default_factory=list)
    total_turns: Annotated[int, Field(0, ge=0)]

    def preferences_of(self, preference_type: str) -> List[Preference]:
        return [p for p in self.preferences if p.type == preference_type]

    def favorite_ingredients(self) -> List[str]:
        return [p.value for p in self.preferences_of("ingredient") if p.strength > 0.5]

    def disliked_ingredients(self) -> List[str]:
        return [p.value for p in self.preferences_of("ingredient") if p.strength < 0.5]


class ConversationMemory(CamelModel):
    user_id: str
    session_id: str
    short_term: ShortTermMemory = Field(default_factory=ShortTermMemory)
    long_term: LongTermMemory = Field(default_factory=LongTermMemory)


# ============================================================================
# Per-turn context & response
# ============================================================================


EmotionalState = Literal["frustrated", "overwhelmed", "excited", "curious", "confident", "neutral"]
Mood = Literal["comfort", "adventure", "healthy", "indulgent", "experimental"]
Occasion = Literal["weekday", "weekend", "special"]
Urgency = Literal["low", "medium", "high"]


class ConversationContext(BaseModel):
    """Everything the extractor and scorer may look at besides the utterance itself.

    Built once per turn by the pipeline and passed explicitly; no stage reads
    global state.
    """

    profile: UserProfile = Field(default_factory=UserProfile)
    memory: Optional[ConversationMemory] = None
    now: datetime = Field(default_factory=datetime.now)
    time_of_day: Literal["morning", "afternoon", "evening", "night"] = "afternoon"
    season: Literal["spring", "summer", "autumn", "winter"] = "spring"
    emotional_state: EmotionalState = "neutral"
    mood: Optional[Mood] = None
    occasion: Optional[Occasion] = None
    urgency: Urgency = "medium"
    serving_size: Optional[int] = None
    learning_goal: bool = False
    interests: List[str] = Field(default_factory=list)

    @property
    def recent_ingredients(self) -> List[str]:
        return self.memory.short_term.recent_ingredients if self.memory else []

    @property
    def techniques_seen(self) -> List[str]:
        return self.memory.short_term.techniques_seen if self.memory else []


class ConversationResponse(CamelModel):
    """Final answer for one turn."""

    message: Annotated[str, Field(min_length=1)]
    recipes: List[Recipe] = Field(default_factory=list)
    follow_up_questions: Annotated[List[str], Field(default_factory=list, max_length=3)]
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    intent: Optional[IntentType] = None
    conflict: Optional[ConflictResult] = None

    def to_payload(self) -> dict:
        """Serialize the caller-facing contract: message, recipes, followUpQuestions, confidence."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include={"message", "recipes", "follow_up_questions", "confidence"},
        )
