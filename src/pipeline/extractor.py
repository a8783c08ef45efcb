"""Entity & intent extraction from raw user utterances.

Pattern-matches an utterance against the tables in src.pipeline.patterns to
produce an Intent: a label, a confidence score, typed entities and the
free-text requirements later used for prompt construction. Also derives the
per-turn signals (urgency, emotional state, mood, occasion) the pipeline
puts into the ConversationContext.

Classification never fails: text that matches nothing is a low-confidence
recipe_request.
"""

from datetime import datetime
from typing import Callable, Optional

from src.models.models import ConversationContext, Entity, EntityType, Intent, IntentType
from src.pipeline import patterns
from src.utils.logger import logger


def _in_meal_window(hour: int) -> bool:
    return any(start <= hour <= end for start, end in patterns.MEAL_WINDOWS)


def time_of_day(now: datetime) -> str:
    if now.hour < 11:
        return "morning"
    if now.hour < 17:
        return "afternoon"
    if now.hour < 21:
        return "evening"
    return "night"


def season(now: datetime) -> str:
    if now.month in (3, 4, 5):
        return "spring"
    if now.month in (6, 7, 8):
        return "summer"
    if now.month in (9, 10, 11):
        return "autumn"
    return "winter"


def _first_label(table, text: str, default=None):
    for label, pattern in table:
        if pattern.search(text):
            return label
    return default


def detect_emotional_state(text: str) -> str:
    """Return frustrated, overwhelmed, excited, curious, confident or neutral."""
    return _first_label(patterns.EMOTIONAL_STATE_PATTERNS, text, "neutral")


def detect_mood(text: str) -> Optional[str]:
    return _first_label(patterns.MOOD_PATTERNS, text)


def detect_occasion(text: str) -> Optional[str]:
    return _first_label(patterns.OCCASION_PATTERNS, text)


def detect_meal_context(text: str, now: datetime) -> dict:
    """Urgency, requested serving size, time of day and season for one utterance.

    Args:
        text: Raw utterance.
        now: Local time of the turn.

    Returns:
        Dict with urgency ("low" | "medium" | "high"), serving_size (int or None),
        time_of_day and season.
    """
    if patterns.URGENCY_HIGH.search(text):
        urgency = "high"
    elif patterns.URGENCY_LOW.search(text):
        urgency = "low"
    else:
        urgency = "medium"

    serving_match = patterns.SERVING_SIZE.search(text)
    serving_size = int(serving_match.group(1)) if serving_match else None

    return {
        "urgency": urgency,
        "serving_size": serving_size,
        "time_of_day": time_of_day(now),
        "season": season(now),
    }


def detects_learning_goal(text: str) -> bool:
    return patterns.LEARNING_GOAL.search(text) is not None


class IntentExtractor:
    """Classifies utterances into intents and extracts typed entities.

    Args:
        clock: Callable returning the current local time. Injected so the
            meal-window boost is testable.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock

    def extract_entities(self, text: str) -> list[Entity]:
        """Run every entity pattern over text. Entities are not exclusive across types."""
        entities: list[Entity] = []
        for entity_type, pattern in patterns.ENTITY_PATTERNS.items():
            for match in pattern.finditer(text):
                entities.append(
                    Entity(
                        type=entity_type,
                        value=match.group(0).lower(),
                        confidence=patterns.ENTITY_CONFIDENCE,
                        start=match.start(),
                        end=match.end(),
                    )
                )
        return entities

    def extract_requirements(self, text: str, entities: list[Entity]) -> list[str]:
        """Keyword requirements first (table order), then one per distinct entity."""
        requirements: list[str] = []
        for pattern, requirement in patterns.REQUIREMENT_PATTERNS:
            if pattern.search(text) and requirement not in requirements:
                requirements.append(requirement)
        for entity in entities:
            requirement = patterns.ENTITY_REQUIREMENT_TEMPLATES[entity.type].format(value=entity.value)
            if requirement not in requirements:
                requirements.append(requirement)
        return requirements

    def score_intents(self, text: str, context: Optional[ConversationContext] = None) -> dict[IntentType, float]:
        """Pattern-match counts per intent plus context boosts."""
        scores: dict[IntentType, float] = {
            intent: float(patterns.count_matches(intent_patterns, text))
            for intent, intent_patterns in patterns.INTENT_PATTERNS.items()
        }

        now = context.now if context else self.clock()
        if _in_meal_window(now.hour):
            scores[IntentType.RECIPE_REQUEST] += 0.5

        if context is None:
            return scores

        if context.recent_ingredients:
            scores[IntentType.INGREDIENT_BASED_COOKING] += 1
        if context.profile.health_goals and patterns.HEALTH_KEYWORDS.search(text):
            scores[IntentType.NUTRITIONAL_ADVICE] += 1
        if context.profile.dietary_restrictions and patterns.MODIFICATION_KEYWORDS.search(text):
            scores[IntentType.DIETARY_MODIFICATION] += 1

        return scores

    def _confidence(self, text: str, intent_type: IntentType, entity_count: int) -> float:
        confidence = 0.5
        confidence += 0.1 * patterns.count_matches(patterns.INTENT_PATTERNS[intent_type], text)
        confidence += 0.05 * entity_count
        if intent_type == IntentType.RECIPE_REQUEST and patterns.RECIPE_KEYWORDS.search(text):
            confidence += 0.2
        if len(text.strip()) < 10:
            confidence -= 0.2
        return max(0.1, min(1.0, confidence))

    def classify(self, utterance: str, context: Optional[ConversationContext] = None) -> Intent:
        """Classify an utterance into an Intent.

        The highest-scoring label wins; a label only replaces the current best
        when it scores strictly higher, so ties (and all-zero scores) resolve
        to recipe_request, which is evaluated first.

        Args:
            utterance: Raw user text.
            context: Optional per-turn context used for score boosts.

        Returns:
            Intent with type, clamped confidence, entities and requirements.
            recipe_count_preference is left unset (see RecipeCountEstimator).
        """
        text = utterance or ""
        scores = self.score_intents(text, context)

        best_intent = IntentType.RECIPE_REQUEST
        best_score = 0.0
        for intent_type, score in scores.items():
            if score > best_score:
                best_intent = intent_type
                best_score = score

        entities = self.extract_entities(text)
        requirements = self.extract_requirements(text, entities)
        confidence = self._confidence(text, best_intent, len(entities))

        logger.debug(
            f"Classified intent={best_intent.value} score={best_score} confidence={confidence:.2f} "
            f"entities={len(entities)}"
        )
        return Intent(type=best_intent, confidence=confidence, entities=entities, requirements=requirements)


def meets_confidence_threshold(intent: Intent) -> bool:
    """True if the intent is confident enough to act on without asking for clarification."""
    return intent.confidence >= patterns.INTENT_CONFIDENCE_THRESHOLDS[intent.type]


def has_entity(intent: Intent, entity_type: EntityType) -> bool:
    return any(entity.type == entity_type for entity in intent.entities)
