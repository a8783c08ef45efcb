"""Conversation pipeline entry point.

One user message in, one response payload out:

    extractor → validator → count estimator → oracle → enhancer → composer

Memory is read before and written after every turn. Every component is
injected through the constructor (with a default), so tests swap in fakes
without patching module globals.
"""

from datetime import datetime
from typing import Optional

from src.models.models import (
    ConflictResult,
    ConversationContext,
    ConversationMemory,
    ConversationResponse,
    ConversationTurn,
    EntityType,
    Intent,
    Recipe,
    UserProfile,
    Utterance,
    VarietyState,
)
from src.oracle.gemini import GeminiOracle, is_fallback_recipe
from src.pipeline.composer import ResponseComposer
from src.pipeline.enhancer import RecipeEnhancer, techniques_in
from src.pipeline.estimator import RecipeCountEstimator
from src.pipeline.extractor import (
    IntentExtractor,
    detect_emotional_state,
    detect_meal_context,
    detect_mood,
    detect_occasion,
    detects_learning_goal,
)
from src.pipeline.memory import ConversationMemoryManager, learn_preferences
from src.pipeline.validator import ProfileValidator
from src.store.profile_store import ProfileStore, create_profile_store, load_profile
from src.utils.errors import safe_execute_async
from src.utils.logger import turn_logger


def build_context(
    utterance: str,
    profile: UserProfile,
    memory: Optional[ConversationMemory],
    now: datetime,
) -> ConversationContext:
    """Per-turn context from the utterance, the profile and what memory knows about the user."""
    text = utterance or ""
    meal = detect_meal_context(text, now)

    interests: list[str] = []
    if memory is not None:
        for interest in memory.long_term.favorite_ingredients() + memory.long_term.preferred_cuisines:
            if interest not in interests:
                interests.append(interest)

    return ConversationContext(
        profile=profile,
        memory=memory,
        now=now,
        time_of_day=meal["time_of_day"],
        season=meal["season"],
        emotional_state=detect_emotional_state(text),
        mood=detect_mood(text),
        occasion=detect_occasion(text),
        urgency=meal["urgency"],
        serving_size=meal["serving_size"],
        learning_goal=detects_learning_goal(text),
        interests=interests,
    )


def seed_variety(memory: ConversationMemory, intent: Intent) -> VarietyState:
    """Variety state seeded with ingredients named or shown in earlier turns.

    Ingredients the user asks for in this turn are never put on the avoid list.
    """
    requested = set(intent.entities_of(EntityType.INGREDIENT))
    recent: list[str] = []
    for ingredient in memory.short_term.recent_ingredients + memory.short_term.shown_ingredients:
        if ingredient not in requested and ingredient not in recent:
            recent.append(ingredient)
    return VarietyState(used_ingredients=tuple(recent))


def main_ingredients(recipes: list[Recipe]) -> list[str]:
    """Main ingredient of each recipe, deduplicated in order."""
    shown = VarietyState()
    for recipe in recipes:
        shown = shown.record(recipe)
    return list(shown.used_ingredients)


class RecipeAssistant:
    """Conversational recipe recommender.

    Args:
        store: Profile store. Defaults to the configured backend.
        extractor: Intent/entity extractor (owns the clock).
        validator: Profile conflict validator.
        estimator: Recipe-count estimator.
        oracle: Recipe/image generation oracle.
        enhancer: Recipe enhancer and ranker.
        memory: Conversation memory manager over the same store.
        composer: Response composer.
    """

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        extractor: Optional[IntentExtractor] = None,
        validator: Optional[ProfileValidator] = None,
        estimator: Optional[RecipeCountEstimator] = None,
        oracle: Optional[GeminiOracle] = None,
        enhancer: Optional[RecipeEnhancer] = None,
        memory: Optional[ConversationMemoryManager] = None,
        composer: Optional[ResponseComposer] = None,
    ) -> None:
        self.store = store or create_profile_store()
        self.extractor = extractor or IntentExtractor()
        self.validator = validator or ProfileValidator()
        self.estimator = estimator or RecipeCountEstimator()
        self.oracle = oracle or GeminiOracle()
        self.enhancer = enhancer or RecipeEnhancer()
        self.memory = memory or ConversationMemoryManager(self.store)
        self.composer = composer or ResponseComposer()

    async def process_message(self, utterance: str, user_id: str, session_id: str) -> dict:
        """Handle one user message.

        Args:
            utterance: Raw user text.
            user_id: User whose profile and long-term memory apply.
            session_id: Conversation session for short-term memory.

        Returns:
            Dict with message, recipes, followUpQuestions and confidence
            (camelCase keys throughout). Never raises: unexpected failures
            produce the apology response.
        """
        log = turn_logger(session_id, user_id)
        try:
            message = Utterance(text=utterance or "", session_id=session_id)
            log.info(f"Processing message ({len(message.text)} chars)")
            response = await self._respond(message, user_id, log)
        except Exception as e:
            log.error(f"✗ Failed to process message: {e}", exc_info=True)
            response = self.composer.error_response()
        return response.to_payload()

    async def _respond(self, message: Utterance, user_id: str, log) -> ConversationResponse:
        utterance, session_id = message.text, message.session_id
        memory = await self.memory.read(user_id, session_id)
        profile = await safe_execute_async(
            load_profile(self.store, user_id),
            f"Load profile for {user_id}",
            log_level="warning",
        )
        profile = profile or UserProfile()

        context = build_context(utterance, profile, memory, self.extractor.clock())
        intent = self.extractor.classify(utterance, context)
        log.debug(f"✓ Intent: {intent.type.value} ({intent.confidence:.2f})")

        conflict = self.validator.validate(utterance, profile)
        if not conflict.should_generate_recipe:
            response = self.composer.compose(intent, [], conflict, context)
            await self._record_turn(memory, utterance, intent, [], response, context)
            log.info(f"✗ Request blocked by {conflict.restriction} restriction")
            return response

        count = self.estimator.estimate_count(utterance, intent, context)
        intent = intent.model_copy(update={"recipe_count_preference": count})

        meal_types = intent.entities_of(EntityType.MEAL_TYPE)
        recipes = await self.oracle.generate(
            profile,
            count,
            request=utterance,
            requirements=intent.requirements,
            variety=seed_variety(memory, intent),
            meal_type=meal_types[0] if meal_types else None,
        )
        used_fallback = bool(recipes) and all(is_fallback_recipe(r) for r in recipes)
        recipes = await self.oracle.attach_images(recipes)
        log.info(f"✓ {len(recipes)} recipe(s) drafted (requested {count}, fallback={used_fallback})")

        ranked = self.enhancer.rank(recipes, context)
        response = self.composer.compose(intent, ranked, self._advisory(conflict), context, used_fallback)
        await self._record_turn(memory, utterance, intent, ranked, response, context)
        return response

    @staticmethod
    def _advisory(conflict: ConflictResult) -> Optional[ConflictResult]:
        return None if conflict.is_valid else conflict

    async def _record_turn(
        self,
        memory: ConversationMemory,
        utterance: str,
        intent: Intent,
        recipes: list[Recipe],
        response: ConversationResponse,
        context: ConversationContext,
    ) -> None:
        techniques: list[str] = []
        for recipe in recipes:
            for technique in techniques_in(recipe):
                if technique not in techniques:
                    techniques.append(technique)

        turn = ConversationTurn(
            user_message=utterance,
            assistant_message=response.message,
            intent=intent.type,
            recipes=[recipe.title for recipe in recipes],
            timestamp=context.now,
        )
        await self.memory.write(
            memory,
            turn,
            ingredients=intent.entities_of(EntityType.INGREDIENT),
            techniques=techniques,
            learned=learn_preferences(utterance, intent),
            shown_ingredients=main_ingredients(recipes),
        )
