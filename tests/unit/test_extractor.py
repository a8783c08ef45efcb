"""Unit tests for intent classification and entity extraction."""

from datetime import datetime

import pytest

from conftest import LUNCH, MORNING, make_context
from src.models.models import (
    ConversationMemory,
    EntityType,
    Intent,
    IntentType,
    ShortTermMemory,
    UserProfile,
)
from src.pipeline.extractor import (
    IntentExtractor,
    detect_emotional_state,
    detect_meal_context,
    detect_mood,
    detect_occasion,
    detects_learning_goal,
    has_entity,
    meets_confidence_threshold,
    season,
    time_of_day,
)


@pytest.fixture
def extractor():
    return IntentExtractor(clock=lambda: MORNING)


class TestClassify:
    """Test intent classification."""

    def test_empty_utterance_is_low_confidence_recipe_request(self, extractor):
        """Test that empty text yields recipe_request with baseline minus short-text penalty."""
        intent = extractor.classify("")

        assert intent.type == IntentType.RECIPE_REQUEST
        assert intent.confidence == pytest.approx(0.3)
        assert intent.entities == []

    def test_unmatched_text_defaults_to_recipe_request(self, extractor):
        """Test that text matching no pattern falls back to recipe_request at 0.5."""
        intent = extractor.classify("hello there")

        assert intent.type == IntentType.RECIPE_REQUEST
        assert intent.confidence == pytest.approx(0.5)

    def test_ingredient_based_cooking(self, extractor):
        """Test that pantry-style requests classify as ingredient_based_cooking."""
        intent = extractor.classify("I have chicken and rice in my fridge, what can I use?")

        assert intent.type == IntentType.INGREDIENT_BASED_COOKING
        # 0.5 + 3 pattern hits * 0.1 + 2 entities * 0.05
        assert intent.confidence == pytest.approx(0.9)
        assert intent.entities_of(EntityType.INGREDIENT) == ["chicken", "rice"]

    def test_ties_resolve_to_recipe_request(self, extractor):
        """Test that an equal score for another label keeps recipe_request."""
        text = "What can I make with chicken?"
        scores = extractor.score_intents(text)

        assert scores[IntentType.RECIPE_REQUEST] == scores[IntentType.INGREDIENT_BASED_COOKING] == 2
        assert extractor.classify(text).type == IntentType.RECIPE_REQUEST

    def test_recipe_keyword_raises_confidence(self, extractor):
        """Test that recipe keywords add to recipe_request confidence."""
        intent = extractor.classify("Give me a pasta recipe")

        assert intent.type == IntentType.RECIPE_REQUEST
        # 0.5 + 2 hits * 0.1 + 1 entity * 0.05 + 0.2 recipe keyword
        assert intent.confidence == pytest.approx(0.95)

    def test_confidence_is_clamped(self, extractor):
        """Test that many hits never push confidence above 1.0."""
        intent = extractor.classify(
            "What can I cook? Show me a recipe for chicken, rice, garlic, onion, tomato and cheese, I want to make a dish"
        )
        assert intent.confidence == 1.0

    def test_classify_uses_context_clock(self, extractor):
        """Test that the context's time is used for the meal-window boost."""
        scores = extractor.score_intents("hello there", make_context(now=LUNCH))
        assert scores[IntentType.RECIPE_REQUEST] == 0.5


class TestContextBoosts:
    """Test score adjustments from time, memory and profile."""

    def test_meal_window_boost(self):
        """Test +0.5 to recipe_request inside a meal window only."""
        at_lunch = IntentExtractor(clock=lambda: LUNCH).score_intents("hello there")
        at_breakfast = IntentExtractor(clock=lambda: MORNING).score_intents("hello there")

        assert at_lunch[IntentType.RECIPE_REQUEST] == 0.5
        assert at_breakfast[IntentType.RECIPE_REQUEST] == 0

    @pytest.mark.parametrize("hour", [11, 13, 17, 20])
    def test_meal_window_edges_are_inclusive(self, hour):
        """Test both meal windows include their boundary hours."""
        extractor = IntentExtractor(clock=lambda: datetime(2026, 4, 15, hour, 30))
        assert extractor.score_intents("hello there")[IntentType.RECIPE_REQUEST] == 0.5

    def test_recent_ingredients_boost_ingredient_cooking(self, extractor):
        """Test +1 to ingredient_based_cooking when the session already named ingredients."""
        memory = ConversationMemory(
            user_id="u1",
            session_id="s1",
            short_term=ShortTermMemory(recent_ingredients=["chicken"]),
        )
        intent = extractor.classify("hello there", make_context(memory=memory))

        assert intent.type == IntentType.INGREDIENT_BASED_COOKING

    def test_health_goals_boost_nutritional_advice(self, extractor):
        """Test +1 to nutritional_advice with health goals and health keywords."""
        text = "is this healthy?"
        plain = extractor.score_intents(text, make_context())
        with_goals = extractor.score_intents(text, make_context(UserProfile(health_goals=["lose weight"])))

        assert with_goals[IntentType.NUTRITIONAL_ADVICE] == plain[IntentType.NUTRITIONAL_ADVICE] + 1

    def test_restrictions_boost_dietary_modification(self, extractor):
        """Test +1 to dietary_modification with restrictions and modification keywords."""
        text = "can you adapt this lasagna"
        plain = extractor.score_intents(text, make_context())
        restricted = extractor.score_intents(text, make_context(UserProfile(dietary_restrictions=["vegan"])))

        assert restricted[IntentType.DIETARY_MODIFICATION] == plain[IntentType.DIETARY_MODIFICATION] + 1


class TestEntities:
    """Test entity extraction."""

    def test_extracts_every_entity_type(self, extractor):
        """Test that entity types are not mutually exclusive."""
        text = "Quick vegan Thai curry with tofu for dinner, stir-fry style"
        entities = extractor.extract_entities(text)
        by_type = {entity.type: entity.value for entity in entities}

        assert by_type == {
            EntityType.INGREDIENT: "tofu",
            EntityType.CUISINE: "thai",
            EntityType.MEAL_TYPE: "dinner",
            EntityType.COOKING_METHOD: "stir-fry",
            EntityType.DIETARY_RESTRICTION: "vegan",
        }

    def test_entities_carry_offsets_and_fixed_confidence(self, extractor):
        """Test span offsets and the 0.8 pattern confidence."""
        text = "Some Italian food"
        (entity,) = extractor.extract_entities(text)

        assert text[entity.start:entity.end].lower() == entity.value == "italian"
        assert entity.confidence == 0.8

    def test_accented_cooking_method(self, extractor):
        """Test that accented technique names are matched."""
        entities = extractor.extract_entities("how do I sauté mushrooms")
        assert [e.value for e in entities if e.type == EntityType.COOKING_METHOD] == ["sauté"]

    def test_has_entity(self, extractor):
        """Test has_entity helper."""
        intent = extractor.classify("mexican lunch ideas")
        assert has_entity(intent, EntityType.CUISINE)
        assert has_entity(intent, EntityType.MEAL_TYPE)
        assert not has_entity(intent, EntityType.INGREDIENT)


class TestRequirements:
    """Test free-text requirement extraction."""

    def test_keyword_requirements_then_entity_requirements(self, extractor):
        """Test keyword requirements come first, in table order, then one per entity."""
        intent = extractor.classify("quick healthy pasta")
        assert intent.requirements == ["quick preparation", "healthy options", "using pasta"]

    def test_requirements_are_not_duplicated(self, extractor):
        """Test that repeated keywords add one requirement."""
        requirements = extractor.extract_requirements("quick quick fast", [])
        assert requirements == ["quick preparation"]


class TestTurnSignals:
    """Test per-turn context signals."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("I'm frustrated, this is hard", "frustrated"),
            ("too much going on, I'm confused", "overwhelmed"),
            ("I'm so excited to cook tonight", "excited"),
            ("how long do I roast it", "curious"),
            ("pasta please", "neutral"),
        ],
    )
    def test_emotional_state(self, text, expected):
        """Test emotional state detection, first match wins."""
        assert detect_emotional_state(text) == expected

    def test_mood_and_occasion(self):
        """Test mood and occasion detection."""
        assert detect_mood("something cozy and warm") == "comfort"
        assert detect_mood("pasta please") is None
        assert detect_occasion("dinner party on saturday") == "special"
        assert detect_occasion("busy weeknight dinner") == "weekday"

    def test_meal_context(self):
        """Test urgency, serving size, time of day and season."""
        meal = detect_meal_context("quick dinner for 4 people", LUNCH)

        assert meal == {"urgency": "high", "serving_size": 4, "time_of_day": "afternoon", "season": "spring"}
        assert detect_meal_context("slow weekend cooking", LUNCH)["urgency"] == "low"
        assert detect_meal_context("dinner", LUNCH)["urgency"] == "medium"

    @pytest.mark.parametrize("hour,expected", [(9, "morning"), (12, "afternoon"), (18, "evening"), (22, "night")])
    def test_time_of_day(self, hour, expected):
        """Test time-of-day buckets."""
        assert time_of_day(datetime(2026, 4, 15, hour)) == expected

    @pytest.mark.parametrize("month,expected", [(1, "winter"), (4, "spring"), (7, "summer"), (10, "autumn")])
    def test_season(self, month, expected):
        """Test season buckets."""
        assert season(datetime(2026, month, 15)) == expected

    def test_learning_goal(self):
        """Test learning-goal detection."""
        assert detects_learning_goal("I want to learn to braise")
        assert not detects_learning_goal("just feed me")


class TestConfidenceThreshold:
    """Test per-intent confidence thresholds."""

    def test_thresholds(self):
        """Test acting thresholds per intent type."""
        assert meets_confidence_threshold(Intent(type=IntentType.RECIPE_REQUEST, confidence=0.6))
        assert not meets_confidence_threshold(Intent(type=IntentType.RECIPE_REQUEST, confidence=0.59))
        assert not meets_confidence_threshold(Intent(type=IntentType.NUTRITIONAL_ADVICE, confidence=0.7))
