"""Unit tests for prompt templates."""

from conftest import make_recipe
from src.models.models import SkillLevel, UserProfile, VarietyState
from src.prompts.prompts import get_image_prompt, get_recipe_prompt, get_variety_constraints


class TestVarietyConstraints:
    """Test the avoid-repeat hint."""

    def test_empty_state_has_no_constraints(self):
        """Test that nothing is emitted before any recipe was produced."""
        assert get_variety_constraints(VarietyState(), ["thai"]) == ""

    def test_avoid_ingredients_uses_last_three(self):
        """Test that only the three most recent main ingredients are named."""
        variety = VarietyState(used_ingredients=("chicken", "beef", "salmon", "tofu"))
        constraints = get_variety_constraints(variety, [])

        assert constraints == "- Avoid using these main ingredients: beef, salmon, tofu"

    def test_rotate_to_unused_preferred_cuisine(self):
        """Test that unused preferred cuisines are offered first."""
        variety = VarietyState(used_cuisines=("italian",))

        assert "Try a different cuisine from: thai" in get_variety_constraints(variety, ["italian", "thai"])
        assert "Try a different cuisine than: italian" in get_variety_constraints(variety, ["italian"])


class TestRecipePrompt:
    """Test the recipe-drafting prompt."""

    def test_prompt_includes_profile_and_request(self):
        """Test that the request, requirements and profile reach the prompt."""
        profile = UserProfile(
            dietary_restrictions=["vegan"], cuisine_preferences=["thai"], skill_level=SkillLevel.BEGINNER
        )
        prompt = get_recipe_prompt(profile, 1, "quick curry", requirements=["quick preparation"], meal_type="dinner")

        assert 'Generate 1 personalized recipes' in prompt
        assert '**USER\'S SPECIFIC REQUEST**: "quick curry"' in prompt
        assert "**REQUESTED RECIPE TYPE**: dinner" in prompt
        assert "**EXTRACTED REQUIREMENTS**: quick preparation" in prompt
        assert "**Dietary Restrictions**: vegan" in prompt
        assert "**Skill Level**: beginner" in prompt
        assert "VARIETY CONSTRAINTS" not in prompt

    def test_prompt_defaults(self):
        """Test placeholders for an empty request and profile."""
        prompt = get_recipe_prompt(UserProfile(), 3, "  ")

        assert '"General recipe recommendations"' in prompt
        assert "**REQUESTED RECIPE TYPE**: Any type" in prompt
        assert "**Cuisine Preferences**: Any" in prompt

    def test_prompt_carries_variety_section(self):
        """Test that recorded recipes produce an avoid-repeat section."""
        variety = VarietyState().record(make_recipe())
        prompt = get_recipe_prompt(UserProfile(), 1, "dinner", variety=variety)

        assert "**VARIETY CONSTRAINTS**" in prompt
        assert "Avoid using these main ingredients: chicken" in prompt
        assert "Try a different cuisine than: italian" in prompt


class TestImagePrompt:
    """Test the food-photography prompt."""

    def test_image_prompt(self):
        """Test title, plating style and the recipe's own image prompt."""
        recipe = make_recipe(imagePrompt="Overhead shot on a rustic table")
        prompt = get_image_prompt(recipe)

        assert prompt.startswith('Generate a professional food photography image of "Lemon Herb Chicken"')
        assert "Appropriate Italian plating style" in prompt
        assert prompt.endswith("Overhead shot on a rustic table")
