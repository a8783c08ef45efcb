"""Unit tests for nutrition estimation."""

import pytest

from conftest import make_recipe
from src.pipeline.nutrition import DEFAULT_MACROS, INGREDIENT_MACROS, estimate_nutrition, macros_for


class TestMacrosFor:
    """Test ingredient-line lookup."""

    @pytest.mark.parametrize(
        "line,key",
        [
            ("2 chicken breasts", "chicken"),
            ("Extra virgin olive oil", "olive oil"),
            ("4 boiled eggs", "egg"),
            ("1 cup brown rice", "rice"),
            ("baby spinach", "spinach"),
        ],
    )
    def test_known_ingredients(self, line, key):
        """Test that the first contained table key wins, case-insensitively."""
        assert macros_for(line) == INGREDIENT_MACROS[key]

    def test_unknown_ingredient_uses_default(self):
        """Test the flat default for unmatched lines."""
        assert macros_for("a pinch of saffron") == DEFAULT_MACROS


class TestEstimateNutrition:
    """Test per-serving estimates."""

    def test_estimate_divides_by_servings(self):
        """Test summed macros divided by servings, rounded."""
        recipe = make_recipe(ingredients=["2 chicken breasts", "1 cup rice", "mystery spice"], servings=2, calories=None)
        nutrition = estimate_nutrition(recipe)

        assert nutrition.calories == 690
        assert nutrition.protein_g == pytest.approx(69.5)
        assert nutrition.carbs_g == pytest.approx(77.5)
        assert nutrition.fat_g == pytest.approx(9.0)
        assert nutrition.estimated is True

    def test_oracle_calories_take_precedence(self):
        """Test that reported calories are kept and flagged as not estimated."""
        nutrition = estimate_nutrition(make_recipe(calories=320))

        assert nutrition.calories == 320
        assert nutrition.estimated is False
        assert nutrition.protein_g > 0

    def test_no_ingredients(self):
        """Test that an empty ingredient list estimates zero."""
        nutrition = estimate_nutrition(make_recipe(ingredients=[], calories=None))

        assert nutrition.calories == 0
        assert nutrition.estimated is True
