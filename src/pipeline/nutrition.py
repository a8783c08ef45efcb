"""Rough per-serving nutrition estimates from an ingredient list.

Each ingredient line is matched against a small table of typical per-portion
macros (one portion as used in a family-size recipe). Lines that match nothing
add a flat default, so an unknown ingredient never fails the estimate.
"""

from typing import NamedTuple

from src.models.models import NutritionEstimate, Recipe


class Macros(NamedTuple):
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


# Longer keys first where one contains another ("olive oil" before "oil")
INGREDIENT_MACROS: dict[str, Macros] = {
    "chicken": Macros(660, 124, 0, 14),
    "beef": Macros(1000, 104, 0, 64),
    "pork": Macros(960, 108, 0, 56),
    "salmon": Macros(832, 88, 0, 48),
    "fish": Macros(420, 84, 0, 6),
    "shrimp": Macros(400, 96, 1, 2),
    "tofu": Macros(300, 32, 8, 18),
    "egg": Macros(140, 12, 1, 10),
    "rice": Macros(680, 14, 150, 2),
    "pasta": Macros(720, 26, 144, 4),
    "quinoa": Macros(630, 24, 110, 10),
    "potato": Macros(310, 8, 70, 0.4),
    "bread": Macros(530, 18, 98, 6),
    "cheese": Macros(400, 25, 2, 33),
    "milk": Macros(150, 8, 12, 8),
    "butter": Macros(200, 0, 0, 23),
    "olive oil": Macros(240, 0, 0, 27),
    "oil": Macros(240, 0, 0, 27),
    "avocado": Macros(240, 3, 13, 22),
    "beans": Macros(380, 26, 68, 2),
    "lentils": Macros(460, 36, 80, 2),
    "chickpeas": Macros(420, 22, 70, 7),
    "spinach": Macros(23, 3, 4, 0.4),
    "tomato": Macros(35, 2, 8, 0.4),
    "onion": Macros(45, 1, 10, 0.1),
    "garlic": Macros(15, 1, 3, 0),
    "vegetables": Macros(120, 5, 24, 1),
    "greens": Macros(30, 3, 5, 0.5),
    "nuts": Macros(330, 10, 12, 29),
    "sugar": Macros(190, 0, 50, 0),
    "flour": Macros(455, 13, 95, 1),
}

DEFAULT_MACROS = Macros(40, 1, 5, 2)


def macros_for(ingredient: str) -> Macros:
    """Macros for one ingredient line; first table key contained in the line wins."""
    line = ingredient.lower()
    for key, macros in INGREDIENT_MACROS.items():
        if key in line:
            return macros
    return DEFAULT_MACROS


def estimate_nutrition(recipe: Recipe) -> NutritionEstimate:
    """Estimate per-serving nutrition for a recipe.

    Calories reported by the oracle take precedence over the estimate; macros
    are always estimated.

    Args:
        recipe: Recipe with ingredients and servings.

    Returns:
        NutritionEstimate; estimated=False when calories came from the oracle.
    """
    totals = [0.0, 0.0, 0.0, 0.0]
    for ingredient in recipe.ingredients:
        for i, value in enumerate(macros_for(ingredient)):
            totals[i] += value

    servings = max(1, recipe.servings)
    calories, protein, carbs, fat = (total / servings for total in totals)

    return NutritionEstimate(
        calories=recipe.calories if recipe.calories is not None else round(calories),
        protein_g=round(protein, 1),
        carbs_g=round(carbs, 1),
        fat_g=round(fat, 1),
        estimated=recipe.calories is None,
    )
