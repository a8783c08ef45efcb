"""Prompt templates for the Gemini generation oracle.

Factory functions build the recipe-drafting prompt (one call per recipe, with
variety constraints carried over from earlier calls) and the food-photography
prompt used for recipe images.
"""

from typing import Optional

from src.models.models import Recipe, UserProfile, VarietyState

# Last N used ingredients named in the avoid-repeat hint
AVOID_INGREDIENTS_WINDOW = 3

RECIPE_JSON_SCHEMA = """[
  {
    "id": "unique_recipe_id",
    "title": "Recipe Name",
    "description": "Brief appetizing description (2-3 sentences)",
    "cookingTime": "actual time in minutes (e.g., '25 minutes')",
    "servings": number,
    "difficulty": "Easy|Medium|Hard",
    "ingredients": ["ingredient 1", "ingredient 2", ...],
    "instructions": ["step 1", "step 2", ...],
    "tags": ["tag1", "tag2", ...],
    "calories": estimated_calories_per_serving,
    "imagePrompt": "detailed prompt for recipe image generation"
  }
]"""


def _listed(values: list[str], default: str) -> str:
    return ", ".join(values) if values else default


def get_variety_constraints(variety: VarietyState, cuisine_preferences: list[str]) -> str:
    """Avoid-repeat hint for the next generation call ('' when nothing was used yet).

    Args:
        variety: Ingredients/cuisines already used in this turn (and recent turns).
        cuisine_preferences: The user's preferred cuisines, offered as rotation targets.
    """
    lines = []
    if variety.used_ingredients:
        recent = list(variety.used_ingredients[-AVOID_INGREDIENTS_WINDOW:])
        lines.append(f"Avoid using these main ingredients: {', '.join(recent)}")
    if variety.used_cuisines:
        options = [c for c in cuisine_preferences if c not in variety.used_cuisines]
        if options:
            lines.append(f"Try a different cuisine from: {', '.join(options)}")
        else:
            lines.append(f"Try a different cuisine than: {', '.join(variety.used_cuisines)}")
    return "\n".join(f"- {line}" for line in lines)


def get_recipe_prompt(
    profile: UserProfile,
    count: int,
    request: str,
    requirements: Optional[list[str]] = None,
    variety: Optional[VarietyState] = None,
    meal_type: Optional[str] = None,
) -> str:
    """Build the recipe-drafting prompt.

    Args:
        profile: User profile (restrictions, cuisines, skill, time preference, goals).
        count: Number of recipes to return in the JSON array.
        request: The user's own words.
        requirements: Extracted requirement phrases ("quick preparation", "using chicken", ...).
        variety: Variety state; adds an avoid-repeat section when non-empty.
        meal_type: Requested meal type, if one was named.

    Returns:
        Prompt text asking for ONLY a JSON array of recipes.
    """
    variety_section = get_variety_constraints(variety or VarietyState(), profile.cuisine_preferences)
    variety_block = f"\n**VARIETY CONSTRAINTS**:\n{variety_section}\n" if variety_section else ""

    return f"""
You are an expert chef and nutritionist. Generate {count} personalized recipes based on these user preferences and their specific request:

**USER'S SPECIFIC REQUEST**: "{request.strip() or 'General recipe recommendations'}"
**REQUESTED RECIPE TYPE**: {meal_type or 'Any type'}
**EXTRACTED REQUIREMENTS**: {_listed(requirements or [], 'None')}

**Dietary Restrictions**: {_listed(profile.dietary_restrictions, 'None')}
**Cuisine Preferences**: {_listed(profile.cuisine_preferences, 'Any')}
**Skill Level**: {profile.skill_level.value}
**Cooking Time Preference**: {profile.cooking_time.value}
**Goals**: {_listed(profile.health_goals, 'General cooking')}
{variety_block}
IMPORTANT: Pay special attention to the user's specific request. If they asked for a specific type of dish, ALL recipes should be that type.

Please return ONLY a valid JSON array of recipes with this exact structure:
{RECIPE_JSON_SCHEMA}

Requirements:
- Respect ALL dietary restrictions strictly
- Focus on the preferred cuisines
- Match the cooking time preference ({profile.cooking_time.value})
- Adjust complexity based on skill level ({profile.skill_level.value})
- Include nutritional considerations for the stated goals
- Ensure ingredients are commonly available; list the main ingredient first
- Provide clear, step-by-step instructions
- Include relevant tags (cuisine type, dietary info, cooking method, etc.)

Return only the JSON array, no additional text or formatting.
"""


def _plating_style(recipe: Recipe) -> str:
    for tag, style in (("italian", "Italian"), ("asian", "Asian"), ("mexican", "Mexican"), ("indian", "Indian")):
        if tag in recipe.tags:
            return style
    return "modern"


def get_image_prompt(recipe: Recipe) -> str:
    """Food-photography prompt for one recipe."""
    difficulty = (recipe.difficulty or "Medium").lower()
    return f"""Generate a professional food photography image of "{recipe.title}".

Recipe details:
- Description: {recipe.description}
- Main ingredients: {', '.join(recipe.ingredients[:5])}
- Cuisine type: {', '.join(recipe.tags)}
- Difficulty level: {difficulty}
- Servings: {recipe.servings}

Create an appetizing, high-quality food photograph showing:
- {recipe.title} beautifully plated and styled
- Appropriate {_plating_style(recipe)} plating style
- Soft, natural light and a clean background
- Garnishes suited to {difficulty} difficulty

{recipe.image_prompt or ''}""".strip()
