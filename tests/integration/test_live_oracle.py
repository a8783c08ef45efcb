"""Live Gemini integration tests.

These call the real Gemini API and are skipped unless GEMINI_API_KEY is set.
Run with: pytest -m integration tests/integration -v
"""

import pytest

from src.models.models import UserProfile
from src.oracle.gemini import GeminiOracle, is_fallback_recipe
from src.pipeline.pipeline import RecipeAssistant
from src.store.profile_store import InMemoryProfileStore, save_profile
from src.utils.config import config
from src.utils.logger import logger

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not config.GEMINI_API_KEY, reason="GEMINI_API_KEY not set"),
]


@pytest.fixture
def oracle():
    return GeminiOracle(enable_images=False)


@pytest.mark.asyncio
async def test_generate_single_recipe(oracle):
    """The configured model should draft a real recipe for a simple request."""
    recipes = await oracle.generate(UserProfile(), 1, "a quick tomato pasta")

    assert len(recipes) == 1
    assert not is_fallback_recipe(recipes[0])
    assert recipes[0].ingredients
    logger.info(f"✓ Live recipe: {recipes[0].title}")


@pytest.mark.asyncio
async def test_full_turn_respects_restrictions(oracle):
    """A vegetarian profile should get vegetarian-compliant recipes end to end."""
    store = InMemoryProfileStore()
    await save_profile(store, "live-user", UserProfile(dietary_restrictions=["vegetarian"]))
    assistant = RecipeAssistant(store=store, oracle=oracle)

    payload = await assistant.process_message("give me 2 dinner ideas", "live-user", "live-session")

    assert 1 <= len(payload["recipes"]) <= 2
    for recipe in payload["recipes"]:
        text = " ".join(recipe["ingredients"]).lower()
        assert "chicken" not in text and "beef" not in text
