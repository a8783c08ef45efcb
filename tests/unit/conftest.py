"""Shared fixtures for unit tests.

The Gemini client is replaced by a stub whose generate_content() replays
scripted answers, so no test touches the network.
"""

import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from src.models.models import ConversationContext, Recipe, UserProfile
from src.oracle.gemini import GeminiOracle
from src.store.profile_store import InMemoryProfileStore

# 09:00 on a weekday in April: outside both meal windows
MORNING = datetime(2026, 4, 15, 9, 0)
# 12:00: inside the lunch window
LUNCH = datetime(2026, 4, 15, 12, 0)


class StubModels:
    """Replays scripted answers; an Exception item is raised instead of returned.

    The last answer repeats once the script is exhausted.
    """

    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, str):
            return SimpleNamespace(text=answer, candidates=[])
        return answer


class StubClient:
    def __init__(self, answers):
        self.models = StubModels(answers)


def recipe_data(title="Lemon Herb Chicken", **overrides) -> dict:
    data = {
        "id": title.lower().replace(" ", "_"),
        "title": title,
        "description": f"A simple {title.lower()}.",
        "cookingTime": "25 minutes",
        "servings": 4,
        "difficulty": "Easy",
        "ingredients": ["boneless chicken", "lemon", "garlic", "herbs"],
        "instructions": ["Season the chicken.", "Sauté in olive oil until golden.", "Serve with lemon."],
        "tags": ["italian", "quick"],
        "calories": 320,
    }
    data.update(overrides)
    return data


def recipe_json(*recipes: dict) -> str:
    return json.dumps(list(recipes))


def make_recipe(title="Lemon Herb Chicken", **overrides) -> Recipe:
    return Recipe.model_validate(recipe_data(title, **overrides))


def make_context(profile=None, now=MORNING, **fields) -> ConversationContext:
    return ConversationContext(profile=profile or UserProfile(), now=now, **fields)


async def no_sleep(_seconds):
    return None


@pytest.fixture
def stub_client():
    """Factory: stub_client(answer, ...) -> StubClient."""
    return lambda *answers: StubClient(answers)


@pytest.fixture
def oracle_factory():
    """Factory building a GeminiOracle over a stub client, with no delays and images off."""

    def _build(*answers, **kwargs):
        options = {
            "api_key": "test-key",
            "model": "gemini-2.0-flash",
            "fallback_model": "gemini-2.0-flash",
            "client": StubClient(answers),
            "generation_delay": 0,
            "enable_images": False,
            "max_retries": 3,
            "retry_delay": 0,
            "sleep": no_sleep,
        }
        options.update(kwargs)
        return GeminiOracle(**options)

    return _build


@pytest.fixture
def store():
    return InMemoryProfileStore()
