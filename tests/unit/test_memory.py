"""Unit tests for conversation memory."""

from datetime import datetime

import pytest

from src.models.models import (
    ConversationTurn,
    Entity,
    EntityType,
    Intent,
    IntentType,
    LongTermMemory,
    Preference,
    ShortTermMemory,
)
from src.pipeline.memory import (
    ConversationMemoryManager,
    learn_preferences,
    summarize,
    upsert_preference,
)
from src.store.profile_store import InMemoryProfileStore, ProfileStore, memory_key
from src.utils.errors import ProfileStoreError


class BrokenStore(ProfileStore):
    """Store whose backend is always down."""

    async def get(self, key):
        raise ProfileStoreError(f"cannot read {key}")

    async def put(self, key, document):
        raise ProfileStoreError(f"cannot write {key}")


def turn(message="chicken please", recipes=None, intent=IntentType.RECIPE_REQUEST):
    return ConversationTurn(user_message=message, assistant_message="ok", intent=intent, recipes=recipes or [])


@pytest.fixture
def manager(store):
    return ConversationMemoryManager(store, window=2, summary_every=2)


class TestUpsertPreference:
    """Test long-term preference merging."""

    def test_insert_then_refresh(self):
        """Test that (type, value) is a key: a second upsert refreshes strength."""
        first = datetime(2026, 1, 1)
        later = datetime(2026, 2, 1)

        memory = upsert_preference(LongTermMemory(), "ingredient", "Mushrooms", 0.8, now=first)
        memory = upsert_preference(memory, "ingredient", "mushrooms", 0.3, now=later)

        assert len(memory.preferences) == 1
        assert memory.preferences[0].value == "mushrooms"
        assert memory.preferences[0].strength == 0.3
        assert memory.preferences[0].last_updated == later

    def test_dietary_and_cuisine_fold_into_lists(self):
        """Test that dietary and strong cuisine preferences are accumulated."""
        memory = upsert_preference(LongTermMemory(), "dietary", "vegan", 0.8)
        memory = upsert_preference(memory, "cuisine", "thai", 0.7)
        memory = upsert_preference(memory, "cuisine", "french", 0.2)

        assert memory.dietary_restrictions == ["vegan"]
        assert memory.preferred_cuisines == ["thai"]

    def test_input_is_not_modified(self):
        """Test that upsert returns a copy."""
        original = LongTermMemory(preferences=[Preference(type="cuisine", value="thai", strength=0.7)])
        upsert_preference(original, "cuisine", "thai", 0.9)

        assert original.preferences[0].strength == 0.7


class TestLearnPreferences:
    """Test preference extraction from a single utterance."""

    def test_likes_and_dislikes(self):
        """Test that liked cuisines are learned and disliked ingredients get weak strength."""
        intent = Intent(
            entities=[
                Entity(type=EntityType.CUISINE, value="thai"),
                Entity(type=EntityType.INGREDIENT, value="peanuts"),
            ]
        )
        learned = learn_preferences("I love thai food but I'm allergic to peanuts", intent)

        assert learned == [("ingredient", "peanuts", 0.2), ("cuisine", "thai", 0.7)]

    def test_dietary_restrictions_are_normalized(self):
        """Test that every mentioned restriction is learned with hyphenated naming."""
        intent = Intent(entities=[Entity(type=EntityType.DIETARY_RESTRICTION, value="gluten free")])

        assert learn_preferences("something gluten free", intent) == [("dietary", "gluten-free", 0.8)]

    def test_neutral_mentions_are_not_learned(self):
        """Test that ingredients without a like/dislike statement are not preferences."""
        intent = Intent(entities=[Entity(type=EntityType.INGREDIENT, value="chicken")])

        assert learn_preferences("chicken for dinner", intent) == []


class TestSummaries:
    """Test rolling summaries."""

    def test_summarize_window(self):
        """Test topics, strong preferences and recipes in a summary."""
        short_term = ShortTermMemory(
            turns=[
                turn(recipes=["Lemon Chicken"]),
                turn(intent=IntentType.COOKING_TECHNIQUE_HELP, recipes=["Lemon Chicken", "Rice Pilaf"]),
            ]
        )
        long_term = LongTermMemory(
            preferences=[
                Preference(type="cuisine", value="thai", strength=0.7),
                Preference(type="ingredient", value="olives", strength=0.2),
            ]
        )
        summary = summarize(short_term, long_term)

        assert summary.key_topics == ["recipe_request", "cooking_technique_help"]
        assert summary.learned_preferences == ["cuisine: thai"]
        assert summary.recipe_interests == ["Lemon Chicken", "Rice Pilaf"]


class TestConversationMemoryManager:
    """Test memory reads and writes through the manager."""

    @pytest.mark.asyncio
    async def test_read_empty(self, manager):
        """Test that a new user and session read as empty memory."""
        memory = await manager.read("u1", "s1")

        assert memory.user_id == "u1"
        assert memory.short_term.turns == []
        assert memory.long_term.total_turns == 0

    @pytest.mark.asyncio
    async def test_write_updates_short_and_long_term(self, manager, store):
        """Test recent ingredients, techniques, learned preferences and turn counts."""
        memory = await manager.read("u1", "s1")
        updated = await manager.write(
            memory,
            turn(recipes=["Lemon Chicken"]),
            ingredients=["chicken"],
            techniques=["sauté"],
            learned=[("cuisine", "italian", 0.7)],
            shown_ingredients=["rice"],
        )

        assert updated.short_term.recent_ingredients == ["chicken"]
        assert updated.short_term.shown_ingredients == ["rice"]
        assert updated.short_term.recent_recipes == ["Lemon Chicken"]
        assert updated.short_term.techniques_seen == ["sauté"]
        assert updated.long_term.preferred_cuisines == ["italian"]

        stored = await store.get(memory_key("u1"))
        assert stored["total_turns"] == 1

        reread = await manager.read("u1", "s1")
        assert reread.short_term.recent_ingredients == ["chicken"]
        assert reread.long_term.preferred_cuisines == ["italian"]

    @pytest.mark.asyncio
    async def test_window_slides(self, manager):
        """Test that only the last `window` turns are kept."""
        memory = await manager.read("u1", "s1")
        for message in ("first", "second", "third"):
            memory = await manager.write(memory, turn(message))

        assert [t.user_message for t in memory.short_term.turns] == ["second", "third"]
        assert memory.long_term.total_turns == 3

    @pytest.mark.asyncio
    async def test_recent_items_move_to_end(self, manager):
        """Test that re-mentioned ingredients become most recent without duplicates."""
        memory = await manager.read("u1", "s1")
        memory = await manager.write(memory, turn(), ingredients=["chicken", "rice"])
        memory = await manager.write(memory, turn(), ingredients=["chicken"])

        assert memory.short_term.recent_ingredients == ["rice", "chicken"]

    @pytest.mark.asyncio
    async def test_summary_every_n_turns(self, manager):
        """Test that a summary is appended every `summary_every` turns."""
        memory = await manager.read("u1", "s1")
        memory = await manager.write(memory, turn(recipes=["Soup"]))
        assert memory.long_term.conversation_summaries == []

        memory = await manager.write(memory, turn(recipes=["Stew"]))
        assert len(memory.long_term.conversation_summaries) == 1
        assert memory.long_term.conversation_summaries[0].recipe_interests == ["Soup", "Stew"]

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, manager):
        """Test that short-term memory is per session while long-term is per user."""
        memory = await manager.read("u1", "s1")
        await manager.write(memory, turn(), ingredients=["chicken"], learned=[("dietary", "vegan", 0.8)])

        other = await manager.read("u1", "s2")
        assert other.short_term.recent_ingredients == []
        assert other.long_term.dietary_restrictions == ["vegan"]

    @pytest.mark.asyncio
    async def test_end_session(self, manager):
        """Test that ending a session discards its short-term memory."""
        memory = await manager.read("u1", "s1")
        await manager.write(memory, turn(), ingredients=["chicken"])
        manager.end_session("s1")

        assert (await manager.read("u1", "s1")).short_term.recent_ingredients == []

    @pytest.mark.asyncio
    async def test_least_recently_used_session_is_evicted(self, store):
        """Test that sessions past max_sessions are dropped oldest-use first."""
        manager = ConversationMemoryManager(store, window=2, summary_every=5, max_sessions=2)
        for session_id in ("s1", "s2"):
            await manager.write(await manager.read("u1", session_id), turn(), ingredients=[session_id])

        await manager.read("u1", "s1")
        await manager.write(await manager.read("u1", "s3"), turn(), ingredients=["s3"])

        assert (await manager.read("u1", "s1")).short_term.recent_ingredients == ["s1"]
        assert (await manager.read("u1", "s2")).short_term.recent_ingredients == []
        assert (await manager.read("u1", "s3")).short_term.recent_ingredients == ["s3"]

    @pytest.mark.asyncio
    async def test_store_failure_degrades(self):
        """Test that a broken store reads as empty and writes without raising."""
        manager = ConversationMemoryManager(BrokenStore(), window=5, summary_every=5)

        memory = await manager.read("u1", "s1")
        assert memory.long_term == LongTermMemory()

        updated = await manager.write(memory, turn(), ingredients=["tofu"])
        assert updated.short_term.recent_ingredients == ["tofu"]
        assert updated.long_term.total_turns == 1

    @pytest.mark.asyncio
    async def test_preference_filters(self):
        """Test favorite/disliked/cuisine/dietary filters over long-term memory."""
        manager = ConversationMemoryManager(InMemoryProfileStore())
        memory = await manager.read("u1", "s1")
        memory = await manager.write(
            memory,
            turn(),
            learned=[
                ("ingredient", "mushrooms", 0.8),
                ("ingredient", "olives", 0.2),
                ("cuisine", "thai", 0.7),
                ("dietary", "vegetarian", 0.8),
            ],
        )

        assert ConversationMemoryManager.favorite_ingredients(memory) == ["mushrooms"]
        assert ConversationMemoryManager.disliked_ingredients(memory) == ["olives"]
        assert ConversationMemoryManager.cuisine_preferences(memory) == ["thai"]
        assert ConversationMemoryManager.dietary_preferences(memory) == ["vegetarian"]
