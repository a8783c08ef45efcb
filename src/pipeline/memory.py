"""Conversation memory: short-term session window plus long-term preferences.

Short-term memory lives in process, keyed by session id: a sliding window of
the last turns, ingredients the user mentioned, main ingredients of the
recipes shown, recipe titles and techniques seen. It is discarded at session
end, and the least recently used session is evicted past MAX_SESSIONS.

Long-term memory is persisted per user in the profile store and only ever
merged into: preferences are upserted by (type, value), summaries are
appended. Store failures degrade to empty memory on read and a logged warning
on write; they never fail the turn.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Iterable, Optional

from src.models.models import (
    ConversationMemory,
    ConversationSummary,
    ConversationTurn,
    EntityType,
    Intent,
    LongTermMemory,
    Preference,
    ShortTermMemory,
)
from src.pipeline import patterns
from src.store.profile_store import ProfileStore, memory_key
from src.utils.config import config
from src.utils.errors import safe_execute_async
from src.utils.logger import logger

MAX_RECENT_ITEMS = 20
MAX_SUMMARIES = 10

# Strengths assigned to preferences learned from conversation
DIETARY_STRENGTH = 0.8
CUISINE_STRENGTH = 0.7
LIKED_INGREDIENT_STRENGTH = 0.8
DISLIKED_INGREDIENT_STRENGTH = 0.2


def _push_recent(items: list[str], new_items: Iterable[str], limit: int = MAX_RECENT_ITEMS) -> list[str]:
    """Move each new item to the end (most recent last) and keep the last `limit`."""
    result = list(items)
    for item in new_items:
        if item in result:
            result.remove(item)
        result.append(item)
    return result[-limit:]


def upsert_preference(
    memory: LongTermMemory,
    preference_type: str,
    value: str,
    strength: float,
    now: Optional[datetime] = None,
) -> LongTermMemory:
    """Insert or refresh a preference keyed by (type, value).

    Also folds dietary and cuisine preferences into the accumulated
    dietary_restrictions / preferred_cuisines lists. Nothing is removed.

    Returns:
        Updated copy of the long-term memory.
    """
    now = now or datetime.now()
    value = value.strip().lower()
    preferences = [p.model_copy() for p in memory.preferences]

    for i, preference in enumerate(preferences):
        if preference.type == preference_type and preference.value == value:
            preferences[i] = preference.model_copy(update={"strength": strength, "last_updated": now})
            break
    else:
        preferences.append(Preference(type=preference_type, value=value, strength=strength, last_updated=now))

    dietary = list(memory.dietary_restrictions)
    cuisines = list(memory.preferred_cuisines)
    if preference_type == "dietary" and value not in dietary:
        dietary.append(value)
    if preference_type == "cuisine" and strength >= 0.5 and value not in cuisines:
        cuisines.append(value)

    return memory.model_copy(
        update={"preferences": preferences, "dietary_restrictions": dietary, "preferred_cuisines": cuisines}
    )


def learn_preferences(utterance: str, intent: Intent) -> list[tuple[str, str, float]]:
    """Preferences stated in one utterance, as (type, value, strength) triples.

    - every dietary restriction mentioned
    - cuisines and ingredients mentioned alongside "love/like/favorite/prefer"
    - ingredients after "hate/dislike/don't like/allergic to" (weak strength)
    """
    learned: list[tuple[str, str, float]] = []

    for restriction in intent.entities_of(EntityType.DIETARY_RESTRICTION):
        normalized = restriction.replace(" ", "-").replace("_", "-")
        learned.append(("dietary", normalized, DIETARY_STRENGTH))

    disliked: list[str] = []
    for match in patterns.DISLIKE_STATEMENT.finditer(utterance or ""):
        disliked.append(match.group(2).split()[0].lower())
    for ingredient in disliked:
        learned.append(("ingredient", ingredient, DISLIKED_INGREDIENT_STRENGTH))

    if patterns.LIKE_STATEMENT.search(utterance or ""):
        for cuisine in intent.entities_of(EntityType.CUISINE):
            learned.append(("cuisine", cuisine, CUISINE_STRENGTH))
        for ingredient in intent.entities_of(EntityType.INGREDIENT):
            if ingredient not in disliked:
                learned.append(("ingredient", ingredient, LIKED_INGREDIENT_STRENGTH))

    return learned


def summarize(short_term: ShortTermMemory, long_term: LongTermMemory) -> ConversationSummary:
    """Rolling summary of the current window: topics, strong preferences, recipes shown."""
    topics: list[str] = []
    recipes: list[str] = []
    for turn in short_term.turns:
        if turn.intent.value not in topics:
            topics.append(turn.intent.value)
        for title in turn.recipes:
            if title not in recipes:
                recipes.append(title)

    learned = [f"{p.type}: {p.value}" for p in long_term.preferences if p.strength >= CUISINE_STRENGTH]
    return ConversationSummary(key_topics=topics, learned_preferences=learned, recipe_interests=recipes)


class ConversationMemoryManager:
    """Reads and writes conversation memory for (user, session) pairs.

    Args:
        store: Profile store holding long-term memory documents.
        window: Short-term turn window. Defaults to config.SHORT_TERM_WINDOW.
        summary_every: Append a rolling summary every N turns. Defaults to config.SUMMARY_EVERY_N_TURNS.
        max_sessions: Short-term sessions kept in process, least recently used evicted first.
            Defaults to config.MAX_SESSIONS.
    """

    def __init__(
        self,
        store: ProfileStore,
        window: Optional[int] = None,
        summary_every: Optional[int] = None,
        max_sessions: Optional[int] = None,
    ) -> None:
        self.store = store
        self.window = window or config.SHORT_TERM_WINDOW
        self.summary_every = summary_every or config.SUMMARY_EVERY_N_TURNS
        self.max_sessions = max_sessions or config.MAX_SESSIONS
        self._sessions: OrderedDict[str, ShortTermMemory] = OrderedDict()

    async def _load_long_term(self, user_id: str) -> LongTermMemory:
        document = await self.store.get(memory_key(user_id))
        return LongTermMemory.model_validate(document) if document else LongTermMemory()

    async def read(self, user_id: str, session_id: str) -> ConversationMemory:
        """Current memory for a user and session. Never raises; store failures yield empty long-term memory."""
        long_term = await safe_execute_async(
            self._load_long_term(user_id),
            f"Read long-term memory for {user_id}",
            log_level="warning",
            default_return=None,
        )
        if session_id in self._sessions:
            self._sessions.move_to_end(session_id)
        short_term = self._sessions.get(session_id, ShortTermMemory())
        return ConversationMemory(
            user_id=user_id,
            session_id=session_id,
            short_term=short_term.model_copy(deep=True),
            long_term=long_term or LongTermMemory(),
        )

    def _update_short_term(
        self,
        session_id: str,
        turn: ConversationTurn,
        ingredients: Iterable[str],
        shown_ingredients: Iterable[str],
        techniques: Iterable[str],
    ) -> ShortTermMemory:
        current = self._sessions.get(session_id, ShortTermMemory())
        updated = ShortTermMemory(
            turns=(current.turns + [turn])[-self.window:],
            recent_ingredients=_push_recent(current.recent_ingredients, ingredients),
            shown_ingredients=_push_recent(current.shown_ingredients, shown_ingredients),
            recent_recipes=_push_recent(current.recent_recipes, turn.recipes),
            techniques_seen=_push_recent(current.techniques_seen, techniques),
        )
        self._sessions[session_id] = updated
        self._sessions.move_to_end(session_id)
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug(f"Evicted short-term memory for session {evicted}")
        return updated

    async def write(
        self,
        memory: ConversationMemory,
        turn: ConversationTurn,
        ingredients: Iterable[str] = (),
        techniques: Iterable[str] = (),
        learned: Iterable[tuple[str, str, float]] = (),
        shown_ingredients: Iterable[str] = (),
    ) -> ConversationMemory:
        """Record one turn.

        Args:
            memory: Memory read at the start of the turn.
            turn: The completed turn.
            ingredients: Ingredients the user mentioned this turn.
            techniques: Techniques in the recipes shown this turn.
            learned: (type, value, strength) preferences stated this turn.
            shown_ingredients: Main ingredients of the recipes shown this turn.

        Returns:
            The updated memory. Persisting long-term memory may fail; that is
            logged and the in-process state is still updated.
        """
        short_term = self._update_short_term(memory.session_id, turn, ingredients, shown_ingredients, techniques)

        long_term = memory.long_term
        for preference_type, value, strength in learned:
            long_term = upsert_preference(long_term, preference_type, value, strength, now=turn.timestamp)

        total_turns = long_term.total_turns + 1
        long_term = long_term.model_copy(update={"total_turns": total_turns})
        if total_turns % self.summary_every == 0:
            summaries = (long_term.conversation_summaries + [summarize(short_term, long_term)])[-MAX_SUMMARIES:]
            long_term = long_term.model_copy(update={"conversation_summaries": summaries})
            logger.debug(f"Appended conversation summary #{len(summaries)} for {memory.user_id}")

        await safe_execute_async(
            self.store.put(memory_key(memory.user_id), long_term.model_dump(mode="json")),
            f"Persist long-term memory for {memory.user_id}",
            log_level="warning",
        )

        return memory.model_copy(update={"short_term": short_term, "long_term": long_term})

    def end_session(self, session_id: str) -> None:
        """Discard short-term memory for a session."""
        self._sessions.pop(session_id, None)

    # Filters over long-term preferences

    @staticmethod
    def dietary_preferences(memory: ConversationMemory) -> list[str]:
        return [p.value for p in memory.long_term.preferences_of("dietary")]

    @staticmethod
    def cuisine_preferences(memory: ConversationMemory) -> list[str]:
        return [p.value for p in memory.long_term.preferences_of("cuisine")]

    @staticmethod
    def favorite_ingredients(memory: ConversationMemory) -> list[str]:
        return memory.long_term.favorite_ingredients()

    @staticmethod
    def disliked_ingredients(memory: ConversationMemory) -> list[str]:
        return memory.long_term.disliked_ingredients()
