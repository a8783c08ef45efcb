"""Key/value document store for user profiles and long-term memory.

Documents are flat JSON-serializable dicts addressed by string keys:
- "profile:{user_id}": UserProfile
- "memory:{user_id}":  LongTermMemory

Two backends:
- InMemoryProfileStore: process-local dict (tests, stateless runs)
- SqliteProfileStore: one SQLite table of JSON bodies (default for the CLI)

Backend failures surface as ProfileStoreError; callers decide how to degrade.
"""

import asyncio
import json
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from src.models.models import UserProfile
from src.utils.config import config
from src.utils.errors import ProfileStoreError
from src.utils.logger import logger


def profile_key(user_id: str) -> str:
    return f"profile:{user_id}"


def memory_key(user_id: str) -> str:
    return f"memory:{user_id}"


class ProfileStore(ABC):
    """Async key/value document store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return the document stored under key, or None."""

    @abstractmethod
    async def put(self, key: str, document: dict[str, Any]) -> None:
        """Store (replace) the document under key."""


class InMemoryProfileStore(ProfileStore):
    def __init__(self, documents: Optional[dict[str, dict[str, Any]]] = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        for key, document in (documents or {}).items():
            self._documents[key] = json.loads(json.dumps(document, default=str))

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        document = self._documents.get(key)
        # Hand out copies so callers can't mutate stored state
        return json.loads(json.dumps(document)) if document is not None else None

    async def put(self, key: str, document: dict[str, Any]) -> None:
        self._documents[key] = json.loads(json.dumps(document, default=str))


class SqliteProfileStore(ProfileStore):
    """SQLite-backed store. Blocking sqlite3 calls run in a worker thread.

    Args:
        db_file: Path of the SQLite database file. Defaults to config.PROFILE_DB_FILE.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or config.PROFILE_DB_FILE
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.db_file)
        if not self._initialized:
            connection.execute(
                "CREATE TABLE IF NOT EXISTS documents (key TEXT PRIMARY KEY, body TEXT NOT NULL, updated_at TEXT)"
            )
            connection.commit()
            self._initialized = True
        return connection

    def _get_sync(self, key: str) -> Optional[dict[str, Any]]:
        connection = self._connect()
        try:
            row = connection.execute("SELECT body FROM documents WHERE key = ?", (key,)).fetchone()
        finally:
            connection.close()
        return json.loads(row[0]) if row else None

    def _put_sync(self, key: str, document: dict[str, Any]) -> None:
        body = json.dumps(document, default=str)
        connection = self._connect()
        try:
            connection.execute(
                "INSERT INTO documents (key, body, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at",
                (key, body, datetime.now().isoformat()),
            )
            connection.commit()
        finally:
            connection.close()

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except (sqlite3.Error, json.JSONDecodeError) as e:
            raise ProfileStoreError(f"Failed to read '{key}' from {self.db_file}: {e}") from e

    async def put(self, key: str, document: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._put_sync, key, document)
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise ProfileStoreError(f"Failed to write '{key}' to {self.db_file}: {e}") from e


def create_profile_store(persistent: Optional[bool] = None) -> ProfileStore:
    """Build the configured store backend."""
    use_persistent = config.USE_PERSISTENT_STORE if persistent is None else persistent
    if use_persistent:
        logger.info(f"Using SQLite profile store: {config.PROFILE_DB_FILE}")
        return SqliteProfileStore()
    logger.info("Using in-memory profile store")
    return InMemoryProfileStore()


async def load_profile(store: ProfileStore, user_id: str) -> UserProfile:
    """Read a user's profile; a missing document yields the default profile.

    Raises:
        ProfileStoreError: If the backend fails.
    """
    document = await store.get(profile_key(user_id))
    if not document:
        return UserProfile()
    return UserProfile.model_validate(document)


async def save_profile(store: ProfileStore, user_id: str, profile: UserProfile) -> None:
    await store.put(profile_key(user_id), profile.model_dump(mode="json"))


async def update_profile(store: ProfileStore, user_id: str, **changes: Any) -> UserProfile:
    """Explicit preference update (settings screen, onboarding, CLI).

    The conversation pipeline never calls this; it only reads profiles.

    Args:
        store: Profile store.
        user_id: User whose profile changes.
        **changes: UserProfile fields to overwrite, e.g. dietary_restrictions=["vegan"].

    Returns:
        The validated, saved profile.
    """
    current = await load_profile(store, user_id)
    updated = UserProfile.model_validate({**current.model_dump(), **changes})
    await save_profile(store, user_id, updated)
    logger.info(f"✓ Profile updated for {user_id}: {sorted(changes)}")
    return updated
