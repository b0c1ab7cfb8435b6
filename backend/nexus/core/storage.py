"""
Nexus PM - Key-Value Storage
============================

Persistence port used by every part of the workspace.

- KeyValueStore: string -> string mapping (SQL-backed or in-memory)
- StateRepository: typed JSON load/save on top of a store; write failures
  are logged and never raised to the mutating caller
- DraftStore: unsaved edits scoped by (kind, entity ids)
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nexus.core.config import settings
from nexus.core.database import get_db_session
from nexus.core.exceptions import PersistenceError, StorageQuotaExceeded, ValidationFailed
from nexus.core.models import KeyValueEntry

logger = structlog.get_logger()

T = TypeVar("T")


class StorageKey(str, Enum):
    """Well-known keys of the workspace state."""
    PROJECTS = "nexus_projects"
    TEAM = "nexus_team"
    NOTIFICATIONS = "nexus_notifications"
    THEME = "theme"
    SESSION = "nexus_session"
    USERS = "nexus_users"


# ==========================================================================
# Stores
# ==========================================================================

class KeyValueStore(ABC):
    """Abstract string key-value store."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes if quota_bytes is not None else settings.STORAGE_QUOTA_BYTES

    def _check_quota(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if size > self.quota_bytes:
            raise StorageQuotaExceeded(
                f"Value for {key!r} is {size} bytes, quota is {self.quota_bytes}"
            )

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value. Raises PersistenceError on failure."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the kv_entries table, one session per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        quota_bytes: Optional[int] = None,
    ):
        super().__init__(quota_bytes)
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        try:
            async with get_db_session(self.session_factory) as session:
                result = await session.execute(
                    select(KeyValueEntry.value).where(KeyValueEntry.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {key!r}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        try:
            async with get_db_session(self.session_factory) as session:
                await session.merge(KeyValueEntry(key=key, value=value))
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write {key!r}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            async with get_db_session(self.session_factory) as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to remove {key!r}: {e}") from e


# ==========================================================================
# Typed Repository
# ==========================================================================

class StateRepository:
    """
    Typed JSON access to a KeyValueStore.

    Loads fall back to a default when the value is missing or unreadable.
    Saves report success as a bool; failures are logged, not raised.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load(self, key: str, adapter: TypeAdapter[T], default: T) -> T:
        try:
            raw = await self.store.get(key)
        except PersistenceError as e:
            logger.error("state_load_failed", key=key, error=str(e))
            return default
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            logger.error("state_corrupt", key=key, errors=e.error_count())
            return default

    async def exists(self, key: str) -> bool:
        try:
            return await self.store.get(key) is not None
        except PersistenceError:
            return False

    async def save(self, key: str, adapter: TypeAdapter[T], value: T) -> bool:
        try:
            raw = adapter.dump_json(value).decode("utf-8")
            await self.store.set(key, raw)
            return True
        except (PersistenceError, ValueError, TypeError) as e:
            logger.error("state_save_failed", key=key, error=str(e))
            return False

    async def remove(self, key: str) -> bool:
        try:
            await self.store.remove(key)
            return True
        except PersistenceError as e:
            logger.error("state_remove_failed", key=key, error=str(e))
            return False


# ==========================================================================
# Drafts
# ==========================================================================

class DraftKind(str, Enum):
    NEW_TASK = "new_task"
    EDIT_TASK = "edit_task"
    PROJECT_BRIEF = "project_brief"


_DRAFT_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


class DraftStore:
    """Unsaved edits that survive navigation, scoped by (kind, ids)."""

    def __init__(self, repository: StateRepository):
        self.repository = repository

    @staticmethod
    def key_for(kind: DraftKind, scope: tuple[str, ...]) -> str:
        """Raises ValidationFailed for scope ids that contain the separator."""
        if any(":" in part for part in scope):
            raise ValidationFailed("Draft scope ids must not contain ':'")
        return ":".join(["nexus_draft", kind.value, *scope])

    async def save(self, kind: DraftKind, scope: tuple[str, ...], payload: dict[str, Any]) -> bool:
        return await self.repository.save(self.key_for(kind, scope), _DRAFT_ADAPTER, payload)

    async def load(self, kind: DraftKind, scope: tuple[str, ...]) -> Optional[dict[str, Any]]:
        return await self.repository.load(self.key_for(kind, scope), _DRAFT_ADAPTER, None)

    async def clear(self, kind: DraftKind, scope: tuple[str, ...]) -> bool:
        return await self.repository.remove(self.key_for(kind, scope))
