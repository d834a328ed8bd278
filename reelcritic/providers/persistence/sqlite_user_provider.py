"""SQLite-backed reviewer profile provider.

Users are stored as JSON documents keyed by ``user_id``; nothing queries
inside a profile, so no columns beyond the key and a write timestamp are
exposed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from reelcritic.interfaces.user_provider import IUserProvider
from reelcritic.models.user import User
from reelcritic.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/reelcritic.db")

_CREATE_USERS_TABLE = """\
CREATE TABLE IF NOT EXISTS users (
    user_id     TEXT PRIMARY KEY,
    document    TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_UPSERT_USER = """\
INSERT INTO users (user_id, document, updated_at)
VALUES (?, ?, ?)
ON CONFLICT(user_id)
DO UPDATE SET document = excluded.document,
              updated_at = excluded.updated_at;
"""

_SELECT_USER = "SELECT document FROM users WHERE user_id = ?;"


class SQLiteUserProvider(IUserProvider):
    """SQLite-backed user document store."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_USERS_TABLE)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to initialise user store: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("user_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_users"

    async def get_user(self, user_id: str) -> User | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_USER, (user_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to load user {user_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if row is None:
            return None
        return User.model_validate_json(row[0])

    async def save_user(self, user: User) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_USER, (
                    user.user_id,
                    user.model_dump_json(),
                    datetime.now(timezone.utc).isoformat(),
                ))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to save user {user.user_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("user_saved", user_id=user.user_id, points=user.points.total, level=user.level)
