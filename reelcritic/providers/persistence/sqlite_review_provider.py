"""SQLite-backed review persistence provider.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IReviewProvider).
#
# Each review is stored as a JSON document (replies embedded) next to the
# columns the gate, scoring and moderation queries filter on:
#
#   reviews         one row per review, ``document`` holds the model JSON
#   review_replies  one row per embedded reply, rewritten on every save so
#                   reply rate limits can be counted with one query
#
# A UNIQUE index on (author_id, media_id, media_type) backs the
# one-review-per-media rule.  Timestamps are stored as UTC ISO-8601
# strings with fixed microsecond precision so string order is time order.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` for
# concurrent read safety.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from reelcritic.interfaces.review_provider import IReviewProvider, ReviewQuery
from reelcritic.models.review import Review
from reelcritic.utils.errors import DuplicateReviewError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/reelcritic.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_REVIEWS_TABLE = """\
CREATE TABLE IF NOT EXISTS reviews (
    review_id     TEXT    PRIMARY KEY,
    author_id     TEXT    NOT NULL,
    media_id      TEXT    NOT NULL,
    media_type    TEXT    NOT NULL,
    like_count    INTEGER NOT NULL DEFAULT 0,
    is_removed    INTEGER NOT NULL DEFAULT 0,
    is_flagged    INTEGER NOT NULL DEFAULT 0,
    moderated_at  TEXT,
    created_at    TEXT    NOT NULL,
    document      TEXT    NOT NULL
);
"""

_CREATE_REPLIES_TABLE = """\
CREATE TABLE IF NOT EXISTS review_replies (
    reply_id    TEXT PRIMARY KEY,
    review_id   TEXT NOT NULL REFERENCES reviews(review_id),
    author_id   TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_reviews_author_media ON reviews(author_id, media_id, media_type);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_author_created ON reviews(author_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_media_created ON reviews(media_id, media_type, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_moderated ON reviews(moderated_at, is_removed, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_replies_author_created ON review_replies(author_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_replies_review ON review_replies(review_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_UPSERT_REVIEW = """\
INSERT INTO reviews (review_id, author_id, media_id, media_type, like_count,
                     is_removed, is_flagged, moderated_at, created_at, document)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(review_id)
DO UPDATE SET like_count = excluded.like_count,
              is_removed = excluded.is_removed,
              is_flagged = excluded.is_flagged,
              moderated_at = excluded.moderated_at,
              document = excluded.document;
"""

_DELETE_REPLIES = "DELETE FROM review_replies WHERE review_id = ?;"

_INSERT_REPLY = """\
INSERT INTO review_replies (reply_id, review_id, author_id, created_at)
VALUES (?, ?, ?, ?);
"""

_SELECT_REVIEW = "SELECT document FROM reviews WHERE review_id = ?;"

_COUNT_REPLIES_SINCE = """\
SELECT COUNT(*) FROM review_replies WHERE author_id = ? AND created_at >= ?;
"""

_AVERAGE_LIKES = "SELECT AVG(like_count) FROM reviews WHERE is_removed = 0;"


def to_db_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with fixed precision; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _build_where(query: ReviewQuery) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if query.author_id is not None:
        clauses.append("author_id = ?")
        params.append(query.author_id)
    if query.media_id is not None:
        clauses.append("media_id = ?")
        params.append(query.media_id)
    if query.media_type is not None:
        clauses.append("media_type = ?")
        params.append(query.media_type.value)
    if query.exclude_review_id is not None:
        clauses.append("review_id != ?")
        params.append(query.exclude_review_id)
    if query.unmoderated_only:
        clauses.append("moderated_at IS NULL")
    if query.exclude_removed:
        clauses.append("is_removed = 0")
    if query.created_after is not None:
        clauses.append("created_at >= ?")
        params.append(to_db_timestamp(query.created_after))
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SQLiteReviewProvider(IReviewProvider):
    """SQLite-backed review document store."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the review tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_REVIEWS_TABLE)
                await db.execute(_CREATE_REPLIES_TABLE)
                for idx_sql in _CREATE_INDICES:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to initialise review store: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("review_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_reviews"

    # ── Reads ──────────────────────────────────────────────────────────

    async def get_review(self, review_id: str) -> Review | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_REVIEW, (review_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to load review {review_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if row is None:
            return None
        return Review.model_validate_json(row[0])

    async def find_reviews(self, query: ReviewQuery) -> list[Review]:
        where, params = _build_where(query)
        order = "DESC" if query.newest_first else "ASC"
        sql = f"SELECT document FROM reviews{where} ORDER BY created_at {order}"
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Review query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [Review.model_validate_json(row[0]) for row in rows]

    async def count_reviews(self, query: ReviewQuery) -> int:
        where, params = _build_where(query)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(f"SELECT COUNT(*) FROM reviews{where}", params)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Review count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return int(row[0]) if row else 0

    async def count_replies_since(self, author_id: str, since: datetime) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_COUNT_REPLIES_SINCE, (author_id, to_db_timestamp(since)))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Reply count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return int(row[0]) if row else 0

    async def average_likes(self) -> float | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_AVERAGE_LIKES)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Average likes query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if row is None or row[0] is None:
            return None
        return float(row[0])

    # ── Writes ─────────────────────────────────────────────────────────

    async def save_review(self, review: Review) -> None:
        """Upsert the review row and rewrite its reply index rows."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_REVIEW, (
                    review.review_id,
                    review.author_id,
                    review.media_id,
                    review.media_type.value,
                    review.like_count,
                    int(review.is_removed),
                    int(review.is_flagged),
                    to_db_timestamp(review.moderated_at) if review.moderated_at else None,
                    to_db_timestamp(review.created_at),
                    review.model_dump_json(),
                ))
                await db.execute(_DELETE_REPLIES, (review.review_id,))
                for reply in review.replies:
                    await db.execute(_INSERT_REPLY, (
                        reply.reply_id,
                        review.review_id,
                        reply.author_id,
                        to_db_timestamp(reply.created_at),
                    ))
                await db.commit()
        except aiosqlite.IntegrityError as exc:
            raise DuplicateReviewError(provider_name=self.get_provider_name()) from exc
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to save review {review.review_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "review_saved",
            review_id=review.review_id,
            author_id=review.author_id,
            replies=review.reply_count,
        )
