"""Append-only SQLite audit log for moderation decisions.

Every bot action (review removed, flagged, allowed, reply removed, ...)
lands here with the analysis that led to it.  There is no update or
delete statement in this module.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from reelcritic.interfaces.audit_provider import IAuditProvider
from reelcritic.models.moderation import AuditRecord
from reelcritic.providers.persistence.sqlite_review_provider import to_db_timestamp
from reelcritic.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/reelcritic.db")

_CREATE_AUDIT_TABLE = """\
CREATE TABLE IF NOT EXISTS moderation_audit (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp          TEXT    NOT NULL,
    review_id          TEXT    NOT NULL,
    reply_id           TEXT,
    user_id            TEXT    NOT NULL,
    action             TEXT    NOT NULL,
    reason             TEXT,
    points_adjustment  INTEGER NOT NULL DEFAULT 0,
    warnings           TEXT,
    analysis           TEXT
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_audit_review ON moderation_audit(review_id);",
    "CREATE INDEX IF NOT EXISTS idx_audit_user ON moderation_audit(user_id);",
]

_INSERT_RECORD = """\
INSERT INTO moderation_audit (timestamp, review_id, reply_id, user_id, action,
                              reason, points_adjustment, warnings, analysis)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""


def _row_to_record(row: Any) -> AuditRecord:
    return AuditRecord(
        timestamp=datetime.fromisoformat(row[0]),
        review_id=row[1],
        reply_id=row[2],
        user_id=row[3],
        action=row[4],
        reason=row[5] or "",
        points_adjustment=row[6],
        warnings=json.loads(row[7]) if row[7] else [],
        analysis=json.loads(row[8]) if row[8] else {},
    )


class SQLiteAuditProvider(IAuditProvider):
    """SQLite-backed append-only audit sink."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_AUDIT_TABLE)
                for idx_sql in _CREATE_INDICES:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to initialise audit log: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("audit_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_audit"

    async def append(self, record: AuditRecord) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_RECORD, (
                    to_db_timestamp(record.timestamp),
                    record.review_id,
                    record.reply_id,
                    record.user_id,
                    record.action,
                    record.reason,
                    record.points_adjustment,
                    json.dumps(record.warnings),
                    json.dumps(record.analysis, default=str),
                ))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to append audit record: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_records(
        self,
        review_id: str | None = None,
        user_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if review_id is not None:
            clauses.append("review_id = ?")
            params.append(review_id)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = (
            "SELECT timestamp, review_id, reply_id, user_id, action, reason, "
            f"points_adjustment, warnings, analysis FROM moderation_audit{where} "
            "ORDER BY id DESC LIMIT ?"
        )
        params.append(limit)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Audit query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [_row_to_record(row) for row in rows]
