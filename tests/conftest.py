"""Shared pytest fixtures for the reelcritic test suite."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from reelcritic.interfaces.llm_provider import ILLMProvider
from reelcritic.models.review import MediaType, Reply, Review
from reelcritic.models.user import User
from reelcritic.providers.audit.sqlite_audit_provider import SQLiteAuditProvider
from reelcritic.providers.persistence.sqlite_review_provider import SQLiteReviewProvider
from reelcritic.providers.persistence.sqlite_user_provider import SQLiteUserProvider
from reelcritic.utils.errors import LLMError

# A fixed "now" so tests never depend on the wall clock.
NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_review(
    content: str = "A thoughtful look at grief and memory with a patient, confident visual style.",
    author_id: str = "user-1",
    media_id: str = "tt0000001",
    media_type: MediaType = MediaType.MOVIE,
    created_at: datetime = NOW,
    **overrides: Any,
) -> Review:
    return Review(
        content=content,
        author_id=author_id,
        media_id=media_id,
        media_type=media_type,
        created_at=created_at,
        rating=overrides.pop("rating", 7),
        **overrides,
    )


def make_user(user_id: str = "user-1", created_at: datetime | None = None, **overrides: Any) -> User:
    return User(
        user_id=user_id,
        username=user_id,
        created_at=created_at or NOW - timedelta(days=30),
        **overrides,
    )


def make_reply(content: str = "Great point about the pacing.", **overrides: Any) -> Reply:
    defaults: dict[str, Any] = {"review_id": "review-1", "author_id": "user-2", "created_at": NOW}
    defaults.update(overrides)
    return Reply(content=content, **defaults)


def moderation_json(**fields: Any) -> str:
    """A well-formed moderation answer; *fields* override the neutral defaults."""
    data: dict[str, Any] = {
        "isSpam": False,
        "isOffensive": False,
        "containsSpoilers": False,
        "isConstructive": False,
        "isInsightful": False,
        "isLowEffort": False,
        "isPromotional": False,
        "promotionalConfidence": "low",
        "qualityScore": 50,
        "sentiment": "neutral",
        "reasoning": "test",
    }
    data.update(fields)
    return json.dumps(data)


def _remove_db(path: str) -> None:
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(path + suffix):
            os.unlink(path + suffix)


# ---------------------------------------------------------------------------
# LLM fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MagicMock:
    """An ILLMProvider answering a clean moderation verdict unless a test overrides it."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value=moderation_json(qualityScore=0))
    llm.get_provider_name.return_value = "mock"
    llm.is_available.return_value = True
    return llm


@pytest.fixture
def failing_llm() -> MagicMock:
    """An ILLMProvider that fails every call."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(side_effect=LLMError(message="model down", provider_name="mock"))
    llm.get_provider_name.return_value = "mock"
    llm.is_available.return_value = False
    return llm


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# SQLite stores on a temporary database
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path():
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    _remove_db(tmp.name)


@pytest.fixture
async def review_store(db_path: str) -> SQLiteReviewProvider:
    store = SQLiteReviewProvider(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture
async def user_store(db_path: str) -> SQLiteUserProvider:
    store = SQLiteUserProvider(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture
async def audit_store(db_path: str) -> SQLiteAuditProvider:
    store = SQLiteAuditProvider(db_path=db_path)
    await store.initialize()
    return store

