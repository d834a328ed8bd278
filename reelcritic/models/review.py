"""Review and reply domain models.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph — no imports from upper
# layers).
#
# A Review is the unit the points engine scores and the moderation bot
# judges.  Replies are embedded in their parent review, so removing a
# reply is a rewrite of the parent document.
#
#   - **Immutable state**: every model is ``frozen=True``; moderation
#     transitions build a new instance with ``model_copy(update={...})``.
#   - **Vote sets**: ``liked_by`` / ``disliked_by`` hold user ids and are
#     kept mutually exclusive by ReviewService.vote().
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MediaType(str, Enum):
    """Kind of catalog item a review is attached to."""

    MOVIE = "movie"
    TV = "tv"


class ModerationState(str, Enum):
    """Where a review stands with the moderation bot."""

    PENDING = "PENDING"
    ALLOWED = "ALLOWED"
    FLAGGED = "FLAGGED"
    REMOVED = "REMOVED"


class Reply(BaseModel):
    """A reply posted under a review."""

    model_config = ConfigDict(frozen=True)

    reply_id: str = Field(default_factory=lambda: str(uuid4()))
    review_id: str
    author_id: str
    content: str
    liked_by: list[str] = Field(default_factory=list)
    disliked_by: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def like_count(self) -> int:
        return len(self.liked_by)


class Review(BaseModel):
    """A user's review of one movie or TV show.

    ``genres`` come from catalog metadata supplied with the submission and
    feed the reviewer's diversity statistics.  The moderation fields stay
    at their defaults until the bot has looked at the review.
    """

    model_config = ConfigDict(frozen=True)

    review_id: str = Field(default_factory=lambda: str(uuid4()))
    media_id: str
    media_type: MediaType
    media_title: str = ""
    author_id: str
    title: str = ""
    content: str
    rating: int = Field(ge=1, le=10)
    spoiler: bool = False
    genres: list[str] = Field(default_factory=list)
    liked_by: list[str] = Field(default_factory=list)
    disliked_by: list[str] = Field(default_factory=list)
    replies: list[Reply] = Field(default_factory=list)

    is_removed: bool = False
    removal_reason: str | None = None
    is_flagged: bool = False
    flag_reason: str | None = None
    moderated_at: datetime | None = None
    moderated_by: str | None = None

    created_at: datetime = Field(default_factory=utc_now)

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    @property
    def dislike_count(self) -> int:
        return len(self.disliked_by)

    @property
    def reply_count(self) -> int:
        return len(self.replies)

    @property
    def moderation_state(self) -> ModerationState:
        if self.is_removed:
            return ModerationState.REMOVED
        if self.is_flagged:
            return ModerationState.FLAGGED
        if self.moderated_at is not None:
            return ModerationState.ALLOWED
        return ModerationState.PENDING
