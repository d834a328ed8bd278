"""Inputs and results of the submission service.

These are the shapes ReviewService hands back to the API and CLI layers;
the API schemas wrap them rather than duplicating their fields.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from reelcritic.models.moderation import ModerationOutcome, ReplyModerationOutcome
from reelcritic.models.review import MediaType, Reply, Review
from reelcritic.models.scoring import PointsAward
from reelcritic.models.user import Badge, Points, Streak


class ReviewDraft(BaseModel):
    """What a user submits; the service turns it into a :class:`Review`."""

    model_config = ConfigDict(frozen=True)

    media_id: str = Field(min_length=1)
    media_type: MediaType
    media_title: str = ""
    title: str = ""
    content: str = Field(min_length=1)
    rating: int = Field(ge=1, le=10)
    spoiler: bool = False
    genres: list[str] = Field(default_factory=list)


class SubmissionResult(BaseModel):
    """Outcome of one review submission: the award actually credited and the bot's verdict."""

    model_config = ConfigDict(frozen=True)

    review: Review
    award: PointsAward
    points_awarded: int
    moderation: ModerationOutcome
    total_points: int
    level: int
    new_badges: list[Badge] = Field(default_factory=list)


class ReplyResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    reply: Reply
    points_awarded: int
    moderation: ReplyModerationOutcome


class VoteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    review_id: str
    like_count: int
    dislike_count: int


class UserProgress(BaseModel):
    """Read model for a user's gamification state."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    points: Points
    level: int
    level_name: str
    next_level_points: int | None = None
    badges: list[Badge] = Field(default_factory=list)
    streak: Streak
    spam_score: int = 0
