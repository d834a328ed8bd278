"""Pydantic request/response schemas for the reelcritic API.

Request schemas end with "Request", response schemas with "Response".
Responses wrap the domain models from ``reelcritic.models`` instead of
re-declaring their fields, so the API contract follows the domain.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from reelcritic.models.moderation import BatchResult, ModerationOutcome, ReplyModerationOutcome
from reelcritic.models.review import MediaType, Reply, Review
from reelcritic.models.scoring import ScoreBreakdown
from reelcritic.models.user import Badge


class SubmitReviewRequest(BaseModel):
    """A new review of one movie or TV show."""

    media_id: str = Field(..., min_length=1)
    media_type: MediaType
    media_title: str = ""
    title: str = Field(default="", max_length=200)
    content: str = Field(..., min_length=1, max_length=10_000)
    rating: int = Field(..., ge=1, le=10)
    spoiler: bool = False
    genres: list[str] = Field(default_factory=list, description="Genres from catalog metadata")


class SubmitReviewResponse(BaseModel):
    review: Review
    points_awarded: int
    breakdown: ScoreBreakdown
    feedback: str | None = None
    moderation: ModerationOutcome
    total_points: int
    level: int
    new_badges: list[Badge] = Field(default_factory=list)


class SubmitReplyRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2_000)


class SubmitReplyResponse(BaseModel):
    reply: Reply
    points_awarded: int
    moderation: ReplyModerationOutcome


class VoteResponse(BaseModel):
    review_id: str
    like_count: int
    dislike_count: int


class UserProgressResponse(BaseModel):
    user_id: str
    total_points: int
    available_points: int
    level: int
    level_name: str
    next_level_points: int | None = None
    badges: list[Badge] = Field(default_factory=list)
    current_streak: int
    longest_streak: int


class RunModerationRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=500)


class RunModerationResponse(BaseModel):
    result: BatchResult


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    retry_after: str | None = None
