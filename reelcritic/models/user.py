"""Reviewer profile models: points, streak, badges and behaviour statistics."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from reelcritic.models.review import utc_now


class Points(BaseModel):
    """Point balances.  Both are kept at or above zero by every writer."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    available: int = Field(default=0, ge=0)


class Streak(BaseModel):
    """Consecutive-day review activity."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)
    last_activity_date: date | None = None


class Badge(BaseModel):
    """An achievement badge.  A user holds each badge name at most once."""

    model_config = ConfigDict(frozen=True)

    name: str
    icon: str
    earned_at: datetime = Field(default_factory=utc_now)


class User(BaseModel):
    """A reviewer and every aggregate the scoring core reads or writes."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    points: Points = Field(default_factory=Points)
    level: int = Field(default=1, ge=1, le=10)
    badges: list[Badge] = Field(default_factory=list)
    streak: Streak = Field(default_factory=Streak)

    reviewed_genres: list[str] = Field(default_factory=list)
    reviewed_formats: list[str] = Field(default_factory=list)
    average_review_length: float = 0.0
    helpfulness_ratio: float = 0.0
    spam_score: int = Field(default=0, ge=0, le=100)
    has_duplicate_content: bool = False

    total_reviews: int = 0
    total_likes: int = 0
    total_replies: int = 0
    # Ratings of 1-2 or 10; a reviewer who only hands out extremes is less credible.
    extreme_ratings: int = 0
    recent_review_count: int = 0
    avg_review_quality: float = 0.7

    def badge_names(self) -> set[str]:
        return {badge.name for badge in self.badges}
