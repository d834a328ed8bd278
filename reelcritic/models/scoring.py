"""Scoring models: engine components, AI signals, credibility and awards.

Every score component keeps a ``details`` dict of the sub-terms that made
up its total, so the breakdown logged for a review can be explained term
by term.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reelcritic.models.moderation import ConsensusInfo
from reelcritic.models.review import Reply


class ScoringVariant(str, Enum):
    """Which length-tier table the base score uses."""

    AI = "ai"
    HEURISTIC = "heuristic"


class ScoreComponent(BaseModel):
    """Total of one deterministic scoring dimension.  Never clamped."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    details: dict[str, int] = Field(default_factory=dict)


# ─── AI signals ───────────────────────────────────────────────────────

class QualitySignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = 0.7
    points: int = 70
    details: dict[str, Any] = Field(default_factory=dict)
    fallback: bool = False


class AuthenticitySignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = 0.8
    authentic: bool = True
    points: int = 40
    reason: str = ""
    fallback: bool = False


class EngagementSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    normalized: float = 0.5
    meaningful_replies: int = 0
    points: int = 0
    fallback: bool = False


class ContentSignal(BaseModel):
    """Content analysis.  ``points`` already includes ``penalties``."""

    model_config = ConfigDict(frozen=True)

    points: int = 0
    penalties: int = 0
    new_genres: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    fallback: bool = False


class CredibilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(default=1.0, ge=0.3, le=1.5)
    factors: dict[str, float] = Field(default_factory=dict)


# ─── Aggregation ──────────────────────────────────────────────────────

class ModerationContext(BaseModel):
    """Request-scoped context the scoring strategies read."""

    model_config = ConfigDict(frozen=True)

    review_rank: int = Field(default=1, ge=1)
    global_avg_likes: float = 10.0
    recent_replies: list[Reply] = Field(default_factory=list)
    consensus: ConsensusInfo | None = None


class ScoreBreakdown(BaseModel):
    """Per-term breakdown of a points award; unused terms stay ``None``."""

    model_config = ConfigDict(frozen=True)

    base: float | None = None
    ai_quality: float | None = None
    authenticity: float | None = None
    engagement: float | None = None
    content: float | None = None
    credibility: float | None = None
    timing: float | None = None
    diversity: float | None = None
    penalties: float | None = None
    streak_bonus: int | None = None
    multiplier: float = 1.0
    decay: float | None = None


class PointsAward(BaseModel):
    """Result of a scoring strategy.  ``points`` may be negative."""

    model_config = ConfigDict(frozen=True)

    points: int
    breakdown: ScoreBreakdown
    multiplier: float = 1.0
    feedback: str | None = None
    quality_score: float | None = None
