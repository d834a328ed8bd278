"""Moderation and gate models.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models.
#
# ContentAnalysis is what the AI (or the pattern fallback) says about a
# review.  ModerationActions accumulates the decisions the pipeline takes
# from it, step by step, and is what gets written back to the review, the
# author and the audit log.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reelcritic.models.review import ModerationState


class PromotionalConfidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContentAnalysis(BaseModel):
    """Moderation analysis of one review."""

    model_config = ConfigDict(frozen=True)

    is_spam: bool = False
    is_offensive: bool = False
    contains_spoilers: bool = False
    is_constructive: bool = False
    is_insightful: bool = False
    is_low_effort: bool = False
    is_promotional: bool = False
    promotional_confidence: PromotionalConfidence = PromotionalConfidence.LOW
    quality_score: float = Field(default=0.0, ge=0, le=100)
    sentiment: str = "neutral"
    reasoning: str = ""
    fallback: bool = False


class ConsensusInfo(BaseModel):
    """Community rating for the media, used by the promotional check."""

    model_config = ConfigDict(frozen=True)

    average_rating: float | None = None
    total_reviews: int = 0


class ModerationActions(BaseModel):
    """Decisions accumulated while a review moves through the pipeline."""

    model_config = ConfigDict(frozen=True)

    should_remove: bool = False
    should_flag: bool = False
    points_adjustment: int = 0
    reason: str = ""
    warnings: list[str] = Field(default_factory=list)

    @property
    def verdict(self) -> ModerationState:
        if self.should_remove:
            return ModerationState.REMOVED
        if self.should_flag:
            return ModerationState.FLAGGED
        return ModerationState.ALLOWED


class ModerationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    review_id: str
    actions: ModerationActions
    analysis: ContentAnalysis
    verdict: ModerationState


class ReplyModerationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    reply_id: str
    removed: bool = False
    points_adjustment: int = 0
    reason: str = ""


class BatchResult(BaseModel):
    """Counters for one moderation batch.  ``skipped`` marks a single-flight no-op."""

    model_config = ConfigDict(frozen=True)

    processed: int = 0
    removed: int = 0
    flagged: int = 0
    points_adjusted: int = 0
    failed: int = 0
    skipped: bool = False


class AuditRecord(BaseModel):
    """Append-only record of one bot decision."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    review_id: str
    reply_id: str | None = None
    user_id: str
    action: str
    reason: str = ""
    points_adjustment: int = 0
    warnings: list[str] = Field(default_factory=list)
    analysis: dict[str, Any] = Field(default_factory=dict)


class GateLimits(BaseModel):
    """Thresholds for the spam/rate-limit gate (``gate`` section of config.yaml)."""

    model_config = ConfigDict(frozen=True)

    max_reviews_per_hour: int = 10
    max_replies_per_hour: int = 30
    min_seconds_between_reviews: int = 30
    min_seconds_between_replies: int = 10
    min_seconds_between_same_review_replies: int = 60
    copy_paste_threshold: float = 0.7
    copy_paste_lookback: int = 5
    spam_score_block_threshold: int = 80
    last_action_cache_size: int = 1000
    last_action_ttl_seconds: int = 3600


class GateDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    wait_time: str | None = None
    status_code: int = 200

    @classmethod
    def allow(cls) -> GateDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, status_code: int, wait_time: str | None = None) -> GateDecision:
        return cls(allowed=False, reason=reason, status_code=status_code, wait_time=wait_time)
