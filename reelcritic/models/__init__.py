"""Frozen pydantic v2 domain models for reelcritic."""

from reelcritic.models.moderation import (
    AuditRecord,
    BatchResult,
    ConsensusInfo,
    ContentAnalysis,
    GateDecision,
    GateLimits,
    ModerationActions,
    ModerationOutcome,
    PromotionalConfidence,
    ReplyModerationOutcome,
)
from reelcritic.models.review import MediaType, ModerationState, Reply, Review
from reelcritic.models.scoring import (
    AuthenticitySignal,
    ContentSignal,
    CredibilityScore,
    EngagementSignal,
    ModerationContext,
    PointsAward,
    QualitySignal,
    ScoreBreakdown,
    ScoreComponent,
    ScoringVariant,
)
from reelcritic.models.submission import (
    ReplyResult,
    ReviewDraft,
    SubmissionResult,
    UserProgress,
    VoteResult,
)
from reelcritic.models.user import Badge, Points, Streak, User

__all__ = [
    "AuditRecord",
    "AuthenticitySignal",
    "Badge",
    "BatchResult",
    "ConsensusInfo",
    "ContentAnalysis",
    "ContentSignal",
    "CredibilityScore",
    "EngagementSignal",
    "GateDecision",
    "GateLimits",
    "MediaType",
    "ModerationActions",
    "ModerationContext",
    "ModerationOutcome",
    "ModerationState",
    "Points",
    "PointsAward",
    "PromotionalConfidence",
    "QualitySignal",
    "Reply",
    "ReplyModerationOutcome",
    "ReplyResult",
    "Review",
    "ReviewDraft",
    "ScoreBreakdown",
    "ScoreComponent",
    "ScoringVariant",
    "Streak",
    "SubmissionResult",
    "User",
    "UserProgress",
    "VoteResult",
]
