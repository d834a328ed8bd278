"""Points aggregation behind a single ``ScoringStrategy`` interface.

Two strategies ship:

* :class:`AIScoringStrategy` — the hybrid formula.  The base score is
  scaled by the model's quality score, engagement and authenticity are
  weighted by reviewer credibility, content bonuses and penalties are
  added, then the streak multiplier and streak bonus apply.
* :class:`HeuristicScoringStrategy` — deterministic engine terms only
  (base, engagement, timing, diversity, penalties) times the streak
  multiplier.  No model calls.

``scoring.strategy`` (config.yaml or ``SCORING_STRATEGY``) selects one through
:func:`build_scoring_strategy`.  Neither strategy clamps its result: the
caller applies ``max(0, points)`` exactly once before persisting.
"""

from __future__ import annotations

import asyncio
import math
from abc import ABC, abstractmethod
from datetime import datetime

import structlog

from reelcritic.models.review import Review
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
from reelcritic.models.user import User
from reelcritic.services.ai_signals import AISignalProvider
from reelcritic.services.credibility import calculate_credibility
from reelcritic.services.scoring_engine import (
    round_half_up,
    score_base,
    score_diversity,
    score_engagement,
    score_penalties,
    score_timing,
    streak_bonus,
    streak_multiplier,
)
from reelcritic.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_DECAY_DAYS = 90


def final_score(
    base: ScoreComponent,
    quality: QualitySignal,
    authenticity: AuthenticitySignal,
    engagement: EngagementSignal,
    content: ContentSignal,
    credibility: CredibilityScore,
    streak: int,
) -> int:
    """Combine AI-strategy terms into the final point delta.

    ``content.points`` already includes ``content.penalties`` and the
    penalties are added again here; the tuned point values assume that.
    """
    base_points = base.total * quality.score
    engagement_points = engagement.points * credibility.score
    authenticity_points = authenticity.points * credibility.score
    subtotal = base_points + engagement_points + authenticity_points + content.points + content.penalties
    return round_half_up(subtotal * streak_multiplier(streak) + streak_bonus(streak))


class ScoringStrategy(ABC):
    """Turns a review, its author and the request context into a points award."""

    name: str = ""

    @abstractmethod
    async def score(
        self,
        review: Review,
        user: User,
        context: ModerationContext,
        now: datetime,
    ) -> PointsAward:
        """Return the (unclamped) points award for *review*."""


class HeuristicScoringStrategy(ScoringStrategy):
    """Deterministic scoring: engine terms times the streak multiplier."""

    name = "heuristic"

    async def score(
        self,
        review: Review,
        user: User,
        context: ModerationContext,
        now: datetime,
    ) -> PointsAward:
        base = score_base(review, ScoringVariant.HEURISTIC)
        engagement = score_engagement(review)
        timing = score_timing(review, context, now)
        diversity = score_diversity(user)
        penalties = score_penalties(review, user)
        multiplier = streak_multiplier(user.streak.current)

        subtotal = base.total + engagement.total + timing.total + diversity.total + penalties.total
        points = round_half_up(subtotal * multiplier)
        breakdown = ScoreBreakdown(
            base=base.total,
            engagement=engagement.total,
            timing=timing.total,
            diversity=diversity.total,
            penalties=penalties.total,
            multiplier=multiplier,
        )
        logger.info(
            "review_scored",
            strategy=self.name,
            review_id=review.review_id,
            points=points,
            breakdown=breakdown.model_dump(exclude_none=True),
        )
        return PointsAward(points=points, breakdown=breakdown, multiplier=multiplier)


class AIScoringStrategy(ScoringStrategy):
    """Hybrid scoring: engine base scaled and weighted by AI signals and credibility."""

    name = "ai"

    def __init__(self, signals: AISignalProvider) -> None:
        self._signals = signals

    async def score(
        self,
        review: Review,
        user: User,
        context: ModerationContext,
        now: datetime,
    ) -> PointsAward:
        base = score_base(review, ScoringVariant.AI)
        # The signal calls are independent and each falls back on its own.
        quality, authenticity, engagement, content = await asyncio.gather(
            self._signals.analyze_quality(review),
            self._signals.check_authenticity(review),
            self._signals.analyze_engagement(review, context),
            self._signals.analyze_content(review, user),
        )
        credibility = calculate_credibility(user, now)
        streak = user.streak.current

        points = final_score(base, quality, authenticity, engagement, content, credibility, streak)
        breakdown = ScoreBreakdown(
            base=base.total,
            ai_quality=quality.score,
            authenticity=authenticity.points,
            engagement=engagement.points,
            content=content.points,
            credibility=credibility.score,
            penalties=content.penalties,
            streak_bonus=streak_bonus(streak),
            multiplier=streak_multiplier(streak),
        )
        feedback = await self._signals.generate_feedback(breakdown, authenticity.authentic, review)

        logger.info(
            "review_scored",
            strategy=self.name,
            review_id=review.review_id,
            points=points,
            breakdown=breakdown.model_dump(exclude_none=True),
            fallbacks=[
                name
                for name, signal in (
                    ("quality", quality),
                    ("authenticity", authenticity),
                    ("engagement", engagement),
                    ("content", content),
                )
                if signal.fallback
            ],
        )
        return PointsAward(
            points=points,
            breakdown=breakdown,
            multiplier=breakdown.multiplier,
            feedback=feedback,
            quality_score=quality.score,
        )

    async def reevaluate(
        self,
        review: Review,
        user: User,
        context: ModerationContext,
        now: datetime,
    ) -> PointsAward:
        """Re-score with current engagement, decayed by ``exp(-age_days / 90)``."""
        award = await self.score(review, user, context, now)
        age_days = (now - review.created_at).total_seconds() / 86400
        decay = math.exp(-age_days / _DECAY_DAYS)
        return award.model_copy(update={
            "points": round_half_up(award.points * decay),
            "breakdown": award.breakdown.model_copy(update={"decay": decay}),
        })


def build_scoring_strategy(name: str, signals: AISignalProvider | None) -> ScoringStrategy:
    """Return the strategy named by ``scoring.strategy``."""
    if name == "heuristic":
        return HeuristicScoringStrategy()
    if name == "ai":
        if signals is None:
            raise ConfigurationError(message="The ai scoring strategy needs an AI signal provider")
        return AIScoringStrategy(signals)
    raise ConfigurationError(message=f"Unknown scoring strategy: {name!r}")
