"""Review and reply submission, voting and progress read-out.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services (orchestration).
# Depends on: IReviewProvider, IUserProvider, SpamGate, ScoringStrategy,
#             ModerationService.
#
# submit_review() is the whole synchronous path of a submission:
#
#   1. GATE         — SpamGate.check_review(); a denial raises
#                     GateRejection before anything is written.
#   2. UNIQUENESS   — one review per (author, media); DuplicateReviewError.
#   3. PERSIST      — the review is saved, the gate action recorded.
#   4. CONTEXT      — rank among the media's reviews, global average
#                     likes, community consensus.
#   5. SCORE        — configured ScoringStrategy, scored against the
#                     author's statistics *before* this review.
#   6. AWARD        — stats folded in, max(0, points) applied once,
#                     level and badges refreshed, user saved.
#   7. MODERATE     — ModerationService.moderate_review() in-line.
#   8. SPAM SCORE   — SpamGate.calculate_spam_score() refresh.
#
# Review and user are separate writes; a crash between them can leave a
# stored review whose points were never credited.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from reelcritic.interfaces.review_provider import IReviewProvider, ReviewQuery
from reelcritic.interfaces.user_provider import IUserProvider
from reelcritic.models.moderation import ConsensusInfo, GateDecision
from reelcritic.models.review import Reply, Review
from reelcritic.models.scoring import ModerationContext, PointsAward
from reelcritic.models.submission import (
    ReplyResult,
    ReviewDraft,
    SubmissionResult,
    UserProgress,
    VoteResult,
)
from reelcritic.models.user import User
from reelcritic.services.gamification import (
    apply_points,
    helpfulness_from_reviews,
    level_for_points,
    level_name,
    record_review_stats,
    refresh_badges,
)
from reelcritic.services.moderation_service import ModerationService
from reelcritic.services.scoring_engine import score_reply
from reelcritic.services.scoring_strategy import AIScoringStrategy, ScoringStrategy
from reelcritic.services.spam_gate import REPLY_ACTION, REVIEW_ACTION, SpamGate
from reelcritic.utils.errors import DuplicateReviewError, GateRejection, NotFoundError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_GLOBAL_AVG_LIKES = 10.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _raise_if_denied(decision: GateDecision) -> None:
    if not decision.allowed:
        raise GateRejection(
            message=decision.reason or "Submission rejected",
            status_code=decision.status_code,
            wait_time=decision.wait_time,
        )


class ReviewService:
    """Coordinates the gate, scoring, gamification and moderation for submissions."""

    def __init__(
        self,
        review_store: IReviewProvider,
        user_store: IUserProvider,
        gate: SpamGate,
        strategy: ScoringStrategy,
        moderation: ModerationService,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._reviews = review_store
        self._users = user_store
        self._gate = gate
        self._strategy = strategy
        self._moderation = moderation
        self._clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_or_create_user(self, user_id: str, now: datetime) -> User:
        user = await self._users.get_user(user_id)
        if user is None:
            user = User(user_id=user_id, username=user_id, created_at=now)
            await self._users.save_user(user)
            logger.info("user_created", user_id=user_id)
        return user

    async def _require_review(self, review_id: str) -> Review:
        review = await self._reviews.get_review(review_id)
        if review is None or review.is_removed:
            raise NotFoundError(message=f"Review {review_id} not found")
        return review

    async def _build_context(self, review: Review) -> ModerationContext:
        """Rank, global average likes and consensus for *review*'s media."""
        others = await self._reviews.find_reviews(ReviewQuery(
            media_id=review.media_id,
            media_type=review.media_type,
            exclude_review_id=review.review_id,
            exclude_removed=True,
        ))
        earlier = [other for other in others if other.created_at <= review.created_at]
        consensus = ConsensusInfo(
            average_rating=(sum(other.rating for other in others) / len(others)) if others else None,
            total_reviews=len(others),
        )
        global_avg_likes = await self._reviews.average_likes()
        return ModerationContext(
            review_rank=len(earlier) + 1,
            global_avg_likes=global_avg_likes or _DEFAULT_GLOBAL_AVG_LIKES,
            recent_replies=list(review.replies),
            consensus=consensus,
        )

    async def _refresh_review_stats(self, user: User, review: Review, award: PointsAward, now: datetime) -> User:
        user = record_review_stats(user, review, now)

        recent = await self._reviews.count_reviews(
            ReviewQuery(author_id=user.user_id, created_after=now - timedelta(hours=24))
        )
        update: dict = {"recent_review_count": recent}
        if award.quality_score is not None:
            n = user.total_reviews
            update["avg_review_quality"] = (user.avg_review_quality * (n - 1) + award.quality_score) / n

        authored = await self._reviews.find_reviews(ReviewQuery(author_id=user.user_id))
        update["helpfulness_ratio"], update["total_likes"] = helpfulness_from_reviews(authored)
        return user.model_copy(update=update)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def submit_review(self, user_id: str, draft: ReviewDraft) -> SubmissionResult:
        now = self._clock()
        user = await self._get_or_create_user(user_id, now)

        _raise_if_denied(await self._gate.check_review(user_id, draft.content))

        existing = await self._reviews.count_reviews(ReviewQuery(
            author_id=user_id, media_id=draft.media_id, media_type=draft.media_type,
        ))
        if existing:
            raise DuplicateReviewError()

        review = Review(author_id=user_id, created_at=now, **draft.model_dump())
        await self._reviews.save_review(review)
        await self._gate.record_action(user_id, REVIEW_ACTION)

        context = await self._build_context(review)
        award = await self._strategy.score(review, user, context, now)
        points = max(0, award.points)

        held_badges = user.badge_names()
        updated = await self._refresh_review_stats(user, review, award, now)
        updated = apply_points(updated, points, now)
        await self._users.save_user(updated)

        outcome = await self._moderation.moderate_review(review, user=updated, consensus=context.consensus)
        await self._gate.calculate_spam_score(user_id)

        final_user = await self._users.get_user(user_id) or updated
        moderated = await self._reviews.get_review(review.review_id) or review

        logger.info(
            "review_submitted",
            review_id=review.review_id,
            user_id=user_id,
            strategy=self._strategy.name,
            points_awarded=points,
            raw_points=award.points,
            verdict=outcome.verdict.value,
        )
        return SubmissionResult(
            review=moderated,
            award=award,
            points_awarded=points,
            moderation=outcome,
            total_points=final_user.points.total,
            level=final_user.level,
            new_badges=[badge for badge in final_user.badges if badge.name not in held_badges],
        )

    async def rescore_review(self, review_id: str) -> PointsAward:
        """Score a stored review again with current engagement, without crediting anything.

        The AI strategy applies its age decay; the heuristic strategy
        returns a plain re-score.
        """
        review = await self._reviews.get_review(review_id)
        if review is None:
            raise NotFoundError(message=f"Review {review_id} not found")
        author = await self._users.get_user(review.author_id)
        if author is None:
            raise NotFoundError(message=f"User {review.author_id} not found")

        now = self._clock()
        context = await self._build_context(review)
        if isinstance(self._strategy, AIScoringStrategy):
            return await self._strategy.reevaluate(review, author, context, now)
        return await self._strategy.score(review, author, context, now)

    # ------------------------------------------------------------------
    # Replies and votes
    # ------------------------------------------------------------------

    async def submit_reply(self, user_id: str, review_id: str, content: str) -> ReplyResult:
        now = self._clock()
        _raise_if_denied(await self._gate.check_reply(user_id, review_id, content))

        review = await self._require_review(review_id)
        user = await self._get_or_create_user(user_id, now)

        reply = Reply(review_id=review_id, author_id=user_id, content=content, created_at=now)
        updated_review = review.model_copy(update={"replies": [*review.replies, reply]})
        await self._reviews.save_review(updated_review)
        await self._gate.record_action(user_id, REPLY_ACTION)

        points = score_reply(reply)
        updated_user = apply_points(
            user.model_copy(update={"total_replies": user.total_replies + 1}), points, now,
        )
        await self._users.save_user(updated_user)

        outcome = await self._moderation.moderate_reply(reply, updated_review, updated_user)
        logger.info(
            "reply_submitted",
            reply_id=reply.reply_id,
            review_id=review_id,
            user_id=user_id,
            points_awarded=points,
            removed=outcome.removed,
        )
        return ReplyResult(reply=reply, points_awarded=points, moderation=outcome)

    async def vote(self, user_id: str, review_id: str, like: bool) -> VoteResult:
        """Toggle a like (or dislike).  A user is in at most one of the two sets."""
        review = await self._require_review(review_id)
        liked = [uid for uid in review.liked_by if uid != user_id]
        disliked = [uid for uid in review.disliked_by if uid != user_id]
        if like and user_id not in review.liked_by:
            liked.append(user_id)
        elif not like and user_id not in review.disliked_by:
            disliked.append(user_id)

        updated = review.model_copy(update={"liked_by": liked, "disliked_by": disliked})
        await self._reviews.save_review(updated)

        author = await self._users.get_user(review.author_id)
        if author is not None:
            authored = await self._reviews.find_reviews(ReviewQuery(author_id=author.user_id))
            ratio, likes = helpfulness_from_reviews(authored)
            author = author.model_copy(update={"helpfulness_ratio": ratio, "total_likes": likes})
            await self._users.save_user(refresh_badges(author, self._clock()))

        return VoteResult(
            review_id=review_id,
            like_count=updated.like_count,
            dislike_count=updated.dislike_count,
        )

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    async def get_review(self, review_id: str) -> Review:
        review = await self._reviews.get_review(review_id)
        if review is None:
            raise NotFoundError(message=f"Review {review_id} not found")
        return review

    async def get_progress(self, user_id: str) -> UserProgress:
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(message=f"User {user_id} not found")
        return UserProgress(
            user_id=user.user_id,
            points=user.points,
            level=user.level,
            level_name=level_name(user.level),
            next_level_points=level_for_points(user.points.total).next_level_points,
            badges=user.badges,
            streak=user.streak,
            spam_score=user.spam_score,
        )
