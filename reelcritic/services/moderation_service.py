"""Moderation decision pipeline for reviews and replies.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.  Called synchronously by ReviewService after a points
# award, and in batches by the moderation job for reviews that were
# never looked at.
#
# Review pipeline (order matters, penalties accumulate):
#
#   1. spam (AI or regex)           remove   -50
#   2. offensive (AI or regex)      remove   -30   reason overwritten
#   3. near-duplicate of own review flag     -20   marks the author
#   4. promotional outlier          high -25 / medium -10
#   5. quality bonus                +30/+20/+10 at 90/75/60   (not removed)
#   6. constructive                 +15                       (not removed)
#   7. untagged spoiler             flag     -15
#   8. insightful                   +20                       (not removed)
#   9. low effort                   -15                       (not removed)
#
# Then the review and author are written back (separately, not in one
# transaction) and an audit record is appended.  AI failures never
# surface here: AISignalProvider already substitutes a pattern-based
# analysis.  Storage failures propagate as PersistenceError.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog

from reelcritic.interfaces.audit_provider import IAuditProvider
from reelcritic.interfaces.review_provider import IReviewProvider, ReviewQuery
from reelcritic.interfaces.user_provider import IUserProvider
from reelcritic.models.moderation import (
    AuditRecord,
    BatchResult,
    ConsensusInfo,
    ContentAnalysis,
    ModerationActions,
    ModerationOutcome,
    PromotionalConfidence,
    ReplyModerationOutcome,
)
from reelcritic.models.review import ModerationState, Reply, Review
from reelcritic.models.user import User
from reelcritic.services.ai_signals import AISignalProvider
from reelcritic.services.content_patterns import detect_offensive_content, detect_spam_patterns
from reelcritic.services.gamification import apply_points
from reelcritic.utils.errors import NotFoundError, ReelCriticError
from reelcritic.utils.text_similarity import max_similarity

logger = structlog.get_logger(logger_name=__name__)

MODERATOR_ID = "AI_BOT"

DUPLICATE_WARNING = "Possible duplicate content detected"

# (minimum quality score, bonus), checked top-down.
_QUALITY_BONUS_TIERS = ((90, 30), (75, 20), (60, 10))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _ActionBuilder:
    """Mutable accumulator for one pipeline run; frozen into ModerationActions at the end."""

    def __init__(self) -> None:
        self.should_remove = False
        self.should_flag = False
        self.points = 0
        self.reason = ""
        self.warnings: list[str] = []

    def remove(self, reason: str, penalty: int) -> None:
        self.should_remove = True
        self.reason = reason
        self.points += penalty
        self.warnings.append(reason)

    def flag(self, warning: str, penalty: int) -> None:
        self.should_flag = True
        self.points += penalty
        self.warnings.append(warning)

    def adjust(self, points: int, warning: str | None = None) -> None:
        self.points += points
        if warning:
            self.warnings.append(warning)

    def build(self) -> ModerationActions:
        return ModerationActions(
            should_remove=self.should_remove,
            should_flag=self.should_flag,
            points_adjustment=self.points,
            reason=self.reason,
            warnings=list(self.warnings),
        )


class ModerationService:
    """Runs the moderation pipeline and writes its decisions back.

    Parameters
    ----------
    review_store, user_store:
        Persistence for reviews and their authors.
    audit:
        Append-only sink for every decision.
    signals:
        Source of the AI content analysis (with pattern fallback).
    clock:
        Returns the current UTC time; injectable for tests.
    duplicate_threshold:
        Jaccard similarity above which a review counts as a duplicate of
        one of its author's earlier reviews.
    duplicate_lookback:
        How many of the author's most recent reviews to compare against.
    """

    def __init__(
        self,
        review_store: IReviewProvider,
        user_store: IUserProvider,
        audit: IAuditProvider,
        signals: AISignalProvider,
        clock: Callable[[], datetime] = _utc_now,
        duplicate_threshold: float = 0.8,
        duplicate_lookback: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._reviews = review_store
        self._users = user_store
        self._audit = audit
        self._signals = signals
        self._clock = clock
        self._duplicate_threshold = duplicate_threshold
        self._duplicate_lookback = duplicate_lookback
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def _is_duplicate(self, review: Review) -> bool:
        earlier = await self._reviews.find_reviews(ReviewQuery(
            author_id=review.author_id,
            exclude_review_id=review.review_id,
            newest_first=True,
            limit=self._duplicate_lookback,
        ))
        similarity = max_similarity(
            review.content, (other.content for other in earlier), strip_punctuation=False,
        )
        return similarity > self._duplicate_threshold

    async def _decide(
        self,
        review: Review,
        analysis: ContentAnalysis,
        consensus: ConsensusInfo | None,
    ) -> ModerationActions:
        actions = _ActionBuilder()

        if analysis.is_spam or detect_spam_patterns(review.content):
            actions.remove("Spam detected", -50)

        if analysis.is_offensive or detect_offensive_content(review.content):
            actions.remove("Offensive content detected", -30)

        if await self._is_duplicate(review):
            actions.flag(DUPLICATE_WARNING, -20)

        if analysis.is_promotional:
            average = consensus.average_rating if consensus else None
            if (
                analysis.promotional_confidence is PromotionalConfidence.HIGH
                and average is not None
                and analysis.is_low_effort
                and abs(review.rating - average) >= 4
            ):
                actions.adjust(-25, "Promotional outlier review")
            elif analysis.promotional_confidence is PromotionalConfidence.MEDIUM:
                actions.adjust(-10, "Possibly promotional content")

        if not actions.should_remove:
            for minimum, bonus in _QUALITY_BONUS_TIERS:
                if analysis.quality_score >= minimum:
                    actions.adjust(bonus)
                    break
            if analysis.is_constructive:
                actions.adjust(15)

        if analysis.contains_spoilers and not review.spoiler:
            actions.flag("Contains untagged spoilers", -15)

        if not actions.should_remove:
            if analysis.is_insightful:
                actions.adjust(20)
            if analysis.is_low_effort:
                actions.adjust(-15, "Low effort content")

        return actions.build()

    async def moderate_review(
        self,
        review: Review,
        user: User | None = None,
        consensus: ConsensusInfo | None = None,
    ) -> ModerationOutcome:
        """Analyse *review*, apply the decision rules and persist the result.

        *user* defaults to the stored author.  Every pass stamps
        ``moderated_at`` so the batch job never picks the review up again.
        """
        if user is None:
            user = await self._users.get_user(review.author_id)
            if user is None:
                raise NotFoundError(message=f"Author {review.author_id} of review {review.review_id} not found")

        analysis = await self._signals.analyze_for_moderation(review, consensus)
        actions = await self._decide(review, analysis, consensus)
        now = self._clock()

        update: dict = {"moderated_at": now, "moderated_by": MODERATOR_ID}
        if actions.should_remove:
            update.update(is_removed=True, removal_reason=actions.reason)
        elif actions.should_flag:
            update.update(is_flagged=True, flag_reason=", ".join(actions.warnings))
        moderated = review.model_copy(update=update)
        await self._reviews.save_review(moderated)

        updated_user = apply_points(user, actions.points_adjustment, now)
        if any("duplicate" in warning.lower() for warning in actions.warnings):
            updated_user = updated_user.model_copy(update={"has_duplicate_content": True})
        await self._users.save_user(updated_user)

        verdict = actions.verdict
        await self._audit.append(AuditRecord(
            timestamp=now,
            review_id=review.review_id,
            user_id=review.author_id,
            action=f"review_{verdict.value.lower()}",
            reason=actions.reason,
            points_adjustment=actions.points_adjustment,
            warnings=actions.warnings,
            analysis=analysis.model_dump(mode="json"),
        ))
        logger.info(
            "review_moderated",
            review_id=review.review_id,
            user_id=review.author_id,
            verdict=verdict.value,
            points_adjustment=actions.points_adjustment,
            warnings=actions.warnings,
            ai_fallback=analysis.fallback,
        )
        return ModerationOutcome(
            review_id=review.review_id,
            actions=actions,
            analysis=analysis,
            verdict=verdict,
        )

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    async def moderate_reply(self, reply: Reply, review: Review, user: User) -> ReplyModerationOutcome:
        """Pattern-only moderation of a reply; removal deletes it from the parent review."""
        points = 0
        reasons: list[str] = []
        if detect_spam_patterns(reply.content):
            points -= 20
            reasons.append("Spam detected")
        if detect_offensive_content(reply.content):
            points -= 15
            reasons.append("Offensive content detected")
        removed = bool(reasons)
        if not removed and len(reply.content) > 100:
            points += 5

        now = self._clock()
        if removed:
            remaining = [item for item in review.replies if item.reply_id != reply.reply_id]
            await self._reviews.save_review(review.model_copy(update={"replies": remaining}))
        if points:
            await self._users.save_user(apply_points(user, points, now))

        reason = reasons[-1] if reasons else ""
        await self._audit.append(AuditRecord(
            timestamp=now,
            review_id=review.review_id,
            reply_id=reply.reply_id,
            user_id=reply.author_id,
            action="reply_removed" if removed else "reply_allowed",
            reason=reason,
            points_adjustment=points,
            warnings=reasons,
        ))
        logger.info(
            "reply_moderated",
            reply_id=reply.reply_id,
            review_id=review.review_id,
            removed=removed,
            points_adjustment=points,
        )
        return ReplyModerationOutcome(
            reply_id=reply.reply_id,
            removed=removed,
            points_adjustment=points,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def _park_failed_review(self, review: Review, error: ReelCriticError) -> None:
        now = self._clock()
        reason = f"Moderation failed: {error.message}"
        try:
            await self._reviews.save_review(review.model_copy(update={
                "moderated_at": now,
                "moderated_by": MODERATOR_ID,
                "is_flagged": True,
                "flag_reason": reason,
            }))
            await self._audit.append(AuditRecord(
                timestamp=now,
                review_id=review.review_id,
                user_id=review.author_id,
                action="moderation_failed",
                reason=reason,
            ))
        except ReelCriticError as exc:
            logger.error(
                "failed_review_not_parked",
                review_id=review.review_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    async def batch_moderate(self, limit: int = 50, delay_seconds: float = 1.0) -> BatchResult:
        """Moderate up to *limit* of the oldest unmoderated, non-removed reviews.

        Items run one at a time with *delay_seconds* between them.  A
        failure on one review is logged and counted; the batch continues.
        A review that fails is stamped and flagged for a human, so it
        cannot hold its place at the head of the queue.
        """
        pending = await self._reviews.find_reviews(
            ReviewQuery(unmoderated_only=True, exclude_removed=True, limit=limit)
        )
        processed = removed = flagged = adjusted = failed = 0

        for index, review in enumerate(pending):
            if index and delay_seconds > 0:
                await self._sleep(delay_seconds)
            try:
                outcome = await self.moderate_review(review)
            except ReelCriticError as exc:
                failed += 1
                logger.error(
                    "review_moderation_failed",
                    review_id=review.review_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                await self._park_failed_review(review, exc)
                continue

            processed += 1
            if outcome.verdict is ModerationState.REMOVED:
                removed += 1
            elif outcome.verdict is ModerationState.FLAGGED:
                flagged += 1
            if outcome.actions.points_adjustment != 0:
                adjusted += 1

        result = BatchResult(
            processed=processed,
            removed=removed,
            flagged=flagged,
            points_adjusted=adjusted,
            failed=failed,
        )
        logger.info("moderation_batch_completed", **result.model_dump())
        return result
