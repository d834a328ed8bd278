"""Spam and rate-limit gate for review and reply submissions.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.  Runs before anything is persisted; a rejection never
# touches moderation state.
#
# Review checks, in order:
#   1. hourly rate limit (10 reviews)                      -> 429 "1 hour"
#   2. copy-paste: Jaccard > 0.7 against the last 5 reviews -> 400
#   3. rapid fire: < 30 s since the last review            -> 429 "N seconds"
#   4. account spam score > 80                             -> 403
#
# Reply checks, in order:
#   1. hourly rate limit (30 replies)                      -> 429 "1 hour"
#   2. < 60 s since the user's last reply on this review   -> 429
#   3. identical reply already on this review              -> 400
#   4. rapid fire: < 10 s since the last reply             -> 429 "N seconds"
#
# Last-action timestamps live in an injected ICacheProvider (a bounded
# TTL cache in production), so state is process-local and idle users age
# out of it on their own.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from reelcritic.interfaces.cache_provider import ICacheProvider
from reelcritic.interfaces.review_provider import IReviewProvider, ReviewQuery
from reelcritic.interfaces.user_provider import IUserProvider
from reelcritic.models.moderation import GateDecision, GateLimits
from reelcritic.services.scoring_engine import round_half_up
from reelcritic.utils.errors import NotFoundError
from reelcritic.utils.text_similarity import max_similarity

logger = structlog.get_logger(logger_name=__name__)

REVIEW_ACTION = "review"
REPLY_ACTION = "reply"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SpamGate:
    """Pre-submission checks backed by the review store and a last-action cache."""

    def __init__(
        self,
        review_store: IReviewProvider,
        user_store: IUserProvider,
        last_action_cache: ICacheProvider,
        limits: GateLimits | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._reviews = review_store
        self._users = user_store
        self._cache = last_action_cache
        self._limits = limits or GateLimits()
        self._clock = clock

    @staticmethod
    def _cache_key(user_id: str, kind: str) -> str:
        return f"{user_id}_last_{kind}"

    def _deny(self, user_id: str, kind: str, check: str, decision: GateDecision) -> GateDecision:
        logger.info(
            "gate_rejected",
            user_id=user_id,
            kind=kind,
            check=check,
            status_code=decision.status_code,
            wait_time=decision.wait_time,
        )
        return decision

    async def _rapid_fire(self, user_id: str, kind: str, min_seconds: int) -> GateDecision | None:
        last = await self._cache.get(self._cache_key(user_id, kind))
        if last is None:
            return None
        elapsed = (self._clock() - last).total_seconds()
        if elapsed >= min_seconds:
            return None
        wait = f"{math.ceil(min_seconds - elapsed)} seconds"
        noun = "reviews" if kind == REVIEW_ACTION else "replies"
        return GateDecision.deny(f"Please slow down. Wait {wait} between {noun}.", 429, wait)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def check_review(self, user_id: str, content: str) -> GateDecision:
        now = self._clock()
        limits = self._limits

        recent_count = await self._reviews.count_reviews(
            ReviewQuery(author_id=user_id, created_after=now - timedelta(hours=1))
        )
        if recent_count >= limits.max_reviews_per_hour:
            return self._deny(user_id, REVIEW_ACTION, "rate_limit", GateDecision.deny(
                "Too many reviews. Please wait 1 hour before posting again.", 429, "1 hour",
            ))

        recent_reviews = await self._reviews.find_reviews(
            ReviewQuery(author_id=user_id, newest_first=True, limit=limits.copy_paste_lookback)
        )
        similarity = max_similarity(content, (review.content for review in recent_reviews))
        if similarity > limits.copy_paste_threshold:
            return self._deny(user_id, REVIEW_ACTION, "copy_paste", GateDecision.deny(
                "This review appears to be very similar to your recent reviews. "
                "Please write unique content for each review.",
                400,
            ))

        rapid = await self._rapid_fire(user_id, REVIEW_ACTION, limits.min_seconds_between_reviews)
        if rapid is not None:
            return self._deny(user_id, REVIEW_ACTION, "rapid_fire", rapid)

        user = await self._users.get_user(user_id)
        if user is not None and user.spam_score > limits.spam_score_block_threshold:
            return self._deny(user_id, REVIEW_ACTION, "spam_score", GateDecision.deny(
                "Your account has been flagged for spam. Please contact support.", 403,
            ))

        return GateDecision.allow()

    async def check_reply(self, user_id: str, review_id: str, content: str) -> GateDecision:
        now = self._clock()
        limits = self._limits

        recent_replies = await self._reviews.count_replies_since(user_id, now - timedelta(hours=1))
        if recent_replies >= limits.max_replies_per_hour:
            return self._deny(user_id, REPLY_ACTION, "rate_limit", GateDecision.deny(
                "Too many replies. Please wait 1 hour before posting again.", 429, "1 hour",
            ))

        review = await self._reviews.get_review(review_id)
        if review is None:
            raise NotFoundError(message=f"Review {review_id} not found")

        own_replies = [reply for reply in review.replies if reply.author_id == user_id]
        same_review_window = timedelta(seconds=limits.min_seconds_between_same_review_replies)
        if any(now - reply.created_at < same_review_window for reply in own_replies):
            return self._deny(user_id, REPLY_ACTION, "same_review_spacing", GateDecision.deny(
                "Please wait at least 1 minute between replies to the same review.", 429, "1 minute",
            ))

        normalized = content.strip().lower()
        if any(reply.content.strip().lower() == normalized for reply in own_replies):
            return self._deny(user_id, REPLY_ACTION, "identical_reply", GateDecision.deny(
                "You have already posted this exact reply.", 400,
            ))

        rapid = await self._rapid_fire(user_id, REPLY_ACTION, limits.min_seconds_between_replies)
        if rapid is not None:
            return self._deny(user_id, REPLY_ACTION, "rapid_fire", rapid)

        return GateDecision.allow()

    async def record_action(self, user_id: str, kind: str) -> None:
        """Remember that *user_id* just posted a *kind* (``"review"`` or ``"reply"``)."""
        await self._cache.set(self._cache_key(user_id, kind), self._clock())

    # ------------------------------------------------------------------
    # Spam score
    # ------------------------------------------------------------------

    async def calculate_spam_score(self, user_id: str) -> int:
        """Recompute and store the user's 0-100 spam score.

        40 x removed-review ratio, 30 x flagged-review ratio, 20 x dislike
        ratio once the user has more than 10 votes, and 10 more for the
        permanent duplicate-content mark.
        """
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(message=f"User {user_id} not found")
        reviews = await self._reviews.find_reviews(ReviewQuery(author_id=user_id))

        score = 0.0
        if reviews:
            score += sum(1 for review in reviews if review.is_removed) / len(reviews) * 40
            score += sum(1 for review in reviews if review.is_flagged) / len(reviews) * 30
        likes = sum(review.like_count for review in reviews)
        dislikes = sum(review.dislike_count for review in reviews)
        if likes + dislikes > 10:
            score += dislikes / (likes + dislikes) * 20
        if user.has_duplicate_content:
            score += 10

        spam_score = min(100, round_half_up(score))
        if spam_score != user.spam_score:
            await self._users.save_user(user.model_copy(update={"spam_score": spam_score}))
            logger.info("spam_score_updated", user_id=user_id, spam_score=spam_score, previous=user.spam_score)
        return spam_score
