"""Reviewer credibility model.

A multiplicative factor in ``[0.3, 1.5]`` that scales the community-facing
terms (engagement and authenticity) of an AI-scored review.  Factors
start at 1.0 and every qualifying condition applies:

    extreme-rating ratio > 0.7        x0.7   (else > 0.5: x0.85)
    more than 20 recent reviews       x0.6
    average AI quality > 0.85         x1.2
    account younger than 7 days       x0.8   (else older than 365 days: x1.1)
"""

from __future__ import annotations

from datetime import datetime

import structlog

from reelcritic.models.scoring import CredibilityScore
from reelcritic.models.user import User

logger = structlog.get_logger(logger_name=__name__)

_MIN_CREDIBILITY = 0.3
_MAX_CREDIBILITY = 1.5
_BURST_REVIEW_COUNT = 20


def calculate_credibility(user: User, now: datetime) -> CredibilityScore:
    """Return the clamped credibility score and the factors that produced it."""
    factors: dict[str, float] = {}

    extreme_ratio = user.extreme_ratings / max(user.total_reviews, 1)
    if extreme_ratio > 0.7:
        factors["extreme_ratings"] = 0.7
    elif extreme_ratio > 0.5:
        factors["extreme_ratings"] = 0.85

    if user.recent_review_count > _BURST_REVIEW_COUNT:
        factors["review_burst"] = 0.6

    if user.avg_review_quality > 0.85:
        factors["high_quality"] = 1.2

    account_age_days = (now - user.created_at).total_seconds() / 86400
    if account_age_days < 7:
        factors["new_account"] = 0.8
    elif account_age_days > 365:
        factors["established_account"] = 1.1

    score = 1.0
    for factor in factors.values():
        score *= factor
    score = max(_MIN_CREDIBILITY, min(_MAX_CREDIBILITY, score))

    if factors:
        logger.debug("credibility_adjusted", user_id=user.user_id, score=score, factors=factors)
    return CredibilityScore(score=score, factors=factors)
