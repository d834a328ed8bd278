"""Deterministic scoring engine.

Pure functions over a review, its author and the request context.  Each
``score_*`` function returns a :class:`ScoreComponent` whose ``details``
name the sub-terms, so a breakdown can be explained line by line.  No
function here clamps its total: a review may score negative, and the
single clamp to zero happens when points are applied to the user.

Two length-tier tables exist for the base score.  The AI variant scales
its base by the model's quality score, so its tiers are larger; the
heuristic variant adds an authentic-rating bonus instead.
"""

from __future__ import annotations

import math
from datetime import datetime

from reelcritic.models.review import MediaType, Reply, Review
from reelcritic.models.scoring import ModerationContext, ScoreComponent, ScoringVariant
from reelcritic.models.user import User

# (exclusive upper bound on content length, points); the last tier has no bound.
_LENGTH_TIERS: dict[ScoringVariant, tuple[tuple[int, int], ...]] = {
    ScoringVariant.AI: ((100, 10), (300, 25), (500, 40)),
    ScoringVariant.HEURISTIC: ((100, 5), (300, 15), (500, 30)),
}
_LONGEST_TIER_POINTS = {ScoringVariant.AI: 60, ScoringVariant.HEURISTIC: 50}

_TITLE_BONUS = 5
_TITLE_MIN_LENGTH = 10
_AUTHENTIC_RATING_BONUS = 8

# (minimum count, points), checked top-down.
_DISCUSSION_TIERS = ((11, 30), (6, 20), (1, 10))
_GENRE_DIVERSITY_TIERS = ((20, 150), (10, 75), (5, 30))
# (maximum rank, points)
_EARLY_REVIEWER_TIERS = ((10, 25), (50, 15), (100, 10))
_FORMAT_DIVERSITY_BONUS = 25

# (minimum streak days, multiplier, bonus)
_STREAK_TIERS = ((30, 1.5, 200), (7, 1.25, 50), (3, 1.1, 20))


def round_half_up(value: float) -> int:
    """Round .5 away from negative infinity, the way the scores were tuned.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); point
    totals expect ``2.5 -> 3`` and ``-2.5 -> -2``.
    """
    return math.floor(value + 0.5)


def sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def _first_tier(value: int, tiers: tuple[tuple[int, int], ...]) -> int:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return 0


# ---------------------------------------------------------------------------
# Review dimensions
# ---------------------------------------------------------------------------

def score_base(review: Review, variant: ScoringVariant = ScoringVariant.AI) -> ScoreComponent:
    """Length tier, title bonus and (heuristic only) authentic-rating bonus."""
    length = len(review.content)
    length_points = _LONGEST_TIER_POINTS[variant]
    for upper, points in _LENGTH_TIERS[variant]:
        if length < upper:
            length_points = points
            break

    details = {"length": length_points}
    if len(review.title) > _TITLE_MIN_LENGTH:
        details["title"] = _TITLE_BONUS
    if variant is ScoringVariant.HEURISTIC and 2 < review.rating < 10:
        details["authentic_rating"] = _AUTHENTIC_RATING_BONUS
    return ScoreComponent(total=sum(details.values()), details=details)


def score_engagement(review: Review) -> ScoreComponent:
    """Net-like helpfulness (capped at 100) plus a discussion tier by reply count."""
    helpfulness = min(100, max(0, (review.like_count - review.dislike_count) * 2))
    discussion = _first_tier(review.reply_count, _DISCUSSION_TIERS)
    details = {"helpfulness": helpfulness, "discussion": discussion}
    return ScoreComponent(total=helpfulness + discussion, details=details)


def score_timing(review: Review, context: ModerationContext, now: datetime) -> ScoreComponent:
    """Early-reviewer bonus by rank and a longevity bonus for reviews that kept earning likes."""
    early = 0
    for max_rank, points in _EARLY_REVIEWER_TIERS:
        if context.review_rank <= max_rank:
            early = points
            break

    age_days = (now - review.created_at).total_seconds() / 86400
    longevity = 0
    if age_days >= 90 and review.like_count >= 20:
        longevity = 50
    elif age_days >= 30 and review.like_count >= 10:
        longevity = 20

    return ScoreComponent(total=early + longevity, details={"early_reviewer": early, "longevity": longevity})


def score_diversity(user: User) -> ScoreComponent:
    """Genre breadth tier plus a bonus for reviewing both movies and TV."""
    genres = _first_tier(len(set(user.reviewed_genres)), _GENRE_DIVERSITY_TIERS)
    formats = set(user.reviewed_formats)
    both = _FORMAT_DIVERSITY_BONUS if {MediaType.MOVIE.value, MediaType.TV.value} <= formats else 0
    return ScoreComponent(total=genres + both, details={"genres": genres, "formats": both})


def score_penalties(review: Review, user: User) -> ScoreComponent:
    details: dict[str, int] = {}
    if len(review.content) < 20:
        details["too_short"] = -20
    likes, dislikes = review.like_count, review.dislike_count
    if dislikes > 0 and likes / (likes + dislikes) < 0.5:
        details["poor_ratio"] = -10
    if user.has_duplicate_content:
        details["duplicate_content"] = -30
    return ScoreComponent(total=sum(details.values()), details=details)


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------

def streak_multiplier(streak: int) -> float:
    for minimum, multiplier, _ in _STREAK_TIERS:
        if streak >= minimum:
            return multiplier
    return 1.0


def streak_bonus(streak: int) -> int:
    for minimum, _, bonus in _STREAK_TIERS:
        if streak >= minimum:
            return bonus
    return 0


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------

def score_reply(reply: Reply) -> int:
    """Points for posting a reply: length, mentioning someone, and likes."""
    points = 8 if len(reply.content) > 50 else 3
    if "@" in reply.content:
        points += 2
    return points + reply.like_count
