"""Levels, badges, streaks and reviewer statistics.

Every function takes a frozen :class:`User` and returns a new one; callers
persist the result.  :func:`apply_points` is the only place point balances
change, and it holds the two invariants the rest of the system relies on:
balances never go below zero, and the level never goes down.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from reelcritic.models.review import Review
from reelcritic.models.user import Badge, Points, Streak, User
from reelcritic.services.scoring_engine import round_half_up


@dataclass(frozen=True)
class LevelInfo:
    level: int
    name: str
    min_points: int
    next_level_points: int | None


# (level, name, minimum total points)
LEVELS: tuple[tuple[int, str, int], ...] = (
    (1, "Newbie Critic", 0),
    (2, "Amateur Reviewer", 100),
    (3, "Movie Buff", 300),
    (4, "Cinema Enthusiast", 600),
    (5, "Film Connoisseur", 1000),
    (6, "Master Critic", 2000),
    (7, "Elite Reviewer", 4000),
    (8, "Legendary Critic", 8000),
    (9, "Cinema Oracle", 16000),
    (10, "Review Grandmaster", 32000),
)


@dataclass(frozen=True)
class BadgeRule:
    name: str
    icon: str
    earned_by: Callable[[User], bool]


BADGES: tuple[BadgeRule, ...] = (
    BadgeRule("Century Club", "💯", lambda u: u.total_reviews >= 100),
    BadgeRule("Review Master", "👑", lambda u: u.total_reviews >= 500),
    BadgeRule("Community Favorite", "⭐", lambda u: u.total_likes >= 1000),
    BadgeRule("Discussion Leader", "💬", lambda u: u.total_replies >= 500),
    BadgeRule("Dedicated Critic", "🔥", lambda u: u.streak.current >= 30),
    BadgeRule("Unstoppable", "⚡", lambda u: u.streak.current >= 90),
    BadgeRule("Genre Explorer", "🎭", lambda u: len(u.reviewed_genres) >= 15),
    BadgeRule("Format Master", "📺", lambda u: len(u.reviewed_formats) >= 2),
    BadgeRule("Detailed Analyst", "📝", lambda u: u.average_review_length >= 500),
    BadgeRule("Helpful Reviewer", "🌟", lambda u: u.helpfulness_ratio >= 0.8),
)


def level_for_points(points: int) -> LevelInfo:
    """Return the highest level whose threshold *points* reaches."""
    current = LEVELS[0]
    next_points: int | None = None
    for index, entry in enumerate(LEVELS):
        if points >= entry[2]:
            current = entry
            next_points = LEVELS[index + 1][2] if index + 1 < len(LEVELS) else None
    return LevelInfo(level=current[0], name=current[1], min_points=current[2], next_level_points=next_points)


def level_name(level: int) -> str:
    return LEVELS[max(1, min(level, len(LEVELS))) - 1][1]


def refresh_badges(user: User, now: datetime) -> User:
    """Append badges the user now qualifies for; held badges are never removed."""
    held = user.badge_names()
    new_badges = [
        Badge(name=rule.name, icon=rule.icon, earned_at=now)
        for rule in BADGES
        if rule.name not in held and rule.earned_by(user)
    ]
    if not new_badges:
        return user
    return user.model_copy(update={"badges": [*user.badges, *new_badges]})


def apply_points(user: User, delta: int, now: datetime) -> User:
    """Add *delta* to both balances (clamped at zero), then raise level and refresh badges."""
    points = Points(
        total=max(0, user.points.total + delta),
        available=max(0, user.points.available + delta),
    )
    earned_level = level_for_points(points.total).level
    updated = user.model_copy(update={
        "points": points,
        "level": max(user.level, earned_level),
    })
    return refresh_badges(updated, now)


def advance_streak(streak: Streak, today: date) -> Streak:
    """Same day: unchanged. Next day: +1. Any longer gap: restart at 1."""
    if streak.last_activity_date is None:
        return Streak(current=1, longest=max(1, streak.longest), last_activity_date=today)

    gap = (today - streak.last_activity_date).days
    if gap <= 0:
        return streak
    current = streak.current + 1 if gap == 1 else 1
    return Streak(current=current, longest=max(streak.longest, current), last_activity_date=today)


def is_extreme_rating(rating: int) -> bool:
    return rating <= 2 or rating == 10


def record_review_stats(user: User, review: Review, now: datetime) -> User:
    """Fold a newly written review into the author's statistics and streak."""
    genres = list(user.reviewed_genres)
    for genre in review.genres:
        if genre not in genres:
            genres.append(genre)
    formats = list(user.reviewed_formats)
    if review.media_type.value not in formats:
        formats.append(review.media_type.value)

    total_reviews = user.total_reviews + 1
    average_length = round_half_up(
        (user.average_review_length * (total_reviews - 1) + len(review.content)) / total_reviews
    )

    return user.model_copy(update={
        "reviewed_genres": genres,
        "reviewed_formats": formats,
        "average_review_length": float(average_length),
        "total_reviews": total_reviews,
        "extreme_ratings": user.extreme_ratings + (1 if is_extreme_rating(review.rating) else 0),
        "streak": advance_streak(user.streak, now.date()),
    })


def helpfulness_from_reviews(reviews: list[Review]) -> tuple[float, int]:
    """Return ``(likes / votes, total likes)`` over *reviews*; ratio is 0.0 with no votes."""
    likes = sum(review.like_count for review in reviews)
    votes = likes + sum(review.dislike_count for review in reviews)
    return (likes / votes if votes else 0.0), likes
