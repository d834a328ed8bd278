"""Abstract base class for review persistence providers.

Reviews are stored as documents (replies embedded) with the fields the
gate, scoring and moderation queries filter on exposed for indexing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from reelcritic.models.review import MediaType, Review


@dataclass(frozen=True)
class ReviewQuery:
    """Filter, ordering and limit for review look-ups.

    Attributes
    ----------
    author_id:
        Only reviews written by this user.
    media_id, media_type:
        Only reviews of this catalog item.
    exclude_review_id:
        Leave this review out (used when comparing a review to its
        author's other reviews).
    unmoderated_only:
        Only reviews the bot has not looked at (``moderated_at`` unset).
    exclude_removed:
        Leave removed reviews out.
    created_after:
        Only reviews created at or after this instant.
    newest_first:
        Sort by ``created_at`` descending instead of ascending.
    limit:
        Maximum number of rows; ``None`` for no limit.
    """

    author_id: str | None = None
    media_id: str | None = None
    media_type: MediaType | None = None
    exclude_review_id: str | None = None
    unmoderated_only: bool = False
    exclude_removed: bool = False
    created_after: datetime | None = None
    newest_first: bool = False
    limit: int | None = None


class IReviewProvider(ABC):
    """Contract for review storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def get_review(self, review_id: str) -> Review | None:
        """Return the review with *review_id*, or ``None``."""

    @abstractmethod
    async def save_review(self, review: Review) -> None:
        """Insert or replace *review*.

        Raises
        ------
        reelcritic.utils.errors.DuplicateReviewError
            If a different review by the same author for the same media
            already exists.
        reelcritic.utils.errors.PersistenceError
            On any storage failure.
        """

    @abstractmethod
    async def find_reviews(self, query: ReviewQuery) -> list[Review]:
        """Return the reviews matching *query*."""

    @abstractmethod
    async def count_reviews(self, query: ReviewQuery) -> int:
        """Count the reviews matching *query* (``limit`` is ignored)."""

    @abstractmethod
    async def count_replies_since(self, author_id: str, since: datetime) -> int:
        """Count replies by *author_id* created at or after *since*, across all reviews."""

    @abstractmethod
    async def average_likes(self) -> float | None:
        """Mean like count over non-removed reviews, or ``None`` when there are none."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and errors."""
