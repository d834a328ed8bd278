"""aiosqlite document stores for reviews and users."""

from reelcritic.providers.persistence.sqlite_review_provider import SQLiteReviewProvider
from reelcritic.providers.persistence.sqlite_user_provider import SQLiteUserProvider

__all__ = ["SQLiteReviewProvider", "SQLiteUserProvider"]
