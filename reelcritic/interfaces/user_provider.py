"""Abstract base class for reviewer profile persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from reelcritic.models.user import User


class IUserProvider(ABC):
    """Contract for user storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they do not exist."""

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Return the user with *user_id*, or ``None``."""

    @abstractmethod
    async def save_user(self, user: User) -> None:
        """Insert or replace *user*.

        Raises
        ------
        reelcritic.utils.errors.PersistenceError
            On any storage failure.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and errors."""
