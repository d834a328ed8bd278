"""Abstract base class for the moderation audit sink.

The audit log is append-only: records are never updated or deleted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from reelcritic.models.moderation import AuditRecord


class IAuditProvider(ABC):
    """Contract for moderation audit storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the audit table if it does not exist."""

    @abstractmethod
    async def append(self, record: AuditRecord) -> None:
        """Append *record* to the log."""

    @abstractmethod
    async def list_records(
        self,
        review_id: str | None = None,
        user_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """Return the most recent records, newest first, optionally filtered."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and errors."""
