"""Background moderation for reelcritic."""

from reelcritic.pipeline.moderation_job import ModerationJob

__all__ = [
    "ModerationJob",
]
