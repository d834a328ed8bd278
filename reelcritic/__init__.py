"""reelcritic: review points, credibility scoring and AI moderation."""

__version__ = "0.1.0"
