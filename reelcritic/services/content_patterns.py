"""Regex detectors for spam and offensive content.

These run alongside the AI analysis on every review and are the whole
check for replies.  They also seed the fallback analysis used when the
model cannot be reached.
"""

from __future__ import annotations

import re

SPAM_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(.)\1{10,}", re.IGNORECASE),  # the same character 11+ times
    re.compile(r"https?://", re.IGNORECASE),
    re.compile(r"\b(buy|click|visit|download|free|win|prize)\b", re.IGNORECASE),
    re.compile(r"\b(\d{3}[-.]?\d{3}[-.]?\d{4})\b", re.IGNORECASE),  # phone number
    re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),  # email
)

OFFENSIVE_PATTERN = re.compile(r"\b(hate|racist|sexist)\b", re.IGNORECASE)


def detect_spam_patterns(text: str) -> bool:
    return any(pattern.search(text) for pattern in SPAM_PATTERNS)


def detect_offensive_content(text: str) -> bool:
    return OFFENSIVE_PATTERN.search(text) is not None
