"""Word-set similarity helpers used by the duplicate and copy-paste checks."""

from __future__ import annotations

import re
from collections.abc import Iterable

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def significant_words(text: str, min_length: int = 4, strip_punctuation: bool = True) -> set[str]:
    """Lower-cased words of at least *min_length* characters.

    With ``strip_punctuation`` the text is reduced to word characters and
    whitespace first, so ``"great!"`` and ``"great"`` compare equal.
    """
    lowered = text.lower()
    if strip_punctuation:
        lowered = _PUNCTUATION_RE.sub("", lowered)
    return {word for word in lowered.split() if len(word) >= min_length}


def jaccard(left: set[str], right: set[str]) -> float:
    """Jaccard similarity ``|A ∩ B| / |A ∪ B|``; two empty sets score 0.0."""
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def max_similarity(content: str, others: Iterable[str], strip_punctuation: bool = True) -> float:
    """Highest Jaccard similarity between *content* and any text in *others*."""
    words = significant_words(content, strip_punctuation=strip_punctuation)
    best = 0.0
    for other in others:
        best = max(best, jaccard(words, significant_words(other, strip_punctuation=strip_punctuation)))
    return best
