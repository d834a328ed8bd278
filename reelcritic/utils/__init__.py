"""Utility modules for reelcritic.

- **errors** -- Domain exception hierarchy rooted at ReelCriticError; each
  subclass carries the HTTP status the API layer answers with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **json_extract** -- Fence-stripping JSON extraction for LLM responses.
- **text_similarity** -- Word-set Jaccard similarity for duplicate checks.
"""

from reelcritic.utils.errors import (
    ConfigurationError,
    DuplicateReviewError,
    GateRejection,
    LLMError,
    NotFoundError,
    PersistenceError,
    ProviderUnavailableError,
    ReelCriticError,
)
from reelcritic.utils.json_extract import extract_json_array, extract_json_object
from reelcritic.utils.logging import configure_logging, get_logger
from reelcritic.utils.text_similarity import jaccard, max_similarity, significant_words

__all__ = [
    "ConfigurationError",
    "DuplicateReviewError",
    "GateRejection",
    "LLMError",
    "NotFoundError",
    "PersistenceError",
    "ProviderUnavailableError",
    "ReelCriticError",
    "configure_logging",
    "extract_json_array",
    "extract_json_object",
    "get_logger",
    "jaccard",
    "max_similarity",
    "significant_words",
]
