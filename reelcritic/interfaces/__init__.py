"""Public interface definitions for all external services.

Every external API or store is reached only through the abstract base
classes in this package.  Concrete adapters are built in
``reelcritic/main.py`` and injected into the services, so tests can hand
in mocks.

CONCRETE PROVIDER MAP:
    Interface          →  Concrete implementations (in reelcritic/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider       →  AnthropicLLMProvider, OpenAILLMProvider,
                          OllamaLLMProvider
    ICacheProvider     →  MemoryCacheProvider
    IReviewProvider    →  SQLiteReviewProvider
    IUserProvider      →  SQLiteUserProvider
    IAuditProvider     →  SQLiteAuditProvider
"""

from reelcritic.interfaces.audit_provider import IAuditProvider
from reelcritic.interfaces.cache_provider import ICacheProvider
from reelcritic.interfaces.llm_provider import ILLMProvider
from reelcritic.interfaces.review_provider import IReviewProvider, ReviewQuery
from reelcritic.interfaces.user_provider import IUserProvider

__all__ = [
    "IAuditProvider",
    "ICacheProvider",
    "ILLMProvider",
    "IReviewProvider",
    "IUserProvider",
    "ReviewQuery",
]
