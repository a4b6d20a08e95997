"""Error taxonomy for the product search path.

Every error the search core lets escape is a ``SearchError``; the HTTP layer maps
``code``/``retryable`` onto a response without inspecting transport details.
"""

from __future__ import annotations


class SearchError(Exception):
    code = "search_error"
    retryable = False
    user_message = "Search failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class InvalidQuery(SearchError):
    code = "invalid_query"
    user_message = "Type something to search."


class EmbeddingUnavailable(SearchError):
    """The embedding provider could not produce a vector (down, cold or slow)."""

    code = "embedding_unavailable"
    retryable = True
    user_message = "Search is warming up, please try again in a moment."


class ProviderUnavailable(EmbeddingUnavailable):
    code = "provider_unavailable"


class ProviderTimeout(EmbeddingUnavailable):
    code = "provider_timeout"


class DegenerateEmbedding(SearchError):
    code = "degenerate_embedding"


class RankingDelegationFailed(SearchError):
    """Server-side ranking failed; never surfaced, it only selects the fallback."""

    code = "ranking_delegation_failed"
    retryable = True


class CatalogUnavailable(SearchError):
    code = "catalog_unavailable"
    retryable = True


class SearchFailed(SearchError):
    code = "search_failed"
    retryable = True
    user_message = "Search is unavailable, please try again later."
