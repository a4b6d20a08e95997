from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from src.search import SearchService
from src.utils.errors import (
    CatalogUnavailable,
    EmbeddingUnavailable,
    InvalidQuery,
    SearchError,
    SearchFailed,
)


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return SearchService()


def http_error(exc: SearchError) -> HTTPException:
    """Map a search error onto an HTTP error without leaking transport details.

    ``warming_up`` tells the UI to show "waking up" messaging rather than a
    generic failure.
    """
    if isinstance(exc, InvalidQuery):
        status_code = 400
    elif isinstance(exc, (EmbeddingUnavailable, SearchFailed, CatalogUnavailable)):
        status_code = 503
    else:
        status_code = 500

    return HTTPException(
        status_code=status_code,
        detail={
            "error": exc.code,
            "message": exc.user_message,
            "retryable": exc.retryable,
            "warming_up": isinstance(exc, EmbeddingUnavailable),
        },
    )
