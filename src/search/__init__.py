"""Search application layer.

Semantic product search over the catalog: a free-text query is embedded into
the same vector space as the product images and products are ranked by cosine
similarity, server-side when the catalog store can, client-side otherwise.
"""

from .query import EmbeddedQuery, QueryEmbedder
from .service import RankingPath, SearchResponse, SearchService, SearchServiceConfig

__all__ = [
    "EmbeddedQuery",
    "QueryEmbedder",
    "RankingPath",
    "SearchResponse",
    "SearchService",
    "SearchServiceConfig",
]
