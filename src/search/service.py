from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from src.utils.config import load_settings
from src.utils.errors import (
    CatalogUnavailable,
    DegenerateEmbedding,
    EmbeddingUnavailable,
    InvalidQuery,
    ProviderUnavailable,
    SearchFailed,
)
from src.vectorstore.data_store import CatalogStore, MilvusCatalogStore
from src.vectorstore.embeddings import Embedder
from src.vectorstore.ranker import (
    DEFAULT_FALLBACK_MIN_SIMILARITY,
    DEFAULT_LIMIT,
    DEFAULT_MATCH_THRESHOLD,
    SimilarityRanker,
)
from src.vectorstore.schemas import Product, ScoredProduct, format_scored_product
from src.vectorstore.supabase_store import SupabaseCatalogStore

from .query import EmbeddedQuery, QueryEmbedder

logger = logging.getLogger(__name__)


class RankingPath(str, Enum):
    DELEGATED = "delegated"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class SearchServiceConfig:
    backend: str = "supabase"
    table: str = "products"
    collection: str = "products"
    match_function: str = "match_products"
    store_timeout_seconds: float = 10.0
    page_size: int = 1000
    limit: int = DEFAULT_LIMIT
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    fallback_min_similarity: float = DEFAULT_FALLBACK_MIN_SIMILARITY

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SearchServiceConfig":
        catalog = cfg.get("catalog") or {}
        search = cfg.get("search") or {}
        defaults = cls()
        return cls(
            backend=str(catalog.get("backend", defaults.backend)).lower(),
            table=catalog.get("table", defaults.table),
            collection=catalog.get("collection", defaults.collection),
            match_function=catalog.get("match_function", defaults.match_function),
            store_timeout_seconds=float(catalog.get("timeout_seconds", defaults.store_timeout_seconds)),
            page_size=int(catalog.get("page_size", defaults.page_size)),
            limit=int(search.get("limit", defaults.limit)),
            match_threshold=float(search.get("match_threshold", defaults.match_threshold)),
            fallback_min_similarity=float(
                search.get("fallback_min_similarity", defaults.fallback_min_similarity)
            ),
        )


@dataclass(frozen=True)
class SearchResponse:
    query: str
    results: List[ScoredProduct] = field(default_factory=list)
    ranking_path: RankingPath = RankingPath.DELEGATED

    def to_dict(self, *, debug: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {"products": [item.to_dict() for item in self.results]}
        if debug:
            out["debug"] = {
                "query": self.query,
                "ranking_path": self.ranking_path.value,
                "total_results": len(self.results),
                "top_score": self.results[0].similarity if self.results else None,
                "bottom_score": self.results[-1].similarity if self.results else None,
                "scores_preview": [
                    {"name": item.product.name, "similarity": item.similarity}
                    for item in self.results[:5]
                ],
            }
        return out


@contextmanager
def _embedding_errors() -> Iterator[None]:
    """Classify anything raised while validating/embedding a query."""
    try:
        yield
    except InvalidQuery:
        raise
    except EmbeddingUnavailable as e:
        logger.warning("Embedding provider unavailable: %s", e)
        raise
    except DegenerateEmbedding as e:
        raise SearchFailed() from e
    except Exception as e:
        logger.warning("Embedding provider failed: %s", e)
        raise ProviderUnavailable(f"Embedding provider failed: {e}") from e


def build_catalog_store(config: SearchServiceConfig) -> CatalogStore:
    if config.backend == "supabase":
        return SupabaseCatalogStore(
            table=config.table,
            match_function=config.match_function,
            timeout=config.store_timeout_seconds,
            page_size=config.page_size,
        )
    if config.backend == "milvus":
        return MilvusCatalogStore(
            collection=config.collection,
            timeout=config.store_timeout_seconds,
            batch_size=config.page_size,
        )
    raise ValueError(f"Unknown catalog backend {config.backend!r}; expected 'supabase' or 'milvus'")


class SearchService:
    """Semantic product search: text query in, ranked products out.

    Per call:
      Validate -> Embed -> RankPrimary -> Return
                                 `-> (failed) RankFallback -> Return

    Errors surfaced to callers are InvalidQuery, EmbeddingUnavailable
    (ProviderUnavailable / ProviderTimeout) and SearchFailed. The service holds
    no per-call state and is safe to share between concurrent requests.
    """

    def __init__(
        self,
        config: SearchServiceConfig | None = None,
        *,
        embedder: Optional[Embedder] = None,
        store: Optional[CatalogStore] = None,
        settings: Optional[Dict[str, Any]] = None,
    ):
        if config is None or (embedder is None and settings is None):
            settings = settings if settings is not None else load_settings()
        self.config = config or SearchServiceConfig.from_config(settings)

        self.embedder = embedder or Embedder(config=settings)
        self.store = store or build_catalog_store(self.config)
        self.query_embedder = QueryEmbedder(self.embedder)
        self.ranker = SimilarityRanker(
            self.store,
            limit=self.config.limit,
            match_threshold=self.config.match_threshold,
            fallback_min_similarity=self.config.fallback_min_similarity,
        )

    def search(self, query: str) -> SearchResponse:
        embedded = self._embed(query)
        results, path = self._rank(embedded.vector)
        return self._respond(embedded, results, path)

    async def asearch(self, query: str) -> SearchResponse:
        """Event-loop variant of search(); store calls run in a worker thread."""
        embedded = await self._aembed(query)
        results, path = await asyncio.to_thread(self._rank, embedded.vector)
        return self._respond(embedded, results, path)

    def _embed(self, query: str) -> EmbeddedQuery:
        with _embedding_errors():
            return self.query_embedder.embed(query)

    async def _aembed(self, query: str) -> EmbeddedQuery:
        with _embedding_errors():
            return await self.query_embedder.aembed(query)

    def _rank(self, vector: Sequence[float]) -> Tuple[List[ScoredProduct], RankingPath]:
        primary = self._rank_primary(vector)
        if primary is not None:
            return primary, RankingPath.DELEGATED
        return self._rank_fallback(vector), RankingPath.FALLBACK

    def _rank_primary(self, vector: Sequence[float]) -> Optional[List[ScoredProduct]]:
        try:
            return self.ranker.rank_delegated(vector)
        except Exception as e:
            logger.warning("Delegated ranking unavailable, falling back to full scan: %s", e)
            return None

    def _rank_fallback(self, vector: Sequence[float]) -> List[ScoredProduct]:
        try:
            return self.ranker.rank_fallback(vector)
        except Exception as e:
            logger.error("Fallback ranking failed: %s", e)
            raise SearchFailed() from e

    def _respond(
        self, embedded: EmbeddedQuery, results: List[ScoredProduct], path: RankingPath
    ) -> SearchResponse:
        logger.info(
            "Search %r served by %s ranking: %d results", embedded.text, path.value, len(results)
        )
        if logger.isEnabledFor(logging.DEBUG):
            lines = [f"Search results for {embedded.text!r}:"]
            lines.extend(f"  {idx}. {format_scored_product(item)}" for idx, item in enumerate(results, start=1))
            logger.debug("\n".join(lines))
        return SearchResponse(query=embedded.query, results=results, ranking_path=path)

    def warm_up(self) -> Dict[str, Any]:
        """Ping the embedding provider so a sleeping deployment spins up."""
        started = time.perf_counter()
        error: Optional[str] = None
        try:
            self.embedder.ping()
        except EmbeddingUnavailable as e:
            error = str(e)
        except Exception as e:
            error = f"Embedding provider failed: {e}"
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        result: Dict[str, Any] = {
            "success": error is None,
            "response_time_ms": elapsed_ms,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if error is None:
            logger.info("Embedding provider is awake, responded in %dms", elapsed_ms)
        else:
            logger.warning("Embedding provider warm-up failed after %dms: %s", elapsed_ms, error)
            result["error"] = error
        return result

    def embed_image(self, image_url: str) -> List[float]:
        """Embed a product image into the shared vector space (ingestion contract)."""
        if not image_url or not image_url.strip():
            raise ValueError("image_url is required")
        try:
            return self.embedder.embed_image(image_url.strip())
        except (EmbeddingUnavailable, NotImplementedError):
            raise
        except Exception as e:
            raise ProviderUnavailable(f"Embedding provider failed: {e}") from e

    def list_products(self) -> List[Dict[str, Any]]:
        """Searchable (already analyzed) products, newest first."""
        try:
            rows = self.store.list_products()
        except Exception as e:
            raise CatalogUnavailable(f"catalog listing failed: {e}") from e

        products: List[Dict[str, Any]] = []
        for row in rows:
            try:
                product = Product.from_row(row)
            except ValueError as e:
                logger.warning("Skipping unreadable catalog row: %s", e)
                continue
            products.append(
                {
                    "id": product.id,
                    "name": product.name,
                    "image_url": product.image_url,
                    "thumbnail_url": product.display_thumbnail_url,
                }
            )
        return products
