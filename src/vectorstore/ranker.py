from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Sequence

from src.utils.errors import CatalogUnavailable, RankingDelegationFailed

from .data_store import CatalogStore
from .schemas import Product, ScoredProduct
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_MATCH_THRESHOLD = 0.0
DEFAULT_FALLBACK_MIN_SIMILARITY = 0.15


class SimilarityRanker:
    """Orders catalog products by cosine similarity to a query vector.

    Two independent paths:
      - rank_delegated: the store ranks (vector index); its scores are trusted, re-sorted stably.
      - rank_fallback: fetch every embedded product and score client-side.

    Choosing between them is the caller's decision.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        limit: int = DEFAULT_LIMIT,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        fallback_min_similarity: float = DEFAULT_FALLBACK_MIN_SIMILARITY,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.store = store
        self.limit = limit
        self.match_threshold = match_threshold
        self.fallback_min_similarity = fallback_min_similarity

    def rank_delegated(self, query_vector: Sequence[float]) -> List[ScoredProduct]:
        try:
            rows = self.store.match_products(query_vector, self.match_threshold, self.limit)
        except Exception as e:
            raise RankingDelegationFailed(f"match_products failed: {e}") from e
        if not isinstance(rows, list):
            raise RankingDelegationFailed(
                f"match_products returned {type(rows).__name__}, expected a list"
            )

        items: List[ScoredProduct] = []
        for row in rows:
            item = self._delegated_row_to_item(row)
            if item is not None:
                items.append(item)
        # Stable: a well-behaved store's order is kept as is.
        items = sorted(items, key=lambda item: item.similarity, reverse=True)
        return items[: self.limit]

    def rank_fallback(self, query_vector: Sequence[float]) -> List[ScoredProduct]:
        try:
            rows = self.store.find_with_embeddings()
        except Exception as e:
            raise CatalogUnavailable(f"catalog fetch failed: {e}") from e

        scored: List[ScoredProduct] = []
        skipped = 0
        for row in rows:
            try:
                product = Product.from_row(row)
                if product.embedding is None:
                    continue
                similarity = cosine_similarity(query_vector, product.embedding)
            except ValueError as e:
                skipped += 1
                logger.warning("Skipping unreadable catalog row %s: %s", _row_id(row), e)
                continue
            if similarity > self.fallback_min_similarity:
                scored.append(ScoredProduct(product=product, similarity=similarity))

        if skipped:
            logger.warning("Fallback ranking skipped %d of %d rows", skipped, len(rows))

        # sorted() is stable: equal scores keep the store's fetch order.
        scored = sorted(scored, key=lambda item: item.similarity, reverse=True)
        return scored[: self.limit]

    @staticmethod
    def _delegated_row_to_item(row: Any) -> Optional[ScoredProduct]:
        try:
            product = Product.from_row(row)
            similarity = float(row.get("similarity"))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed match_products row %s: %s", _row_id(row), e)
            return None
        if not math.isfinite(similarity):
            logger.warning("Skipping match_products row %s with similarity %s", _row_id(row), similarity)
            return None
        return ScoredProduct(product=product, similarity=similarity)


def _row_id(row: Any) -> str:
    if isinstance(row, dict):
        return str(row.get("id", "?"))
    return "?"
