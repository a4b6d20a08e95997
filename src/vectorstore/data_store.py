import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pymilvus import MilvusClient

from .clients import get_milvus_client


logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ["id", "name", "image_url", "thumbnail_url"]


class CatalogStore(Protocol):
    """Read-only view of the product catalog used by the search path.

    Rows are plain dicts (id, name, image_url, thumbnail_url, embedding);
    validation happens in the ranker so one bad row never poisons a result set.
    """

    def find_with_embeddings(self) -> List[Dict[str, Any]]:
        """Every product whose embedding is not null, in the store's fetch order.

        Best effort: if a later page fails, the rows read so far are returned.
        """
        ...

    def match_products(
        self, query_vector: Sequence[float], threshold: float, limit: int
    ) -> List[Dict[str, Any]]:
        """Server-side ranking: rows plus ``similarity``, best first."""
        ...

    def list_products(self) -> List[Dict[str, Any]]:
        """Analyzed products without embeddings, newest first."""
        ...


class MilvusCatalogStore:
    """Catalog backed by a Milvus collection using the COSINE metric.

    Expected fields: id, name, image_url, thumbnail_url (nullable),
    has_embedding (BOOL) and embedding (FLOAT_VECTOR). Rows that were never
    analyzed carry has_embedding == false and are filtered out everywhere.
    """

    def __init__(
        self,
        client: Optional[MilvusClient] = None,
        collection: str = "products",
        *,
        timeout: Optional[float] = 10.0,
        batch_size: int = 1000,
    ) -> None:
        self.client = client or get_milvus_client(timeout=timeout)
        self.collection = collection
        self.timeout = timeout
        self.batch_size = batch_size

    def find_with_embeddings(self) -> List[Dict[str, Any]]:
        iterator = self.client.query_iterator(
            collection_name=self.collection,
            batch_size=self.batch_size,
            filter="has_embedding == true",
            output_fields=PRODUCT_FIELDS + ["embedding"],
            timeout=self.timeout,
        )
        rows: List[Dict[str, Any]] = []
        batches = 0
        try:
            while True:
                try:
                    batch = iterator.next()
                except Exception as e:
                    if batches == 0:
                        raise
                    logger.warning(
                        "Catalog batch %d of '%s' failed, continuing with %d rows: %s",
                        batches + 1, self.collection, len(rows), e,
                    )
                    break
                if not batch:
                    break
                batches += 1
                rows.extend(dict(r) for r in batch)
        finally:
            iterator.close()
        logger.debug("Fetched %d embedded products from '%s'", len(rows), self.collection)
        return rows

    def match_products(
        self, query_vector: Sequence[float], threshold: float, limit: int
    ) -> List[Dict[str, Any]]:
        # Range search: COSINE keeps hits with radius < distance.
        results = self.client.search(
            collection_name=self.collection,
            data=[list(query_vector)],
            anns_field="embedding",
            filter="has_embedding == true",
            limit=limit,
            output_fields=PRODUCT_FIELDS,
            search_params={"metric_type": "COSINE", "params": {"radius": threshold}},
            timeout=self.timeout,
        )
        if not results:
            return []
        return [self._hit_to_row(hit) for hit in results[0]]

    def list_products(self) -> List[Dict[str, Any]]:
        rows = self.client.query(
            collection_name=self.collection,
            filter="has_embedding == true",
            output_fields=PRODUCT_FIELDS,
            timeout=self.timeout,
        )
        rows = [dict(r) for r in rows]
        return sorted(rows, key=lambda r: _id_sort_key(r.get("id")), reverse=True)

    @staticmethod
    def _hit_to_row(hit: Any) -> Dict[str, Any]:
        """Flatten a Milvus hit into a catalog row with ``similarity``."""
        if isinstance(hit, dict):
            entity = hit.get("entity") or {}
            pid, distance = hit.get("id"), hit.get("distance")
        else:
            entity = getattr(hit, "entity", None) or {}
            pid, distance = getattr(hit, "id", None), getattr(hit, "distance", None)
        row = {field: entity.get(field) for field in PRODUCT_FIELDS}
        row["id"] = pid if pid is not None else row.get("id")
        row["similarity"] = distance
        return row


def _id_sort_key(value: Any):
    # Integer ids sort numerically, anything else lexically after them.
    try:
        return (0, int(value), "")
    except (TypeError, ValueError):
        return (1, 0, str(value))
