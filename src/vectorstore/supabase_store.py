import logging
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client

from .clients import get_supabase_client

logger = logging.getLogger(__name__)

LISTING_COLUMNS = "id, name, image_url, thumbnail_url"
SEARCH_COLUMNS = "id, name, image_url, thumbnail_url, embedding"


class SupabaseCatalogStore:
    """Catalog backed by a Supabase (Postgres + pgvector) ``products`` table.

    Server-side ranking goes through the ``match_products`` RPC, which takes
    ``query_embedding``, ``match_threshold`` and ``match_count`` and returns rows
    with a ``similarity`` column ordered best first.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        table: str = "products",
        *,
        match_function: str = "match_products",
        timeout: float = 10.0,
        page_size: int = 1000,
    ) -> None:
        self.client = client or get_supabase_client(timeout=timeout)
        self.table = table
        self.match_function = match_function
        self.page_size = max(1, int(page_size))

    def find_with_embeddings(self) -> List[Dict[str, Any]]:
        """Page through the whole table (PostgREST caps each response) ordered by id.

        A failure on the first page propagates. A failure on a later page ends
        the fetch early and returns the rows already read.
        """
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            try:
                response = (
                    self.client.table(self.table)
                    .select(SEARCH_COLUMNS)
                    .not_.is_("embedding", "null")
                    .order("id")
                    .range(start, start + self.page_size - 1)
                    .execute()
                )
            except Exception as e:
                if start == 0:
                    raise
                logger.warning(
                    "Catalog page at offset %d of '%s' failed, continuing with %d rows: %s",
                    start, self.table, len(rows), e,
                )
                break
            page = response.data or []
            rows.extend(page)
            if len(page) < self.page_size:
                break
            start += self.page_size
        logger.debug("Fetched %d embedded products from '%s'", len(rows), self.table)
        return rows

    def match_products(
        self, query_vector: Sequence[float], threshold: float, limit: int
    ) -> List[Dict[str, Any]]:
        response = self.client.rpc(
            self.match_function,
            {
                "query_embedding": list(query_vector),
                "match_threshold": threshold,
                "match_count": limit,
            },
        ).execute()
        return list(response.data or [])

    def list_products(self) -> List[Dict[str, Any]]:
        response = (
            self.client.table(self.table)
            .select(LISTING_COLUMNS)
            .not_.is_("embedding", "null")
            .order("id", desc=True)
            .execute()
        )
        return list(response.data or [])
