from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest
from langchain_core.embeddings import Embeddings

from src.search import SearchService, SearchServiceConfig
from src.vectorstore.embeddings import Embedder
from src.vectorstore.similarity import cosine_similarity


class ScriptedEmbeddings(Embeddings):
    """Embedding provider double: fixed vectors per text, counts every call."""

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        *,
        default: Optional[List[float]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0]
        self.error = error
        self.calls: List[str] = []
        self.image_calls: List[str] = []

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vectors.get(text, self.default))

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_image(self, image_url: str) -> List[float]:
        self.image_calls.append(image_url)
        if self.error is not None:
            raise self.error
        return list(self.default)

    def ping(self, timeout: Optional[float] = None) -> List[float]:
        return self.embed_query("keep-alive ping")


class InMemoryCatalogStore:
    """Catalog store double; either ranking path can be made to fail."""

    def __init__(
        self,
        rows: Sequence[Dict[str, Any]] = (),
        *,
        match_error: Optional[Exception] = None,
        fetch_error: Optional[Exception] = None,
    ) -> None:
        self.rows = [dict(r) for r in rows]
        self.match_error = match_error
        self.fetch_error = fetch_error
        self.match_calls = 0
        self.fetch_calls = 0

    def find_with_embeddings(self) -> List[Dict[str, Any]]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return [dict(r) for r in self.rows if r.get("embedding") is not None]

    def match_products(self, query_vector, threshold: float, limit: int) -> List[Dict[str, Any]]:
        self.match_calls += 1
        if self.match_error is not None:
            raise self.match_error
        scored = []
        for row in self.rows:
            if row.get("embedding") is None:
                continue
            similarity = cosine_similarity(query_vector, row["embedding"])
            if similarity > threshold:
                scored.append({**row, "similarity": similarity})
        scored.sort(key=lambda r: r["similarity"], reverse=True)
        return scored[:limit]

    def list_products(self) -> List[Dict[str, Any]]:
        rows = [
            {k: v for k, v in r.items() if k != "embedding"}
            for r in self.rows
            if r.get("embedding") is not None
        ]
        return sorted(rows, key=lambda r: int(r["id"]), reverse=True)


def product_row(pid: int, embedding: Optional[List[float]], **extra: Any) -> Dict[str, Any]:
    row = {
        "id": pid,
        "name": f"Cake {pid}",
        "image_url": f"https://res.cloudinary.com/demo/image/upload/v1/cakes/{pid}.jpg",
        "thumbnail_url": None,
        "embedding": embedding,
    }
    row.update(extra)
    return row


@pytest.fixture
def toy_rows() -> List[Dict[str, Any]]:
    """Three analyzed products in a 2-D space plus one never analyzed."""
    return [
        product_row(1, [1.0, 0.0]),
        product_row(2, [0.0, 1.0]),
        product_row(3, [0.707, 0.707]),
        product_row(4, None),
    ]


@pytest.fixture
def make_service():
    def _make(
        embeddings: Embeddings,
        store: InMemoryCatalogStore,
        **config: Any,
    ) -> SearchService:
        return SearchService(
            SearchServiceConfig(**config),
            embedder=Embedder(embeddings=embeddings, config={}),
            store=store,
        )

    return _make
