from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from src.utils.errors import DegenerateEmbedding, InvalidQuery
from src.utils.text_cleaning import clean_query
from src.vectorstore.embeddings import Embedder
from src.vectorstore.similarity import l2_normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddedQuery:
    query: str  # as typed by the user
    text: str  # what was sent to the provider
    vector: List[float]


class QueryEmbedder:
    """Turns raw user text into a unit-length query vector."""

    def __init__(self, embedder: Embedder) -> None:
        self.embedder = embedder

    @staticmethod
    def validate(query: str | None) -> str:
        """Return the cleaned query or raise InvalidQuery; never touches the network."""
        cleaned = clean_query(query) if isinstance(query, str) else ""
        if not cleaned:
            raise InvalidQuery()
        return cleaned

    def embed(self, query: str | None) -> EmbeddedQuery:
        text = self.validate(query)
        raw = self.embedder.embed_query(text)
        return self._normalize(query, text, raw)

    async def aembed(self, query: str | None) -> EmbeddedQuery:
        text = self.validate(query)
        raw = await self.embedder.aembed_query(text)
        return self._normalize(query, text, raw)

    @staticmethod
    def _normalize(query: str, text: str, raw: List[float]) -> EmbeddedQuery:
        unit = l2_normalize(raw) if raw else None
        if unit is None:
            logger.error("Embedding provider returned a zero-norm vector for %r", text)
            raise DegenerateEmbedding(f"zero-norm embedding for query {text!r}")
        return EmbeddedQuery(query=query, text=text, vector=unit.tolist())
