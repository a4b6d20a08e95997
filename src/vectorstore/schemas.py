from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from src.utils.images import thumbnail_url_for


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    image_url: str
    thumbnail_url: Optional[str] = None
    embedding: Optional[List[float]] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Product":
        """Validate a loosely-typed catalog row.

        Raises ValueError when a required field is missing or the embedding is
        not a list of finite numbers. pgvector columns arrive from PostgREST as
        JSON-array strings ("[0.1,0.2]"); both forms are accepted.
        """
        if not isinstance(row, Mapping):
            raise ValueError(f"row is not a mapping: {type(row).__name__}")

        pid = row.get("id")
        if pid is None or str(pid) == "":
            raise ValueError("row has no id")

        name = row.get("name")
        if not isinstance(name, str):
            raise ValueError(f"product {pid}: name must be a string")

        image_url = row.get("image_url")
        if not isinstance(image_url, str) or not image_url:
            raise ValueError(f"product {pid}: image_url must be a non-empty string")

        thumbnail_url = row.get("thumbnail_url")
        if thumbnail_url is not None and not isinstance(thumbnail_url, str):
            raise ValueError(f"product {pid}: thumbnail_url must be a string")

        return cls(
            id=str(pid),
            name=name,
            image_url=image_url,
            thumbnail_url=thumbnail_url or None,
            embedding=parse_embedding(row.get("embedding")),
        )

    @property
    def display_thumbnail_url(self) -> str:
        return thumbnail_url_for(self.image_url, self.thumbnail_url)


@dataclass(frozen=True)
class ScoredProduct:
    product: Product
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        """Public result shape; the embedding is never sent to callers."""
        return {
            "id": self.product.id,
            "name": self.product.name,
            "image_url": self.product.image_url,
            "thumbnail_url": self.product.display_thumbnail_url,
            "similarity": self.similarity,
        }


def parse_embedding(value: Any) -> Optional[List[float]]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"embedding string is not a JSON array: {e}") from e
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError("embedding must be a non-empty list of numbers")
    out: List[float] = []
    for v in value:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"embedding contains a non-numeric value: {v!r}")
        f = float(v)
        if not math.isfinite(f):
            raise ValueError("embedding contains a non-finite value")
        out.append(f)
    return out


def format_scored_product(item: ScoredProduct) -> str:
    """Compact one-line representation for logs.

    Example: "[87.3%] Chocolate Truffle (id=42)"
    """
    return f"[{item.similarity * 100:.1f}%] {item.product.name} (id={item.product.id})"
