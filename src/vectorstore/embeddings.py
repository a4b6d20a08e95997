from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from langchain.embeddings import init_embeddings
from langchain_core.embeddings import Embeddings

from src.utils.config import load_settings
from src.utils.errors import ProviderTimeout, ProviderUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {502, 503, 504}
WARMUP_TEXT = "keep-alive ping"


class ClipSpaceEmbeddings(Embeddings):
    """LangChain embeddings backed by a hosted CLIP service.

    Text and images are embedded by the same CLIP model, so both land in one
    vector space:

      POST {base_url}/embed-text  {"text": ...}      -> {"embedding": [...]}
      POST {base_url}/embed-image {"image_url": ...} -> {"embedding": [...]}

    Vectors are returned as produced; normalisation is the caller's job. The
    session only pools connections and holds no per-request state, so threads
    from aembed_query share it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("ClipSpaceEmbeddings requires a base_url (set CLIP_API_URL).")
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(1.0, float(timeout_seconds))
        self.max_retries = max(0, int(max_retries))
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> List[float]:
        endpoint = f"{self.base_url}{path}"
        timeout = timeout or self.timeout_seconds

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.post(endpoint, json=payload, timeout=timeout)
            except requests.Timeout as exc:
                raise ProviderTimeout(f"Embedding request timed out after {timeout}s at {path}") from exc
            except requests.RequestException as exc:
                raise ProviderUnavailable(f"Embedding request failed at {path}: {exc}") from exc

            if response.status_code in RETRYABLE_STATUS and attempt < self.max_retries:
                logger.debug("Embedding service returned %s at %s, retrying", response.status_code, path)
                time.sleep(0.4 * (2**attempt))
                continue
            if not response.ok:
                raise ProviderUnavailable(
                    f"Embedding service returned status {response.status_code} at {path}"
                )
            break

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderUnavailable(f"Embedding service returned invalid JSON at {path}") from exc
        return self._extract_embedding(body, path)

    @staticmethod
    def _extract_embedding(body: Any, path: str) -> List[float]:
        embedding = body.get("embedding") if isinstance(body, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise ProviderUnavailable(f"Embedding service response at {path} has no embedding")
        try:
            return [float(v) for v in embedding]
        except (TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"Embedding service returned non-numeric values at {path}") from exc

    def embed_query(self, text: str) -> List[float]:
        return self._post("/embed-text", {"text": text})

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_image(self, image_url: str) -> List[float]:
        return self._post("/embed-image", {"image_url": image_url})

    def ping(self, timeout: Optional[float] = None) -> List[float]:
        return self._post("/embed-text", {"text": WARMUP_TEXT}, timeout=timeout)


class Embedder:
    """Embedding Provider wrapper.

    Backed by ClipSpaceEmbeddings for provider "clip_space", otherwise by
    LangChain's init_embeddings. Pass ``embeddings`` to inject any LangChain
    ``Embeddings`` implementation directly (tests use this).

    The embedding dimension comes from ``embedding_model.dim`` or, when unset,
    from the first vector returned. It is written at most once per process and
    never changed afterwards; later vectors of another length only log a mismatch.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        embeddings: Optional[Embeddings] = None,
    ) -> None:
        cfg: Dict[str, Any] = dict(config) if config is not None else load_settings()
        embedding_cfg = dict(cfg.get("embedding_model") or {})

        if provider is not None:
            embedding_cfg["provider"] = provider
        if model is not None:
            embedding_cfg["model"] = model

        self._cfg = embedding_cfg
        self.warmup_timeout_seconds = float(embedding_cfg.get("warmup_timeout_seconds") or 30.0)
        self._dim: Optional[int] = None
        if embedding_cfg.get("dim"):
            self._dim = int(embedding_cfg["dim"])
            logger.info("Using configured embedding dimension: %s", self._dim)

        if embeddings is not None:
            self._emb = embeddings
            return

        provider_name = (embedding_cfg.get("provider") or "").lower()
        if provider_name == "clip_space":
            logger.info("Initializing CLIP service embeddings at %s", embedding_cfg.get("base_url"))
            self._emb = ClipSpaceEmbeddings(
                embedding_cfg.get("base_url", ""),
                timeout_seconds=float(embedding_cfg.get("timeout_seconds") or 30.0),
                max_retries=int(embedding_cfg.get("max_retries") or 0),
            )
        else:
            if not provider_name or not embedding_cfg.get("model"):
                raise ValueError(
                    "Embedding configuration missing 'provider' and/or 'model'. "
                    "Set them in src/vectorstore/config.yaml under 'embedding_model', or pass them to Embedder()."
                )
            logger.info(
                "Initializing embeddings via init_embeddings provider=%s model=%s",
                embedding_cfg.get("provider"),
                embedding_cfg.get("model"),
            )
            self._emb = init_embeddings(embedding_cfg["model"], provider=embedding_cfg["provider"])

    @property
    def dim(self) -> Optional[int]:
        """Embedding dimension, if configured or observed; constant per deployment."""
        return self._dim

    def _cache_dim(self, new_dim: int, source: str) -> None:
        """Cache the dimension on first use only; later mismatches just warn."""
        if self._dim is None:
            self._dim = new_dim
            logger.info("Cached embedding dimension from %s: %s", source, new_dim)
        elif self._dim != new_dim:
            logger.warning(
                "Embedding dimension mismatch detected: cached=%s, new=%s.", self._dim, new_dim
            )

    def embed_query(self, text: str) -> List[float]:
        vec: List[float] = self._emb.embed_query(text)
        if vec:
            self._cache_dim(len(vec), "embed_query()")
        return vec

    async def aembed_query(self, text: str) -> List[float]:
        """Async single-text embedding; prefers provider aembed_query if available."""
        emb = self._emb

        if hasattr(emb, "aembed_query"):
            vec: List[float] = await emb.aembed_query(text)
        else:
            logger.debug("Using sync embed_query in async aembed_query()")
            vec = await asyncio.to_thread(emb.embed_query, text)

        if vec:
            self._cache_dim(len(vec), "aembed_query()")
        return vec

    def embed_image(self, image_url: str) -> List[float]:
        if not hasattr(self._emb, "embed_image"):
            raise NotImplementedError(
                "The embedding provider does not embed images. "
                "Use the clip_space provider so text and images share one vector space."
            )
        vec: List[float] = self._emb.embed_image(image_url)
        if vec:
            self._cache_dim(len(vec), "embed_image()")
        return vec

    def ping(self) -> List[float]:
        """Wake the provider with a throwaway query, using the warm-up timeout."""
        if hasattr(self._emb, "ping"):
            return self._emb.ping(timeout=self.warmup_timeout_seconds)
        return self._emb.embed_query(WARMUP_TEXT)
