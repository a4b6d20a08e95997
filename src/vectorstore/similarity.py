"""Vector math shared by the query embedder and the fallback ranker."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def l2_normalize(vec: Sequence[float]) -> Optional[np.ndarray]:
    """L2-normalize a vector; returns None for a zero (or non-finite) norm."""
    arr = np.asarray(vec, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if not np.isfinite(norm) or norm == 0.0:
        return None
    return arr / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (||a|| * ||b||), recomputing both norms from the raw values.

    A zero vector on either side has no direction and scores 0.0.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"dimension mismatch: {va.shape[0]} != {vb.shape[0]}")
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0
    return float(np.dot(va, vb) / denom)
