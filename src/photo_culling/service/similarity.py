"""Embedding similarity helpers."""

import numpy as np

from photo_culling.config import SIMILARITY_THRESHOLD
from photo_culling.models import Photo


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors of equal length."""
    a = np.asarray(a, dtype=np.float32).ravel()
    b = np.asarray(b, dtype=np.float32).ravel()
    if a.shape != b.shape:
        raise ValueError("Vectors must have same length")
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


def find_similar_photo_ids(
    photos: list[Photo],
    threshold: float = SIMILARITY_THRESHOLD,
) -> set[str]:
    """Ids of photos whose embedding is near-identical to another photo's."""
    candidates = [p for p in photos if p.has_embedding]
    if len(candidates) < 2:
        return set()

    dims = {p.embedding.size for p in candidates}
    if len(dims) != 1:
        # Mixed embedding models; compare only within the most common size
        common = max(dims, key=lambda d: sum(1 for p in candidates if p.embedding.size == d))
        candidates = [p for p in candidates if p.embedding.size == common]

    matrix = np.stack([p.embedding.ravel().astype(np.float32) for p in candidates])
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    matrix = matrix / norms
    sims = matrix @ matrix.T
    np.fill_diagonal(sims, -1.0)

    rows, cols = np.nonzero(sims >= threshold)
    return {candidates[i].id for i in rows} | {candidates[j].id for j in cols}
