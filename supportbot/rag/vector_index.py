"""
In-memory vector index over knowledge base embeddings.

Holds one embedding per knowledge record, built once after the knowledge
base is loaded and read-only afterwards. Lookups rank every entry by cosine
similarity; with a few hundred FAQ rows a brute-force scan is all we need.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from ..models.chat_models import EmbeddingEntry, KnowledgeRecord, ScoredMatch
from .embedder import EmbedFn

logger = logging.getLogger(__name__)

# Keeps all-zero vectors from dividing by zero
COSINE_EPSILON = 1e-8


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity: dot(a, b) / (||a|| * ||b|| + eps)."""
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb) + COSINE_EPSILON))


class VectorIndex:
    """Cosine-similarity index with one entry per knowledge record."""

    def __init__(self):
        self._entries: Tuple[EmbeddingEntry, ...] = ()
        self._matrix = np.empty((0, 0))
        self._norms = np.empty(0)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[EmbeddingEntry, ...]:
        return self._entries

    @property
    def dimension(self) -> int:
        return int(self._matrix.shape[1]) if self._entries else 0

    async def build(self, records: Sequence[KnowledgeRecord], embed: EmbedFn) -> Tuple[EmbeddingEntry, ...]:
        """Embed every record (question + answer) in one batch and store the vectors.

        Never raises: if there are no records or the embedding backend fails,
        the index stays empty and retrieval falls back to keyword matching.

        Returns:
            The stored entries (empty on failure).
        """
        if not records:
            logger.info("[VECTOR_INDEX] No knowledge records, skipping embedding build")
            return self._entries

        texts = [r.embedding_text() for r in records]
        try:
            vectors = await embed(texts)
            self._install(vectors, len(records))
        except Exception as e:
            logger.warning(f"[VECTOR_INDEX] Could not build embeddings: {e}")
            return self._entries

        logger.info(f"[VECTOR_INDEX] Embeddings ready for KB: {len(self._entries)} entries ({self.dimension}d)")
        return self._entries

    def _install(self, vectors: List[List[float]], expected: int) -> None:
        if len(vectors) != expected:
            raise ValueError(f"expected {expected} embeddings, got {len(vectors)}")

        matrix = np.asarray(vectors, dtype=float)
        if matrix.ndim != 2 or matrix.shape[1] == 0:
            raise ValueError("embeddings must share one non-zero dimension")

        self._matrix = matrix
        self._norms = np.linalg.norm(matrix, axis=1)
        self._entries = tuple(
            EmbeddingEntry(index=i, vector=tuple(float(x) for x in row)) for i, row in enumerate(matrix)
        )

    def search(self, query_vector: Sequence[float], top_k: int) -> List[ScoredMatch]:
        """Rank entries against an already-embedded query.

        Returns:
            At most `top_k` matches by descending score; equal scores keep
            the lower record index first.
        """
        if not self._entries or top_k <= 0:
            return []

        q = np.asarray(query_vector, dtype=float)
        if q.shape != (self.dimension,):
            raise ValueError(f"query vector has shape {q.shape}, index dimension is {self.dimension}")

        scores = (self._matrix @ q) / (self._norms * np.linalg.norm(q) + COSINE_EPSILON)
        # Stable sort on the negated scores keeps ties in index order
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [ScoredMatch(index=int(i), score=float(scores[i])) for i in order]

    async def query(self, text: str, embed: EmbedFn, top_k: int) -> List[ScoredMatch]:
        """Embed `text` and return its nearest knowledge records.

        The embedding backend is not called when the index is empty.
        Embedding errors propagate to the caller.
        """
        if not self._entries:
            return []
        vectors = await embed([text])
        return self.search(vectors[0], top_k)
