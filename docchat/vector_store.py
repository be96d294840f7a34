"""In-memory vector storage using NumPy for similarity search."""

from __future__ import annotations

import numpy as np

from .config import config
from .models import DocumentChunk  # noqa: TC001

logger = config.get_logger(__name__)


def cosine_similarity(
    query_embedding: np.ndarray,
    embeddings: np.ndarray,
) -> np.ndarray:
    """Calculate cosine similarity between a query and a matrix of embeddings.

    Zero vectors score 0.0 against everything.

    Returns:
        np.ndarray: One similarity score per row of ``embeddings``.
    """
    query = np.asarray(query_embedding, dtype="float64")
    matrix = np.asarray(embeddings, dtype="float64")

    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denominators = row_norms * query_norm

    dots = matrix @ query
    return np.divide(
        dots,
        denominators,
        out=np.zeros_like(dots),
        where=denominators != 0,
    )


class InMemoryVectorStore:
    """Vector storage that lives only as long as the process.

    Chunks and their embeddings are kept in two parallel structures: a list of
    ``DocumentChunk`` and a float32 matrix with one row per chunk.
    """

    def __init__(self) -> None:
        self.chunks: list[DocumentChunk] = []
        self.embeddings: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self.chunks)

    def add_chunks(self, chunks: list[DocumentChunk]) -> None:
        """Add embedded chunks to the store.

        Raises:
            ValueError: If an embedding dimension mismatches stored vectors.
        """
        vectors: list[np.ndarray] = []
        accepted: list[DocumentChunk] = []
        dimension = None if self.embeddings is None else self.embeddings.shape[1]

        for chunk in chunks:
            if chunk.embedding is None:
                logger.warning(
                    "Skipping chunk %s without embedding",
                    chunk.metadata.get("chunk_id"),
                )
                continue

            vector = np.asarray(chunk.embedding, dtype="float32").reshape(-1)
            if dimension is None:
                dimension = vector.shape[0]
            elif vector.shape[0] != dimension:
                msg = (
                    f"Embedding dimension {vector.shape[0]} does not match "
                    f"store dimension {dimension}"
                )
                raise ValueError(msg)

            vectors.append(vector)
            accepted.append(chunk)

        if not vectors:
            return

        batch = np.vstack(vectors)
        self.embeddings = (
            batch if self.embeddings is None else np.vstack([self.embeddings, batch])
        )
        self.chunks.extend(accepted)
        logger.info("Added %d chunks to in-memory vector store", len(accepted))

    def remove_source(self, source: str) -> int:
        """Drop every chunk that came from ``source``.

        Returns:
            Number of chunks removed.
        """
        keep = [chunk.metadata.get("source") != source for chunk in self.chunks]
        removed = keep.count(False)
        if not removed:
            return 0

        self.chunks = [
            chunk for chunk, kept in zip(self.chunks, keep, strict=True) if kept
        ]
        if self.chunks and self.embeddings is not None:
            self.embeddings = self.embeddings[np.array(keep)]
        else:
            self.embeddings = None

        logger.info("Removed %d chunks from %s", removed, source)
        return removed

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 5,
    ) -> list[tuple[DocumentChunk, float]]:
        """Search for the chunks most similar to the query embedding.

        Returns:
            Ranked list of (DocumentChunk, score) tuples, at most ``top_k`` long.
        """
        if self.embeddings is None or top_k <= 0:
            return []

        similarities = cosine_similarity(query_embedding, self.embeddings)
        top_indices = np.argsort(similarities, kind="stable")[::-1][:top_k]
        return [(self.chunks[idx], float(similarities[idx])) for idx in top_indices]
