"""LangChain retriever over the embedding service and vector store."""

from __future__ import annotations

import numpy as np
from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.retrievers import BaseRetriever
from pydantic import field_validator

from .config import config
from .vector_store import InMemoryVectorStore

logger = config.get_logger(__name__)


class VectorStoreRetriever(BaseRetriever):
    """Return the ``k`` stored chunks most similar to a query string.

    Each returned document carries the chunk metadata plus a ``score`` key
    holding the similarity used for ranking.
    """

    embedding_service: Embeddings
    vector_store: InMemoryVectorStore
    k: int = 4

    @field_validator("k")
    @classmethod
    def _check_k(cls, value: int) -> int:
        if value < 1:
            msg = f"k must be at least 1, got {value}"
            raise ValueError(msg)
        return value

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun,  # noqa: ARG002
    ) -> list[Document]:
        query_embedding = np.asarray(self.embedding_service.embed_query(query))
        results = self.vector_store.search(query_embedding, top_k=self.k)

        documents = [chunk.to_document(score) for chunk, score in results[: self.k]]
        logger.info("Retrieved %d documents for query: %s", len(documents), query)
        return documents
