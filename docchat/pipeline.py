"""Ingestion pipeline: Load -> Split -> Embed -> Store, plus retrieval."""

from pathlib import Path

import numpy as np
from langchain_core.embeddings import Embeddings

from .config import config
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .models import DocumentChunk
from .retriever import VectorStoreRetriever
from .vector_store import InMemoryVectorStore

logger = config.get_logger(__name__)


class RAGPipeline:
    """Owns the chunker, embedding service and vector store for one knowledge base."""

    def __init__(
        self,
        openai_api_key: str | None = None,
        chunk_size: int | None = None,
        overlap: int | None = None,
        embedding_service: Embeddings | None = None,
    ) -> None:
        """Initialize RAG pipeline.

        Args:
            openai_api_key: OpenAI API key.
            chunk_size: Size of text chunks. If None, uses config.CHUNK_SIZE.
            overlap: Overlap between chunks. If None, uses config.CHUNK_OVERLAP.
            embedding_service: LangChain embeddings used for chunks and queries.
                Defaults to the OpenAI-backed EmbeddingService.
        """
        if chunk_size is None:
            chunk_size = config.CHUNK_SIZE
        if overlap is None:
            overlap = config.CHUNK_OVERLAP

        self.chunker = TextChunker(chunk_size=chunk_size, overlap=overlap)
        self.embedding_service = embedding_service or EmbeddingService(
            api_key=openai_api_key
        )
        self.vector_store = InMemoryVectorStore()

    def process_text(self, text: str, source: str) -> int:
        """Split, embed and store raw text.

        Chunks previously indexed from the same source are replaced.

        Returns:
            Number of chunks added to the vector store.
        """
        chunks = self.chunker.chunk_text(text, source=source)
        if not chunks:
            logger.warning("No text to index from %s", source)
            return 0

        embeddings = self.embedding_service.embed_documents(
            [chunk.content for chunk in chunks]
        )
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            chunk.embedding = np.asarray(embedding, dtype="float32")

        replaced = self.vector_store.remove_source(source)
        if replaced:
            logger.info("Re-indexing %s, replaced %d chunks", source, replaced)
        self.vector_store.add_chunks(chunks)

        logger.info("Indexed %d chunks from %s", len(chunks), source)
        return len(chunks)

    def process_document(self, file_path: Path, source: str | None = None) -> int:
        """Process a local PDF or TXT document.

        Returns:
            Number of chunks added to the vector store.
        """
        logger.info("Starting ingestion for document: %s", file_path)
        text = DocumentLoader.load_document(file_path)
        return self.process_text(text, source=source or file_path.name)

    def process_url(self, url: str, selector: str | None = None) -> int:
        """Fetch a web page and index its text.

        Returns:
            Number of chunks added to the vector store.
        """
        logger.info("Starting ingestion for URL: %s", url)
        text = DocumentLoader.load_url(url, selector=selector)
        return self.process_text(text, source=url)

    def query(self, question: str, top_k: int = 5) -> list[tuple[DocumentChunk, float]]:
        """Return the stored chunks most similar to a question.

        Args:
            question: The input question to query.
            top_k: Number of top results to return.

        Returns:
            A list of tuples, each containing a DocumentChunk and its similarity score.
        """
        logger.info("Processing query: %s", question)

        query_embedding = self.embedding_service.embed_query(question)

        return self.vector_store.search(np.asarray(query_embedding), top_k=top_k)

    def as_retriever(self, k: int | None = None) -> VectorStoreRetriever:
        """Expose the store as a LangChain retriever.

        Returns:
            Retriever returning at most ``k`` documents (config.RETRIEVER_TOP_K
            by default).
        """
        return VectorStoreRetriever(
            embedding_service=self.embedding_service,
            vector_store=self.vector_store,
            k=k if k is not None else config.RETRIEVER_TOP_K,
        )
