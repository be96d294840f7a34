"""DocChat - conversational retrieval-augmented chatbot."""

from .chains import (
    create_conversational_retrieval_chain,
    create_document_chain,
    create_history_aware_retriever,
    create_query_transform_chain,
    format_documents,
)
from .conversation import ConversationManager
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .models import ConversationState, DocumentChunk
from .pipeline import RAGPipeline
from .retriever import VectorStoreRetriever
from .vector_store import InMemoryVectorStore

__all__ = [
    "ConversationManager",
    "ConversationState",
    "DocumentChunk",
    "DocumentLoader",
    "EmbeddingService",
    "InMemoryVectorStore",
    "RAGPipeline",
    "TextChunker",
    "VectorStoreRetriever",
    "create_conversational_retrieval_chain",
    "create_document_chain",
    "create_history_aware_retriever",
    "create_query_transform_chain",
    "format_documents",
]
