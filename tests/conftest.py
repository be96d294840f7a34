"""Test configuration and fixtures for DocChat tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- EmbeddingService fixtures
- Text processing fixtures
- Vector store fixtures
- Fake chat models and retrievers
- Pipeline and conversation fixtures
"""

import hashlib
from pathlib import Path
from unittest.mock import Mock, patch

import numpy as np
import pytest
from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import FakeListChatModel
from langchain_core.retrievers import BaseRetriever
from langchain_core.runnables import RunnableLambda
from pydantic import Field

from docchat import (
    ConversationManager,
    DocumentChunk,
    EmbeddingService,
    InMemoryVectorStore,
    RAGPipeline,
    TextChunker,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEST_DATA_DIR = PROJECT_ROOT / "tests" / "data"


class TestConstants:
    """Centralized test constants shared across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    DEFAULT_EMBEDDING_DIMENSION = 384

    # Text Chunking Configuration
    SMALL_CHUNK_SIZE = 100
    SMALL_CHUNK_OVERLAP = 20
    DEFAULT_CHUNK_SIZE = 500
    DEFAULT_CHUNK_OVERLAP = 0
    LARGE_CHUNK_SIZE = 10000
    LARGE_CHUNK_OVERLAP = 1000

    # Chat Configuration
    TEST_ANSWER = "LangSmith helps you trace and evaluate LLM applications."
    TEST_REWRITTEN_QUERY = "LangSmith testing features"


class MockEmbeddingService(Embeddings):
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension

    def get_embedding(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def get_embeddings_batch(
        self,
        texts: list[str],
    ) -> list[np.ndarray]:
        """Generate batch of mock embeddings."""
        return [self.get_embedding(text) for text in texts]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [embedding.tolist() for embedding in self.get_embeddings_batch(texts)]

    def embed_query(self, text: str) -> list[float]:
        return self.get_embedding(text).tolist()


class RecordingRetriever(BaseRetriever):
    """Retriever returning fixed documents and remembering every query."""

    documents: list[Document] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun,  # noqa: ARG002
    ) -> list[Document]:
        self.queries.append(query)
        return list(self.documents)


def _refuse_to_run(_inputs):  # noqa: ANN001, ANN202
    msg = "query rewrite model must not be called"
    raise AssertionError(msg)


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


@pytest.fixture
def openai_embeddings_api_mock():
    """Base fixture that patches OpenAI embeddings.create method."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def openai_embeddings_factory(openai_embeddings_api_mock):
    """Factory for creating OpenAI embeddings API mocks with different scenarios."""

    def _create_mock(  # noqa: ANN202
        scenario="single_success",
        embeddings=None,
        error_message="API Error",
    ):
        """Create a mock based on scenario type.

        Args:
            scenario: Type of mock ('single_success', 'batch_success', 'error',
                'multiple_batches', 'partial_failure')
            embeddings: Custom embeddings to return, or None for defaults
            error_message: Custom error message for error scenarios
        """
        openai_embeddings_api_mock.reset_mock()
        openai_embeddings_api_mock.side_effect = None
        openai_embeddings_api_mock.return_value = None

        if scenario == "single_success":
            mock_embedding = embeddings or [0.1, 0.2, 0.3, 0.4, 0.5]
            openai_embeddings_api_mock.return_value = create_mock_openai_response([
                mock_embedding
            ])
        elif scenario == "batch_success":
            mock_embeddings = embeddings or [
                [0.1, 0.2, 0.3],
                [0.4, 0.5, 0.6],
                [0.7, 0.8, 0.9],
            ]
            openai_embeddings_api_mock.return_value = create_mock_openai_response(
                mock_embeddings
            )
        elif scenario == "error":
            openai_embeddings_api_mock.side_effect = Exception(error_message)
        elif scenario == "multiple_batches":
            openai_embeddings_api_mock.side_effect = [
                create_mock_openai_response([[0.1, 0.2], [0.3, 0.4]]),
                create_mock_openai_response([[0.5, 0.6], [0.7, 0.8]]),
            ]
        elif scenario == "partial_failure":
            openai_embeddings_api_mock.side_effect = [
                create_mock_openai_response([[0.1, 0.2]]),
                Exception("Second batch failed"),
            ]

        return openai_embeddings_api_mock

    return _create_mock


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with different configurations."""

    def _create_service(api_key=None, model=None):  # noqa: ANN202
        api_key = api_key or TestConstants.TEST_API_KEY

        if model is not None:
            return EmbeddingService(api_key=api_key, model=model)
        return EmbeddingService(api_key=api_key)

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def text_chunker_factory():
    """Factory fixture that creates ``TextChunker`` instances on demand."""
    presets: dict[str, tuple[int, int]] = {
        "small": (
            TestConstants.SMALL_CHUNK_SIZE,
            TestConstants.SMALL_CHUNK_OVERLAP,
        ),
        "default": (
            TestConstants.DEFAULT_CHUNK_SIZE,
            TestConstants.DEFAULT_CHUNK_OVERLAP,
        ),
        "large": (
            TestConstants.LARGE_CHUNK_SIZE,
            TestConstants.LARGE_CHUNK_OVERLAP,
        ),
    }

    def _create_chunker(name: str = "default") -> TextChunker:
        try:
            chunk_size, overlap = presets[name]
        except KeyError as exc:
            msg = f"Unknown text chunker preset: {name}"
            raise ValueError(msg) from exc
        return TextChunker(chunk_size=chunk_size, overlap=overlap)

    return _create_chunker


@pytest.fixture(scope="session")
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def mock_embeddings(mock_embedding_service):
    """Factory function to create mock embeddings using the service."""

    def _create_mock_embedding(
        text: str, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> np.ndarray:
        if dimension != TestConstants.DEFAULT_EMBEDDING_DIMENSION:
            return MockEmbeddingService(dimension).get_embedding(text)
        return mock_embedding_service.get_embedding(text)

    return _create_mock_embedding


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def sample_text_chunks():
    """Create sample document chunks with text and metadata only (no embeddings)."""
    texts = [
        "Machine learning is a subset of artificial intelligence.",
        "Neural networks are computational models inspired by the brain.",
        "Deep learning uses multiple layers to learn complex patterns.",
        "Supervised learning uses labeled training data.",
        "Unsupervised learning finds patterns in unlabeled data.",
    ]

    return [
        DocumentChunk(
            content=text,
            metadata={
                "source": f"test_doc_{i // 3}.txt",
                "chunk_id": i,
                "start_char": i * 100,
                "end_char": (i + 1) * 100,
                "length": len(text),
            },
        )
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def sample_embedded_chunks(sample_text_chunks, mock_embeddings):
    """Create sample document chunks with embeddings based on text chunks."""
    return [
        DocumentChunk(
            content=chunk.content,
            metadata=dict(chunk.metadata),
            embedding=mock_embeddings(chunk.content),
        )
        for chunk in sample_text_chunks
    ]


@pytest.fixture(scope="session")
def sample_document_path():
    """Path to the sample ML document."""
    return TEST_DATA_DIR / "sample_ml_document.txt"


@pytest.fixture
def sample_documents():
    """Retrieved documents as the retriever hands them to the chains."""
    return [
        Document(
            page_content="LangSmith lets you trace every run of your application.",
            metadata={"source": "https://docs.example.com/guide", "score": 0.82},
        ),
        Document(
            page_content="Datasets in LangSmith can be used to evaluate prompts.",
            metadata={"source": "https://docs.example.com/guide", "score": 0.74},
        ),
    ]


@pytest.fixture
def recording_retriever(sample_documents):
    return RecordingRetriever(documents=sample_documents)


@pytest.fixture
def fake_chat_model_factory():
    """Factory for LangChain fake chat models replying with canned text."""

    def _create_model(*responses: str) -> FakeListChatModel:
        return FakeListChatModel(responses=list(responses) or ["Test response"])

    return _create_model


@pytest.fixture
def refusing_model():
    """Runnable standing in for a chat model that must never be called."""
    return RunnableLambda(_refuse_to_run)


@pytest.fixture
def conversation_manager(recording_retriever, fake_chat_model_factory):
    """ConversationManager wired to fake models and a recording retriever."""
    return ConversationManager(
        recording_retriever,
        llm=fake_chat_model_factory(TestConstants.TEST_ANSWER),
        query_llm=fake_chat_model_factory(TestConstants.TEST_REWRITTEN_QUERY),
    )


@pytest.fixture
def rag_pipeline_factory(mock_embedding_service):
    """Factory for RAGPipeline instances whose embedding calls are mocked."""

    def _create_pipeline(chunk_size: int = 200, overlap: int = 50) -> RAGPipeline:
        return RAGPipeline(
            openai_api_key=TestConstants.TEST_API_KEY,
            chunk_size=chunk_size,
            overlap=overlap,
            embedding_service=mock_embedding_service,
        )

    return _create_pipeline
