"""Data models for the chatbot."""

from dataclasses import dataclass
from typing import Any, TypedDict

import numpy as np
from langchain_core.documents import Document
from langchain_core.messages import BaseMessage


@dataclass
class DocumentChunk:
    """Represents a chunk of text from a loaded document."""

    content: str
    metadata: dict[str, Any]
    embedding: np.ndarray | None = None

    def to_document(self, score: float | None = None) -> Document:
        """Convert the chunk into a LangChain document.

        Returns:
            Document carrying a copy of the chunk metadata, plus the
            similarity score when one is given.
        """
        metadata = dict(self.metadata)
        if score is not None:
            metadata["score"] = score
        return Document(page_content=self.content, metadata=metadata)


class ConversationState(TypedDict, total=False):
    """State assembled by the conversational retrieval chain for one turn."""

    messages: list[BaseMessage]
    query: str
    context: list[Document]
    answer: str
