"""Conversation management on top of the conversational retrieval chain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from .chains import create_conversational_retrieval_chain
from .config import config
from .llm import get_chat_model, get_query_rewrite_model
from .models import ConversationState

if TYPE_CHECKING:
    from collections.abc import Iterator

    from langchain_core.language_models import BaseChatModel
    from langchain_core.retrievers import BaseRetriever

logger = config.get_logger(__name__)

NO_ANSWER_FALLBACK = "I apologize, but I couldn't generate a response."
# Room for the previous answer and the follow-up question.
MIN_HISTORY_MESSAGES = 2


def merge_state_chunk(state: dict[str, Any], chunk: dict[str, Any]) -> None:
    """Fold a streamed chain chunk into the accumulated state in place.

    String fields (``query``, ``answer``) arrive as fragments and are
    concatenated; every other field arrives whole and is replaced.
    """
    for key, value in chunk.items():
        if isinstance(value, str) and isinstance(state.get(key), str):
            state[key] += value
        else:
            state[key] = value


class ConversationManager:
    """Manages multi-round conversations over a document retriever."""

    def __init__(
        self,
        retriever: BaseRetriever,
        llm: BaseChatModel | None = None,
        query_llm: BaseChatModel | None = None,
        *,
        openai_api_key: str | None = None,
        max_history_messages: int | None = None,
    ) -> None:
        """Initialize ConversationManager.

        Args:
            retriever: Retriever returning the top-k documents for a query.
            llm: Chat model used for answers. Defaults to a ChatOpenAI model
                built from configuration.
            query_llm: Chat model used to rewrite follow-up questions.
                Defaults to the low-temperature rewrite model.
            openai_api_key: OpenAI API key for the default models.
            max_history_messages: Most recent messages sent with each turn. If
                None, uses config.CHAT_HISTORY_MAX_MESSAGES.
        """
        self.max_history_messages = (
            max_history_messages
            if max_history_messages is not None
            else config.CHAT_HISTORY_MAX_MESSAGES
        )
        if self.max_history_messages < MIN_HISTORY_MESSAGES:
            msg = f"max_history_messages must be at least {MIN_HISTORY_MESSAGES}"
            raise ValueError(msg)

        self.retriever = retriever
        self.llm = llm or get_chat_model(openai_api_key)
        self.query_llm = query_llm or get_query_rewrite_model(openai_api_key)

        self.chain = create_conversational_retrieval_chain(
            self.llm,
            self.retriever,
            query_llm=self.query_llm,
        )
        self.messages: list[BaseMessage] = []
        self.last_state: ConversationState | None = None

    def _start_turn(self, question: str) -> dict[str, Any]:
        if not question or not question.strip():
            msg = "Question must not be empty"
            raise ValueError(msg)

        self.messages.append(HumanMessage(content=question.strip()))
        return {"messages": self.messages[-self.max_history_messages :]}

    def _finish_turn(self, state: dict[str, Any]) -> ConversationState:
        answer = (state.get("answer") or "").strip() or NO_ANSWER_FALLBACK
        state["answer"] = answer
        self.messages.append(AIMessage(content=answer))

        self.last_state = ConversationState(**state)
        for i, document in enumerate(state.get("context", [])):
            logger.info(
                "  Context %d: %s (score: %.4f)",
                i + 1,
                document.metadata.get("source"),
                document.metadata.get("score", 0.0),
            )
        return self.last_state

    def answer_question(self, question: str) -> ConversationState:
        """Answer a question using the conversation so far.

        Returns:
            The chain state for this turn: the messages sent, the search
            query used, the retrieved documents and the answer.
        """
        logger.info("Processing question: %s", question)
        inputs = self._start_turn(question)

        try:
            state = dict(self.chain.invoke(inputs))
        except Exception:
            self.messages.pop()
            logger.exception("Conversational retrieval chain failed")
            raise

        return self._finish_turn(state)

    def stream_answer(self, question: str) -> Iterator[str]:
        """Answer a question, yielding the answer text as it is generated.

        The generator is single-pass. The assistant message is added to the
        history and ``last_state`` is set only once it is exhausted.

        Yields:
            Fragments of the answer text, in order.
        """
        logger.info("Streaming answer for question: %s", question)
        inputs = self._start_turn(question)
        state: dict[str, Any] = {}

        try:
            for chunk in self.chain.stream(inputs):
                merge_state_chunk(state, chunk)
                fragment = chunk.get("answer")
                if fragment:
                    yield fragment
        except Exception:
            self.messages.pop()
            logger.exception("Conversational retrieval chain failed while streaming")
            raise

        self._finish_turn(state)

    @property
    def turn_count(self) -> int:
        return sum(isinstance(message, HumanMessage) for message in self.messages)

    def clear_history(self) -> None:
        """Clear the conversation history."""
        self.messages = []
        self.last_state = None
        logger.info("Conversation history cleared.")
