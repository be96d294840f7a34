"""Runnable chains for conversational retrieval.

The full chain threads a ``ConversationState`` dict through three steps::

    {"messages"}
      -> assign(query)    one message: its text; otherwise an LLM rewrite
      -> assign(context)  top-k documents for the query
      -> assign(answer)   stuffed context + conversation -> chat model

Every step is a plain LangChain runnable, so the whole chain supports
``invoke`` and incremental ``stream``.
"""

from __future__ import annotations

from operator import itemgetter
from typing import TYPE_CHECKING, Any

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.runnables import (
    Runnable,
    RunnableBranch,
    RunnableLambda,
    RunnablePassthrough,
)

from .config import config

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.documents import Document
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage
    from langchain_core.retrievers import BaseRetriever

logger = config.get_logger(__name__)

QUESTION_ANSWERING_SYSTEM_TEMPLATE = """Answer the user's questions based on the \
below context. If the context doesn't contain any relevant information to the \
question, don't make something up and just say "I don't know":

<context>
{context}
</context>"""

QUERY_TRANSFORM_TEMPLATE = (
    "Given the above conversation, generate a search query to look up in order "
    "to get information relevant to the conversation. Only respond with the "
    "query, nothing else."
)

DOCUMENT_SEPARATOR = "\n\n"


def message_text(message: BaseMessage) -> str:
    """Return the plain text of a message, joining text blocks if needed."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def format_documents(documents: Sequence[Document]) -> str:
    """Stuff retrieved documents into a single context block."""
    return DOCUMENT_SEPARATOR.join(document.page_content for document in documents)


def _has_single_message(inputs: dict[str, Any]) -> bool:
    return len(inputs["messages"]) == 1


def _last_message_text(inputs: dict[str, Any]) -> str:
    return message_text(inputs["messages"][-1])


def _pick_rewritten_query(inputs: dict[str, Any]) -> str:
    rewritten = inputs["rewritten"].strip()
    if not rewritten:
        logger.warning("Query rewrite came back empty; using the last message")
        return _last_message_text(inputs)
    logger.info("Generated standalone query: %s", rewritten)
    return rewritten


def create_query_transform_chain(llm: BaseChatModel) -> Runnable:
    """Build the branch that turns a conversation into a search query.

    A conversation of exactly one message is searched verbatim. Longer
    conversations are rewritten by ``llm`` into a standalone query; an empty
    rewrite falls back to the latest message.

    Returns:
        Runnable mapping ``{"messages": [...]}`` to a query string.
    """
    query_transform_prompt = ChatPromptTemplate.from_messages([
        MessagesPlaceholder(variable_name="messages"),
        ("user", QUERY_TRANSFORM_TEMPLATE),
    ])
    rewrite = RunnablePassthrough.assign(
        rewritten=query_transform_prompt | llm | StrOutputParser()
    ) | RunnableLambda(_pick_rewritten_query)

    return RunnableBranch(
        (RunnableLambda(_has_single_message), RunnableLambda(_last_message_text)),
        rewrite,
    ).with_config(run_name="query_transform")


def create_history_aware_retriever(
    llm: BaseChatModel,
    retriever: BaseRetriever,
) -> Runnable:
    """Chain the query transform into the retriever.

    Returns:
        Runnable mapping ``{"messages": [...]}`` to retrieved documents.
    """
    return (create_query_transform_chain(llm) | retriever).with_config(
        run_name="chat_retriever_chain"
    )


def create_document_chain(llm: BaseChatModel) -> Runnable:
    """Build the answer step: stuff the context and ask the chat model.

    Returns:
        Runnable mapping ``{"messages", "context"}`` to the answer text.
    """
    question_answering_prompt = ChatPromptTemplate.from_messages([
        ("system", QUESTION_ANSWERING_SYSTEM_TEMPLATE),
        MessagesPlaceholder(variable_name="messages"),
    ])
    return (
        {
            "context": itemgetter("context") | RunnableLambda(format_documents),
            "messages": itemgetter("messages"),
        }
        | question_answering_prompt
        | llm
        | StrOutputParser()
    ).with_config(run_name="document_chain")


def create_conversational_retrieval_chain(
    llm: BaseChatModel,
    retriever: BaseRetriever,
    query_llm: BaseChatModel | None = None,
) -> Runnable:
    """Compose query transform, retrieval and answer generation.

    Args:
        llm: Chat model that writes the answer.
        retriever: Retriever returning the top-k documents for a query.
        query_llm: Chat model used to rewrite follow-up questions. Defaults
            to ``llm``.

    Returns:
        Runnable mapping ``{"messages": [...]}`` to a ``ConversationState``
        with ``query``, ``context`` and ``answer`` filled in.
    """
    return (
        RunnablePassthrough.assign(
            query=create_query_transform_chain(query_llm or llm)
        )
        .assign(context=itemgetter("query") | retriever)
        .assign(answer=create_document_chain(llm))
    ).with_config(run_name="conversational_retrieval_chain")
