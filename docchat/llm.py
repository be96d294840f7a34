"""Chat model factory functions."""

from langchain_openai import ChatOpenAI

from .config import config


def get_chat_model(
    api_key: str | None = None,
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    streaming: bool = True,
) -> ChatOpenAI:
    """Create a ChatOpenAI instance for answer generation.

    Args:
        api_key: OpenAI API key. If None, reads from OPENAI_API_KEY.
        model: Chat model name. If None, uses config.CHAT_MODEL.
        temperature: Sampling temperature. If None, uses config.CHAT_TEMPERATURE.
        max_tokens: Completion token limit. If None, uses config.CHAT_MAX_TOKENS.
        streaming: Whether the model streams tokens by default.

    Returns:
        ChatOpenAI instance configured with the provided settings
    """
    default_headers = config.get_api_headers()
    return ChatOpenAI(
        api_key=api_key or config.get_openai_api_key(),
        base_url=config.OPENAI_BASE_URL,
        model=model or config.CHAT_MODEL,
        temperature=(
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        ),
        max_tokens=max_tokens if max_tokens is not None else config.CHAT_MAX_TOKENS,
        default_headers=default_headers or None,
        streaming=streaming,
    )


def get_query_rewrite_model(api_key: str | None = None) -> ChatOpenAI:
    """Create the low-temperature model used to rewrite follow-up questions.

    Returns:
        ChatOpenAI instance configured for standalone query generation.
    """
    return get_chat_model(
        api_key,
        temperature=config.QUERY_REWRITE_TEMPERATURE,
        max_tokens=config.QUERY_REWRITE_MAX_TOKENS,
        streaming=False,
    )
