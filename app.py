"""Web interface using Streamlit."""

import tempfile
from pathlib import Path

import httpx
import streamlit as st
from langchain_core.messages import HumanMessage
from openai import OpenAIError

from docchat import ConversationManager, RAGPipeline
from docchat.config import config

MAX_CONTEXT_PREVIEW_LENGTH = 200

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "rag_pipeline": None,
            "conversation_manager": None,
            "sources": [],
            "system_ready": False,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the system is properly initialized.

        Returns:
            bool: True if both rag_pipeline and conversation_manager are initialized,
            False otherwise.
        """
        return (
            st.session_state.get("rag_pipeline") is not None
            and st.session_state.get("conversation_manager") is not None
        )


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def initialize_system() -> bool:
    """Initialize the ingestion pipeline and conversation manager.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Initializing system..."):
            pipeline = RAGPipeline()
            st.session_state.rag_pipeline = pipeline
            st.session_state.conversation_manager = ConversationManager(
                pipeline.as_retriever()
            )
            st.session_state.system_ready = True

        logger.info("Chat system initialized successfully")
        st.success("System initialized successfully!")

    except (ValueError, RuntimeError, OSError) as e:
        logger.exception("Failed to initialize system")
        st.error(f"Failed to initialize system: {e}")
        return False
    else:
        return True


def index_url(url: str, selector: str | None) -> bool:
    """Fetch and index a web page.

    Returns:
        bool: True if the page was indexed, False otherwise.
    """
    try:
        with st.spinner(f"Indexing '{url}'..."):
            stored = st.session_state.rag_pipeline.process_url(
                url, selector=selector or None
            )
    except (httpx.HTTPError, OpenAIError, ValueError) as e:
        logger.exception("Web page indexing failed")
        st.error(f"Failed to index {url}: {e}")
        return False

    st.session_state.sources.append(url)
    st.success(f"Indexed {stored} chunks from {url}")
    return True


def index_upload(uploaded_file) -> bool:  # noqa: ANN001
    """Process uploaded file through the ingestion pipeline.

    Returns:
        bool: True if document processing succeeds, False otherwise.
    """
    try:
        with tempfile.NamedTemporaryFile(
            delete=False,
            suffix=f".{uploaded_file.name.split('.')[-1]}",
        ) as tmp_file:
            tmp_file.write(uploaded_file.getbuffer())
            tmp_file_path = Path(tmp_file.name)

        try:
            with st.spinner(
                f"Processing '{uploaded_file.name}'... This may take a few moments."
            ):
                stored = st.session_state.rag_pipeline.process_document(
                    tmp_file_path, source=uploaded_file.name
                )
        finally:
            tmp_file_path.unlink(missing_ok=True)

    except (OSError, ValueError, RuntimeError, OpenAIError) as e:
        logger.exception("Document processing failed")
        st.error(f"Failed to process document: {e}")
        return False

    st.session_state.sources.append(uploaded_file.name)
    st.success(f"Indexed {stored} chunks from '{uploaded_file.name}'")
    return True


def render_sidebar() -> None:
    """Render the sidebar with configuration and system status."""
    with st.sidebar:
        st.header("System Configuration")

        if (
            st.button("Initialize System", use_container_width=True)
            and validate_configuration()
            and initialize_system()
        ):
            st.rerun()

        st.divider()
        st.subheader("System Status")
        config_status = "Valid" if validate_configuration() else "Invalid"
        st.write(f"**Configuration:** {config_status}")
        if SessionState.is_system_ready():
            st.write("**System:** Ready")
        else:
            st.write("**System:** Not Initialized")
        st.write(f"**Sources:** {len(st.session_state.sources)}")
        for source in st.session_state.sources:
            st.caption(source)

        st.divider()
        if SessionState.is_system_ready():
            st.subheader("Conversation")
            if st.button("Clear History", use_container_width=True):
                st.session_state.conversation_manager.clear_history()
                st.success("Conversation cleared!")
                st.rerun()


def render_sources() -> None:
    """Render the web page and file ingestion forms."""
    st.header("Knowledge Sources")
    url_tab, file_tab = st.tabs(["Web Page", "File Upload"])

    with url_tab, st.form("url_form", clear_on_submit=True):
        url = st.text_input("Page URL", placeholder="https://example.com/guide")
        selector = st.text_input(
            "CSS selector (optional)",
            help="Only index elements matching this selector, e.g. 'main p'",
        )
        if st.form_submit_button("Index Page") and url.strip():
            index_url(url.strip(), selector.strip())

    with file_tab:
        uploaded_file = st.file_uploader(
            "Upload a PDF or TXT document",
            type=["pdf", "txt"],
        )
        if (
            uploaded_file
            and uploaded_file.name not in st.session_state.sources
            and st.button("Process Document", use_container_width=True)
        ):
            index_upload(uploaded_file)


def render_retrieved_context(state: dict) -> None:
    """Show the search query and passages behind the last answer."""
    if not state:
        return
    with st.expander("Retrieved Context", expanded=config.is_development()):
        st.markdown(f"**Search Query:** {state.get('query', '')}")
        for i, document in enumerate(state.get("context", [])):
            content = document.page_content
            st.write(
                f"Context {i + 1} (Similarity: {document.metadata.get('score', 0.0):.4f})"
                f" from {document.metadata.get('source')}:"
            )
            st.code(
                content[:MAX_CONTEXT_PREVIEW_LENGTH] + "..."
                if len(content) > MAX_CONTEXT_PREVIEW_LENGTH
                else content,
            )


def render_chat_interface() -> None:
    """Render the conversation and the chat input."""
    if not st.session_state.sources:
        st.info("Index a web page or upload a document to start chatting.")
        return

    manager: ConversationManager = st.session_state.conversation_manager

    st.header("Chat")
    for message in manager.messages:
        role = "user" if isinstance(message, HumanMessage) else "assistant"
        with st.chat_message(role):
            st.markdown(message.content)

    question = st.chat_input("Ask anything about your sources...")
    if not question:
        render_retrieved_context(manager.last_state or {})
        return

    with st.chat_message("user"):
        st.markdown(question)

    with st.chat_message("assistant"):
        try:
            st.write_stream(manager.stream_answer(question))
        except (ValueError, RuntimeError, OSError, OpenAIError) as e:
            logger.exception("Question processing failed")
            st.error(f"Failed to process question: {e}")
            return

    render_retrieved_context(manager.last_state or {})


def render_system_info() -> None:
    """Render system information footer."""
    st.markdown("---")
    col1, col2, col3 = st.columns(3)

    with col1:
        st.markdown("**Chat Model**")
        st.markdown(f"{config.CHAT_MODEL}")

    with col2:
        st.markdown("**Chunk Size / Top-k**")
        st.markdown(f"{config.CHUNK_SIZE} / {config.RETRIEVER_TOP_K}")

    with col3:
        st.markdown("**Turns**")
        st.markdown(f"{st.session_state.conversation_manager.turn_count}")


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(
        page_title="DocChat",
        layout="wide",
    )

    SessionState.initialize()

    st.title("DocChat - Chat With Your Documents")
    st.markdown("---")

    render_sidebar()

    if not SessionState.is_system_ready():
        st.info("Please initialize the system using the sidebar to get started.")
        return

    render_sources()
    render_chat_interface()
    render_system_info()


if __name__ == "__main__":
    main()
