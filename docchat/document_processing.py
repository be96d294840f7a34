"""Document loading and text chunking functionality."""

import re
from pathlib import Path

import httpx
import pypdf
from bs4 import BeautifulSoup
from langchain_text_splitters import RecursiveCharacterTextSplitter

from .config import config
from .models import DocumentChunk

logger = config.get_logger(__name__)

HTML_CONTENT_TYPES = {"text/html", "application/xhtml+xml"}
NON_CONTENT_TAGS = ("script", "style", "noscript", "template")

_BLANK_LINES = re.compile(r"\n\s*\n+")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")


def _collapse_whitespace(text: str) -> str:
    text = _INLINE_SPACE.sub(" ", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return "\n".join(line.strip() for line in text.splitlines()).strip()


def extract_text_from_html(html: str, selector: str | None = None) -> str:
    """Extract readable text from an HTML page.

    Args:
        html: Raw HTML markup.
        selector: Optional CSS selector; when set, only the text of the
            matching elements is kept.

    Returns:
        The visible text of the page with whitespace collapsed.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()

    if selector:
        parts = [element.get_text(" ") for element in soup.select(selector)]
        text = "\n\n".join(parts)
    else:
        root = soup.body or soup
        text = root.get_text("\n")

    return _collapse_whitespace(text)


class DocumentLoader:
    """Handles loading of web pages, PDF and TXT documents."""

    @staticmethod
    def load_pdf(file_path: Path) -> str:
        """Load text content from a PDF file.

        Returns:
            The extracted text content from the PDF as a string.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                text = ""
                for page_num, page in enumerate(pdf_reader.pages):
                    page_text = page.extract_text()
                    text += f"\n--- Page {page_num + 1} ---\n{page_text}\n"
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        else:
            return text

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a TXT file.

        Returns:
            The extracted text content from the TXT file as a string.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.info("Successfully loaded TXT file %s", file_path)
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        else:
            return text

    @classmethod
    def load_document(cls, file_path: Path) -> str:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The text content of the document as a string.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext == ".txt":
            return cls.load_txt(file_path)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)

    @staticmethod
    def load_url(
        url: str,
        *,
        selector: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> str:
        """Fetch a web page and return its readable text.

        Args:
            url: Address of the page to fetch.
            selector: Optional CSS selector restricting which elements are kept.
            timeout: Request timeout in seconds. If None, uses
                config.WEB_REQUEST_TIMEOUT.
            client: Optional pre-configured HTTP client. A short-lived client is
                created when omitted.

        Returns:
            The page text. Plain-text responses are returned unchanged.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status.
            ValueError: If the response is neither HTML nor text.
        """
        if timeout is None:
            timeout = config.WEB_REQUEST_TIMEOUT

        owns_client = client is None
        http = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers=config.get_api_headers(),
        )
        try:
            response = http.get(url)
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Error fetching %s", url)
            raise
        finally:
            if owns_client:
                http.close()

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if content_type and content_type not in HTML_CONTENT_TYPES:
            if not content_type.startswith("text/"):
                msg = f"Unsupported content type for {url}: {content_type}"
                logger.error(msg)
                raise ValueError(msg)
            logger.info("Loaded %s as plain text (%s)", url, content_type)
            return response.text

        text = extract_text_from_html(response.text, selector=selector)
        logger.info("Loaded %d characters from %s", len(text), url)
        return text


class TextChunker:
    """Splits text with the recursive character strategy."""

    def __init__(self, chunk_size: int = 500, overlap: int = 0) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Args:
            chunk_size: The maximum size of each text chunk.
            overlap: The number of overlapping characters between chunks.
        """
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=overlap,
            add_start_index=True,
        )

    def chunk_text(self, text: str, source: str = "document") -> list[DocumentChunk]:
        """Split text into chunks tagged with their source and offsets.

        Returns:
            A list of DocumentChunk objects representing the text chunks.
        """
        documents = self.splitter.create_documents([text])

        chunks = []
        for chunk_id, document in enumerate(documents):
            start = int(document.metadata.get("start_index", -1))
            length = len(document.page_content)
            chunks.append(
                DocumentChunk(
                    content=document.page_content,
                    metadata={
                        "source": source,
                        "chunk_id": chunk_id,
                        "start_char": start,
                        "end_char": start + length if start >= 0 else -1,
                        "length": length,
                    },
                )
            )

        logger.info("Text split into %d chunks", len(chunks))
        return chunks
