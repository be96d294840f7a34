"""Command-line entry point for DocChat: Streamlit UI or terminal chat."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import httpx
from openai import OpenAIError

from docchat.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

    from docchat import ConversationManager, RAGPipeline

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"
EXIT_COMMANDS = {"exit", "quit", ":q"}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Chat with web pages and documents using retrieval.",
    )
    subparsers = parser.add_subparsers(dest="command")

    ui_parser = subparsers.add_parser("ui", help="Launch the Streamlit web app.")
    ui_parser.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui_parser.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui_parser.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui_parser.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui_parser.set_defaults(headless=True)

    chat_parser = subparsers.add_parser("chat", help="Chat in the terminal.")
    chat_parser.add_argument(
        "--url",
        action="append",
        default=[],
        help="Web page to index before chatting (repeatable).",
    )
    chat_parser.add_argument(
        "--file",
        type=Path,
        action="append",
        default=[],
        help="PDF or TXT file to index before chatting (repeatable).",
    )
    chat_parser.add_argument(
        "--selector",
        default=None,
        help="CSS selector limiting which page elements are indexed.",
    )
    chat_parser.add_argument(
        "--top-k",
        type=int,
        default=None,
        help="Number of passages retrieved per question.",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["ui"])
    return args


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("DocChat stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_ui(args: argparse.Namespace, logger: Logger) -> int:
    """Launch the Streamlit app."""  # noqa: DOC201
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting DocChat Streamlit app at http://%s:%s (headless=%s)",
        args.address,
        args.port,
        args.headless,
    )

    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )

    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def ingest_sources(
    pipeline: RAGPipeline,
    *,
    urls: Sequence[str],
    files: Sequence[Path],
    selector: str | None = None,
) -> int:
    """Index every requested web page and file.

    Returns:
        Total number of chunks stored.
    """
    total = 0
    for url in urls:
        total += pipeline.process_url(url, selector=selector)
    for file_path in files:
        total += pipeline.process_document(file_path)
    return total


def chat_loop(
    manager: ConversationManager,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
) -> None:
    """Read questions line by line and stream answers until EOF or exit."""
    stdout.write("Ask a question (type 'exit' to quit).\n")
    while True:
        stdout.write("> ")
        stdout.flush()
        line = stdin.readline()
        if not line:
            break
        question = line.strip()
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            break
        if question.lower() == "clear":
            manager.clear_history()
            stdout.write("History cleared.\n")
            continue

        for fragment in manager.stream_answer(question):
            stdout.write(fragment)
            stdout.flush()
        stdout.write("\n")


def run_chat(args: argparse.Namespace, logger: Logger) -> int:
    """Index the requested sources and chat in the terminal."""  # noqa: DOC201
    from docchat import ConversationManager, RAGPipeline  # noqa: PLC0415

    if not args.url and not args.file:
        logger.error("Nothing to chat about: pass at least one --url or --file")
        return 2

    try:
        pipeline = RAGPipeline()
        stored = ingest_sources(
            pipeline, urls=args.url, files=args.file, selector=args.selector
        )
        logger.info("Indexed %d chunks", stored)
        manager = ConversationManager(pipeline.as_retriever(k=args.top_k))
        chat_loop(manager)
    except KeyboardInterrupt:
        logger.info("DocChat stopped by user")
        return 0
    except (OSError, ValueError, httpx.HTTPError, OpenAIError):
        logger.exception("Chat session failed")
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and run the requested command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.command == "chat":
        return run_chat(args, logger)
    return run_ui(args, logger)


if __name__ == "__main__":
    sys.exit(main())
