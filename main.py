"""Command-line entry point: chat UI, HTTP server, FAQ ingestion and index stats."""

from __future__ import annotations

import argparse
import asyncio
import json
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from faqbot.config import config
from faqbot.corpus import CorpusLoader
from faqbot.errors import ConfigurationError, FaqbotError
from faqbot.services import build_ingestion_pipeline, build_vector_store

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="FAQ retrieval-augmented chat service.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ui = subparsers.add_parser("ui", help="Launch the Streamlit chat UI.")
    ui.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui.set_defaults(headless=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP chat API.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address.")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000).")

    ingest = subparsers.add_parser("ingest", help="Embed and index a FAQ corpus.")
    ingest.add_argument(
        "--corpus",
        type=Path,
        default=None,
        help="Path to the FAQ JSON file (default: FAQ_CORPUS_PATH).",
    )
    ingest.add_argument(
        "--reset",
        action="store_true",
        help="Clear the index namespace before ingesting.",
    )
    ingest.add_argument(
        "--id-scheme",
        choices=("position", "content"),
        default="position",
        help="Record ids from corpus position or from a content hash.",
    )
    ingest.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Report failed batches and keep going instead of aborting.",
    )

    subparsers.add_parser("stats", help="Print vector index statistics.")
    return parser.parse_args(argv)


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
        logger.info("Chat UI stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_ui(args: argparse.Namespace, logger: Logger) -> int:
    """Launch the Streamlit UI."""  # noqa: DOC201
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting chat UI at http://%s:%s (headless=%s)",
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


def run_server(args: argparse.Namespace, logger: Logger) -> int:
    """Serve the HTTP chat API with uvicorn."""  # noqa: DOC201
    import uvicorn  # noqa: PLC0415

    from faqbot.api import create_app  # noqa: PLC0415

    logger.info("Starting chat API at http://%s:%s", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def run_ingest(args: argparse.Namespace, logger: Logger) -> int:
    """Load the corpus file and ingest it."""  # noqa: DOC201
    corpus_path = args.corpus or config.FAQ_CORPUS_PATH
    try:
        entries = CorpusLoader.load_corpus(corpus_path)
    except FileNotFoundError:
        logger.error("FAQ data file not found: %s", corpus_path)  # noqa: TRY400
        return 1
    except FaqbotError as exc:
        logger.error("Invalid FAQ data: %s", exc.message)  # noqa: TRY400
        return 1

    try:
        vector_store = build_vector_store()
        if args.reset:
            vector_store.clear()
        pipeline = build_ingestion_pipeline(
            vector_store,
            id_scheme=args.id_scheme,
            stop_on_error=not args.continue_on_error,
        )
        report = asyncio.run(pipeline.ingest(entries))
    except FaqbotError as exc:
        logger.error(  # noqa: TRY400
            "Error uploading FAQ (%s): %s", exc.kind, exc.message
        )
        return 1

    print(f"Total items processed: {report.entries_processed}")  # noqa: T201
    print(f"Total vectors created: {report.vectors_written}")  # noqa: T201
    for error in report.errors:
        print(  # noqa: T201
            f"Batch {error.batch_index + 1} failed for items "
            f"{error.failed_items}: {error.message}"
        )
    return 0 if report.succeeded else 1


def run_stats(_args: argparse.Namespace, logger: Logger) -> int:
    """Print index statistics as JSON."""  # noqa: DOC201
    try:
        stats = build_vector_store().stats()
    except FaqbotError as exc:
        logger.error(  # noqa: TRY400
            "Error reading index (%s): %s", exc.kind, exc.message
        )
        return 1
    print(json.dumps(stats, indent=2))  # noqa: T201
    return 0


COMMANDS = {
    "ui": run_ui,
    "serve": run_server,
    "ingest": run_ingest,
    "stats": run_stats,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and dispatch the requested command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ConfigurationError:
        logger.exception("Configuration invalid")
        return 1

    return COMMANDS[args.command](args, logger)


if __name__ == "__main__":
    sys.exit(main())
