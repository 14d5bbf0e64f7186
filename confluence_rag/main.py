"""Command-line entry point for serving the Confluence RAG API."""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

import uvicorn

from .config import config

if TYPE_CHECKING:
    from collections.abc import Sequence

APP_IMPORT_PATH = "confluence_rag.server:app"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Serve the Confluence RAG chatbot API.",
    )
    parser.add_argument(
        "--host",
        default=config.HOST,
        help=f"Bind address for the HTTP server (default: {config.HOST}).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.PORT,
        help=f"Port for the HTTP server (default: {config.PORT}).",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Configure logging and run the API server until interrupted."""  # noqa: DOC201
    args = parse_args(argv)

    if args.log_level:
        config.LOG_LEVEL = args.log_level.upper()
    config.setup_logging()
    logger = config.get_logger(__name__)

    missing = config.missing_confluence_settings()
    if missing:
        # Not fatal: the health endpoint reports the failure once startup runs.
        logger.warning("Confluence settings missing: %s", ", ".join(missing))

    logger.info(
        "Starting Confluence RAG server at http://%s:%s", args.host, args.port
    )
    try:
        uvicorn.run(
            APP_IMPORT_PATH,
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=config.LOG_LEVEL.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Confluence RAG server stopped by user")
    except OSError:
        logger.exception("Unable to start server")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
