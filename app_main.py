"""Application entry point for QuizHost."""

from __future__ import annotations

import argparse
from pathlib import Path

from quiz_host.constants.about import APP_NAME, APP_VERSION
from quiz_host.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_host.core.quiz_manager import QuizManager
from quiz_host.core.services.quiz_repository import JsonQuizRepository, QuizRepository
from quiz_host.server.api_server import run_api_server
from quiz_host.utils.logging_config import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="quiz-host", description=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help="JSON file used to keep quizzes between runs (in-memory when omitted).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, build the quiz manager, and serve the API."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    repository = JsonQuizRepository(args.data_file) if args.data_file else QuizRepository()
    quiz_manager = QuizManager(repository=repository)
    logger.info("Serving on http://%s:%d/", args.host, args.port)
    run_api_server(quiz_manager=quiz_manager, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
