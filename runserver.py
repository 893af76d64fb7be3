from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

import uvicorn

DEFAULT_APP = "itinerary_service.main:create_app"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the itinerary job service.")
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind (default: %(default)s or env HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to bind (default: %(default)s or env PORT)",
    )
    parser.add_argument(
        "--app",
        default=DEFAULT_APP,
        help="Application factory, built once per worker (default: %(default)s)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("WEB_CONCURRENCY", "1")),
        help="Worker processes; each owns its own job pool (default: %(default)s or env WEB_CONCURRENCY)",
    )
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable auto-reload for development (default: False)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "info").lower(),
        choices=("critical", "error", "warning", "info", "debug", "trace"),
        help="Uvicorn log level (default: %(default)s or env LOG_LEVEL)",
    )
    args = parser.parse_args(argv)
    if args.reload and args.workers > 1:
        parser.error("--reload cannot be combined with --workers > 1")
    return args


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    # The app is built inside the server process, never at import time.
    uvicorn.run(
        app=args.app,
        factory=True,
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
