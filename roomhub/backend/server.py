"""Command-line entrypoint running the coordinator under uvicorn."""

from __future__ import annotations

import argparse

from roomhub.backend.config import load_settings
from roomhub.backend.logging_config import get_logger, setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Room coordinator server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--reload", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    setup_logging(log_level=args.log_level, log_file=settings.log_file)
    logger = get_logger(__name__)

    import uvicorn

    logger.info(f"Starting room coordinator on {args.host}:{args.port}")
    uvicorn.run(
        "roomhub.backend.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
