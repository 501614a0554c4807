"""Entry point for the termline CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging

from termline.config import LOG_LEVELS, Config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="termline: line-editing command server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=2323, help="Port to bind to (default: 2323)")
    parser.add_argument("--prompt", default="> ", help="Prompt shown before each line")
    parser.add_argument("--exit-keyword", default="exit", help="Line that ends a session")
    parser.add_argument("--log-level", default="info", choices=list(LOG_LEVELS))
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        host=args.host,
        port=args.port,
        prompt=args.prompt,
        exit_keyword=args.exit_keyword,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = config_from_args(args)

    from termline.dispatch import default_registry
    from termline.server import LineEditServer

    server = LineEditServer(config, default_registry(encoding=config.encoding))
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
