"""Command-line launcher: MCP over stdio, or the REST API."""

import argparse
import asyncio
import logging
import os
from typing import Optional

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="basket-mcp-server",
        description="Grocery basket with promotional pricing, served over MCP or HTTP",
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="stdio for MCP clients, http for the REST API (default: stdio)",
    )
    parser.add_argument(
        "--api-url",
        help="Grocery store API base URL (overrides BASKET_API_URL)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        type=str.upper,
        help="Root log level (default: INFO)",
    )

    http = parser.add_argument_group("http mode")
    http.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    http.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    # The client reads its base URL from the environment when the surface starts
    if args.api_url:
        os.environ["BASKET_API_URL"] = args.api_url

    # Surfaces configure logging on import, so the level is applied afterwards
    if args.mode == "http":
        from .http_server import run_http_server

        logging.getLogger().setLevel(args.log_level)
        print(f"Basket REST API on http://{args.host}:{args.port} (docs at /docs)")
        run_http_server(host=args.host, port=args.port)
        return

    from .server import main as server_main

    logging.getLogger().setLevel(args.log_level)
    asyncio.run(server_main())


if __name__ == "__main__":
    main()
