#!/usr/bin/env python3
"""
Start the rental application workflow API with uvicorn.

Defaults come from the environment (HOST, PORT, DEBUG, LOG_LEVEL);
command line flags override them. Deployments set HOST=0.0.0.0.
"""

import argparse

import uvicorn

from utils.config import Config


def parse_args(argv=None) -> argparse.Namespace:
    config = Config.load()
    parser = argparse.ArgumentParser(description="Rental application workflow API server")
    parser.add_argument("--host", default=config.host, help=f"Bind address (default {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"Port (default {config.port})")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=config.debug,
        help="Reload on code changes (development only)",
    )
    parser.add_argument("--log-level", default=config.log_level.lower())
    return parser.parse_args(argv)


def main(argv=None):
    """Start the web server."""
    args = parse_args(argv)

    print(f"Starting rental application workflow on http://{args.host}:{args.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
