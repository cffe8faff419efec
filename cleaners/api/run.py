"""
Server entry point.

Usage:
    python -m cleaners.api.run
    python -m cleaners.api.run --port 8080

For auto-reload during development, use uvicorn directly:
    uvicorn cleaners.api.app:create_app --factory --reload --port 8080
"""

from __future__ import annotations

import argparse
import os

import uvicorn

from cleaners.api.app import create_app
from cleaners.config import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Cleaners API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument(
        "--port", type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port (defaults to PORT env var, then 8080)",
    )
    args = parser.parse_args()

    configure_logging()

    app = create_app()
    # Single worker: session memory lives in process. Multiple workers
    # would each hold a disjoint set of sessions.
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
