"""
Run script for starting the call relay server.

Settings are loaded and validated before the server starts; incomplete
configuration aborts startup instead of failing every call later.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from app.config.logging_config import configure_logging
from app.config.settings import Settings
from app.errors import ConfigurationError
from app.main import create_app


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the call relay server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: PORT env var or 10000)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind the server to (default: HOST env var or 0.0.0.0)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Validate configuration and start the server."""
    args = parse_args(argv)
    logger = configure_logging(args.log_level)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(f"Startup aborted: {e}")
        sys.exit(1)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Starting server on http://{host}:{port}")
    logger.info(f"Realtime model: {settings.realtime_model}")

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs for lower overhead, we have our own logging
        access_log=False,
        ws_ping_interval=5,
        ws_ping_timeout=20,
    )


if __name__ == "__main__":
    main()
