"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are first read
load_dotenv()

from dues.config import get_settings  # noqa: E402
from dues.services import init_db  # noqa: E402
from dues.services.logging import setup_server_logging  # noqa: E402

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Run the dues API server."""
    parser = argparse.ArgumentParser(description="Membership dues API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before starting (development only, use alembic otherwise)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_server_logging(settings.log_file, settings.log_level, settings.database_echo)

    if args.create_tables:
        init_db()
        logger.info("Database tables created")

    from dues.api.app import app

    logger.info("Starting Uvicorn server on %s:%d...", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
