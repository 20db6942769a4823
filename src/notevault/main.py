#!/usr/bin/env python
"""Main entry point for the NoteVault MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from sqlalchemy.engine import make_url

from notevault import __version__
from notevault.config import config
from notevault.models.db_models import init_db
from notevault.observability import configure_logging
from notevault.server.mcp_server import NoteVaultMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="NoteVault MCP Server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTEVAULT_DATABASE_PATH")
    )
    parser.add_argument(
        "--owner-id",
        help="Owner every tool call acts as",
        type=str,
        default=os.environ.get("NOTEVAULT_OWNER_ID")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEVAULT_LOG_LEVEL", "INFO")
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.owner_id:
        config.owner_id = args.owner_id


def main(argv=None):
    """Run the NoteVault MCP server."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Unwritable log directory: keep going with console logging only
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)
    if not config.owner_id:
        logger.warning(
            "No default owner configured; every tool call must pass owner_id"
        )

    try:
        db_url = config.get_db_url()
        logger.info(
            f"Using database: {make_url(db_url).render_as_string(hide_password=True)}"
        )
        engine = init_db(db_url, lock_timeout=config.lock_timeout)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    try:
        logger.info(f"Starting NoteVault MCP server {__version__}")
        server = NoteVaultMcpServer(engine=engine)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
