"""Main entry point for the GitHub notifications agent."""

import argparse
import asyncio
import logging
import os
import sys

from .app import NotifierApp
from .config import load_config
from .db import clear_state, init_db, load_state, save_state

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


async def _run_once(app: NotifierApp, reset: bool) -> None:
    if reset:
        app.get_all_unread_notifications()
    else:
        app.check_for_notifications()
    await app.wait_idle()


def run(args) -> None:
    """Run the notifier, once or until interrupted."""
    try:
        logger.info("Loading configuration...")
        config = load_config()

        db_path = args.db or config.db_path
        logger.info(f"Initializing database at {db_path}...")
        conn = init_db(db_path)

        if args.clear_state:
            logger.info("Clearing persisted state...")
            clear_state(conn)

        app = NotifierApp(config)
        app.activate(load_state(conn))
    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        sys.exit(1)

    try:
        if args.once:
            asyncio.run(_run_once(app, args.reset))
        else:
            logger.info(
                f"Polling GitHub every {config.polling.poll_interval_minutes} minute(s). "
                f"Press Ctrl+C to stop."
            )
            asyncio.run(app.run_forever(reset=args.reset))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        app.deactivate()
        save_state(conn, app.serialize())
        conn.close()
        logger.info("State saved.")


def main():
    """Main entry point with command-line argument parsing."""
    parser = argparse.ArgumentParser(
        description="Poll GitHub notifications and show them as paced alerts"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single fetch cycle, wait for its alerts to be shown, then exit"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Get all unread notifications: forget the last check time before fetching"
    )
    parser.add_argument(
        "--method",
        choices=["console", "sms"],
        default=None,
        help="Display method: 'console' or 'sms' (default: from DISPLAY_METHOD env var or 'console')"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the state database (overrides DB_PATH env var)"
    )
    parser.add_argument(
        "--clear-state",
        action="store_true",
        help="Delete the persisted state before starting"
    )

    args = parser.parse_args()

    # Set environment variable if method is specified
    if args.method:
        os.environ["DISPLAY_METHOD"] = args.method

    run(args)


if __name__ == "__main__":
    main()
