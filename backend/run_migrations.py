from __future__ import annotations

import argparse
import logging
import sys

from bootstrap import ensure_admin_users, missing_tables, run_bootstrap

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create database tables and seed admin accounts.")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report missing tables; exit 1 when any are missing.",
    )
    parser.add_argument(
        "--admins-only",
        action="store_true",
        help="Skip table creation and only promote ADMIN_EMAILS accounts.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if args.check:
        pending = missing_tables()
        if pending:
            logger.info("Missing tables: %s", ", ".join(pending))
            return 1
        logger.info("Schema is up to date.")
        return 0

    if args.admins_only:
        ensure_admin_users()
        return 0

    logger.info("Running backend bootstrap...")
    run_bootstrap()
    logger.info("Bootstrap completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
