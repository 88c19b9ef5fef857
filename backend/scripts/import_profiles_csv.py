#!/usr/bin/env python3
"""
Import registrant profiles from a Google Forms CSV export.

Usage:
  python3 backend/scripts/import_profiles_csv.py responses.csv
  python3 backend/scripts/import_profiles_csv.py responses.csv --start-id 89999
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv(ROOT / ".env")

from csv_import import PLACEHOLDER_ID_START, CsvParseError, import_csv  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("import_profiles_csv")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upsert registrant profiles from a CSV export.")
    parser.add_argument("csv_path", type=Path, help="Path to the UTF-8 CSV file.")
    parser.add_argument(
        "--start-id",
        type=int,
        default=PLACEHOLDER_ID_START,
        help="First placeholder Anubandh ID for rows without a numeric ID (counts down).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if not args.csv_path.is_file():
        logger.error("File not found: %s", args.csv_path)
        return 2

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = import_csv(db, args.csv_path.read_bytes(), next_placeholder_id=args.start_id)
    except CsvParseError as exc:
        logger.error("Error parsing CSV: %s", exc)
        return 1
    finally:
        db.close()

    for item in result.errors:
        logger.warning("Row %s: %s", item.row_number, item.error)
    logger.info(result.message)
    logger.info("Next unused placeholder ID: %s", result.next_placeholder_id)
    return 0 if not result.errors else 3


if __name__ == "__main__":
    sys.exit(main())
