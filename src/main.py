import argparse
import csv
import logging
import sys

from csv_io import write_accounts
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Apply a CSV of transactions and print the resulting client accounts as CSV.",
    )
    parser.add_argument("input", help="path to a type,client,tx,amount CSV file")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="diagnostics written to stderr (default: WARNING)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )

    engine = PaymentsEngine()
    try:
        engine.process_file(args.input)
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    write_accounts(engine.snapshots(), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
