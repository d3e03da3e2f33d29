import argparse
import sys
from pathlib import Path

JOB_DIR = Path(__file__).resolve().parent.parent / "jobs" / "minter_admin"
sys.path.insert(0, str(JOB_DIR))

from admin import run_admin_command, update_pricing_command


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Update the mint prices held in the program Config.")
    parser.add_argument("--regular", type=int, default=None, help="New regular price in lamports")
    parser.add_argument("--discounted", type=int, default=None, help="New discounted price in lamports")
    args = parser.parse_args(argv)
    if args.regular is None and args.discounted is None:
        parser.error("at least one of --regular or --discounted is required")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    return run_admin_command(update_pricing_command(args.regular, args.discounted))


if __name__ == "__main__":
    sys.exit(main())
