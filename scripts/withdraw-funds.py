import argparse
import sys
from pathlib import Path

JOB_DIR = Path(__file__).resolve().parent.parent / "jobs" / "minter_admin"
sys.path.insert(0, str(JOB_DIR))

from admin import run_admin_command, terminal_confirm, withdraw_command


def positive_lamports(value: str) -> int:
    try:
        amount = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("Amount must be a number in lamports")
    if amount <= 0:
        raise argparse.ArgumentTypeError("Amount must be greater than 0")
    return amount


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Withdraw collected funds from the payment vault to the program authority."
    )
    parser.add_argument(
        "amount",
        nargs="?",
        type=positive_lamports,
        default=None,
        help="Lamports to withdraw (default: the whole vault balance)",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the confirmation prompt for withdrawals of 1 SOL or more",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    confirm = (lambda _prompt: True) if args.yes else terminal_confirm
    return run_admin_command(withdraw_command(args.amount, confirm))


if __name__ == "__main__":
    sys.exit(main())
