import sys
from pathlib import Path

JOB_DIR = Path(__file__).resolve().parent.parent / "jobs" / "minter_admin"
sys.path.insert(0, str(JOB_DIR))

from admin import initialize_command, run_admin_command


def main() -> int:
    return run_admin_command(initialize_command)


if __name__ == "__main__":
    sys.exit(main())
