import sys
from pathlib import Path

JOB_DIR = Path(__file__).resolve().parent.parent / "jobs" / "minter_admin"
sys.path.insert(0, str(JOB_DIR))

from admin import run_admin_command, show_config_command


def main() -> int:
    return run_admin_command(show_config_command)


if __name__ == "__main__":
    sys.exit(main())
