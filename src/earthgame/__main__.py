from pathlib import Path
import logging
import os
import sys

from dotenv import load_dotenv

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from earthgame.domain.errors import ActionError
from earthgame.presentation.cli import run

load_dotenv()


def _configure_logging() -> None:
    level_name = os.getenv("EARTH_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_help_surface() -> None:
    print("\nHelp:")
    print("- Commands: mine, locations, stats, story, init-db (use --help on any of them).")
    print("- Startup issues: verify EARTH_DATABASE_URL or unset it to use the in-memory demo world.")


def main(argv=None) -> int:
    _configure_logging()
    try:
        return run(argv)
    except KeyboardInterrupt:
        print("\nSession ended.")
        return 130
    except ActionError as exc:
        print(f"{exc.kind}: {exc.message}")
        return 1
    except Exception as exc:
        print("An unexpected error occurred. The command stopped safely.")
        print(f"Reason: {exc}")
        _print_help_surface()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
