"""Command-line entry point for the puzzle."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from wordpuzzle.config import ensure_directories, settings
from wordpuzzle.logging_config import setup_logging
from wordpuzzle.models.base import SessionLocal, init_db
from wordpuzzle.monitoring import start_monitoring
from wordpuzzle.services.level_service import LevelService
from wordpuzzle.services.progress_service import ProgressService
from wordpuzzle.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wordpuzzle", description="Word puzzle level and progress tools")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("levels", help="Scan and validate every level file")
    subparsers.add_parser("progress", help="Print the saved progress report")
    subparsers.add_parser("reset-progress", help="Erase all saved progress")
    return parser


def check_levels(level_service: LevelService) -> int:
    results = level_service.check_levels()
    failures = {level_id: result for level_id, result in results.items() if not result}
    print(f"Levels found: {len(results)}")
    for level_id, result in sorted(failures.items()):
        print(f"  Level {level_id}: {result.reason}")
    return 1 if failures else 0


async def run(args: argparse.Namespace) -> int:
    """Run one command against the configured database and level directory."""
    if args.command == "levels":
        return check_levels(LevelService())

    init_db()
    db = SessionLocal()
    try:
        progress_service = ProgressService(ProgressStore(db))
        # The report only reads; it must not count as a launch
        await progress_service.initialize_async(record_launch=args.command != "progress")

        if args.command == "progress":
            print(progress_service.debug_info())
            return 0

        if args.command == "reset-progress":
            ok = await progress_service.reset_progress_async()
            print("Progress reset" if ok else "Progress reset, but saving failed")
            return 0 if ok else 1

        logger.error(f"Unknown command: {args.command}")
        return 2
    finally:
        db.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Ensure all required directories exist
    ensure_directories()
    setup_logging("Starting wordpuzzle ...", args.log_level)

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics exposed on port {settings.monitoring.port}")

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        sys.exit(130)


if __name__ == "__main__":
    main()
