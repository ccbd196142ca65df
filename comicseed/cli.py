"""Command line entry point: ``comicseed [--users] [--comics] [--chapters] ...``"""
import argparse
import asyncio
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import portalocker

from comicseed.config import settings
from comicseed.core.errors import ConfigurationError, SeedLockedError
from comicseed.core.seed_config import SeedConfig
from comicseed.logging import log_config
from comicseed.schemas.summary import SeedSummary

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_CONFIG = 2


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def make_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="comicseed", description="Seed users, comics and chapters from JSON files.")

    entities = parser.add_argument_group("entities (default: all)")
    entities.add_argument("--users", action="store_true", help="Seed users.")
    entities.add_argument("--comics", action="store_true", help="Seed comics.")
    entities.add_argument("--chapters", action="store_true", help="Seed chapters.")
    entities.add_argument("--all", action="store_true", help="Seed every entity type.")

    parser.add_argument("--dry-run", action="store_true", help="Validate and fetch only; write nothing.")
    parser.add_argument("--skip-images", action="store_true", help="Store source image URLs as-is.")
    parser.add_argument("-f", "--force", action="store_true", help="Overwrite records that already exist.")
    parser.add_argument("--batch-size", type=_positive_int, default=100, help="Records per batch (default 100).")
    parser.add_argument("--concurrency", type=_positive_int, default=5,
                        help="Records and image transfers in flight at once (default 5).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--clear", action="store_true", help="Delete all seeded rows and exit.")
    modes.add_argument("--reset", action="store_true", help="Delete all seeded rows, then seed.")
    return parser


def parse_cli_args(argv: Optional[List[str]] = None) -> SeedConfig:
    args = make_arg_parser().parse_args(argv)

    mode = "seed"
    if args.clear:
        mode = "clear"
    elif args.reset:
        mode = "reset"

    return SeedConfig(
        users=args.users,
        comics=args.comics,
        chapters=args.chapters,
        all=args.all,
        mode=mode,
        batch_size=args.batch_size,
        image_concurrency=args.concurrency,
        skip_images=args.skip_images,
        verbose=args.verbose,
        dry_run=args.dry_run,
        force_overwrite=args.force,
    )


@contextmanager
def seed_lock(lock_file_path: Path):
    """Exclusive non-blocking lock so two seed runs never write at the same time"""
    lock_file_path = Path(lock_file_path)
    lock_file_path.parent.mkdir(parents=True, exist_ok=True)

    lock_file = open(lock_file_path, "w")
    try:
        # LOCK_EX = Exclusive, LOCK_NB = Non-Blocking
        portalocker.lock(lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
    except portalocker.LockException as e:
        lock_file.close()
        raise SeedLockedError(f"Another seed run holds {lock_file_path}") from e

    lock_file.write(str(os.getpid()))
    lock_file.flush()
    try:
        yield
    finally:
        portalocker.unlock(lock_file)
        lock_file.close()


def _log_summary(summary: SeedSummary) -> None:
    for label, stats in (("Users", summary.users), ("Comics", summary.comics), ("Chapters", summary.chapters)):
        logger.info(f"  {label}: {stats.summary_line()}, "
                    f"{stats.images_downloaded} images downloaded, {stats.images_cached} cached")
        for failure in stats.failures[:20]:
            where = failure.key if failure.key is not None else f"index {failure.index}"
            logger.info(f"    - {where}: {failure.error}")
    logger.info(summary.message)


def _prepare_database() -> None:
    from comicseed.database import Base, engine
    import comicseed.models  # noqa: F401 - registers every table on Base.metadata

    if engine.dialect.name == "sqlite" and engine.url.database:
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_cli_args(argv)

    log_config.setup_logging(verbose=config.verbose)

    from comicseed.services.seed_runner import run_seed

    try:
        with seed_lock(settings.lock_file):
            _prepare_database()
            summary = asyncio.run(run_seed(config, settings))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.warning("Seed interrupted")
        return EXIT_ERRORS

    _log_summary(summary)
    return EXIT_OK if summary.total_errors == 0 else EXIT_ERRORS


if __name__ == "__main__":
    raise SystemExit(main())
