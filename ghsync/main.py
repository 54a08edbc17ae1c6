#!/usr/bin/env python3
"""
GitHub Repositories Mirror Sync - command line entry point

Usage:
    ghsync -c CONFIG [-d DIRECTORY] [-t THREADS]
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .clients.github_client import GitHubClient
from .config.config import ConfigManager, LogConfig
from .logger.logger import create_logger
from .models import RunSummary
from .sync.mirror import MirrorSynchronizer
from .sync.orchestrator import SyncOrchestrator

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghsync",
        description="Mirror GitHub organizations, users and repositories into a local directory.",
    )
    parser.add_argument("-c", "--config", required=True, help="TOML config file")
    parser.add_argument("-d", "--directory", help="directory to sync git repos in")
    parser.add_argument("-t", "--threads", type=int, help="max number of threads used to sync repos, defaults to 1")
    parser.add_argument("--env-file", default=".env", help="optional .env file with overrides (default: .env)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def report(summary: RunSummary, logger) -> None:
    """Log one line per failure and the final counts."""
    for failure in summary.failures:
        logger.error(f"FAILED {failure.full_name}: {failure.error}")
    logger.info(
        f"Processed {summary.processed} repositories: {summary.synced} synced, "
        f"{summary.failed} failed, {summary.skipped} skipped"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run one sync and return the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config, env_file=args.env_file).load(
            base_dir=args.directory,
            threads=args.threads,
        )
    except ValueError as e:
        create_logger("main", LogConfig()).error(f"Configuration error: {e}")
        return EXIT_CONFIG

    if args.verbose:
        config.log.level = "DEBUG"
    logger = create_logger("main", config.log)

    synchronizer = MirrorSynchronizer(config.sync, config.log)
    orchestrator = SyncOrchestrator(synchronizer, config.sync, config.targets.ignore, config.log)

    logger.info(
        f"Mirroring into {config.sync.base_dir} with {config.sync.threads} thread(s)"
    )
    with GitHubClient(config.github, config.log) as client:
        summary = orchestrator.sync_targets(client, config.targets)

    report(summary, logger)
    return EXIT_OK if summary.ok else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
