#!/usr/bin/env python3
"""
Endpoint Watch CLI - Runs every configured probe once.

Usage:
    python -m endpoint_alerter.interface.watch [--config configs/probes.json]
        [--db results.db] [--workers N] [--dry-run]

Exit codes:
    0: All probes passing
    1: Configuration error, no probes were run
    3: One or more probes failing
"""

import argparse
import logging
import sys

from endpoint_alerter.health import run_probes


def setup_logging(verbose: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        verbose: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run HTTP probes once and alert on state changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  - All probes passing
  1  - Configuration error
  3  - One or more probes failing

Examples:
  endpoint-alerter
  endpoint-alerter --config request_tests.json --db /var/lib/alerter/results.db
  endpoint-alerter --dry-run -v
        """,
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to probe file (default: configs/probes.json or request_tests.json)",
    )

    parser.add_argument(
        "--db",
        default=None,
        help="Path to result database (default: $ALERTER_DB or results.db)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of probes run concurrently (default: $ALERTER_WORKERS or 1)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Don't record results or send notifications, just print outcomes",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code: 0 (passing), 1 (configuration error), 3 (failing)
    """
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("Starting probe run")

    if args.dry_run:
        logger.info("Dry-run mode: No results recorded, no notifications sent")

    if args.workers is not None and args.workers < 1:
        logger.error("--workers must be at least 1")
        return 1

    try:
        exit_code = run_probes(
            config_path=args.config,
            db_path=args.db,
            dry_run=args.dry_run,
            max_workers=args.workers,
        )
        logger.info("Probe run completed with exit code: %d", exit_code)
        return exit_code
    except KeyboardInterrupt:
        logger.error("Probe run interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
