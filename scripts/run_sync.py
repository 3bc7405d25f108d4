"""
Script to run the market data sync for the selected sources

Usage:
    python scripts/run_sync.py --sources bls --bls-start-year 2023
    python scripts/run_sync.py --sources bls --resume bls_1736936400
    python scripts/run_sync.py --sources all --dry-run
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import List, Optional

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import async_session_maker, engine
from core.exceptions import ConfigurationError, SourceSyncError
from core.logging import setup_logging
from ingestion.checkpoint import CheckpointManager
from ingestion.extractors.bls_extractor import BLSExtractor
from ingestion.extractors.census_extractor import CensusExtractor
from ingestion.extractors.hud_extractor import HUDExtractor
from ingestion.loaders.postgres_loader import PostgresLoader
from ingestion.orchestrator import SyncOrchestrator
from schemas.sync import SyncRequest, SyncResult

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync HUD, Census and BLS market data")
    parser.add_argument("--sources", default="all",
                        help="Comma-separated list of sources to sync (hud,census,bls,all)")
    parser.add_argument("--state", default=settings.DEFAULT_STATE_CODE,
                        help="State code for HUD FMR data")
    parser.add_argument("--census-year", type=int, default=None,
                        help="Census ACS survey year (default: previous year)")
    parser.add_argument("--bls-start-year", type=int, default=None,
                        help="BLS data start year (default: end year - 2)")
    parser.add_argument("--bls-end-year", type=int, default=None,
                        help="BLS data end year (default: current year)")
    parser.add_argument("--max-concurrent", type=int, default=None,
                        help=f"Work items in flight per source (default: {settings.MAX_CONCURRENT})")
    parser.add_argument("--max-retries", type=int, default=None,
                        help=f"Retries per BLS county (default: {settings.MAX_RETRIES})")
    parser.add_argument("--dry-run", action="store_true",
                        help="Fetch and count records without writing to the database")
    parser.add_argument("--resume", default=None, metavar="SESSION_ID",
                        help="Resume a rate-limited BLS session")
    parser.add_argument("--log-level", default=None,
                        help=f"Logging level (default: {settings.LOG_LEVEL})")
    return parser


def print_summary(results: List[SyncResult]) -> None:
    print("\n=== Sync Summary ===")
    for result in results:
        print()
        for line in result.summary_lines(settings.ERROR_DISPLAY_LIMIT):
            print(line)


async def run_sync(args: argparse.Namespace) -> int:
    """Run the requested sync; returns the process exit code."""
    request = SyncRequest(
        sources=args.sources,
        state_code=args.state,
        census_year=args.census_year,
        bls_start_year=args.bls_start_year,
        bls_end_year=args.bls_end_year,
        resume_session_id=args.resume,
        max_concurrent=args.max_concurrent,
        max_retries=args.max_retries,
        dry_run=args.dry_run or None
    )

    try:
        settings.validate_for_sources(request.sources)
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {e.message}")
        return 1

    logger.info(
        f"Starting data sync: sources={request.sources}, state={request.state_code}, "
        f"dry_run={request.dry_run or settings.DRY_RUN}"
    )

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    results: Optional[List[SyncResult]] = None
    exit_code = 0

    try:
        async with HUDExtractor() as hud, CensusExtractor() as census, BLSExtractor() as bls:
            orchestrator = SyncOrchestrator(
                loader=PostgresLoader(async_session_maker),
                checkpoints=CheckpointManager(async_session_maker),
                hud=hud,
                census=census,
                bls=bls,
                cancel_event=cancel_event
            )
            results = await orchestrator.run(request)
    except SourceSyncError as e:
        logger.error(f"Sync failed: {e.message}")
        results = e.results
        exit_code = 1
    finally:
        await engine.dispose()

    if cancel_event.is_set():
        logger.info("Sync cancelled by signal")

    print_summary(results or [])
    logger.info("Data sync completed" if exit_code == 0 else "Data sync stopped on a hard failure")
    return exit_code


def main() -> None:
    args = build_parser().parse_args()
    setup_logging(args.log_level)
    sys.exit(asyncio.run(run_sync(args)))


if __name__ == "__main__":
    main()
