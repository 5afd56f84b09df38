#!/usr/bin/env python3
"""
Feed synchronization script.

This script drives the sync engine from the command line:
- Refreshes the first page of the remote feed
- Loads further pages until the requested count or the end of the feed
- Optionally toggles likes on stored records

Usage:
    python scripts/sync_feed.py [--config CONFIG_PATH] [--pages N] [--like ID ...]
"""

import argparse
import asyncio
import sys
from datetime import datetime

import structlog

from feedsync.models.record import SyncState, SyncStatus
from feedsync.providers import build_engine
from feedsync.storage.errors import RecordNotFoundError
from feedsync.sync.engine import SyncEngine
from feedsync.utils.config_loader import ConfigLoader, ConfigurationError
from feedsync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


async def run_sync(engine: SyncEngine, pages: int) -> SyncState:
    """
    Refresh the feed, then load up to ``pages`` additional pages.

    Args:
        engine: Sync engine to drive
        pages: Maximum number of load-more rounds after the refresh

    Returns:
        The engine state after the last fetch
    """
    task = engine.refresh()
    if task is not None:
        await task

    for _ in range(pages):
        if engine.state.status is not SyncStatus.IDLE:
            break
        known = len(engine.current_records)
        task = engine.load_more()
        if task is None:
            break
        await task
        # A short last page is requested again until the remote grows; stop instead.
        if len(engine.current_records) == known:
            break

    return engine.state


def perform_sync(config_path: str | None, pages: int, like_ids: list[int]) -> dict:
    """
    Load configuration, synchronize and apply like toggles.

    Returns:
        Dictionary with sync statistics
    """
    start_time = datetime.now()

    try:
        config = ConfigLoader().load_config(config_path)
    except ConfigurationError as e:
        return {"success": False, "error": str(e), "duration_seconds": 0.0}

    configure_logging(config.logging)
    log.info("sync_started", pages=pages, timestamp=start_time.isoformat())

    engine = build_engine(config)
    initial_count = len(engine.current_records)
    final_state = asyncio.run(run_sync(engine, pages))

    toggled: dict[int, bool] = {}
    for record_id in like_ids:
        try:
            toggled[record_id] = engine.toggle_like(record_id).liked
        except RecordNotFoundError as e:
            log.warning("like_toggle_skipped", record_id=record_id, error=str(e))

    duration = (datetime.now() - start_time).total_seconds()
    stats = {
        "success": final_state.status is not SyncStatus.FAILED,
        "state": str(final_state),
        "records_before": initial_count,
        "records_after": len(engine.current_records),
        "current_page": engine.current_page,
        "liked": toggled,
        "duration_seconds": duration,
    }
    if final_state.status is SyncStatus.FAILED:
        stats["error"] = final_state.reason

    log.info("sync_finished", **stats)
    return stats


def main():
    """Main entry point for the feed sync script."""
    parser = argparse.ArgumentParser(description="Synchronize the remote feed into the local store")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--pages",
        type=int,
        help="Number of pages to load after the first one",
        default=1,
    )
    parser.add_argument(
        "--like",
        type=int,
        nargs="*",
        help="Record ids whose like flag should be toggled",
        default=[],
    )

    args = parser.parse_args()

    stats = perform_sync(config_path=args.config, pages=args.pages, like_ids=args.like)

    print("\n" + "=" * 60)
    print("FEED SYNC SUMMARY")
    print("=" * 60)

    if stats.get("success"):
        print("Status: SUCCESS")
        print(f"State: {stats.get('state')}")
        print(f"Records: {stats.get('records_before', 0)} -> {stats.get('records_after', 0)}")
        print(f"Current Page: {stats.get('current_page', 1)}")
        for record_id, liked in stats.get("liked", {}).items():
            print(f"Record {record_id}: {'liked' if liked else 'unliked'}")
    else:
        print("Status: FAILED")
        print(f"Error: {stats.get('error', 'Unknown error')}")
    print(f"Duration: {stats.get('duration_seconds', 0):.2f} seconds")

    print("=" * 60)

    sys.exit(0 if stats.get("success") else 1)


if __name__ == "__main__":
    main()
