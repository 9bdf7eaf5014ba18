#!/usr/bin/env python
"""Run a historical sync for one sync configuration from the command line.

Reads every record of the configuration's source entity from the CRM,
dispatches each one, and prints the totals.

Usage:
    python -m scripts.run_historical_sync --configuration <id>
    python -m scripts.run_historical_sync --configuration "Leads to EU" --chunk-size 500
    python -m scripts.run_historical_sync --configuration <id> --no-summary
    python -m scripts.run_historical_sync --configuration <id> --log-level debug
"""

import argparse
import sys
import time

from database import get_session_local, init_db
from integrations.record_source import SalesforceRecordSource
from logging_config import setup_logging
from models import SyncConfiguration
from services.event_logger import shutdown_log_executor
from services.historical_sync_service import HistoricalSyncEngine, HistoricalSyncResult


def find_configuration(db, key: str) -> SyncConfiguration | None:
    """Look up a sync configuration by id, falling back to its name."""
    configuration = db.query(SyncConfiguration).filter(SyncConfiguration.id == key).first()
    if configuration is None:
        configuration = db.query(SyncConfiguration).filter(SyncConfiguration.name == key).first()
    return configuration


def print_result(result: HistoricalSyncResult, elapsed: float) -> None:
    print("\n=== Summary ===")
    print(f"  Configuration: {result.configuration_id}")
    print(f"  Entity: {result.entity_type}")
    print(f"  Processed: {result.processed}")
    print(f"  Succeeded: {result.succeeded}")
    print(f"  Failed: {result.failed}")
    print(f"  Skipped (no identity): {result.skipped}")
    print(f"  Log entries written: {result.log_entries_written}")
    if result.error:
        print(f"  Aborted: {result.error}")
    print(f"  Elapsed: {elapsed:.2f}s")


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse args and run the sync."""
    parser = argparse.ArgumentParser(
        description="Replay every CRM record of an entity through one sync configuration.",
    )
    parser.add_argument(
        "--configuration",
        "-c",
        required=True,
        help="Sync configuration id or name",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Records per chunk (default: HISTORICAL_SYNC_CHUNK_SIZE)",
    )
    parser.add_argument(
        "--no-summary",
        action="store_true",
        help="Do not write a totals entry to the event log",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Override LOG_LEVEL for this run",
    )

    args = parser.parse_args(argv)
    if args.chunk_size is not None and args.chunk_size < 1:
        print("Error: --chunk-size must be at least 1")
        sys.exit(1)

    setup_logging(args.log_level)
    init_db()

    source = SalesforceRecordSource()
    if not source.is_configured():
        print("Error: CRM credentials are not configured.")
        print("Set SF_USERNAME, SF_PASSWORD and SF_SECURITY_TOKEN or store them in the keychain.")
        sys.exit(1)

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        configuration = find_configuration(db, args.configuration)
        if configuration is None:
            print(f"Error: Sync configuration '{args.configuration}' not found")
            sys.exit(1)

        print(f"Configuration: {configuration.name} ({configuration.id})")
        print(f"Entity: {configuration.source_entity} -> {configuration.target_entity}")
        print("-" * 60)

        engine = HistoricalSyncEngine(
            db,
            configuration.id,
            source,
            emit_summary=False if args.no_summary else None,
        )
        start = time.time()
        result = engine.run(chunk_size=args.chunk_size)
        print_result(result, time.time() - start)
    finally:
        db.close()
        shutdown_log_executor(wait=True)

    if result.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
