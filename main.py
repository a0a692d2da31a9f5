#!/usr/bin/env python3
"""Charter Data Sync CLI.

This module provides a command-line interface for synchronizing charter data
from the NauSYS charter-management API into the local document store. Each
domain can be synced on its own, or all of them in dependency order.

Architecture:
    - NausysClient is the shared HTTP layer for all provider calls
    - NausysCharterAPI maps provider endpoints to the ICharterAPI port
    - SyncAllUseCase runs the selected domain synchronizers in order
    - PostgresDocumentStore when DATABASE_URL is set, otherwise an
      in-memory store exported to a JSON file

Environment Variables Required:
    - NAUSYS_USERNAME: Provider username
    - NAUSYS_PASSWORD: Provider password
    - DATABASE_URL: PostgreSQL connection string (optional, see --json-only)
    - NAUSYS_CREW_SECURITY_CODE: Crew list code (optional, crew sync is skipped without it)

Example Usage:
    $ python main.py                                   # Sync everything
    $ python main.py --catalogue --yachts              # Selected domains only
    $ python main.py --model-specs                     # Re-run the spec back-fill
    $ python main.py --all --json-only charter.json    # No database, export to JSON
    $ python main.py --stats                           # Show stored counts
    $ python main.py --free-yachts 2025-06-07 2025-06-14
"""
import argparse
import asyncio
import logging
import sys
from datetime import date, datetime, timezone

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.charter.api import (
    CharterSyncError,
    ConfigurationError,
    NausysClient,
    close_shared_pool,
    get_shared_pool,
)
from src.charter.sync import SyncConfig
from src.charter.sync.adapters import (
    InMemoryDocumentStore,
    NausysCharterAPI,
    PostgresDocumentStore,
)
from src.charter.sync.use_cases import DEFAULT_DOMAINS, SYNC_ORDER, FreeYachtsQuery, SyncAllUseCase

DEFAULT_EXPORT_FILE = "charter_data.json"

# (domain, CLI flag) for every selectable sync step
DOMAIN_FLAGS = [(domain, "--" + domain.replace("_", "-")) for domain in SYNC_ORDER]

STATS_GROUPS = [
    ("yachts", "charterCompanyId"),
    ("reservations", "reservationStatus"),
    ("invoices", "invoiceType"),
    ("free_cabin_packages", "status"),
]


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def setup_store(json_only: bool):
    """Create the document store.

    Returns:
        (store, is_memory) - PostgreSQL store when DATABASE_URL is set and
        JSON-only mode is off, otherwise an in-memory store
    """
    if json_only:
        return InMemoryDocumentStore(), True

    try:
        pool = await get_shared_pool()
    except ConfigurationError:
        print("[Main] No database configured, falling back to in-memory store with JSON export")
        return InMemoryDocumentStore(), True

    store = PostgresDocumentStore(pool)
    await store.ensure_schema()
    print("[Main] Connected to PostgreSQL")
    return store, False


def selected_domains(args: argparse.Namespace) -> tuple[str, ...]:
    """Domains picked by flags; everything when none (or --all) is given."""
    picked = [domain for domain in SYNC_ORDER if getattr(args, domain)]
    if args.all or not picked:
        return tuple(sorted(set(DEFAULT_DOMAINS) | set(picked), key=SYNC_ORDER.index))
    return tuple(picked)


async def show_stats(store) -> None:
    """Print stored document counts per collection plus a few breakdowns."""
    counts = await store.collection_counts()
    if not counts:
        print("No documents stored")
        return

    print(f"\n{'Collection':<30} {'Documents':>10}")
    print("-" * 42)
    for collection, count in counts.items():
        print(f"{collection:<30} {count:>10}")

    for collection, field in STATS_GROUPS:
        if not counts.get(collection):
            continue
        groups = await store.aggregate_count(collection, field)
        print(f"\n{collection} by {field}: {groups}")


async def show_free_yachts(api: NausysCharterAPI, period_from: date, period_to: date, yacht_ids) -> None:
    free = await FreeYachtsQuery(api).execute(period_from, period_to, yacht_ids)
    print(f"\nFound {len(free)} free yacht(s) from {period_from} to {period_to}")
    for entry in free:
        print(f"  yacht {entry.get('yachtId', 'N/A')}: {entry.get('price', 'N/A')} {entry.get('currency', '')}")


def print_report(report) -> None:
    print("\n" + "=" * 60)
    print("SYNC COMPLETE" if report.completed else "SYNC ABORTED")
    print("=" * 60)
    for domain, result in report.results.items():
        status = "skipped" if result.skipped else f"{result.upserted}/{result.total} upserted, {result.errors} errors"
        print(f"{domain.upper():<16} {status}")
    for failure in report.failures:
        print(f"{failure.domain.upper():<16} FAILED ({failure.error_type}): {failure.message}")
    print(f"\nResult: {report.summary()}")


async def run_sync(args: argparse.Namespace) -> int:
    """Main sync orchestration function.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit status
    """
    start_time = datetime.now(timezone.utc)
    print(f"[Main] Starting at {start_time.isoformat()}")

    json_only = bool(args.json_only)
    store, is_memory = await setup_store(json_only)

    try:
        sync_requested = args.all or any(getattr(args, domain) for domain in SYNC_ORDER)
        if args.stats and not args.free_yachts and not sync_requested:
            await show_stats(store)
            return 0

        try:
            client = NausysClient()
        except ConfigurationError as e:
            print(f"[Main] Configuration error: {e}")
            return 1

        async with client:
            api = NausysCharterAPI(client)

            if args.free_yachts:
                period_from, period_to = args.free_yachts
                try:
                    await show_free_yachts(api, period_from, period_to, args.yacht_ids)
                except (CharterSyncError, ValueError) as e:
                    print(f"[Main] Free yacht query failed: {e}")
                    return 1
                return 0

            domains = selected_domains(args)
            print(f"[Main] Syncing: {', '.join(domains)}")
            report = await SyncAllUseCase(api, store, config=SyncConfig()).execute(domains)

        print_report(report)

        if is_memory:
            export_file = args.json_only or DEFAULT_EXPORT_FILE
            count = store.export_json(export_file)
            print(f"[Main] Exported {count} documents to {export_file}")

        if args.stats:
            await show_stats(store)

        return 0 if report.completed else 1

    finally:
        if not is_memory:
            await close_shared_pool()
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        print(f"\n[Main] Completed in {duration:.1f} seconds")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync NauSYS charter data to the local document store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                  # Sync every domain in order
  python main.py --catalogue --yachts             # Sync selected domains only
  python main.py --all --json-only charter.json   # Export to JSON, no database
  python main.py --stats                          # Show stored counts
  python main.py --free-yachts 2025-06-07 2025-06-14 --yacht-ids 101 102
        """
    )

    # Domain selection
    domain_group = parser.add_argument_group("Domain Selection")
    for domain, flag in DOMAIN_FLAGS:
        domain_group.add_argument(
            flag,
            dest=domain,
            action="store_true",
            help=f"Sync {domain.replace('_', ' ')}",
        )
    domain_group.add_argument(
        "--all",
        action="store_true",
        help="Sync every domain in dependency order (default if none is selected)"
    )

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--json-only",
        type=str,
        metavar="FILE",
        help="Use an in-memory store and export the result to FILE (no database required)"
    )
    output_group.add_argument(
        "--stats",
        action="store_true",
        help="Show stored document counts"
    )
    output_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    # Availability options
    query_group = parser.add_argument_group("Availability Options")
    query_group.add_argument(
        "--free-yachts",
        nargs=2,
        type=date.fromisoformat,
        metavar=("FROM", "TO"),
        help="Show free yachts between two dates (YYYY-MM-DD), no sync"
    )
    query_group.add_argument(
        "--yacht-ids",
        nargs="+",
        type=int,
        metavar="ID",
        help="Limit --free-yachts to these yachts"
    )

    return parser


def main():
    args = build_parser().parse_args()
    configure_logging(args.verbose)
    sys.exit(asyncio.run(run_sync(args)))


if __name__ == "__main__":
    main()
