#!/usr/bin/env python3
"""Unattended scheduler for the NauSYS charter data sync.

Runs every domain in dependency order once per interval (daily by default)
and keeps running across failed cycles. Meant to be the main process of a
container.

Each cycle:
    - opens one provider client and runs SyncAllUseCase
    - is retried only when it aborted (a prerequisite domain failed)
    - yields a result dict with per-domain counts and failures
    - updates the state served on the health endpoint

SIGTERM and SIGINT stop the loop between cycles.

Environment Variables:
    SYNC_INTERVAL_MINUTES: Minutes between cycles (default: 1440)
    SYNC_ON_STARTUP: Run a cycle right away (default: true)
    HEALTH_CHECK_PORT: Health endpoint port, 0 disables it (default: 8080)
    SYNC_MAX_RETRIES: Attempts for an aborted cycle (default: 1)
    SYNC_RETRY_DELAY_MINUTES: Delay before the n-th retry is n times this (default: 5)

    Provider credentials:
        NAUSYS_USERNAME, NAUSYS_PASSWORD, NAUSYS_API_BASE, NAUSYS_CREW_SECURITY_CODE

    Database:
        DATABASE_URL (unset: documents are kept in memory for the process lifetime)

Example:
    SYNC_INTERVAL_MINUTES=360 python scheduler.py
"""
import asyncio
import json
import logging
import os
import signal
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.charter.api import ConfigurationError, NausysClient, close_shared_pool, get_shared_pool
from src.charter.sync import SyncConfig
from src.charter.sync.adapters import InMemoryDocumentStore, NausysCharterAPI, PostgresDocumentStore
from src.charter.sync.domain.ports import IDocumentStore
from src.charter.sync.use_cases import SyncAllUseCase

# Initialize logger
logger = logging.getLogger(__name__)

# ============================================
# Configuration
# ============================================

class SchedulerConfig:
    """Configuration loaded from environment variables."""

    def __init__(self):
        self.interval_minutes = int(os.getenv("SYNC_INTERVAL_MINUTES", "1440"))
        self.sync_on_startup = os.getenv("SYNC_ON_STARTUP", "true").lower() == "true"
        self.health_check_port = int(os.getenv("HEALTH_CHECK_PORT", "8080"))
        self.max_retries = max(1, int(os.getenv("SYNC_MAX_RETRIES", "1")))
        self.retry_delay_minutes = int(os.getenv("SYNC_RETRY_DELAY_MINUTES", "5"))
        self.sync = SyncConfig()

    def __repr__(self):
        return (
            f"SchedulerConfig("
            f"interval={self.interval_minutes}m, "
            f"startup={self.sync_on_startup}, "
            f"retries={self.max_retries}, "
            f"health_port={self.health_check_port}, "
            f"sync={self.sync!r})"
        )


# ============================================
# Document Store
# ============================================

async def create_store() -> IDocumentStore:
    """Create the document store.

    Returns:
        PostgresDocumentStore on the shared pool, or an in-memory store when
        DATABASE_URL is not set
    """
    try:
        pool = await get_shared_pool()
    except ConfigurationError:
        print("[Scheduler] WARNING: DATABASE_URL not set, keeping documents in memory")
        return InMemoryDocumentStore()

    store = PostgresDocumentStore(pool)
    await store.ensure_schema()
    print("[Scheduler] Connected to PostgreSQL")
    return store


# ============================================
# Sync Logic
# ============================================

async def run_sync(
    config: SchedulerConfig,
    store: IDocumentStore,
    client_factory: Callable[[], NausysClient] = NausysClient,
) -> dict:
    """Run one sync cycle and describe it as a dict.

    ``success`` follows ``SyncReport.completed``: isolated domain failures
    are listed under ``failures`` but do not fail the cycle. Any exception
    becomes ``error``/``error_type``; the traceback goes to the log only.
    """
    started_at = datetime.now(timezone.utc)
    results = {
        "success": False,
        "summary": None,
        "domains": {},
        "failures": [],
        "error": None,
    }

    try:
        async with client_factory() as client:
            report = await SyncAllUseCase(NausysCharterAPI(client), store, config=config.sync).execute()
    except Exception as e:
        logger.error(f"Sync cycle crashed: {type(e).__name__}: {e}", exc_info=True)
        print(f"[Scheduler] ERROR: {type(e).__name__}: {e}")
        results["error"] = str(e)
        results["error_type"] = type(e).__name__
    else:
        results.update(report.to_dict())
        results["success"] = report.completed
        if report.failures:
            print(f"[Scheduler] WARNING: {report.summary()} ({', '.join(report.failed_domains)})")

    finished_at = datetime.now(timezone.utc)
    results["started_at"] = started_at.isoformat()
    results["completed_at"] = finished_at.isoformat()
    results["duration_seconds"] = (finished_at - started_at).total_seconds()
    return results


async def sleep_unless_shutdown(shutdown_event: asyncio.Event, minutes: float) -> bool:
    """Sleep for ``minutes``. Returns False when shutdown was requested first."""
    if shutdown_event.is_set():
        return False
    try:
        await asyncio.wait_for(shutdown_event.wait(), timeout=minutes * 60)
    except asyncio.TimeoutError:
        return True
    return False


async def run_sync_with_retry(
    config: SchedulerConfig,
    store: IDocumentStore,
    client_factory: Callable[[], NausysClient] = NausysClient,
    shutdown_event: Optional[asyncio.Event] = None,
) -> dict:
    """Repeat a cycle that aborted, up to ``config.max_retries`` attempts.

    A cycle that completed with isolated domain failures is not retried;
    the next scheduled cycle picks those domains up again. A shutdown
    request during the backoff ends the retries.
    """
    shutdown_event = shutdown_event or asyncio.Event()
    attempt = 1
    results = await run_sync(config, store, client_factory)

    while not results["success"] and attempt < config.max_retries:
        delay_minutes = config.retry_delay_minutes * attempt
        reason = results.get("error") or results.get("summary")
        print(f"[Scheduler] Attempt {attempt}/{config.max_retries} did not complete ({reason}), next try in {delay_minutes} min")
        if not await sleep_unless_shutdown(shutdown_event, delay_minutes):
            print("[Scheduler] Shutdown requested, abandoning retries")
            break
        attempt += 1
        results = await run_sync(config, store, client_factory)

    results["attempts"] = attempt
    if not results["success"]:
        print(f"[Scheduler] Giving up after {attempt} attempt(s)")
    elif attempt > 1:
        print(f"[Scheduler] Cycle completed on attempt {attempt}")
    return results


# ============================================
# Health Check Server
# ============================================

class HealthState:
    """Outcome of the recent cycles, served by the health endpoint."""

    def __init__(self):
        self.started_at: datetime = datetime.now(timezone.utc)
        self.last_sync_at: Optional[datetime] = None
        self.last_sync_success: bool = False
        self.last_summary: Optional[str] = None
        self.last_failed_domains: list[str] = []
        self.total_syncs: int = 0
        self.failed_syncs: int = 0

    @property
    def healthy(self) -> bool:
        # Nothing has run yet right after startup
        return self.total_syncs == 0 or self.last_sync_success

    def record(self, results: dict) -> None:
        self.total_syncs += 1
        self.last_sync_at = datetime.now(timezone.utc)
        self.last_sync_success = results["success"]
        self.last_summary = results.get("summary") or results.get("error")
        self.last_failed_domains = [failure["domain"] for failure in results.get("failures", [])]
        if not results["success"]:
            self.failed_syncs += 1

    def snapshot(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "uptime_seconds": round((datetime.now(timezone.utc) - self.started_at).total_seconds()),
            "total_syncs": self.total_syncs,
            "failed_syncs": self.failed_syncs,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
            "last_summary": self.last_summary,
            "failed_domains": self.last_failed_domains,
        }


def render_health_response(state: HealthState) -> bytes:
    """HTTP/1.1 response carrying the health snapshot as JSON."""
    body = json.dumps(state.snapshot())
    status_line = "200 OK" if state.healthy else "503 Service Unavailable"
    head = "\r\n".join([
        f"HTTP/1.1 {status_line}",
        "Content-Type: application/json",
        f"Content-Length: {len(body.encode())}",
        "Connection: close",
    ])
    return f"{head}\r\n\r\n{body}".encode()


async def start_health_server(port: int, state: HealthState):
    """Serve the health snapshot on ``port``; disabled when ``port`` <= 0."""
    if port <= 0:
        return None

    async def respond(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        # Any request gets the snapshot, the request line is not parsed
        await reader.read(1024)
        writer.write(render_health_response(state))
        await writer.drain()
        writer.close()
        await writer.wait_closed()

    server = await asyncio.start_server(respond, "0.0.0.0", port)
    print(f"[Scheduler] Health endpoint on port {port}")
    return server


# ============================================
# Main Scheduler Loop
# ============================================

async def wait_for_next_cycle(shutdown_event: asyncio.Event, interval_minutes: int) -> bool:
    """Sleep until the next cycle is due.

    Returns:
        False when shutdown was requested while waiting
    """
    next_run = datetime.now(timezone.utc) + timedelta(minutes=interval_minutes)
    print(f"[Scheduler] Next cycle at {next_run.isoformat()}")
    return await sleep_unless_shutdown(shutdown_event, interval_minutes)


async def scheduler_loop(
    config: SchedulerConfig,
    store: IDocumentStore,
    health_state: HealthState,
    shutdown_event: asyncio.Event,
    client_factory: Callable[[], NausysClient] = NausysClient,
):
    """Run a cycle on startup (optional), then one per interval until shutdown.

    Args:
        config: Scheduler configuration
        store: Document store shared by every cycle
        health_state: Updated after each cycle
        shutdown_event: Set by the signal handlers
        client_factory: Creates the provider client for each cycle
    """
    run_now = config.sync_on_startup

    while not shutdown_event.is_set():
        if not run_now:
            run_now = await wait_for_next_cycle(shutdown_event, config.interval_minutes)
            continue

        print(f"\n[Scheduler] ===== Sync cycle {health_state.total_syncs + 1} at {datetime.now(timezone.utc).isoformat()} =====")
        results = await run_sync_with_retry(config, store, client_factory, shutdown_event)
        health_state.record(results)
        print(
            f"[Scheduler] Cycle finished: success={results['success']}, "
            f"{results.get('summary') or results.get('error')}, "
            f"{results.get('duration_seconds', 0):.1f}s"
        )
        run_now = False

    print("[Scheduler] Shutdown requested, leaving loop")


# ============================================
# Main Entry Point
# ============================================

async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("[Scheduler] Charter data sync scheduler starting")
    config = SchedulerConfig()
    print(f"[Scheduler] {config!r}")

    # Credentials are checked once here rather than failing every cycle
    try:
        NausysClient()
    except ConfigurationError as e:
        print(f"[Scheduler] ERROR: {e}")
        sys.exit(1)

    store = await create_store()
    health_state = HealthState()
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, shutdown_event.set)

    health_server = await start_health_server(config.health_check_port, health_state)

    try:
        await scheduler_loop(config, store, health_state, shutdown_event)
    finally:
        if health_server:
            health_server.close()
            await health_server.wait_closed()
        await close_shared_pool()
        print("[Scheduler] Stopped")


if __name__ == "__main__":
    asyncio.run(main())
