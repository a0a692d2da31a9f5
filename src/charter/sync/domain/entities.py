"""Domain entities for sync operations.

These are pure data structures with no infrastructure dependencies. The
synchronized records themselves live in records.py; this module holds the
results that synchronizers and the orchestrator return.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any


@dataclass
class SyncResult:
    """Result of one domain synchronizer run.

    Contains counts for the run and the per-record errors encountered.
    A domain that could not fetch at all raises instead of returning.
    """

    domain: str
    success: bool
    total: int
    upserted: int
    errors: int
    synced_at: datetime
    skipped: int = 0
    error_details: list[str] = field(default_factory=list)
    collections: dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls, domain: str, skipped: bool = False) -> "SyncResult":
        """A run that found nothing to do."""
        return cls(
            domain=domain,
            success=True,
            total=0,
            upserted=0,
            errors=0,
            synced_at=datetime.now(timezone.utc),
            skipped=1 if skipped else 0,
        )

    def merge(self, other: "SyncResult") -> "SyncResult":
        """Fold a sub-run (one collection, one invoice type) into this result."""
        self.total += other.total
        self.upserted += other.upserted
        self.errors += other.errors
        self.skipped += other.skipped
        self.error_details.extend(other.error_details)
        self.success = self.success and other.success
        for name, count in other.collections.items():
            self.collections[name] = self.collections.get(name, 0) + count
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CLI output and scheduler results."""
        result = {
            "domain": self.domain,
            "success": self.success,
            "total": self.total,
            "upserted": self.upserted,
            "errors": self.errors,
            "skipped": self.skipped,
            "synced_at": self.synced_at.isoformat(),
        }
        if self.collections:
            result["collections"] = dict(self.collections)
        return result


@dataclass
class DomainFailure:
    """A domain whose synchronizer raised."""

    domain: str
    error_type: str
    message: str


@dataclass
class SyncReport:
    """Aggregate outcome of a full ``sync_all_data`` run.

    ``completed`` is False only when a prerequisite domain failed and the
    remaining steps were not attempted.
    """

    started_at: datetime
    completed_at: datetime | None = None
    results: dict[str, SyncResult] = field(default_factory=dict)
    failures: list[DomainFailure] = field(default_factory=list)
    completed: bool = True
    aborted_by: str | None = None

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def failed_domains(self) -> list[str]:
        return [failure.domain for failure in self.failures]

    @property
    def success(self) -> bool:
        return self.completed and not self.failures

    @property
    def record_errors(self) -> int:
        return sum(result.errors for result in self.results.values())

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        if not self.completed:
            return f"aborted after {self.aborted_by} failed"
        return f"completed with {self.failure_count} domain failures"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "completed": self.completed,
            "summary": self.summary(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "domains": {name: result.to_dict() for name, result in self.results.items()},
            "failures": [
                {"domain": f.domain, "error_type": f.error_type, "message": f.message}
                for f in self.failures
            ],
        }


@dataclass(frozen=True)
class SyncWindow:
    """Period queried for reservations, options, invoices and contacts.

    Defaults to the same calendar day one year back through one year ahead.
    """

    period_from: date
    period_to: date

    @classmethod
    def around(cls, today: date | None = None) -> "SyncWindow":
        today = today or date.today()
        return cls(
            period_from=_shift_years(today, -1),
            period_to=_shift_years(today, 1),
        )


def _shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)
