"""Sync configuration loaded from environment variables.

Values passed to the constructor win over the environment, so tests and the
CLI can override single settings without touching ``os.environ``.

Environment Variables:
    NAUSYS_CREW_SECURITY_CODE: Per-reservation crew list code (unset: crew sync is skipped)
    SYNC_MAX_CONCURRENT_UPSERTS: Concurrent upserts per domain (default: 1, sequential)
    SYNC_MAX_CONCURRENT_FETCHES: Concurrent independent reads (default: 4)
    FREE_CABIN_CRITERIA_TTL_MINUTES: Age after which cached criteria are refetched (default: 60)
    FREE_CABIN_SEARCH_DAYS: Days ahead searched by the free-cabin sync step (default: 30)
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class SyncConfig:
    """Settings shared by every domain synchronizer."""

    crew_security_code: str | None = field(
        default_factory=lambda: os.getenv("NAUSYS_CREW_SECURITY_CODE") or None
    )
    max_concurrent_upserts: int = field(
        default_factory=lambda: _env_int("SYNC_MAX_CONCURRENT_UPSERTS", 1)
    )
    max_concurrent_fetches: int = field(
        default_factory=lambda: _env_int("SYNC_MAX_CONCURRENT_FETCHES", 4)
    )
    criteria_ttl_minutes: int = field(
        default_factory=lambda: _env_int("FREE_CABIN_CRITERIA_TTL_MINUTES", 60)
    )
    free_cabin_search_days: int = field(
        default_factory=lambda: _env_int("FREE_CABIN_SEARCH_DAYS", 30)
    )

    def __post_init__(self):
        self.max_concurrent_upserts = max(1, self.max_concurrent_upserts)
        self.max_concurrent_fetches = max(1, self.max_concurrent_fetches)

    @property
    def criteria_ttl(self) -> timedelta:
        return timedelta(minutes=self.criteria_ttl_minutes)

    def __repr__(self):
        return (
            f"SyncConfig("
            f"crew_code={'set' if self.crew_security_code else 'unset'}, "
            f"upserts={self.max_concurrent_upserts}, "
            f"fetches={self.max_concurrent_fetches}, "
            f"criteria_ttl={self.criteria_ttl_minutes}m, "
            f"search_days={self.free_cabin_search_days})"
        )


__all__ = ["SyncConfig"]
