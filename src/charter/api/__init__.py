"""Upstream and infrastructure modules.

This package provides the HTTP client for the NauSYS charter-management
API and the infrastructure shared by the sync subsystem.

Classes:
    NausysClient: Async HTTP client (credentials in body, provider status handling)
    Credentials: Provider username/password pair

Exceptions:
    CharterSyncError: Base exception for all sync errors
    ConfigurationError: Missing or invalid configuration
    UpstreamError: Provider returned a non-OK status
    AuthenticationError: Provider rejected the credentials
    InsufficientDataError: Query lacked disambiguating parameters
    TransportError: Network or timeout failure
    NormalizationError: Record identity could not be derived
    PersistenceError: Store write failure for one record
    SyncError: Domain-level failure

Database:
    get_shared_pool: Lazily created process-wide asyncpg pool
"""
from .client import Credentials, NausysClient
from .database import (
    check_database_health,
    close_pool,
    close_shared_pool,
    create_pool,
    database_connection,
    get_shared_pool,
)
from .exceptions import (
    AuthenticationError,
    CharterSyncError,
    ConfigurationError,
    ConnectionError,
    ConnectionPoolError,
    ErrorCollector,
    InsufficientDataError,
    NormalizationError,
    PartialSyncError,
    PersistenceError,
    ServerError,
    SyncError,
    TimeoutError,
    TransportError,
    UpstreamError,
)
from .resilience import process_concurrent, run_concurrent_tasks

__all__ = [
    # Client
    "Credentials",
    "NausysClient",
    # Database
    "check_database_health",
    "close_pool",
    "close_shared_pool",
    "create_pool",
    "database_connection",
    "get_shared_pool",
    # Exceptions
    "AuthenticationError",
    "CharterSyncError",
    "ConfigurationError",
    "ConnectionError",
    "ConnectionPoolError",
    "ErrorCollector",
    "InsufficientDataError",
    "NormalizationError",
    "PartialSyncError",
    "PersistenceError",
    "ServerError",
    "SyncError",
    "TimeoutError",
    "TransportError",
    "UpstreamError",
    # Resilience
    "process_concurrent",
    "run_concurrent_tasks",
]
