#!/usr/bin/env python3
"""Exception Hierarchy for the charter data sync.

This module provides a structured exception hierarchy for the errors that
can occur while pulling data from the upstream charter-management provider
and writing it to the local document store.

Design Principles:
    - All exceptions inherit from CharterSyncError
    - Exceptions preserve context (original error, timestamps, details)
    - Exceptions are categorized by recoverability
    - Failures are recovered as close to their source as possible
      (field -> record -> domain -> orchestrator)

Exception Hierarchy:
    CharterSyncError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── UpstreamError (provider rejected or failed the request)
    │   ├── AuthenticationError
    │   ├── InsufficientDataError
    │   └── ServerError
    ├── TransportError (recoverable - provider unreachable)
    │   ├── ConnectionError
    │   └── TimeoutError
    ├── NormalizationError (record identity could not be derived)
    ├── PersistenceError (single record store failure)
    │   └── ConnectionPoolError
    └── SyncError (domain failed)
        └── PartialSyncError
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class CharterSyncError(Exception):
    """Base exception for all charter sync errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "AUTHENTICATION_ERROR")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether a later run is expected to succeed
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(CharterSyncError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Upstream Errors
# ============================================

class UpstreamError(CharterSyncError):
    """The provider answered, but not with a usable payload.

    Attributes:
        status_code: HTTP status code (200 when the provider reported the
            failure inside an otherwise successful response)
        error_code: Provider-supplied error code, if any
        endpoint: Endpoint that was called
        provider_status: Value of the response ``status`` field
    """

    def __init__(
        self,
        message: str,
        status_code: int = 200,
        error_code: Optional[Any] = None,
        endpoint: Optional[str] = None,
        provider_status: Optional[str] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        if error_code is not None:
            details["error_code"] = error_code
        if endpoint:
            details["endpoint"] = endpoint
        if provider_status:
            details["provider_status"] = provider_status
        if response_body:
            details["response_body"] = response_body[:500]

        kwargs.setdefault("recoverable", status_code >= 500)
        kwargs.setdefault("code", provider_status or f"UPSTREAM_ERROR_{status_code}")

        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code
        self.error_code = error_code
        self.endpoint = endpoint
        self.provider_status = provider_status
        self.response_body = response_body


class AuthenticationError(UpstreamError):
    """Raised when the provider rejects the configured credentials."""

    def __init__(self, message: str = "Upstream rejected credentials", **kwargs):
        kwargs.setdefault("provider_status", "AUTHENTICATION_ERROR")
        super().__init__(
            message,
            code="AUTHENTICATION_ERROR",
            recoverable=False,
            **kwargs,
        )


class InsufficientDataError(UpstreamError):
    """Raised when a query lacked parameters the provider needs.

    Callers treat this as "no determinable answer" and retry without the
    constraint that triggered it.
    """

    def __init__(self, message: str = "Upstream reported insufficient data", **kwargs):
        kwargs.setdefault("provider_status", "INSUFFICIENT_DATA")
        super().__init__(
            message,
            code="INSUFFICIENT_DATA",
            recoverable=True,
            **kwargs,
        )


class ServerError(UpstreamError):
    """Raised when the provider returns a 5xx error."""

    def __init__(self, message: str = "Upstream server error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(
            message,
            code="SERVER_ERROR",
            recoverable=True,
            **kwargs,
        )


# ============================================
# Transport Errors (Usually Recoverable)
# ============================================

class TransportError(CharterSyncError):
    """Base class for failures reaching the provider at all."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionError(TransportError):
    """Raised when connection to the provider fails."""

    def __init__(
        self,
        message: str = "Failed to connect to upstream",
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details=details,
            **kwargs,
        )


class TimeoutError(TransportError):
    """Raised when a request exceeds its bounded timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message,
            code="TIMEOUT_ERROR",
            details=details,
            **kwargs,
        )


# ============================================
# Normalization Errors
# ============================================

class NormalizationError(CharterSyncError):
    """Raised when a record cannot be normalized at all.

    Field-level problems never raise; the field is stored as absent. This is
    only raised when the record's identity (external id) is unusable, in
    which case the single record is skipped.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)[:100]
        super().__init__(
            message,
            code="NORMALIZATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.field = field
        self.value = value


# ============================================
# Persistence Errors
# ============================================

class PersistenceError(CharterSyncError):
    """Raised when the store fails to write or read a record."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        key: Optional[dict[str, Any]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if key:
            details["key"] = key
        kwargs.setdefault("recoverable", True)
        super().__init__(message, details=details, **kwargs)
        self.collection = collection
        self.key = key


class ConnectionPoolError(PersistenceError):
    """Raised when the database connection pool is unavailable."""

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


# ============================================
# Sync Errors
# ============================================

class SyncError(CharterSyncError):
    """Raised when a whole domain could not be synchronized."""

    def __init__(self, message: str, domain: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if domain:
            details["domain"] = domain
        super().__init__(message, details=details, **kwargs)
        self.domain = domain


class PartialSyncError(SyncError):
    """Raised when a domain partially completes with some failures.

    Attributes:
        succeeded: Number of items successfully synced
        failed: Number of items that failed
        errors: List of individual errors
    """

    def __init__(
        self,
        message: str,
        succeeded: int = 0,
        failed: int = 0,
        errors: Optional[list[Exception]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["succeeded"] = succeeded
        details["failed"] = failed
        if errors:
            details["error_count"] = len(errors)
            details["sample_errors"] = [str(e)[:100] for e in errors[:5]]

        super().__init__(
            message,
            code="PARTIAL_SYNC_ERROR",
            details=details,
            recoverable=True,
            **kwargs,
        )
        self.succeeded = succeeded
        self.failed = failed
        self.errors = errors or []


# ============================================
# Error Aggregation
# ============================================

class ErrorCollector:
    """Collect per-record errors while a loop keeps going.

    Example:
        collector = ErrorCollector()
        for record in records:
            try:
                await store.upsert(...)
            except PersistenceError as e:
                collector.add(e, context={"id": record.id})

        if collector.has_errors():
            logger.warning(collector.messages())
    """

    def __init__(self, max_errors: int = 100):
        self.errors: list[tuple[Exception, dict[str, Any]]] = []
        self.max_errors = max_errors
        self._total = 0

    def add(self, error: Exception, context: Optional[dict[str, Any]] = None):
        """Add an error with optional context."""
        self._total += 1
        if len(self.errors) < self.max_errors:
            self.errors.append((error, context or {}))

    def has_errors(self) -> bool:
        """Check if any errors were collected."""
        return self._total > 0

    def count(self) -> int:
        """Get number of errors seen (including ones past max_errors)."""
        return self._total

    def get_errors(self) -> list[tuple[Exception, dict[str, Any]]]:
        """Get the retained errors with their contexts."""
        return list(self.errors)

    def messages(self) -> list[str]:
        """Render retained errors as ``context: error`` strings."""
        rendered = []
        for error, context in self.errors:
            prefix = ", ".join(f"{k}={v}" for k, v in context.items())
            rendered.append(f"{prefix}: {error}" if prefix else str(error))
        return rendered

    def to_exception(self, succeeded: int = 0) -> PartialSyncError:
        """Convert collected errors to a PartialSyncError."""
        if not self.errors:
            raise ValueError("No errors to convert")

        return PartialSyncError(
            message=f"{self._total} error(s) occurred during operation",
            succeeded=succeeded,
            failed=self._total,
            errors=[e for e, _ in self.errors],
        )


# ============================================
# Exports
# ============================================

__all__ = [
    # Base
    "CharterSyncError",
    # Configuration
    "ConfigurationError",
    # Upstream
    "UpstreamError",
    "AuthenticationError",
    "InsufficientDataError",
    "ServerError",
    # Transport
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    # Normalization
    "NormalizationError",
    # Persistence
    "PersistenceError",
    "ConnectionPoolError",
    # Sync
    "SyncError",
    "PartialSyncError",
    # Utilities
    "ErrorCollector",
]
