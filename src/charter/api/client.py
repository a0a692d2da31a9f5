#!/usr/bin/env python3
"""HTTP Client for the NauSYS charter-management API.

This module provides the upstream client used by every domain synchronizer.
It handles the concerns shared by all provider endpoints:

    - Credentials injected into every JSON request body
    - Provider status handling (OK / AUTHENTICATION_ERROR / INSUFFICIENT_DATA)
    - Bounded request timeout (30s by default)
    - Connection pooling via a shared aiohttp session
    - Typed exceptions for transport and upstream failures

Design Philosophy:
    This client knows HOW to talk to the provider, but not WHAT to fetch.
    Endpoint paths and response collection keys belong to NausysCharterAPI
    in the sync adapters layer. Requests are single-attempt; whether to
    retry is decided by the caller.

Usage:
    async with NausysClient() as client:
        data = await client.post("/catalogue/v6/countries")

        reservations = await client.post(
            "/yachtReservation/v6/reservations",
            {"periodFrom": "01.01.2024", "periodTo": "31.12.2024"},
            nest_credentials=True,
        )
"""
import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    InsufficientDataError,
    ServerError,
    TimeoutError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ws.nausys.com/CBMS-external/rest"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Provider-level status values carried in every response body
STATUS_OK = "OK"
STATUS_AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
STATUS_INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


# ============================================
# Credentials
# ============================================

@dataclass(frozen=True)
class Credentials:
    """Provider credentials sent inside every request body."""

    username: str
    password: str

    def as_body(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


# ============================================
# The Client
# ============================================

class NausysClient:
    """Async HTTP client for the NauSYS REST API.

    This client is designed to be used as an async context manager to ensure
    proper session lifecycle management:

        async with NausysClient() as client:
            data = await client.post("/catalogue/v6/countries")

    Attributes:
        credentials: Provider username/password
        base_url: Base URL for API requests
        timeout_seconds: Total timeout applied to each request
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize the NausysClient.

        Args:
            username: Provider username. Defaults to NAUSYS_USERNAME.
            password: Provider password. Defaults to NAUSYS_PASSWORD.
            base_url: API base URL. Defaults to NAUSYS_API_BASE or the public endpoint.
            timeout_seconds: Request timeout. Defaults to NAUSYS_TIMEOUT_SECONDS or 30.

        Raises:
            ConfigurationError: If credentials are neither passed nor set in the environment.
        """
        username = username or os.getenv("NAUSYS_USERNAME")
        password = password or os.getenv("NAUSYS_PASSWORD")

        missing = []
        if not username:
            missing.append("NAUSYS_USERNAME")
        if not password:
            missing.append("NAUSYS_PASSWORD")
        if missing:
            raise ConfigurationError(
                f"Missing upstream credentials: {', '.join(missing)}",
                missing_keys=missing,
            )

        self.credentials = Credentials(username=username, password=password)
        self.base_url = (base_url or os.getenv("NAUSYS_API_BASE") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_seconds = float(
            timeout_seconds
            or os.getenv("NAUSYS_TIMEOUT_SECONDS")
            or DEFAULT_TIMEOUT_SECONDS
        )

        # Session is created in __aenter__, closed in __aexit__
        self._session: Optional[aiohttp.ClientSession] = None

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "NausysClient":
        """Enter async context: create the HTTP session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=10,
                limit_per_host=10,
            ),
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context: close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Request Methods
    # ----------------------------------------

    def build_body(
        self,
        payload: Optional[dict[str, Any]] = None,
        nest_credentials: bool = False,
    ) -> dict[str, Any]:
        """Merge request parameters with the provider credentials.

        Catalogue endpoints expect the credentials flat in the body, while
        reservation, invoice and contact endpoints expect them under a
        ``credentials`` key next to the period parameters.
        """
        body: dict[str, Any]
        if nest_credentials:
            body = {"credentials": self.credentials.as_body()}
        else:
            body = self.credentials.as_body()
        body.update(payload or {})
        return body

    async def post(
        self,
        endpoint: str,
        payload: Optional[dict[str, Any]] = None,
        nest_credentials: bool = False,
    ) -> dict[str, Any]:
        """Make a single POST request (no retry logic).

        Args:
            endpoint: API endpoint path (e.g., "/catalogue/v6/countries")
            payload: Request parameters merged into the body
            nest_credentials: Send credentials under a ``credentials`` key

        Returns:
            Decoded response body

        Raises:
            RuntimeError: If called outside of the async context manager
            AuthenticationError: Provider reported AUTHENTICATION_ERROR (or HTTP 401/403)
            InsufficientDataError: Provider reported INSUFFICIENT_DATA
            UpstreamError: Any other non-OK status or HTTP error
            TransportError: Connection failure or timeout
        """
        if not self._session:
            raise RuntimeError(
                "NausysClient must be used as async context manager: "
                "async with NausysClient(...) as client:"
            )

        url = f"{self.base_url}{endpoint}"
        body = self.build_body(payload, nest_credentials=nest_credentials)

        try:
            async with self._session.post(
                url,
                json=body,
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_http_error(
                        status=response.status,
                        endpoint=endpoint,
                        response_body=error_text,
                    )

                data = await response.json(content_type=None)

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=self.timeout_seconds,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise TransportError(
                f"Network error during POST {endpoint}: {e}",
                cause=e,
            )

        return self._check_status(data, endpoint)

    # ----------------------------------------
    # Response Handling
    # ----------------------------------------

    def _check_status(self, data: Any, endpoint: str) -> dict[str, Any]:
        """Translate the provider ``status`` field into typed errors."""
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Unexpected response payload from {endpoint}",
                endpoint=endpoint,
                response_body=str(data),
            )

        status = data.get("status")
        if status is None or status == STATUS_OK:
            return data

        error_code = data.get("errorCode")

        if status == STATUS_AUTHENTICATION_ERROR:
            logger.error(f"Upstream rejected credentials for {endpoint} (errorCode={error_code})")
            raise AuthenticationError(
                f"Authentication failed for {endpoint}",
                error_code=error_code,
                endpoint=endpoint,
            )

        if status == STATUS_INSUFFICIENT_DATA:
            raise InsufficientDataError(
                f"Insufficient data for {endpoint}",
                error_code=error_code,
                endpoint=endpoint,
            )

        raise UpstreamError(
            f"Upstream returned status {status} for {endpoint}",
            error_code=error_code,
            endpoint=endpoint,
            provider_status=str(status),
        )

    def _create_http_error(
        self,
        status: int,
        endpoint: str,
        response_body: str,
    ) -> UpstreamError:
        """Create appropriate UpstreamError subclass based on HTTP status."""
        if status in (401, 403):
            return AuthenticationError(
                f"HTTP {status} for {endpoint}",
                status_code=status,
                endpoint=endpoint,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Server error ({status}) for POST {endpoint}",
                status_code=status,
                endpoint=endpoint,
                response_body=response_body,
            )

        return UpstreamError(
            f"POST {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            response_body=response_body,
        )


__all__ = [
    "Credentials",
    "NausysClient",
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "STATUS_OK",
    "STATUS_AUTHENTICATION_ERROR",
    "STATUS_INSUFFICIENT_DATA",
]
