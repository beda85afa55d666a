"""HTTP client wrapper for the LENS data API.

Every LENS resource answers a GET with a JSON object of the form
``{"result": ...}``. The client fetches a resource and unwraps that field.
"""

import logging
from typing import Any

import httpx

from lens_mcp.config import Settings

logger = logging.getLogger(__name__)


class LensClientError(Exception):
    """Base exception for LENS client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


class UpstreamUnavailableError(LensClientError):
    """The LENS API could not be reached or answered with a non-2xx status."""


class UpstreamParseError(LensClientError):
    """The LENS API answered with a body that is not a JSON object."""


class LensClient:
    """Async HTTP client for the LENS data API.

    Manages the HTTP connection lifecycle. The underlying ``httpx.AsyncClient``
    is created on first use and shared by all tool calls.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the client with settings.

        Args:
            settings: Application settings containing base URL and timeout.
        """
        self._settings = settings
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        """Base URL of the LENS API this client talks to."""
        return self._settings.base_url

    def _build_headers(self) -> dict[str, str]:
        """Build HTTP headers sent with every request.

        Returns:
            Dictionary of HTTP headers.
        """
        return {
            "Accept": "application/json",
            "User-Agent": "lens_mcp/1.0.0",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized.

        Returns:
            The initialized async HTTP client.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url.rstrip("/"),
                headers=self._build_headers(),
                timeout=httpx.Timeout(self._settings.timeout_seconds),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _extract_request_id(self, response: httpx.Response) -> str | None:
        """Extract request ID from response headers.

        Args:
            response: HTTP response to inspect.

        Returns:
            Request ID if present, None otherwise.
        """
        for header in ("X-Request-ID", "X-Request-Id", "Request-Id", "request-id"):
            if header in response.headers:
                return response.headers[header]
        return None

    def _log_response(
        self,
        path: str,
        response: httpx.Response,
        request_id: str | None,
    ) -> None:
        """Log HTTP response details.

        Args:
            path: Request path.
            response: HTTP response received.
            request_id: Request ID if present.
        """
        log_extra = {"status": response.status_code, "method": "GET", "path": path}
        if request_id:
            log_extra["request_id"] = request_id

        if response.is_success:
            logger.debug("HTTP request succeeded", extra=log_extra)
        else:
            logger.warning("HTTP request failed", extra=log_extra)

    async def fetch_resource(self, path: str) -> Any:
        """GET a LENS resource and return its ``result`` field.

        Args:
            path: Resource path relative to the base URL, e.g. ``client``
                or ``announcements/123456789``.

        Returns:
            The value stored under ``result``, or None when the body has no
            such key.

        Raises:
            UpstreamUnavailableError: On network failure, timeout or non-2xx status.
            UpstreamParseError: If the body is not a JSON object.
        """
        client = await self._ensure_client()
        path = "/" + path.lstrip("/")

        try:
            response = await client.get(path)
        except httpx.RequestError as e:
            logger.error("HTTP request error: %s", e)
            raise UpstreamUnavailableError(message=f"Request failed: {e}") from e

        request_id = self._extract_request_id(response)
        self._log_response(path, response, request_id)

        if not response.is_success:
            raise UpstreamUnavailableError(
                message=f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                request_id=request_id,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamParseError(
                message="Invalid JSON in response body",
                status_code=response.status_code,
                request_id=request_id,
            ) from e

        if not isinstance(payload, dict):
            raise UpstreamParseError(
                message=f"Expected a JSON object, got {type(payload).__name__}",
                status_code=response.status_code,
                request_id=request_id,
            )

        if "result" not in payload:
            logger.warning("Response for %s has no 'result' field", path)
        return payload.get("result")
