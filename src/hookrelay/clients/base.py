"""Shared async HTTP plumbing for the downstream API clients.

Wraps httpx.AsyncClient with the relay's error handling: every transport
failure, non-2xx status, or undecodable body is raised as the caller's
DownstreamError subclass. Requests are never retried; a failed request
simply fails that hook's pipeline.
"""

import logging
from typing import Any, Dict, Optional, Type

import httpx

from src.hookrelay.errors import DownstreamError

logger = logging.getLogger(__name__)


class ApiClient:
    """Async JSON API client with a raw-token Authorization header.

    Attributes:
        base_url: Base URL of the API, without trailing slash.
        token: Value sent verbatim as the Authorization header.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the API.
            token: Raw Authorization header value (no "Bearer" prefix).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used to stub the API in tests.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": self.token}

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[DownstreamError],
        json_data: Optional[Any] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        """Make a single HTTP request.

        Args:
            method: HTTP method.
            path: API path relative to base_url.
            error_cls: DownstreamError subclass raised on failure.
            json_data: Optional JSON body.
            authenticated: Whether to send the Authorization header.

        Returns:
            The successful (2xx) response.

        Raises:
            DownstreamError: As error_cls, on transport failure or non-2xx.
        """
        headers = self._auth_headers() if authenticated else {}
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=json_data,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise error_cls(
                message=f"{method} {path} failed: {e}",
                request_url=f"{self.base_url}{path}",
            ) from e

        if not response.is_success:
            error_body = response.text
            logger.debug(
                "Downstream API error",
                extra={
                    "status_code": response.status_code,
                    "path": path,
                    "method": method,
                    "response_body": error_body[:500],
                },
            )
            raise error_cls(
                message=f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
            )

        return response

    @staticmethod
    def _decode_json(
        response: httpx.Response,
        error_cls: Type[DownstreamError],
    ) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise error_cls(
                message=f"Invalid JSON from {response.url}: {e}",
                status_code=response.status_code,
                response_body=response.text,
                request_url=str(response.url),
            ) from e
