"""Shared HTTP plumbing for the backend gateways.

Maps transport and status failures onto the error taxonomy:
401/403 -> InvalidCredential, 409/422 -> MergeConflict (merge only),
timeouts, connection errors, 5xx and undecodable bodies -> NetworkFailure.
Idempotent GETs are retried with tenacity; POSTs are sent once.
"""

from typing import Any, Callable

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.config import Settings
from storefront.errors import InvalidCredential, NetworkFailure, StorefrontError
from storefront.logging import get_logger

logger = get_logger(__name__)

TokenProvider = Callable[[], str | None]


class ApiClient:
    """Thin async JSON client bound to the backend base URL."""

    def __init__(
        self,
        settings: Settings,
        token_provider: TokenProvider,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_wait: float = 0.5,
    ) -> None:
        self.settings = settings
        self._token_provider = token_provider
        self._transport = transport
        self._retry_wait = retry_wait
        self._http_client: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazily create the shared httpx client with timeouts."""
        if self._http_client is None:
            timeout = self.settings.http_timeout
            self._http_client = httpx.AsyncClient(
                base_url=self.settings.api_url,
                timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_errors: dict[int, type[StorefrontError]] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        client = self._get_http_client()
        try:
            response = await client.request(method, path, json=json, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise NetworkFailure(f"{method} {path} timed out", raw_error=e)
        except httpx.RequestError as e:
            logger.warning("%s %s network error: %s", method, path, type(e).__name__)
            raise NetworkFailure(f"{method} {path} failed: {e}", raw_error=e)

        status = response.status_code
        if status in (401, 403):
            raise InvalidCredential(f"{method} {path} rejected credential ({status})")
        if status_errors and status in status_errors:
            raise status_errors[status](f"{method} {path} returned {status}: {response.text[:200]}")
        if status >= 400:
            raise NetworkFailure(f"{method} {path} returned {status}")

        try:
            return response.json()
        except ValueError as e:
            raise NetworkFailure(f"{method} {path} returned a non-JSON body", raw_error=e)

    async def get(self, path: str) -> Any:
        """GET with retries on NetworkFailure."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.http_retries),
            wait=wait_exponential(multiplier=self._retry_wait, max=10),
            retry=retry_if_exception_type(NetworkFailure),
            reraise=True,
        ):
            with attempt:
                return await self.request("GET", path)

    async def post(
        self,
        path: str,
        json: Any = None,
        status_errors: dict[int, type[StorefrontError]] | None = None,
    ) -> Any:
        return await self.request("POST", path, json=json, status_errors=status_errors)
