"""
Credentialed REST fetching for the course platform.

Wraps a synchronous ``httpx.Client`` pointed at the platform origin with
retry logic, throttling, pagination and an abort signal. Transport and
HTTP failures are returned as :class:`ApiResponse` values rather than
raised, so callers decide how to degrade.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

import httpx

from coursestack_common import constants
from coursestack_common.exceptions import (
    AccessDeniedError,
    FetchError,
    ResourceNotFoundError,
)
from coursestack_common.scraper.models import ScrapeConfig

logger = logging.getLogger(__name__)

# Anti-JSON-hijacking prefix some platform endpoints prepend to JSON bodies
_JSON_GUARD = "while(1);"


@dataclass
class ApiResponse:
    """Result of one REST call (or a walked paginated listing)."""

    url: str
    status_code: int
    data: Any = None
    error: str | None = None
    next_url: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300

    @property
    def access_denied(self) -> bool:
        return self.status_code == 403

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class CanvasApiClient:
    """REST client with retry logic, throttling and cooperative abort."""

    USER_AGENT = "CourseStack-Scraper/1.0"

    # Retryable status codes
    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        token: str | None = None,
        cookies: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = constants.REQUEST_TIMEOUT,
        max_retries: int = constants.MAX_RETRIES,
        request_delay_ms: int = constants.NESTED_REQUEST_DELAY_MS,
        endpoint_delay_ms: int = constants.ENDPOINT_REQUEST_DELAY_MS,
        per_page: int = constants.DEFAULT_PER_PAGE,
        abort: threading.Event | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Platform origin, e.g. ``https://school.instructure.com``
            client: Optional preconfigured ``httpx.Client`` (owned by the caller)
            token: Optional bearer token
            cookies: Optional session cookies
            headers: Optional extra headers
            timeout: Request timeout in seconds
            max_retries: Maximum attempts for retryable failures
            request_delay_ms: Delay between nested per-item requests
            endpoint_delay_ms: Delay between top-level endpoint requests
            per_page: Default page size for paginated listings
            abort: Optional event; once set no further requests are issued
        """
        self.base_url = (base_url or "").rstrip("/")
        self.max_retries = max(max_retries, 1)
        self.request_delay_ms = request_delay_ms
        self.endpoint_delay_ms = endpoint_delay_ms
        self.per_page = per_page
        self.abort = abort

        self.headers = {
            "User-Agent": self.USER_AGENT,
            "Accept": constants.API_ACCEPT_HEADER,
            **(headers or {}),
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            cookies=cookies,
        )

    @classmethod
    def from_config(
        cls,
        config: ScrapeConfig,
        client: httpx.Client | None = None,
        abort: threading.Event | None = None,
    ) -> "CanvasApiClient":
        """Build a client from a :class:`ScrapeConfig`."""
        cookies = {config.cookie_name: config.session_cookie} if config.session_cookie else None
        return cls(
            base_url=config.base_url,
            client=client,
            token=config.token,
            cookies=cookies,
            headers=config.headers,
            timeout=config.request_timeout,
            request_delay_ms=config.request_delay_ms,
            endpoint_delay_ms=config.endpoint_delay_ms,
            per_page=config.per_page,
            abort=abort,
        )

    @property
    def http(self) -> httpx.Client:
        """Underlying HTTP client (shared with file downloads)."""
        return self._client

    @property
    def aborted(self) -> bool:
        return self.abort is not None and self.abort.is_set()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "CanvasApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def api_url(self, endpoint: str) -> str:
        """
        Build an absolute API URL.

        Accepts absolute URLs, ``/api/v1/...`` paths and bare endpoint paths
        such as ``courses/42/files``.
        """
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if endpoint.startswith(constants.API_PREFIX):
            return f"{self.base_url}{endpoint}"
        return f"{self.base_url}{constants.API_PREFIX}/{endpoint.lstrip('/')}"

    def _sleep(self, seconds: float) -> None:
        if seconds <= 0 or self.aborted:
            return
        if self.abort is None:
            time.sleep(seconds)
        else:
            # Wakes early when the abort signal is set
            self.abort.wait(seconds)

    def pause(self) -> None:
        """Throttle between nested per-item requests."""
        self._sleep(self.request_delay_ms / 1000.0)

    def pause_endpoint(self) -> None:
        """Throttle between top-level endpoint requests."""
        self._sleep(self.endpoint_delay_ms / 1000.0)

    def get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> ApiResponse:
        """
        GET a JSON endpoint with retries.

        403 and 404 are not retried and are logged distinctly. 429 and 5xx,
        timeouts and connection errors are retried with exponential backoff.

        Args:
            endpoint: Endpoint path or absolute URL
            params: Optional query parameters

        Returns:
            ApiResponse with decoded data or an error
        """
        url = self.api_url(endpoint)
        if self.aborted:
            return ApiResponse(url=url, status_code=0, error="aborted")

        last_error = None
        last_status = 0

        for attempt in range(self.max_retries):
            if self.aborted:
                return ApiResponse(url=url, status_code=0, error="aborted")

            try:
                response = self._client.get(url, params=params, headers=self.headers)
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                self._backoff(url, attempt, "timeout")
                continue
            except httpx.RequestError as e:
                last_error = f"Request error: {e}"
                self._backoff(url, attempt, f"error={e}")
                continue

            last_status = response.status_code

            if last_status == 403:
                logger.warning(f"Access denied: {url}")
                return ApiResponse(url=url, status_code=403, error="access denied")

            if last_status == 404:
                logger.info(f"Resource absent: {url}")
                return ApiResponse(url=url, status_code=404, error="resource absent")

            if last_status in self.RETRYABLE_STATUS_CODES:
                last_error = f"HTTP {last_status}: {response.reason_phrase}"
                self._backoff(
                    url, attempt, f"status={last_status}", rate_limited=last_status == 429
                )
                continue

            if last_status >= 400:
                logger.warning(f"HTTP {last_status} for {url}")
                return ApiResponse(
                    url=url,
                    status_code=last_status,
                    error=f"HTTP {last_status}: {response.reason_phrase}",
                )

            try:
                data = _decode_json(response.text)
            except ValueError as e:
                logger.warning(f"Invalid JSON from {url}: {e}")
                return ApiResponse(url=url, status_code=last_status, error=f"Invalid JSON: {e}")

            return ApiResponse(
                url=url,
                status_code=last_status,
                data=data,
                next_url=response.links.get("next", {}).get("url"),
            )

        logger.error(f"Giving up on {url} after {self.max_retries} attempts: {last_error}")
        return ApiResponse(url=url, status_code=last_status, error=last_error)

    def _backoff(self, url: str, attempt: int, reason: str, rate_limited: bool = False) -> None:
        if attempt + 1 >= self.max_retries:
            return
        backoff = (2**attempt) * 1.0
        if rate_limited:
            # Longer backoff for rate limiting
            backoff *= 2
        logger.warning(
            f"Retry {attempt + 1}/{self.max_retries} for {url} ({reason}, backoff={backoff}s)"
        )
        self._sleep(backoff)

    def get_paginated(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        per_page: int | None = None,
        max_pages: int = constants.MAX_PAGES,
    ) -> ApiResponse:
        """
        Walk a paginated listing and concatenate its pages.

        Follows the ``Link: rel="next"`` header when present; otherwise
        requests the next ``page`` while pages come back full.

        A failure on the first page is returned as is. A failure on a later
        page ends the walk and keeps what was collected.

        Returns:
            ApiResponse whose ``data`` is the concatenated list
        """
        page_size = per_page or self.per_page
        query = {**(params or {}), "per_page": page_size}

        first = self.get_json(endpoint, params={**query, "page": 1})
        if not first.ok:
            return first
        if not isinstance(first.data, list):
            return first

        items = list(first.data)
        response = first
        page = 1

        while page < max_pages and not self.aborted:
            if response.next_url:
                self.pause()
                response = self.get_json(response.next_url)
            elif len(response.data or []) >= page_size:
                self.pause()
                response = self.get_json(endpoint, params={**query, "page": page + 1})
            else:
                break

            page += 1
            if not response.ok or not isinstance(response.data, list):
                logger.warning(
                    f"Stopping pagination of {endpoint} at page {page}: {response.error}"
                )
                break
            if not response.data:
                break
            items.extend(response.data)

        return ApiResponse(url=first.url, status_code=first.status_code, data=items)

    def require_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a JSON endpoint, raising on failure.

        Raises:
            AccessDeniedError: On HTTP 403
            ResourceNotFoundError: On HTTP 404
            FetchError: On any other failure (including abort)
        """
        response = self.get_json(endpoint, params=params)
        if response.access_denied:
            raise AccessDeniedError(response.url)
        if response.not_found:
            raise ResourceNotFoundError(response.url)
        if not response.ok:
            raise FetchError(response.url, response.error or "unknown error", response.status_code)
        return response.data


def _decode_json(text: str) -> Any:
    """Decode a JSON body, tolerating the ``while(1);`` guard prefix."""
    body = text.lstrip()
    if body.startswith(_JSON_GUARD):
        body = body[len(_JSON_GUARD) :]
    if not body:
        return None
    return json.loads(body)

