"""
Relay backend client.

The relay stores uploaded course text records and forwards tutoring
questions to the hosted model. This module only covers the upload side:

- ``GET /``               health check
- ``POST /ingest``        one record
- ``POST /ingest-batch``  ``{"files": [...]}``, answered per item

Unlike the scraping core, failures here raise :class:`RelayError`.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from coursestack_common import constants
from coursestack_common.batching import run_in_batches
from coursestack_common.exceptions import RelayError
from coursestack_common.logging_utils import safe_log_event

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Relay answer for one uploaded record."""

    file_name: str
    success: bool
    id: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IngestResult":
        return cls(
            file_name=str(data.get("file_name") or ""),
            success=data.get("status") == "success",
            id=str(data["id"]) if data.get("id") is not None else None,
            error=data.get("error"),
        )


class RelayClient:
    """Uploads text records to the relay backend."""

    def __init__(
        self,
        base_url: str = constants.DEFAULT_RELAY_URL,
        client: httpx.Client | None = None,
        timeout: float = constants.RELAY_TIMEOUT,
    ):
        self.base_url = (base_url or constants.DEFAULT_RELAY_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RelayClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, payload: Any = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, json=payload)
        except httpx.HTTPError as e:
            raise RelayError(f"Relay request to {url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            raise RelayError(
                f"Relay returned HTTP {response.status_code}: {detail or response.reason_phrase}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            raise RelayError(
                f"Unexpected relay response from {url}", status_code=response.status_code
            )
        if body.get("ok") is False:
            raise RelayError(
                body.get("error") or "Relay reported failure", status_code=response.status_code
            )
        return body

    def ping(self) -> str:
        """
        Check that the relay is up.

        Returns:
            The relay's status message

        Raises:
            RelayError: If the relay is unreachable or unhealthy
        """
        body = self._request("GET", "/")
        return str(body.get("message") or "ok")

    def ingest(self, record: dict[str, Any]) -> IngestResult:
        """Upload one record via ``POST /ingest``."""
        logger.debug(f"Ingesting record: {safe_log_event(record)}")
        body = self._request("POST", "/ingest", record)
        return IngestResult(
            file_name=record.get("file_name", ""),
            success=True,
            id=str(body["id"]) if body.get("id") is not None else None,
        )

    def ingest_batch(self, records: Sequence[dict[str, Any]]) -> list[IngestResult]:
        """
        Upload records in one ``POST /ingest-batch`` call.

        The relay stores each record independently, so the returned list can
        mix successes and failures.

        Raises:
            RelayError: If the batch request itself fails
        """
        if not records:
            return []

        logger.info(f"Uploading batch of {len(records)} records to {self.base_url}")
        body = self._request("POST", "/ingest-batch", {"files": list(records)})

        entries = body.get("results") or []
        results = [IngestResult.from_dict(entry) for entry in entries if isinstance(entry, dict)]
        failed = [r for r in results if not r.success]
        for result in failed:
            logger.warning(f"Relay rejected {result.file_name}: {result.error}")
        stored = len(results) - len(failed)
        logger.info(f"Batch upload complete: {stored} stored, {len(failed)} failed")
        return results

    def upload_records(
        self,
        records: Sequence[dict[str, Any]],
        batch: bool = True,
        abort: threading.Event | None = None,
        progress: Callable[[int, int], None] | None = None,
    ) -> list[IngestResult]:
        """
        Upload records in one batch call or one request per record.

        Per-record uploads run in bounded concurrent windows; a failed record
        is reported in its result instead of stopping the rest.
        """
        if batch:
            return self.ingest_batch(records)

        outcomes = run_in_batches(
            list(records),
            self.ingest,
            batch_size=constants.MAX_CONCURRENT_DOWNLOADS,
            delay_ms=constants.DOWNLOAD_BATCH_DELAY_MS,
            abort=abort,
            progress=progress,
        )
        return [
            outcome.result
            if outcome.ok
            else IngestResult(
                file_name=outcome.item.get("file_name", ""), success=False, error=outcome.error
            )
            for outcome in outcomes
        ]
