"""
Course scrape orchestration.

Runs the source adapters in fixed precedence order, falls back to the DOM
adapter when the API path finds nothing, and aggregates everything into
one canonical item list. The outcome is reported through
:class:`ScrapeResult` rather than exceptions.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from coursestack_common.logging_utils import log_summary
from coursestack_common.scraper.adapters import (
    course_id_from_url,
    course_name_from_html,
    fetch_assignment_files,
    fetch_course_files,
    fetch_course_folders,
    fetch_discussion_files,
    fetch_module_files,
    fetch_page_files,
    scan_dom,
)
from coursestack_common.scraper.aggregator import Aggregator
from coursestack_common.scraper.fetcher import CanvasApiClient
from coursestack_common.scraper.models import ContentItem, ScrapeResult

logger = logging.getLogger(__name__)

Adapter = Callable[[CanvasApiClient, str], list[ContentItem]]
StatusCallback = Callable[[str, str], None]

# Precedence order: earlier sources win on duplicate (url, name)
ADAPTERS: tuple[tuple[str, Adapter], ...] = (
    ("files", fetch_course_files),
    ("assignments", fetch_assignment_files),
    ("modules", fetch_module_files),
    ("discussions", fetch_discussion_files),
    ("pages", fetch_page_files),
)


def _notify(status_callback: StatusCallback | None, message: str, level: str = "info") -> None:
    logger.info(message)
    if status_callback:
        status_callback(message, level)


def run_adapters(
    client: CanvasApiClient,
    course_id: str,
    adapters: tuple[tuple[str, Adapter], ...] = ADAPTERS,
    max_workers: int = 1,
    status_callback: StatusCallback | None = None,
) -> list[list[ContentItem]]:
    """
    Run source adapters and return their outputs in adapter order.

    With ``max_workers > 1`` adapters run in a thread pool; the returned
    lists are still ordered as ``adapters`` regardless of completion order.

    Args:
        client: API client shared by all adapters
        course_id: Platform course id
        adapters: (name, adapter) pairs in precedence order
        max_workers: Number of adapters allowed to run at once
        status_callback: Optional ``(message, level)`` progress hook

    Returns:
        One item list per adapter
    """
    if max_workers <= 1:
        results = []
        for index, (name, adapter) in enumerate(adapters):
            if client.aborted:
                results.append([])
                continue
            if index:
                client.pause_endpoint()
            _notify(status_callback, f"Fetching {name}...")
            results.append(adapter(client, course_id))
        return results

    _notify(status_callback, f"Fetching {len(adapters)} sources concurrently...")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(adapter, client, course_id) for _, adapter in adapters]
        return [future.result() for future in futures]


def scrape_course(
    client: CanvasApiClient,
    course_id: str | None = None,
    page_html: str | None = None,
    page_url: str | None = None,
    course_name: str | None = None,
    max_workers: int = 1,
    max_dom_results: int | None = None,
    status_callback: StatusCallback | None = None,
) -> ScrapeResult:
    """
    Discover every downloadable file of a course.

    The course id is taken from ``course_id`` or parsed from ``page_url``.
    With a course id the API adapters run first; the DOM adapter runs over
    ``page_html`` only when there is no course id or the API path found
    nothing.

    Args:
        client: Credentialed API client
        course_id: Platform course id
        page_html: HTML of the loaded course page (DOM fallback input)
        page_url: URL of the loaded course page
        course_name: Course display name (derived from the page when omitted)
        max_workers: Concurrent adapters (1 runs them sequentially)
        max_dom_results: Cap on DOM fallback results
        status_callback: Optional ``(message, level)`` progress hook

    Returns:
        ScrapeResult; ``success`` is False when nothing was found
    """
    start = time.time()
    course_id = course_id or course_id_from_url(page_url)
    course_name = course_name or course_name_from_html(page_html, course_id)

    item_lists: list[list[ContentItem]] = []
    folder_map: dict[str, str] = {}

    if course_id:
        _notify(status_callback, f"Scanning course {course_name} ({course_id})...")
        folder_map = fetch_course_folders(client, course_id)
        item_lists = run_adapters(
            client, course_id, max_workers=max_workers, status_callback=status_callback
        )
    else:
        _notify(status_callback, "Could not determine course id; scanning page only", "warning")

    used_dom_fallback = False
    if not any(item_lists) and page_html:
        _notify(status_callback, "No files found via API; scanning page content...")
        dom_items = scan_dom(
            page_html,
            page_url,
            course_id=course_id or "",
            course_name=course_name,
            max_results=max_dom_results,
        )
        item_lists.append(dom_items)
        used_dom_fallback = bool(dom_items)

    aggregator = Aggregator(
        folder_map=folder_map, course_id=course_id or "", course_name=course_name
    )
    for items in item_lists:
        aggregator.extend(items)

    duration_ms = (time.time() - start) * 1000
    logger.info(
        log_summary(
            "scrape_course",
            success=aggregator.total > 0,
            duration_ms=duration_ms,
            course_id=course_id or "",
            **aggregator.stats(),
        )
    )

    if aggregator.total == 0:
        _notify(status_callback, "No content found", "error")
        return ScrapeResult(
            success=False,
            message="No content found",
            course_id=course_id,
            course_name=course_name,
        )

    message = f"Found {aggregator.total} files"
    _notify(status_callback, message, "success")
    return ScrapeResult(
        success=True,
        message=message,
        course_id=course_id,
        course_name=course_name,
        items=aggregator.items,
        counts_by_source=aggregator.counts_by_source,
        counts_by_content_type=aggregator.counts_by_content_type,
        used_dom_fallback=used_dom_fallback,
    )
