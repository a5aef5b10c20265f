"""
Course file downloads.

Plans local paths for canonical content items and downloads them in
bounded batches with the session's credentials. Layout:
``canvas_downloads/<course>/<folder path>/<file name>``.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from coursestack_common import constants
from coursestack_common.batching import run_in_batches
from coursestack_common.exceptions import FetchError
from coursestack_common.scraper.classifier import sanitize_filename, sanitize_path_component
from coursestack_common.scraper.models import ContentItem, ScrapeConfig, Source

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def should_download(item: ContentItem, config: ScrapeConfig) -> bool:
    """Apply the per-source include flags of ``config``."""
    if item.source in (Source.ASSIGNMENT, Source.ASSIGNMENT_EMBEDDED):
        return config.include_assignments
    if item.source in (Source.MODULE, Source.MODULE_EXTERNAL):
        return config.include_modules
    if item.source in (Source.DISCUSSION, Source.DISCUSSION_REPLY):
        return config.include_discussions
    if item.source is Source.API:
        return config.include_files
    return True


def download_path(
    item: ContentItem, course_name: str | None, root: Path | str = constants.DOWNLOAD_ROOT
) -> Path:
    """
    Local path for an item.

    Every folder component is sanitized separately so nested folder paths
    (``modules/Week_1``) stay nested.
    """
    parts = (item.folder_path or "files").split("/")
    folders = [sanitize_path_component(part) for part in parts if part]
    return Path(root).joinpath(
        sanitize_path_component(course_name or "Unknown_Course"),
        *folders,
        sanitize_filename(item.name),
    )


def _unique_path(path: Path, taken: set[Path] | frozenset[Path] = frozenset()) -> Path:
    """Append `` (n)`` to the stem until the path is neither on disk nor in ``taken``."""
    if not path.exists() and path not in taken:
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists() and candidate not in taken:
            return candidate
        counter += 1


@dataclass
class DownloadReport:
    """Summary of one download run."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    paths: list[Path] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class Downloader:
    """Downloads content items to disk in bounded concurrent batches."""

    def __init__(
        self,
        client: httpx.Client,
        config: ScrapeConfig,
        root: Path | str = constants.DOWNLOAD_ROOT,
        abort: threading.Event | None = None,
    ):
        """
        Initialize downloader.

        Args:
            client: Credentialed HTTP client (shared with the API client)
            config: Scrape configuration (include flags, batch window, delay)
            root: Download root directory
            abort: Optional event; remaining batches are skipped once set
        """
        self.client = client
        self.config = config
        self.root = Path(root)
        self.abort = abort
        self._lock = threading.Lock()
        self._reserved: set[Path] = set()

    def plan(
        self, items: Iterable[ContentItem], course_name: str | None
    ) -> list[tuple[ContentItem, Path]]:
        """
        Pair each downloadable item with its target path.

        Items that map to the same path (same name, different URL) get
        numbered siblings so no two downloads share a target.
        """
        planned = []
        used: set[Path] = set()
        for item in items:
            if not should_download(item, self.config):
                continue
            path = _unique_path(download_path(item, course_name, self.root), used)
            used.add(path)
            planned.append((item, path))
        return planned

    def download_one(self, item: ContentItem, path: Path) -> Path:
        """
        Stream one file to disk.

        Existing files are not overwritten; a numbered sibling is used.

        Raises:
            FetchError: On any HTTP or transport failure
        """
        with self._lock:
            target = _unique_path(path, self._reserved)
            self._reserved.add(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(f"{target.name}.part")

        try:
            with self.client.stream(
                "GET", item.url, timeout=constants.DOWNLOAD_TIMEOUT, follow_redirects=True
            ) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes(_CHUNK_SIZE):
                        f.write(chunk)
        except httpx.HTTPStatusError as e:
            partial.unlink(missing_ok=True)
            status = e.response.status_code
            raise FetchError(item.url, f"HTTP {status}", status) from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise FetchError(item.url, str(e)) from e

        partial.replace(target)
        logger.debug(f"Downloaded {item.url} to {target}")
        return target

    def download_all(
        self,
        items: Iterable[ContentItem],
        course_name: str | None,
        progress: Callable[[int, int], None] | None = None,
    ) -> DownloadReport:
        """
        Download every item allowed by the include flags.

        Args:
            items: Canonical content items
            course_name: Course display name (top-level folder)
            progress: Optional ``(completed, total)`` callback

        Returns:
            DownloadReport with per-URL errors
        """
        items = list(items)
        planned = self.plan(items, course_name)
        report = DownloadReport(total=len(planned), skipped=len(items) - len(planned))

        if not planned:
            logger.warning("No files to download after filtering")
            return report

        outcomes = run_in_batches(
            planned,
            lambda pair: self.download_one(*pair),
            batch_size=self.config.max_concurrent_downloads,
            delay_ms=self.config.download_delay_ms,
            abort=self.abort,
            progress=progress,
        )

        for outcome in outcomes:
            item, _ = outcome.item
            if outcome.ok:
                report.successful += 1
                report.paths.append(outcome.result)
            else:
                report.failed += 1
                report.errors[item.url] = outcome.error

        logger.info(
            f"Downloads complete: {report.successful} succeeded, {report.failed} failed, "
            f"{report.skipped} skipped"
        )
        return report
