"""
Aggregation and deduplication of adapter output.

Items are keyed by ``(url, name)``. Lists are consumed in the order given
and the first occurrence of a key wins; later duplicates are dropped without
merging, so the caller's list order is the precedence order.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from coursestack_common.scraper.classifier import sanitize_path_component
from coursestack_common.scraper.models import ContentItem, Source

logger = logging.getLogger(__name__)

# Folder bucket per source when an item carries no explicit folder
SOURCE_BUCKETS: dict[Source, str] = {
    Source.API: "files",
    Source.ASSIGNMENT: "assignments",
    Source.ASSIGNMENT_EMBEDDED: "assignments",
    Source.MODULE: "modules",
    Source.MODULE_EXTERNAL: "modules",
    Source.DISCUSSION: "discussions",
    Source.DISCUSSION_REPLY: "discussions",
    Source.PAGE_SCAN: "pages",
    Source.HTML_CONTENT: "pages",
    Source.HTML_IMAGE: "pages",
    Source.PDF_EMBEDDED: "pdfs",
}

DEFAULT_BUCKET = "misc"


def folder_path_for(item: ContentItem, folder_map: dict[str, str] | None = None) -> str:
    """
    Decide the logical folder of an item.

    Precedence:
    1. Explicit folder hint: an API folder id found in ``folder_map``, or a
       bucket path set by the adapter (``assignments/Lab_1``)
    2. Bucket derived from the source, qualified by the owning assignment or
       module name when known
    3. ``misc``

    A numeric folder id absent from ``folder_map`` carries no usable path
    and falls through to the source bucket.
    """
    folder_map = folder_map or {}
    hint = item.folder

    if hint and hint != "root":
        if hint in folder_map:
            return folder_map[hint]
        if not hint.isdigit():
            return hint

    bucket = SOURCE_BUCKETS.get(item.source, DEFAULT_BUCKET)

    if bucket == "assignments" and item.assignment_name:
        return f"{bucket}/{sanitize_path_component(item.assignment_name)}"
    if item.source is Source.MODULE and item.module_name:
        return f"{bucket}/{sanitize_path_component(item.module_name)}"

    return bucket


class Aggregator:
    """
    Ordered first-wins merge for one extraction run.

    Example:
        ```python
        aggregator = Aggregator(folder_map=folders, course_id="42", course_name="Biology")
        for items in (api_files, assignment_files, page_files):
            aggregator.extend(items)
        canonical = aggregator.items
        ```
    """

    def __init__(
        self,
        folder_map: dict[str, str] | None = None,
        course_id: str = "",
        course_name: str = "",
    ):
        self.folder_map = folder_map or {}
        self.course_id = course_id
        self.course_name = course_name
        self.duplicates_dropped = 0
        self._items: dict[str, ContentItem] = {}

    def add(self, item: ContentItem) -> bool:
        """
        Add one item unless its key was already seen.

        The stored item is a copy carrying the folder path and course fields;
        the input is not modified.

        Returns:
            True if the item was added, False if it was a duplicate
        """
        key = item.key
        if key in self._items:
            self.duplicates_dropped += 1
            return False

        self._items[key] = replace(
            item,
            folder_path=folder_path_for(item, self.folder_map),
            course_id=self.course_id or item.course_id,
            course_name=self.course_name or item.course_name,
        )
        return True

    def extend(self, items: Iterable[ContentItem]) -> int:
        """Add items in order; returns how many were new."""
        return sum(1 for item in items if self.add(item))

    @property
    def items(self) -> list[ContentItem]:
        return list(self._items.values())

    @property
    def total(self) -> int:
        return len(self._items)

    @property
    def counts_by_source(self) -> dict[str, int]:
        return dict(Counter(item.source.value for item in self._items.values()))

    @property
    def counts_by_content_type(self) -> dict[str, int]:
        return dict(Counter(item.content_type.value for item in self._items.values()))

    def stats(self) -> dict:
        """Status counts for logging and progress reporting."""
        return {
            "total": self.total,
            "duplicates_dropped": self.duplicates_dropped,
            "by_source": self.counts_by_source,
            "by_content_type": self.counts_by_content_type,
        }


def aggregate(
    item_lists: Iterable[Iterable[ContentItem]],
    folder_map: dict[str, str] | None = None,
    course_id: str = "",
    course_name: str = "",
) -> list[ContentItem]:
    """
    Merge item lists into one canonical, deduplicated list.

    Args:
        item_lists: Adapter outputs in precedence order
        folder_map: API folder id -> folder path
        course_id: Course id attached to every item
        course_name: Course name attached to every item

    Returns:
        At most one item per ``(url, name)``, in first-seen order
    """
    aggregator = Aggregator(folder_map=folder_map, course_id=course_id, course_name=course_name)
    for items in item_lists:
        aggregator.extend(items)

    if aggregator.duplicates_dropped:
        logger.debug(f"Dropped {aggregator.duplicates_dropped} duplicate items")
    return aggregator.items
