"""
Source adapters.

Each adapter queries one family of course resources and returns the file
references it found as :class:`ContentItem` lists. Adapters never raise:
HTTP 403/404 on an endpoint is logged and treated as an empty listing, and
any other failure is isolated to the adapter, which returns what it has.

Nested per-item fetches (assignment detail, module file detail, discussion
entries, page bodies) are throttled by the client's nested request delay.
"""

import functools
import logging
import re
from collections.abc import Callable
from dataclasses import replace

from coursestack_common import constants
from coursestack_common.exceptions import PayloadDecodeError
from coursestack_common.scraper.classifier import (
    content_type_from_mime,
    content_type_of,
    extract_filename_from_url,
    is_downloadable_file,
    looks_like_pdf,
    mime_type_of,
    resolve_url,
    sanitize_filename,
    sanitize_path_component,
)
from coursestack_common.scraper.fetcher import ApiResponse, CanvasApiClient
from coursestack_common.scraper.miner import (
    element_text,
    element_url,
    extract_canvas_file_urls,
    extract_files_from_html,
    extract_pdfs_from_html,
    find_pdf_urls,
    parse_html,
)
from coursestack_common.scraper.models import ContentItem, ContentType, Source
from coursestack_common.scraper.schema import (
    ApiAssignment,
    ApiAttachment,
    ApiDiscussionEntry,
    ApiDiscussionTopic,
    ApiFile,
    ApiFolder,
    ApiModule,
    ApiModuleItem,
    ApiPage,
    decode_list,
)
from coursestack_common.scraper.selectors import COURSE_NAME_SELECTORS, DOM_SELECTORS

logger = logging.getLogger(__name__)

_COURSE_ID_PATTERN = re.compile(r"/courses/(\d+)")
_COURSE_PREFIX_PATTERN = re.compile(r"^course:\s*", re.IGNORECASE)
_HIDDEN_STYLE_PATTERN = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)

# Root folder name of a course's file tree
_ROOT_FOLDER = "course files"


def isolated(name: str, empty: Callable = list) -> Callable:
    """
    Isolate an adapter's failures.

    Any exception escaping the wrapped adapter is logged and converted to
    an empty result, so one failing source never aborts the others.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{name} adapter failed: {e}")
                return empty()

        return wrapper

    return decorator


def _listing_failed(label: str, response: ApiResponse) -> bool:
    """Log a failed listing; True when the listing should be treated as empty."""
    if response.ok:
        return False
    if response.access_denied:
        logger.warning(f"{label}: access denied, skipping")
    elif response.not_found:
        logger.info(f"{label}: resource absent, skipping")
    else:
        logger.warning(f"{label}: {response.error}")
    return True


def decode_records(cls, payload, label: str) -> list:
    """Decode a listing payload; a non-list payload is logged and treated as empty."""
    try:
        return decode_list(cls, payload)
    except PayloadDecodeError as e:
        logger.warning(f"{label}: {e}")
        return []


def decode_detail(cls, response: ApiResponse, fallback=None):
    """Decode a single-object response, returning ``fallback`` on failure or malformed payload."""
    if not response.ok:
        return fallback
    try:
        return cls.from_dict(response.data)
    except PayloadDecodeError as e:
        logger.warning(f"Malformed payload from {response.url}: {e}")
        return fallback


def _file_content_type(name: str, mime_type: str | None) -> ContentType:
    content_type = content_type_of(name)
    if content_type is ContentType.UNKNOWN:
        return content_type_from_mime(mime_type)
    return content_type


def _file_item(
    api_file: ApiFile, source: Source, fallback_name: str = "", **context
) -> ContentItem:
    name = api_file.name or fallback_name or extract_filename_from_url(api_file.url)
    return ContentItem(
        url=api_file.url or "",
        name=sanitize_filename(name),
        content_type=_file_content_type(name, api_file.content_type),
        source=source,
        size_bytes=api_file.size,
        mime_type=api_file.content_type or mime_type_of(name),
        **context,
    )


def _attachment_items(
    attachments: list[ApiAttachment], source: Source, **context
) -> list[ContentItem]:
    return [
        _file_item(attachment, source, **context)
        for attachment in attachments
        if attachment.url and attachment.name
    ]


@isolated("files")
def fetch_course_files(client: CanvasApiClient, course_id: str) -> list[ContentItem]:
    """
    List the course file store.

    Only files with a URL, a filename and a positive size are kept. The
    API folder id is carried as the folder hint.
    """
    response = client.get_paginated(f"courses/{course_id}/files")
    if _listing_failed("files", response):
        return []

    items = []
    for api_file in decode_records(ApiFile, response.data, "files"):
        if not api_file.url or not api_file.name or api_file.size <= 0:
            continue
        items.append(_file_item(api_file, Source.API, folder=api_file.folder_id))

    logger.info(f"Found {len(items)} files in course {course_id} file listing")
    return items


@isolated("folders", empty=dict)
def fetch_course_folders(client: CanvasApiClient, course_id: str) -> dict[str, str]:
    """
    Map folder ids to sanitized relative folder paths.

    The course root folder maps to ``files``; nested folders keep their
    path below the root, e.g. ``Lectures/Week_1``.
    """
    response = client.get_paginated(f"courses/{course_id}/folders")
    if _listing_failed("folders", response):
        return {}

    folder_map = {}
    for folder in decode_records(ApiFolder, response.data, "folders"):
        if not folder.id:
            continue
        parts = (folder.full_name or folder.name or "").split("/")
        if parts and parts[0].strip().lower() == _ROOT_FOLDER:
            parts = parts[1:]
        parts = [sanitize_path_component(part) for part in parts if part.strip()]
        folder_map[folder.id] = "/".join(parts) if parts else "files"

    return folder_map


@isolated("assignments")
def fetch_assignment_files(client: CanvasApiClient, course_id: str) -> list[ContentItem]:
    """
    Collect assignment attachments and files embedded in descriptions.

    Each assignment's detail is fetched for the full description and
    attachment list; the listing entry is used when the detail fetch fails.
    """
    response = client.get_paginated(f"courses/{course_id}/assignments")
    if _listing_failed("assignments", response):
        return []

    items = []
    for assignment in decode_records(ApiAssignment, response.data, "assignments"):
        if client.aborted:
            break

        if assignment.id:
            client.pause()
            detail = client.get_json(f"courses/{course_id}/assignments/{assignment.id}")
            assignment = decode_detail(ApiAssignment, detail, fallback=assignment)

        folder = f"assignments/{sanitize_path_component(assignment.name)}"
        items.extend(
            _attachment_items(
                assignment.attachments,
                Source.ASSIGNMENT,
                folder=folder,
                assignment_name=assignment.name,
            )
        )

        mined = extract_files_from_html(
            assignment.description,
            context=f"assignment_{assignment.name}",
            base_url=client.base_url,
        )
        items.extend(
            replace(
                item,
                source=Source.ASSIGNMENT_EMBEDDED,
                folder=folder,
                assignment_name=assignment.name,
            )
            for item in mined
        )

    logger.info(f"Found {len(items)} assignment files in course {course_id}")
    return items


@isolated("modules")
def fetch_module_files(client: CanvasApiClient, course_id: str) -> list[ContentItem]:
    """
    Collect files referenced by module items.

    ``File`` items are resolved through a file detail fetch. ``ExternalUrl``
    items are kept only when their target classifies as a file.
    """
    response = client.get_paginated(f"courses/{course_id}/modules")
    if _listing_failed("modules", response):
        return []

    items = []
    for module in decode_records(ApiModule, response.data, "modules"):
        if client.aborted:
            break

        module_items = module.items
        if not module_items and module.id:
            client.pause()
            listing = client.get_paginated(f"courses/{course_id}/modules/{module.id}/items")
            if _listing_failed(f"module {module.name} items", listing):
                continue
            module_items = decode_records(ApiModuleItem, listing.data, "module items")

        folder = f"modules/{sanitize_path_component(module.name)}"

        for module_item in module_items:
            if client.aborted:
                break

            if module_item.type == "File" and (module_item.url or module_item.content_id):
                client.pause()
                detail = client.get_json(
                    module_item.url or f"courses/{course_id}/files/{module_item.content_id}"
                )
                api_file = decode_detail(ApiFile, detail)
                if api_file is None or not api_file.url:
                    continue
                items.append(
                    _file_item(
                        api_file,
                        Source.MODULE,
                        fallback_name=module_item.title,
                        folder=folder,
                        module_name=module.name,
                    )
                )

            elif module_item.type == "ExternalUrl" and is_downloadable_file(
                module_item.external_url
            ):
                url = module_item.external_url
                items.append(
                    ContentItem(
                        url=url,
                        name=sanitize_filename(module_item.title or extract_filename_from_url(url)),
                        content_type=content_type_of(url),
                        source=Source.MODULE_EXTERNAL,
                        mime_type=mime_type_of(url),
                        folder=folder,
                        module_name=module.name,
                    )
                )

    logger.info(f"Found {len(items)} module files in course {course_id}")
    return items


@isolated("discussions")
def fetch_discussion_files(client: CanvasApiClient, course_id: str) -> list[ContentItem]:
    """
    Collect files from discussion topics and their replies.

    Topic messages yield ``discussion`` items, entry messages (first page of
    50 entries) yield ``discussion_reply`` items.
    """
    response = client.get_paginated(f"courses/{course_id}/discussion_topics")
    if _listing_failed("discussions", response):
        return []

    items = []
    for topic in decode_records(ApiDiscussionTopic, response.data, "discussions"):
        if client.aborted:
            break

        folder = f"discussions/{sanitize_path_component(topic.title)}"
        context = f"discussion_{topic.title}"

        items.extend(_attachment_items(topic.attachments, Source.DISCUSSION, folder=folder))
        items.extend(
            replace(item, source=Source.DISCUSSION, folder=folder)
            for item in extract_files_from_html(
                topic.message, context=context, base_url=client.base_url
            )
        )

        if not topic.id:
            continue

        client.pause()
        entries = client.get_json(
            f"courses/{course_id}/discussion_topics/{topic.id}/entries",
            params={"per_page": constants.DISCUSSION_ENTRIES_PER_PAGE},
        )
        if _listing_failed(f"discussion {topic.title} entries", entries):
            continue

        for entry in decode_records(ApiDiscussionEntry, entries.data, "discussion entries"):
            items.extend(
                _attachment_items(entry.attachments, Source.DISCUSSION_REPLY, folder=folder)
            )
            items.extend(
                replace(item, source=Source.DISCUSSION_REPLY, folder=folder)
                for item in extract_files_from_html(
                    entry.message, context=context, base_url=client.base_url
                )
            )

    logger.info(f"Found {len(items)} discussion files in course {course_id}")
    return items


def _page_bodies(client: CanvasApiClient, course_id: str) -> list[tuple[str, str]]:
    """(title, body) of every wiki page, fetching bodies the listing omits."""
    response = client.get_paginated(f"courses/{course_id}/pages")
    if _listing_failed("pages", response):
        return []

    bodies = []
    for page in decode_records(ApiPage, response.data, "pages"):
        if client.aborted:
            break
        body = page.body
        if body is None and page.url:
            client.pause()
            response = client.get_json(f"courses/{course_id}/pages/{page.url}")
            detail = decode_detail(ApiPage, response)
            body = detail.body if detail else None
        if body:
            bodies.append((page.title, body))
    return bodies


def _rich_text_sources(client: CanvasApiClient, course_id: str) -> list[tuple[str, str]]:
    """(context, html) of assignment descriptions and discussion messages."""
    sources = []

    client.pause_endpoint()
    assignments = client.get_paginated(f"courses/{course_id}/assignments")
    if not _listing_failed("assignments (pdf sweep)", assignments):
        for assignment in decode_records(ApiAssignment, assignments.data, "assignments"):
            if assignment.description:
                sources.append((f"assignment_{assignment.name}", assignment.description))

    client.pause_endpoint()
    topics = client.get_paginated(f"courses/{course_id}/discussion_topics")
    if not _listing_failed("discussions (pdf sweep)", topics):
        for topic in decode_records(ApiDiscussionTopic, topics.data, "discussions"):
            if topic.message:
                sources.append((f"discussion_{topic.title}", topic.message))

    return sources


@isolated("pages")
def fetch_page_files(client: CanvasApiClient, course_id: str) -> list[ContentItem]:
    """
    Mine wiki page bodies, then sweep rich text for embedded PDFs.

    The sweep covers assignment descriptions, discussion messages and page
    bodies. Results are deduplicated by URL within this adapter.
    """
    items: list[ContentItem] = []
    seen_urls: set[str] = set()

    def add(item: ContentItem) -> None:
        if item.url not in seen_urls:
            seen_urls.add(item.url)
            items.append(item)

    pages = _page_bodies(client, course_id)
    for title, body in pages:
        for item in extract_files_from_html(
            body, context=f"page_{title}", base_url=client.base_url, page_title=title
        ):
            add(item)

    if not client.aborted:
        sweep = _rich_text_sources(client, course_id)
        sweep.extend((f"page_{title}", body) for title, body in pages)
        for context, html in sweep:
            for item in extract_pdfs_from_html(html, context=context, base_url=client.base_url):
                add(item)

    logger.info(f"Found {len(items)} page files in course {course_id}")
    return items


# =============================================================================
# DOM fallback
# =============================================================================


def _is_hidden(element) -> bool:
    """True if the element or an ancestor is hidden by attribute or inline style."""
    node = element
    while node is not None and node.name not in (None, "[document]"):
        if node.has_attr("hidden"):
            return True
        if str(node.get("aria-hidden", "")).lower() == "true":
            return True
        style = node.get("style")
        if isinstance(style, str) and _HIDDEN_STYLE_PATTERN.search(style):
            return True
        node = node.parent
    return False


def _dom_name(element, url: str) -> str:
    for attr in ("download", "data-filename", "title"):
        value = element.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return element.get_text(" ", strip=True) or extract_filename_from_url(url)


class DomScan:
    """
    One scan of a loaded page snapshot.

    Owns the visited-URL set for the run; the first element referencing a
    URL wins.
    """

    def __init__(
        self,
        html: str | None,
        page_url: str | None,
        course_id: str = "",
        course_name: str = "",
        max_results: int | None = None,
    ):
        self.html = html or ""
        self.page_url = page_url
        self.course_id = course_id
        self.course_name = course_name
        self.max_results = max_results
        self.visited: set[str] = set()
        self.items: list[ContentItem] = []

    @property
    def full(self) -> bool:
        return self.max_results is not None and len(self.items) >= self.max_results

    def _add(self, item: ContentItem) -> None:
        if self.full or item.url in self.visited:
            return
        self.visited.add(item.url)
        item.course_id = self.course_id
        item.course_name = self.course_name
        self.items.append(item)

    def run(self) -> list[ContentItem]:
        if not self.html:
            return []

        soup = parse_html(self.html)
        title = element_text(soup.title) or None

        for selector in DOM_SELECTORS:
            for element in soup.select(selector):
                if self.full:
                    return self.items

                href = element_url(element)
                if not href or href.startswith("#") or _is_hidden(element):
                    continue

                url = resolve_url(href, self.page_url)
                if not (is_downloadable_file(url) or "download" in url.lower()):
                    continue

                content_type = content_type_of(url)
                if content_type is ContentType.UNKNOWN and looks_like_pdf(url):
                    content_type = ContentType.PDF

                self._add(
                    ContentItem(
                        url=url,
                        name=sanitize_filename(_dom_name(element, url)),
                        content_type=content_type,
                        source=Source.DOM_COMPREHENSIVE,
                        mime_type=mime_type_of(url),
                        page_title=title,
                        element_type=element.name,
                    )
                )

        for url in find_pdf_urls(self.html):
            self._add(
                ContentItem(
                    url=url,
                    name=sanitize_filename(extract_filename_from_url(url)),
                    content_type=ContentType.PDF,
                    source=Source.PDF_TEXT_PATTERN,
                    mime_type="application/pdf",
                    page_title=title,
                )
            )

        for item in extract_canvas_file_urls(self.html, context="dom"):
            self._add(item)

        logger.info(f"DOM scan found {len(self.items)} files on {self.page_url or 'page'}")
        return self.items


def scan_dom(
    html: str | None,
    page_url: str | None,
    course_id: str = "",
    course_name: str = "",
    max_results: int | None = None,
) -> list[ContentItem]:
    """
    Scan a loaded page for file references.

    Used when the course id cannot be determined or the API adapters found
    nothing. Hidden elements are skipped and ``max_results`` caps the output.
    """
    return DomScan(html, page_url, course_id, course_name, max_results).run()


# =============================================================================
# Course identity
# =============================================================================


def course_id_from_url(url: str | None) -> str | None:
    """Extract the course id from a ``/courses/<id>`` URL."""
    if not url:
        return None
    match = _COURSE_ID_PATTERN.search(url)
    return match.group(1) if match else None


def course_name_from_html(html: str | None, course_id: str | None = None) -> str:
    """Find the course name in a page, falling back to ``Course_<id>``."""
    if html:
        soup = parse_html(html)
        for selector in COURSE_NAME_SELECTORS:
            text = element_text(soup.select_one(selector))
            text = _COURSE_PREFIX_PATTERN.sub("", text).strip()
            if text:
                return text
    return f"Course_{course_id or 'unknown'}"
