"""
HTML content mining.

Extracts file references (links, embedded PDFs, images) from rich-text
HTML fragments such as assignment descriptions, discussion messages and
page bodies, and converts rich text to readable plain text.

Architecture:
- Selector pass: ordered selectors from :mod:`selectors` over the parsed tree
- Image pass: ``<img>`` elements pointing at hosted files
- Regex pass: absolute PDF URLs in the raw HTML (inline scripts/JSON included)
- Per-call dedup by URL, first occurrence wins
"""

import copy
import html as html_lib
import logging
import re

from bs4 import BeautifulSoup, Tag
from markdownify import markdownify as md

from coursestack_common.scraper.classifier import (
    content_type_of,
    extract_filename_from_url,
    is_downloadable_file,
    looks_like_pdf,
    mime_type_of,
    resolve_url,
    sanitize_filename,
)
from coursestack_common.scraper.models import ContentItem, ContentType, Source
from coursestack_common.scraper.selectors import (
    FILE_PATH_MARKERS,
    FILE_SELECTORS,
    PDF_SELECTORS,
    URL_ATTRIBUTES,
)

logger = logging.getLogger(__name__)

# Absolute URLs containing ".pdf", tolerating trailing path/query noise
PDF_URL_PATTERN = re.compile(r"""https?://[^\s<>"'()]+\.pdf[^\s<>"']*""", re.IGNORECASE)

# Absolute platform file URLs (/files/<id> or /courses/<id>/files/<id>)
CANVAS_FILE_URL_PATTERN = re.compile(
    r"""https?://[^/\s<>"']+/(?:courses/\d+/)?files/\d+[^\s<>"']*""", re.IGNORECASE
)


def parse_html(html: str | None) -> BeautifulSoup:
    """
    Parse HTML leniently.

    lxml repairs malformed markup instead of failing, so this never raises
    for string input.
    """
    return BeautifulSoup(html or "", "lxml")


def element_url(element: Tag) -> str:
    """First non-empty URL-carrying attribute of an element."""
    for attr in URL_ATTRIBUTES:
        value = element.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def display_name(element: Tag, url: str) -> str:
    """
    Best-effort display name for a file reference.

    Priority: download attribute > visible text > title attribute > URL filename
    """
    download = element.get("download")
    if isinstance(download, str) and download.strip():
        return download.strip()

    text = element.get_text(" ", strip=True)
    if text:
        return text

    title = element.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()

    return extract_filename_from_url(url)


def _content_type(url: str) -> ContentType:
    content_type = content_type_of(url)
    if content_type is ContentType.UNKNOWN and looks_like_pdf(url):
        return ContentType.PDF
    return content_type


def find_pdf_urls(html: str | None) -> list[str]:
    """Unique absolute PDF URLs in raw HTML, in order of appearance."""
    if not html:
        return []
    urls: list[str] = []
    for match in PDF_URL_PATTERN.findall(html):
        url = html_lib.unescape(match)
        if url not in urls:
            urls.append(url)
    return urls


def _pattern_pdf_items(html: str, context: str | None, page_title: str | None) -> list[ContentItem]:
    return [
        ContentItem(
            url=url,
            name=sanitize_filename(extract_filename_from_url(url) or "document.pdf"),
            content_type=ContentType.PDF,
            source=Source.PDF_TEXT_PATTERN,
            mime_type="application/pdf",
            source_context=context,
            page_title=page_title,
        )
        for url in find_pdf_urls(html)
    ]


def _dedupe_by_url(items: list[ContentItem]) -> list[ContentItem]:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique


def extract_files_from_html(
    html: str | None,
    context: str | None = None,
    base_url: str | None = None,
    page_title: str | None = None,
) -> list[ContentItem]:
    """
    Extract file references from an HTML fragment.

    Args:
        html: Rich-text HTML (malformed markup is tolerated)
        context: Provenance label, e.g. ``assignment_Lab 1``
        base_url: Base URL for resolving relative references
        page_title: Title of the page the fragment belongs to

    Returns:
        Content items with url, name, content type and source set;
        course and folder fields are left for the caller
    """
    if not html:
        return []

    soup = parse_html(html)
    items: list[ContentItem] = []

    for selector in FILE_SELECTORS:
        for element in soup.select(selector):
            href = element_url(element)
            if not href or href.startswith("#") or not is_downloadable_file(href):
                continue

            url = resolve_url(href, base_url)
            items.append(
                ContentItem(
                    url=url,
                    name=sanitize_filename(display_name(element, url)),
                    content_type=_content_type(url),
                    source=Source.PDF_EMBEDDED if ".pdf" in href.lower() else Source.HTML_CONTENT,
                    mime_type=mime_type_of(url),
                    source_context=context,
                    page_title=page_title,
                    element_type=element.name,
                )
            )

    for img in soup.select("img[src]"):
        src = element_url(img)
        if not src:
            continue
        hosted = any(marker in src for marker in FILE_PATH_MARKERS)
        if not (hosted or is_downloadable_file(src)):
            continue

        url = resolve_url(src, base_url)
        name = img.get("alt") or img.get("title") or extract_filename_from_url(url)
        items.append(
            ContentItem(
                url=url,
                name=sanitize_filename(name),
                content_type=ContentType.IMAGE,
                source=Source.HTML_IMAGE,
                mime_type=mime_type_of(url),
                source_context=context,
                page_title=page_title,
                element_type="img",
            )
        )

    items.extend(_pattern_pdf_items(html, context, page_title))

    unique = _dedupe_by_url(items)
    if unique:
        logger.debug(f"Mined {len(unique)} file references from {context or 'html fragment'}")
    return unique


def extract_pdfs_from_html(
    html: str | None,
    context: str | None = None,
    base_url: str | None = None,
) -> list[ContentItem]:
    """
    Extract only PDF references from an HTML fragment.

    Names are given a ``.pdf`` suffix when missing.

    Args:
        html: Rich-text HTML
        context: Provenance label, e.g. ``page_Week 1``
        base_url: Base URL for resolving relative references

    Returns:
        PDF content items (``pdf_embedded`` from elements,
        ``pdf_text_pattern`` from the raw-text sweep)
    """
    if not html:
        return []

    soup = parse_html(html)
    items: list[ContentItem] = []

    for selector in PDF_SELECTORS:
        for element in soup.select(selector):
            href = element_url(element)
            if not href or "pdf" not in href.lower():
                continue

            url = resolve_url(href, base_url)
            filename = display_name(element, url) or "document.pdf"
            if not filename.lower().endswith(".pdf"):
                filename = f"{filename}.pdf"

            items.append(
                ContentItem(
                    url=url,
                    name=sanitize_filename(filename),
                    content_type=ContentType.PDF,
                    source=Source.PDF_EMBEDDED,
                    mime_type="application/pdf",
                    source_context=context,
                    element_type=element.name,
                )
            )

    items.extend(_pattern_pdf_items(html, context, None))
    return _dedupe_by_url(items)


def extract_canvas_file_urls(html: str | None, context: str | None = None) -> list[ContentItem]:
    """
    Find absolute platform file URLs in raw HTML.

    The content type is derived from the URL when possible and is otherwise
    left as unknown.
    """
    if not html:
        return []

    items = []
    for match in CANVAS_FILE_URL_PATTERN.findall(html):
        url = html_lib.unescape(match)
        filename = extract_filename_from_url(url)
        items.append(
            ContentItem(
                url=url,
                name=sanitize_filename(filename if filename != "download" else "canvas_file"),
                content_type=content_type_of(url),
                source=Source.CANVAS_FILE_EMBEDDED,
                mime_type=mime_type_of(url),
                source_context=context,
            )
        )
    return _dedupe_by_url(items)


def html_to_text(html: str | None) -> str:
    """
    Convert rich-text HTML to readable plain text.

    Scripts and styles are dropped, links and images are reduced to their
    text, and runs of blank lines collapse to one.

    Args:
        html: Rich-text HTML

    Returns:
        Plain text (empty string for empty input)
    """
    if not html:
        return ""

    soup = parse_html(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    body = soup.body or soup
    text = md(
        str(body),
        heading_style="ATX",
        bullets="-",
        escape_asterisks=False,
        escape_underscores=False,
        strip=["a", "img"],
    )

    lines = []
    prev_blank = False
    for line in text.split("\n"):
        line = line.rstrip()
        is_blank = not line.strip()
        if is_blank and prev_blank:
            continue
        lines.append(line)
        prev_blank = is_blank

    return "\n".join(lines).strip()


def element_text(element: Tag | None) -> str:
    """Visible text of an element with whitespace collapsed."""
    if element is None:
        return ""
    element = copy.copy(element)
    for tag in element.find_all(["script", "style"]):
        tag.decompose()
    return re.sub(r"\s+", " ", element.get_text(" ", strip=True)).strip()
