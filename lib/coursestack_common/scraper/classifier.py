"""
URL and filename classification.

Pure functions deciding whether a URL names a downloadable file, what kind
of file it is, and how to turn names into safe file/folder names. None of
these functions raise: malformed or missing input yields a conservative
default.
"""

import re
from urllib.parse import unquote, urljoin, urlsplit

from coursestack_common import constants
from coursestack_common.scraper.models import ContentType
from coursestack_common.scraper.selectors import (
    DEFAULT_MIME_TYPE,
    FILE_PATH_MARKERS,
    MIME_TYPES,
    TYPE_BY_EXTENSION,
)

# ".<ext>" followed by end of string or a URL delimiter
_EXTENSION_PATTERN = re.compile(
    r"\.("
    + "|".join(sorted(map(re.escape, TYPE_BY_EXTENSION), key=len, reverse=True))
    + r")(?=$|[?&#/=;])",
    re.IGNORECASE,
)

_CODE_MIME_TYPES = ("application/json", "application/xml", "application/javascript")

# Characters illegal in file paths on at least one platform, plus control chars
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")

FILENAME = "filename"
PATH_COMPONENT = "path-component"

_LENGTH_LIMITS = {
    FILENAME: constants.MAX_FILENAME_LENGTH,
    PATH_COMPONENT: constants.MAX_PATH_COMPONENT_LENGTH,
}

_FALLBACK_NAMES = {FILENAME: "untitled", PATH_COMPONENT: "unknown"}


def resolve_url(href: str | None, base: str | None) -> str:
    """
    Resolve a possibly-relative reference against a base URL.

    Args:
        href: Reference as found in the document
        base: Document base URL

    Returns:
        Absolute URL, or ``href`` unchanged when it cannot be resolved
    """
    if not href:
        return href or ""
    if not base:
        return href
    try:
        return urljoin(base, href.strip())
    except (ValueError, TypeError, AttributeError):
        return href


def _url_target(url: str) -> str:
    """Path plus query of a URL; the whole string if it does not parse."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if parts.query:
        return f"{parts.path}?{parts.query}"
    return parts.path


def _extension_of(url: str | None) -> str | None:
    """Last recognized file extension in the URL's path or query."""
    if not url or not isinstance(url, str):
        return None
    matches = _EXTENSION_PATTERN.findall(_url_target(url))
    if not matches:
        return None
    return matches[-1].lower()


def is_downloadable_file(url: str | None) -> bool:
    """
    Check whether a URL points at a downloadable file.

    True for platform file paths (``/files/``, ``/api/v1/files/``) and for
    URLs whose path or query carries a recognized file extension.
    """
    if not url or not isinstance(url, str):
        return False
    lowered = url.lower()
    if any(marker in lowered for marker in FILE_PATH_MARKERS):
        return True
    return _extension_of(url) is not None


def content_type_of(url: str | None) -> ContentType:
    """Map a URL to its content category (``unknown`` when unrecognized)."""
    ext = _extension_of(url)
    if ext is None:
        return ContentType.UNKNOWN
    return TYPE_BY_EXTENSION.get(ext, ContentType.UNKNOWN)


def mime_type_of(url: str | None) -> str:
    """Map a URL to a MIME type, defaulting to ``application/octet-stream``."""
    ext = _extension_of(url)
    if ext is None:
        return DEFAULT_MIME_TYPE
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def content_type_from_mime(mime_type: str | None) -> ContentType:
    """Map a MIME type reported by the platform to a content category."""
    if not mime_type or not isinstance(mime_type, str):
        return ContentType.UNKNOWN

    mime = mime_type.split(";")[0].strip().lower()

    if mime == "application/pdf":
        return ContentType.PDF
    if "presentation" in mime or "powerpoint" in mime:
        return ContentType.SLIDE
    if "spreadsheet" in mime or "excel" in mime or mime == "text/csv":
        return ContentType.SHEET
    if "word" in mime or "opendocument.text" in mime or mime == "application/rtf":
        return ContentType.DOC
    if mime.startswith("image/"):
        return ContentType.IMAGE
    if mime.startswith(("audio/", "video/")):
        return ContentType.MEDIA
    if any(token in mime for token in ("zip", "rar", "tar", "gzip", "7z")):
        return ContentType.ARCHIVE
    if mime == "text/plain":
        return ContentType.TEXT
    if mime.startswith("text/") or mime in _CODE_MIME_TYPES:
        return ContentType.CODE
    return ContentType.UNKNOWN


def looks_like_pdf(url: str | None) -> bool:
    """Check for PDF hints anywhere in the URL."""
    if not url or not isinstance(url, str):
        return False
    lowered = url.lower()
    return ".pdf" in lowered or "preview=pdf" in lowered or "application%2fpdf" in lowered


def extract_filename_from_url(url: str | None) -> str:
    """
    Derive a filename from the last path segment of a URL.

    The segment is URL-decoded and the query string is dropped.

    Returns:
        Filename, or ``"download"`` when none can be derived
    """
    if not url or not isinstance(url, str):
        return "download"
    try:
        path = unquote(urlsplit(url).path)
    except ValueError:
        return "download"

    segment = path.split("/")[-1].split("?")[0]
    return segment or "download"


def sanitize(name: str | None, kind: str = FILENAME) -> str:
    """
    Turn an arbitrary display string into a safe file or folder name.

    Long free text (contains spaces and is longer than 50 characters) is
    first reduced to its first five words. Illegal path characters become
    ``_``, whitespace and repeated underscores collapse to a single ``_``,
    and leading/trailing underscores are trimmed. The result is bounded to
    100 characters for filenames and 50 for path components.

    The function is idempotent: ``sanitize(sanitize(x)) == sanitize(x)``.

    Args:
        name: Raw name (may be None or empty)
        kind: ``"filename"`` or ``"path-component"``

    Returns:
        Sanitized name; ``"untitled"`` (filename) or ``"unknown"``
        (path component) when nothing usable remains

    Raises:
        ValueError: If ``kind`` is not recognized
    """
    if kind not in _LENGTH_LIMITS:
        raise ValueError(f"Unknown sanitize kind: {kind}")

    if not name:
        return _FALLBACK_NAMES[kind]

    text = str(name)
    if " " in text and len(text) > constants.FREE_TEXT_NAME_THRESHOLD:
        text = "_".join(text.split()[: constants.FREE_TEXT_NAME_WORDS])

    text = _ILLEGAL_CHARS.sub("_", text)
    text = _WHITESPACE.sub("_", text)
    text = _REPEATED_UNDERSCORES.sub("_", text)
    text = text.strip("_")
    text = text[: _LENGTH_LIMITS[kind]].strip("_")

    return text or _FALLBACK_NAMES[kind]


def sanitize_filename(name: str | None) -> str:
    """Sanitize a filename (100 character bound)."""
    return sanitize(name, FILENAME)


def sanitize_path_component(name: str | None) -> str:
    """Sanitize a folder/path component (50 character bound)."""
    return sanitize(name, PATH_COMPONENT)
