"""
Data models for the course extraction pipeline.

These models represent discovered files and normalized text as they flow
through the pipeline:
adapters -> aggregation -> export -> relay upload
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from coursestack_common import constants


class ContentType(str, Enum):
    """Coarse category of a discovered file."""

    PDF = "pdf"
    DOC = "doc"
    SLIDE = "slide"
    SHEET = "sheet"
    TEXT = "text"
    IMAGE = "image"
    MEDIA = "media"
    ARCHIVE = "archive"
    CODE = "code"
    UNKNOWN = "unknown"


class Source(str, Enum):
    """Where a content item was discovered."""

    API = "api"
    ASSIGNMENT = "assignment"
    ASSIGNMENT_EMBEDDED = "assignment_embedded"
    MODULE = "module"
    MODULE_EXTERNAL = "module_external"
    DISCUSSION = "discussion"
    DISCUSSION_REPLY = "discussion_reply"
    PAGE_SCAN = "page_scan"
    HTML_CONTENT = "html_content"
    HTML_IMAGE = "html_image"
    PDF_EMBEDDED = "pdf_embedded"
    PDF_TEXT_PATTERN = "pdf_text_pattern"
    CANVAS_FILE_EMBEDDED = "canvas_file_embedded"
    DOM_COMPREHENSIVE = "dom_comprehensive"


@dataclass
class ContentItem:
    """
    Canonical record of one discoverable file or embedded document.

    Identity is the (url, name) pair; see :attr:`key`.

    Attributes:
        url: Absolute URL, resolved against the document base
        name: Sanitized display/file name
        content_type: Coarse file category
        source: Discovery source
        folder_path: Logical grouping assigned during aggregation
        size_bytes: Size reported by a listing API (0 when unknown)
        course_id: Platform course id
        course_name: Course display name
        folder: Raw folder hint from the adapter (API folder id or bucket path)
        mime_type: MIME type as reported or derived from the URL
        source_context: Provenance label such as ``assignment_<name>``
        page_title: Title of the page the item was mined from
        assignment_name: Owning assignment
        module_name: Owning module
        element_type: HTML tag the item was found on
    """

    url: str
    name: str
    content_type: ContentType = ContentType.UNKNOWN
    source: Source = Source.PAGE_SCAN
    folder_path: str = ""
    size_bytes: int = 0
    course_id: str = ""
    course_name: str = ""
    folder: str | None = None
    mime_type: str = "application/octet-stream"
    source_context: str | None = None
    page_title: str | None = None
    assignment_name: str | None = None
    module_name: str | None = None
    element_type: str | None = None

    @property
    def key(self) -> str:
        """Deduplication key."""
        return f"{self.url}_{self.name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        data = {
            "url": self.url,
            "name": self.name,
            "content_type": self.content_type.value,
            "source": self.source.value,
            "folder_path": self.folder_path,
            "size_bytes": self.size_bytes,
            "course_id": self.course_id,
            "course_name": self.course_name,
            "mime_type": self.mime_type,
        }

        for attr in (
            "folder",
            "source_context",
            "page_title",
            "assignment_name",
            "module_name",
            "element_type",
        ):
            value = getattr(self, attr)
            if value:
                data[attr] = value

        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentItem":
        """Create ContentItem from a dictionary produced by :meth:`to_dict`."""
        return cls(
            url=data["url"],
            name=data["name"],
            content_type=ContentType(data.get("content_type", "unknown")),
            source=Source(data.get("source", "page_scan")),
            folder_path=data.get("folder_path", ""),
            size_bytes=max(int(data.get("size_bytes") or 0), 0),
            course_id=data.get("course_id", ""),
            course_name=data.get("course_name", ""),
            folder=data.get("folder"),
            mime_type=data.get("mime_type", "application/octet-stream"),
            source_context=data.get("source_context"),
            page_title=data.get("page_title"),
            assignment_name=data.get("assignment_name"),
            module_name=data.get("module_name"),
            element_type=data.get("element_type"),
        )


@dataclass
class TextRecord:
    """One unit of free text destined for the relay backend."""

    file_name: str
    file_type: str
    raw_text: str

    @property
    def file_size_bytes(self) -> int:
        """UTF-8 byte length of the text."""
        return len(self.raw_text.encode("utf-8"))


@dataclass
class ScrapeConfig:
    """
    Configuration for one course scrape.

    Attributes:
        base_url: Platform origin (e.g. https://school.instructure.com)
        token: Optional API bearer token
        session_cookie: Optional session cookie value
        cookie_name: Name of the session cookie
        relay_url: Relay backend URL
        request_delay_ms: Delay between nested per-item fetches
        endpoint_delay_ms: Delay between top-level endpoint fetches
        per_page: Page size for paginated listings
        request_timeout: Per-request timeout in seconds
        max_concurrent_downloads: Batch window for downloads and uploads
        download_delay_ms: Delay between batch windows
        include_assignments: Download files found in assignments
        include_modules: Download files found in modules
        include_discussions: Download files found in discussions
        include_files: Download files from the course file listing
        headers: Optional extra request headers
    """

    base_url: str = ""
    token: str | None = None
    session_cookie: str | None = None
    cookie_name: str = "canvas_session"
    relay_url: str = constants.DEFAULT_RELAY_URL
    request_delay_ms: int = constants.NESTED_REQUEST_DELAY_MS
    endpoint_delay_ms: int = constants.ENDPOINT_REQUEST_DELAY_MS
    per_page: int = constants.DEFAULT_PER_PAGE
    request_timeout: float = constants.REQUEST_TIMEOUT
    max_concurrent_downloads: int = constants.MAX_CONCURRENT_DOWNLOADS
    download_delay_ms: int = constants.DOWNLOAD_BATCH_DELAY_MS
    include_assignments: bool = True
    include_modules: bool = True
    include_discussions: bool = True
    include_files: bool = True
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (credentials included; mask before logging)."""
        return {
            "base_url": self.base_url,
            "token": self.token,
            "session_cookie": self.session_cookie,
            "cookie_name": self.cookie_name,
            "relay_url": self.relay_url,
            "request_delay_ms": self.request_delay_ms,
            "endpoint_delay_ms": self.endpoint_delay_ms,
            "per_page": self.per_page,
            "request_timeout": self.request_timeout,
            "max_concurrent_downloads": self.max_concurrent_downloads,
            "download_delay_ms": self.download_delay_ms,
            "include_assignments": self.include_assignments,
            "include_modules": self.include_modules,
            "include_discussions": self.include_discussions,
            "include_files": self.include_files,
            "headers": self.headers,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapeConfig":
        """Create ScrapeConfig from dictionary."""
        return cls(
            base_url=data.get("base_url", ""),
            token=data.get("token"),
            session_cookie=data.get("session_cookie"),
            cookie_name=data.get("cookie_name", "canvas_session"),
            relay_url=data.get("relay_url", constants.DEFAULT_RELAY_URL),
            request_delay_ms=data.get("request_delay_ms", constants.NESTED_REQUEST_DELAY_MS),
            endpoint_delay_ms=data.get("endpoint_delay_ms", constants.ENDPOINT_REQUEST_DELAY_MS),
            per_page=data.get("per_page", constants.DEFAULT_PER_PAGE),
            request_timeout=data.get("request_timeout", constants.REQUEST_TIMEOUT),
            max_concurrent_downloads=data.get(
                "max_concurrent_downloads", constants.MAX_CONCURRENT_DOWNLOADS
            ),
            download_delay_ms=data.get("download_delay_ms", constants.DOWNLOAD_BATCH_DELAY_MS),
            include_assignments=data.get("include_assignments", True),
            include_modules=data.get("include_modules", True),
            include_discussions=data.get("include_discussions", True),
            include_files=data.get("include_files", True),
            headers=data.get("headers", {}),
        )


# =============================================================================
# Course content (report model)
# =============================================================================


@dataclass
class CourseInfo:
    """Course-level metadata."""

    id: str | None = None
    name: str | None = None
    code: str | None = None
    term: str | None = None
    instructors: list[str] = field(default_factory=list)


@dataclass
class AssignmentRecord:
    """An assignment with its normalized description."""

    name: str
    description: str = ""
    due_date: str | None = None
    points: float | str | None = None
    url: str | None = None
    id: str | None = None
    attachments: list[ContentItem] = field(default_factory=list)


@dataclass
class DiscussionEntry:
    """One reply in a discussion thread."""

    message: str
    author: str | None = None
    created_at: str | None = None


@dataclass
class DiscussionRecord:
    """A discussion topic or announcement with its replies."""

    title: str
    message: str = ""
    author: str | None = None
    posted_at: str | None = None
    reply_count: int | None = None
    is_announcement: bool = False
    entries: list[DiscussionEntry] = field(default_factory=list)
    url: str | None = None
    id: str | None = None


@dataclass
class ModuleItemRecord:
    """One item inside a module."""

    title: str
    type: str | None = None
    content: str = ""
    url: str | None = None
    external_url: str | None = None


@dataclass
class ModuleRecord:
    """A course module and its items."""

    name: str
    state: str | None = None
    position: int | None = None
    items: list[ModuleItemRecord] = field(default_factory=list)
    url: str | None = None
    id: str | None = None


@dataclass
class PageRecord:
    """A wiki page with its normalized body."""

    title: str
    body: str = ""
    published: bool = False
    updated_at: str | None = None
    url: str | None = None


@dataclass
class FileRecord:
    """A file as listed by the course file listing."""

    name: str
    size: int = 0
    content_type: str | None = None
    url: str | None = None
    modified_at: str | None = None


@dataclass
class QuizRecord:
    """A quiz summary."""

    title: str
    description: str = ""
    instructions: str = ""
    points_possible: float | None = None
    question_count: int | None = None
    time_limit: int | None = None
    due_date: str | None = None


@dataclass
class PersonRecord:
    """A course participant."""

    name: str
    email: str | None = None
    roles: list[str] = field(default_factory=list)


@dataclass
class CalendarEventRecord:
    """A calendar event attached to the course."""

    title: str
    description: str = ""
    start_at: str | None = None
    end_at: str | None = None
    location: str | None = None


@dataclass
class GradeRecord:
    """A grade row scraped from the grades page."""

    assignment: str
    grade: str = ""
    points: str = ""


@dataclass
class EmbeddedRef:
    """A reference to embedded media or an external resource."""

    url: str
    title: str | None = None
    kind: str | None = None


@dataclass
class EmbeddedContent:
    """Embedded media references found on the loaded page."""

    images: list[EmbeddedRef] = field(default_factory=list)
    videos: list[EmbeddedRef] = field(default_factory=list)
    links: list[EmbeddedRef] = field(default_factory=list)
    pdfs: list[EmbeddedRef] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no embedded reference of any kind was found."""
        return not (self.images or self.videos or self.links or self.pdfs)


@dataclass
class ExtractedContent:
    """
    Everything extracted from one course, ready for reporting.

    Attributes:
        course: Course metadata
        syllabus: Normalized syllabus text
        announcements: Announcement threads
        assignments: Assignments
        discussions: Non-announcement discussion threads
        modules: Modules with items
        pages: Wiki pages
        files: File listing
        quizzes: Quizzes
        people: Participants
        calendar: Calendar events
        grades: Grade rows
        embedded: Embedded media references
        items: Canonical content items from aggregation
        extracted_at: Extraction timestamp (ISO 8601)
        errors: Non-fatal errors encountered during extraction
    """

    course: CourseInfo = field(default_factory=CourseInfo)
    syllabus: str = ""
    announcements: list[DiscussionRecord] = field(default_factory=list)
    assignments: list[AssignmentRecord] = field(default_factory=list)
    discussions: list[DiscussionRecord] = field(default_factory=list)
    modules: list[ModuleRecord] = field(default_factory=list)
    pages: list[PageRecord] = field(default_factory=list)
    files: list[FileRecord] = field(default_factory=list)
    quizzes: list[QuizRecord] = field(default_factory=list)
    people: list[PersonRecord] = field(default_factory=list)
    calendar: list[CalendarEventRecord] = field(default_factory=list)
    grades: list[GradeRecord] = field(default_factory=list)
    embedded: EmbeddedContent = field(default_factory=EmbeddedContent)
    items: list[ContentItem] = field(default_factory=list)
    extracted_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    errors: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        """Per-category counts for status reporting."""
        return {
            "assignments": len(self.assignments),
            "discussions": len(self.discussions),
            "announcements": len(self.announcements),
            "modules": len(self.modules),
            "files": len(self.files),
            "pages": len(self.pages),
            "quizzes": len(self.quizzes),
            "people": len(self.people),
        }


@dataclass
class ScrapeResult:
    """
    Outcome of one course scrape.

    Callers check ``success`` rather than catching exceptions.

    Attributes:
        success: False when nothing at all was found
        message: Human-readable status
        course_id: Resolved course id (None when undeterminable)
        course_name: Resolved course name
        items: Canonical, deduplicated content items
        counts_by_source: Item counts keyed by source
        counts_by_content_type: Item counts keyed by content type
        used_dom_fallback: True when items came from the DOM adapter
    """

    success: bool
    message: str
    course_id: str | None = None
    course_name: str = ""
    items: list[ContentItem] = field(default_factory=list)
    counts_by_source: dict[str, int] = field(default_factory=dict)
    counts_by_content_type: dict[str, int] = field(default_factory=dict)
    used_dom_fallback: bool = False

    @property
    def total(self) -> int:
        return len(self.items)
