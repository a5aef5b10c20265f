"""
Typed decoders for platform REST payloads.

Each ``Api*`` dataclass decodes one JSON object through ``from_dict``.
Field lookup is case-insensitive so that ``display_name``, ``Display_Name``
and ``DISPLAY_NAME`` all resolve. Missing optional fields decode to ``None``
or an empty value; a payload of the wrong shape raises
:class:`PayloadDecodeError`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, TypeVar

from coursestack_common.exceptions import PayloadDecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _field(data: dict[str, Any], *names: str, default: Any = None) -> Any:
    """Look up the first present, non-null field among ``names``, ignoring case."""
    for name in names:
        value = data.get(name)
        if value is not None:
            return value

    lowered = {str(k).lower(): v for k, v in data.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return value

    return default


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_int(value: Any, default: int | None = 0) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _require_dict(cls: type, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise PayloadDecodeError(f"{cls.__name__}: expected object, got {type(data).__name__}")
    return data


def decode_list(cls: type[T], payload: Any) -> list[T]:
    """
    Decode a JSON array into typed records.

    Malformed elements are skipped with a warning so one bad entry does not
    discard the rest of the listing.

    Args:
        cls: An ``Api*`` decoder class
        payload: Decoded JSON (expected to be a list)

    Returns:
        Decoded records in payload order

    Raises:
        PayloadDecodeError: If the payload is not a list
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise PayloadDecodeError(f"{cls.__name__}: expected array, got {type(payload).__name__}")

    records = []
    for entry in payload:
        try:
            records.append(cls.from_dict(entry))
        except PayloadDecodeError as e:
            logger.warning(f"Skipping malformed entry: {e}")
    return records


@dataclass
class ApiFile:
    """A file object from the files listing or a file detail fetch."""

    id: str | None = None
    display_name: str | None = None
    filename: str | None = None
    url: str | None = None
    size: int = 0
    content_type: str | None = None
    folder_id: str | None = None
    updated_at: str | None = None

    @property
    def name(self) -> str | None:
        return self.display_name or self.filename

    @classmethod
    def from_dict(cls, data: Any):
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            display_name=_as_str(_field(data, "display_name", "displayName")),
            filename=_as_str(_field(data, "filename", "name")),
            url=_as_str(_field(data, "url", "download_url")),
            size=max(_as_int(_field(data, "size")) or 0, 0),
            content_type=_as_str(_field(data, "content-type", "content_type", "mime_class")),
            folder_id=_as_str(_field(data, "folder_id")),
            updated_at=_as_str(_field(data, "updated_at", "modified_at")),
        )


class ApiAttachment(ApiFile):
    """A file attached to an assignment or discussion (same shape as a file)."""


@dataclass
class ApiFolder:
    id: str | None = None
    name: str | None = None
    full_name: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiFolder":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            name=_as_str(_field(data, "name")),
            full_name=_as_str(_field(data, "full_name")),
        )


def _attachments(data: dict[str, Any]) -> list[ApiAttachment]:
    raw = _field(data, "attachments", default=[])
    single = _field(data, "attachment")
    if isinstance(single, dict):
        raw = [*raw, single] if isinstance(raw, list) else [single]
    if not isinstance(raw, list):
        return []
    return decode_list(ApiAttachment, raw)


@dataclass
class ApiAssignment:
    id: str | None = None
    name: str = ""
    description: str | None = None
    due_at: str | None = None
    points_possible: float | None = None
    html_url: str | None = None
    attachments: list[ApiAttachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiAssignment":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            name=_as_str(_field(data, "name", "title")) or "",
            description=_as_str(_field(data, "description")),
            due_at=_as_str(_field(data, "due_at")),
            points_possible=_as_float(_field(data, "points_possible")),
            html_url=_as_str(_field(data, "html_url")),
            attachments=_attachments(data),
        )


@dataclass
class ApiModuleItem:
    id: str | None = None
    title: str = ""
    type: str | None = None
    content_id: str | None = None
    url: str | None = None
    html_url: str | None = None
    external_url: str | None = None
    page_url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiModuleItem":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            title=_as_str(_field(data, "title")) or "",
            type=_as_str(_field(data, "type")),
            content_id=_as_str(_field(data, "content_id")),
            url=_as_str(_field(data, "url")),
            html_url=_as_str(_field(data, "html_url")),
            external_url=_as_str(_field(data, "external_url")),
            page_url=_as_str(_field(data, "page_url")),
        )


@dataclass
class ApiModule:
    id: str | None = None
    name: str = ""
    state: str | None = None
    position: int | None = None
    items: list[ApiModuleItem] = field(default_factory=list)
    items_url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiModule":
        data = _require_dict(cls, data)
        items = _field(data, "items", default=[])
        return cls(
            id=_as_str(_field(data, "id")),
            name=_as_str(_field(data, "name")) or "",
            state=_as_str(_field(data, "state", "workflow_state")),
            position=_as_int(_field(data, "position"), default=None),
            items=decode_list(ApiModuleItem, items) if isinstance(items, list) else [],
            items_url=_as_str(_field(data, "items_url")),
        )


def _author_name(data: dict[str, Any]) -> str | None:
    author = _field(data, "author")
    if isinstance(author, dict):
        name = _field(author, "display_name", "name")
        if name:
            return str(name)
    return _as_str(_field(data, "user_name"))


@dataclass
class ApiDiscussionEntry:
    id: str | None = None
    message: str | None = None
    author: str | None = None
    created_at: str | None = None
    attachments: list[ApiAttachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiDiscussionEntry":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            message=_as_str(_field(data, "message")),
            author=_author_name(data),
            created_at=_as_str(_field(data, "created_at")),
            attachments=_attachments(data),
        )


@dataclass
class ApiDiscussionTopic:
    id: str | None = None
    title: str = ""
    message: str | None = None
    author: str | None = None
    posted_at: str | None = None
    reply_count: int | None = None
    is_announcement: bool = False
    html_url: str | None = None
    attachments: list[ApiAttachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiDiscussionTopic":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            title=_as_str(_field(data, "title")) or "",
            message=_as_str(_field(data, "message")),
            author=_author_name(data),
            posted_at=_as_str(_field(data, "posted_at", "created_at")),
            reply_count=_as_int(_field(data, "discussion_subentry_count"), default=None),
            is_announcement=_as_bool(_field(data, "is_announcement", default=False)),
            html_url=_as_str(_field(data, "html_url")),
            attachments=_attachments(data),
        )


@dataclass
class ApiPage:
    url: str | None = None
    title: str = ""
    body: str | None = None
    published: bool = False
    updated_at: str | None = None
    html_url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiPage":
        data = _require_dict(cls, data)
        return cls(
            url=_as_str(_field(data, "url", "page_url")),
            title=_as_str(_field(data, "title")) or "",
            body=_as_str(_field(data, "body")),
            published=_as_bool(_field(data, "published", default=False)),
            updated_at=_as_str(_field(data, "updated_at")),
            html_url=_as_str(_field(data, "html_url")),
        )


@dataclass
class ApiCourse:
    id: str | None = None
    name: str | None = None
    course_code: str | None = None
    term: str | None = None
    syllabus_body: str | None = None
    teachers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiCourse":
        data = _require_dict(cls, data)

        term = _field(data, "term")
        if isinstance(term, dict):
            term = _field(term, "name")

        teachers = []
        for teacher in _field(data, "teachers", default=[]) or []:
            if isinstance(teacher, dict):
                name = _field(teacher, "display_name", "name")
                if name:
                    teachers.append(str(name))

        return cls(
            id=_as_str(_field(data, "id")),
            name=_as_str(_field(data, "name")),
            course_code=_as_str(_field(data, "course_code")),
            term=_as_str(term),
            syllabus_body=_as_str(_field(data, "syllabus_body")),
            teachers=teachers,
        )


@dataclass
class ApiQuiz:
    id: str | None = None
    title: str = ""
    description: str | None = None
    instructions: str | None = None
    points_possible: float | None = None
    question_count: int | None = None
    time_limit: int | None = None
    due_at: str | None = None
    html_url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiQuiz":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            title=_as_str(_field(data, "title")) or "",
            description=_as_str(_field(data, "description")),
            instructions=_as_str(_field(data, "instructions")),
            points_possible=_as_float(_field(data, "points_possible")),
            question_count=_as_int(_field(data, "question_count"), default=None),
            time_limit=_as_int(_field(data, "time_limit"), default=None),
            due_at=_as_str(_field(data, "due_at")),
            html_url=_as_str(_field(data, "html_url")),
        )


@dataclass
class ApiUser:
    id: str | None = None
    name: str = ""
    email: str | None = None
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ApiUser":
        data = _require_dict(cls, data)

        roles = []
        for enrollment in _field(data, "enrollments", default=[]) or []:
            if isinstance(enrollment, dict):
                role = _field(enrollment, "role", "type")
                if role and str(role) not in roles:
                    roles.append(str(role))

        return cls(
            id=_as_str(_field(data, "id")),
            name=_as_str(_field(data, "name", "display_name", "short_name")) or "",
            email=_as_str(_field(data, "email", "login_id")),
            roles=roles,
        )


@dataclass
class ApiCalendarEvent:
    id: str | None = None
    title: str = ""
    description: str | None = None
    start_at: str | None = None
    end_at: str | None = None
    location: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ApiCalendarEvent":
        data = _require_dict(cls, data)
        return cls(
            id=_as_str(_field(data, "id")),
            title=_as_str(_field(data, "title")) or "",
            description=_as_str(_field(data, "description")),
            start_at=_as_str(_field(data, "start_at")),
            end_at=_as_str(_field(data, "end_at")),
            location=_as_str(_field(data, "location_name", "location_address")),
        )
