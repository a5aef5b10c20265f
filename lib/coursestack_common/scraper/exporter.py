"""
Export of extracted course content.

Renders :class:`ExtractedContent` as a sectioned plain-text report, splits
it into per-unit :class:`TextRecord` objects, and shapes those records into
the flat upload records accepted by the relay backend.

Report layout (fixed order, sections 2-13 only when non-empty):
header, table of contents, 1 course information, 2 syllabus,
3 announcements, 4 assignments, 5 discussions, 6 modules, 7 pages,
8 files, 9 quizzes, 10 people, 11 calendar events, 12 grades,
13 embedded content, footer with totals.
"""

import re
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from coursestack_common import constants
from coursestack_common.scraper.classifier import sanitize_path_component
from coursestack_common.scraper.models import (
    ContentItem,
    DiscussionRecord,
    ExtractedContent,
    TextRecord,
)

WIDE_RULE = "=" * 80
SECTION_RULE = "=" * 40
TOC_RULE = "-" * 40
ITEM_RULE = "-" * 30

TABLE_OF_CONTENTS = (
    "Course Information",
    "Syllabus",
    "Announcements",
    "Assignments",
    "Discussions",
    "Modules",
    "Pages",
    "Files",
    "Quizzes",
    "People",
    "Calendar Events",
    "Grades",
    "Embedded Content",
)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")
_NON_WORD = re.compile(r"\W+")


def format_file_size(size_bytes: int | None) -> str:
    """
    Render a byte count for humans.

    Examples: ``0 Bytes``, ``1 KB``, ``1.5 MB`` (two decimals at most,
    trailing zeros dropped).
    """
    if not size_bytes or size_bytes <= 0:
        return "0 Bytes"
    value = float(size_bytes)
    exponent = 0
    while value >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[exponent]}"


def _value(value: Any, placeholder: str = "N/A") -> str:
    """Render a field, substituting ``placeholder`` for missing values."""
    if value is None or value == "":
        return placeholder
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _slug(text: str | None) -> str:
    return _NON_WORD.sub("_", (text or "").strip()).strip("_").lower() or "untitled"


# =============================================================================
# Report sections
# =============================================================================


def _header(content: ExtractedContent) -> list[str]:
    course = content.course
    lines = [
        WIDE_RULE,
        "CANVAS COURSE CONTENT EXPORT",
        f"Course: {_value(course.name, 'Unknown')}",
        f"Course Code: {_value(course.code, 'Unknown')}",
        f"Term: {_value(course.term, 'Unknown')}",
        f"Extracted: {content.extracted_at}",
        WIDE_RULE,
        "",
        "TABLE OF CONTENTS",
        TOC_RULE,
    ]
    lines.extend(f"{number}. {title}" for number, title in enumerate(TABLE_OF_CONTENTS, start=1))
    lines.append("")
    return lines


def _course_section(content: ExtractedContent) -> list[str]:
    course = content.course
    return [
        f"Name: {_value(course.name)}",
        f"Code: {_value(course.code)}",
        f"Term: {_value(course.term)}",
        f"Instructors: {_value(', '.join(course.instructors))}",
        f"Course ID: {_value(course.id)}",
        "",
    ]


def _syllabus_section(content: ExtractedContent) -> list[str]:
    return [content.syllabus, ""]


def _announcements_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, announcement in enumerate(content.announcements, start=1):
        lines += [
            f"{index}. {announcement.title}",
            f"Posted: {_value(announcement.posted_at, 'Unknown')}",
            f"Author: {_value(announcement.author, 'Unknown')}",
            ITEM_RULE,
            announcement.message,
            "",
        ]
    return lines


def _assignments_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, assignment in enumerate(content.assignments, start=1):
        lines += [
            f"{index}. {assignment.name}",
            f"Due: {_value(assignment.due_date, 'No due date')}",
            f"Points: {_value(assignment.points)}",
            ITEM_RULE,
            assignment.description or "No description available",
        ]
        if assignment.attachments:
            lines.append("Attachments:")
            lines += [f"  - {item.name} - {item.url}" for item in assignment.attachments]
        lines.append("")
    return lines


def _replies(discussion: DiscussionRecord) -> list[str]:
    if not discussion.entries:
        return []
    lines = ["", "Replies:"]
    for index, entry in enumerate(discussion.entries, start=1):
        posted = _value(entry.created_at, "Unknown date")
        lines += [
            f"  {index}. {_value(entry.author, 'Unknown')} ({posted})",
            f"     {entry.message}",
        ]
    return lines


def _discussions_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, discussion in enumerate(content.discussions, start=1):
        reply_count = discussion.reply_count or len(discussion.entries)
        lines += [
            f"{index}. {discussion.title}",
            f"Author: {_value(discussion.author, 'Unknown')}",
            f"Posted: {_value(discussion.posted_at, 'Unknown')}",
            f"Replies: {reply_count}",
            ITEM_RULE,
            discussion.message,
            *_replies(discussion),
            "",
        ]
    return lines


def _modules_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, module in enumerate(content.modules, start=1):
        lines += [f"{index}. {module.name}", f"State: {_value(module.state)}", ITEM_RULE]
        for item_index, item in enumerate(module.items, start=1):
            lines.append(f"  {item_index}. {item.title} ({_value(item.type, 'Unknown type')})")
            if item.content:
                lines.append(f"     {item.content}")
            if item.external_url:
                lines.append(f"     URL: {item.external_url}")
        lines.append("")
    return lines


def _pages_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, page in enumerate(content.pages, start=1):
        lines += [
            f"{index}. {page.title}",
            f"Published: {'Yes' if page.published else 'No'}",
            f"Updated: {_value(page.updated_at, 'Unknown')}",
            ITEM_RULE,
            page.body,
            "",
        ]
    return lines


def _files_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, file in enumerate(content.files, start=1):
        lines += [
            f"{index}. {file.name}",
            f"Size: {format_file_size(file.size) if file.size else 'Unknown'}",
            f"Type: {_value(file.content_type, 'Unknown')}",
            f"URL: {_value(file.url)}",
            f"Modified: {_value(file.modified_at, 'Unknown')}",
            "",
        ]
    return lines


def _quizzes_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, quiz in enumerate(content.quizzes, start=1):
        time_limit = f"{quiz.time_limit} minutes" if quiz.time_limit else "No limit"
        lines += [
            f"{index}. {quiz.title}",
            f"Points: {_value(quiz.points_possible)}",
            f"Questions: {_value(quiz.question_count)}",
            f"Time Limit: {time_limit}",
            f"Due: {_value(quiz.due_date, 'No due date')}",
            ITEM_RULE,
            quiz.description,
        ]
        if quiz.instructions:
            lines += ["Instructions:", quiz.instructions]
        lines.append("")
    return lines


def _people_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, person in enumerate(content.people, start=1):
        lines += [
            f"{index}. {person.name}",
            f"Email: {_value(person.email)}",
            f"Role: {_value(', '.join(person.roles))}",
            "",
        ]
    return lines


def _calendar_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, event in enumerate(content.calendar, start=1):
        lines += [
            f"{index}. {event.title}",
            f"Start: {_value(event.start_at)}",
            f"End: {_value(event.end_at)}",
            f"Location: {_value(event.location)}",
            ITEM_RULE,
            event.description,
            "",
        ]
    return lines


def _grades_section(content: ExtractedContent) -> list[str]:
    lines = []
    for index, grade in enumerate(content.grades, start=1):
        lines += [
            f"{index}. {grade.assignment}",
            f"Grade: {grade.grade}",
            f"Points: {grade.points}",
            "",
        ]
    return lines


def _embedded_section(content: ExtractedContent) -> list[str]:
    embedded = content.embedded
    groups = (
        ("Images", embedded.images),
        ("Videos", embedded.videos),
        ("External Links", embedded.links),
        ("PDF Documents", embedded.pdfs),
    )
    lines = []
    for label, refs in groups:
        if not refs:
            continue
        lines.append(f"{label}:")
        lines += [
            f"  {index}. {ref.title or 'Untitled'} - {ref.url}"
            for index, ref in enumerate(refs, start=1)
        ]
        lines.append("")
    return lines


# (number, heading, has data, renderer); course information is always present
_SECTIONS: tuple[tuple[int, str, Callable[[ExtractedContent], bool], Callable], ...] = (
    (1, "COURSE INFORMATION", lambda c: True, _course_section),
    (2, "SYLLABUS", lambda c: bool(c.syllabus), _syllabus_section),
    (3, "ANNOUNCEMENTS", lambda c: bool(c.announcements), _announcements_section),
    (4, "ASSIGNMENTS", lambda c: bool(c.assignments), _assignments_section),
    (5, "DISCUSSIONS", lambda c: bool(c.discussions), _discussions_section),
    (6, "MODULES", lambda c: bool(c.modules), _modules_section),
    (7, "PAGES", lambda c: bool(c.pages), _pages_section),
    (8, "FILES", lambda c: bool(c.files), _files_section),
    (9, "QUIZZES", lambda c: bool(c.quizzes), _quizzes_section),
    (10, "PEOPLE", lambda c: bool(c.people), _people_section),
    (11, "CALENDAR EVENTS", lambda c: bool(c.calendar), _calendar_section),
    (12, "GRADES", lambda c: bool(c.grades), _grades_section),
    (13, "EMBEDDED CONTENT", lambda c: not c.embedded.is_empty(), _embedded_section),
)


def _footer(content: ExtractedContent) -> list[str]:
    return [
        "",
        WIDE_RULE,
        "END OF EXPORT",
        f"Total Assignments: {len(content.assignments)}",
        f"Total Discussions: {len(content.discussions)}",
        f"Total Modules: {len(content.modules)}",
        f"Total Files: {len(content.files)}",
        f"Total Pages: {len(content.pages)}",
        f"Total People: {len(content.people)}",
        WIDE_RULE,
    ]


def generate_report(content: ExtractedContent) -> str:
    """
    Render the full plain-text report.

    Output is deterministic for a given input; the timestamp comes from
    ``content.extracted_at``.

    Args:
        content: Extracted course content

    Returns:
        Report text ending with a newline
    """
    lines = _header(content)
    for number, heading, has_data, render in _SECTIONS:
        if not has_data(content):
            continue
        lines += [f"{number}. {heading}", SECTION_RULE]
        lines += render(content)
    lines += _footer(content)
    return "\n".join(lines) + "\n"


def report_filename(course_name: str | None, when: datetime) -> str:
    """File name for a saved report.

    e.g. ``Biology_101_Complete_Export_2024-01-01T10-00-00.txt``
    """
    timestamp = re.sub(r"[:.]", "-", when.isoformat())
    name = sanitize_path_component(course_name or "Canvas_Course")
    return f"{name}_Complete_Export_{timestamp}.txt"


# =============================================================================
# Text and upload records
# =============================================================================


def _discussion_text(kind: str, discussion: DiscussionRecord) -> str:
    lines = [
        f"{kind}: {discussion.title}",
        f"Author: {_value(discussion.author, 'Unknown')}",
        f"Posted: {_value(discussion.posted_at, 'Unknown')}",
        "",
        discussion.message,
        *_replies(discussion),
    ]
    return "\n".join(lines).strip()


def _file_reference_text(item: ContentItem) -> str:
    lines = [
        f"File Reference: {item.name}",
        f"URL: {item.url}",
        f"Type: {item.content_type.value}",
        f"Source: {item.source.value}",
    ]
    if item.folder_path:
        lines.append(f"Folder: {item.folder_path}")
    if item.page_title:
        lines.append(f"Found on: {item.page_title}")
    return "\n".join(lines)


def to_text_records(
    content: ExtractedContent,
    items: Iterable[ContentItem] | None = None,
) -> list[TextRecord]:
    """
    Split extracted content into one text record per unit.

    Units: the syllabus, each announcement, assignment, discussion (with
    replies), module, page, quiz and calendar event, plus one file-reference
    record per content item when ``items`` is given.

    Args:
        content: Extracted course content
        items: Canonical content items (defaults to ``content.items``)

    Returns:
        Text records in report order
    """
    records: list[TextRecord] = []

    if content.syllabus:
        records.append(TextRecord("syllabus.txt", "syllabus", content.syllabus))

    for announcement in content.announcements:
        records.append(
            TextRecord(
                f"announcement_{_slug(announcement.title)}.txt",
                "announcement",
                _discussion_text("Announcement", announcement),
            )
        )

    for assignment in content.assignments:
        text = "\n".join(
            [
                f"Assignment: {assignment.name}",
                f"Due: {_value(assignment.due_date, 'No due date')}",
                f"Points: {_value(assignment.points)}",
                "",
                assignment.description or "No description available",
            ]
        )
        records.append(TextRecord(f"assignment_{_slug(assignment.name)}.txt", "assignment", text))

    for discussion in content.discussions:
        records.append(
            TextRecord(
                f"discussion_{_slug(discussion.title)}.txt",
                "discussion",
                _discussion_text("Discussion", discussion),
            )
        )

    for module in content.modules:
        lines = [f"Module: {module.name}", ""]
        for item in module.items:
            lines.append(f"- {item.title} ({_value(item.type, 'Unknown type')})")
            if item.content:
                lines.append(item.content)
            if item.external_url:
                lines.append(f"URL: {item.external_url}")
        records.append(TextRecord(f"module_{_slug(module.name)}.txt", "module", "\n".join(lines)))

    for page in content.pages:
        records.append(
            TextRecord(
                f"page_{_slug(page.title)}.txt", "page", f"Page: {page.title}\n\n{page.body}"
            )
        )

    for quiz in content.quizzes:
        due = _value(quiz.due_date, "No due date")
        text = f"Quiz: {quiz.title}\nDue: {due}\n\n{quiz.description}"
        if quiz.instructions:
            text += f"\n\nInstructions:\n{quiz.instructions}"
        records.append(TextRecord(f"quiz_{_slug(quiz.title)}.txt", "quiz", text))

    for event in content.calendar:
        text = (
            f"Event: {event.title}\nStart: {_value(event.start_at)}\n"
            f"End: {_value(event.end_at)}\nLocation: {_value(event.location)}\n\n"
            f"{event.description}"
        )
        records.append(TextRecord(f"event_{_slug(event.title)}.txt", "calendar_event", text))

    for item in content.items if items is None else items:
        records.append(
            TextRecord(
                f"file_ref_{_slug(item.name)}.txt", "file_reference", _file_reference_text(item)
            )
        )

    return records


def student_id_for_course(course_id: str | None) -> str:
    """Relay student id for a course: ``student_course_<id>``."""
    return f"{constants.STUDENT_ID_PREFIX}{course_id or 'unknown'}"


def to_upload_records(
    records: Iterable[TextRecord],
    student_id: str,
    course_id: str | None,
) -> list[dict[str, Any]]:
    """
    Shape text records for the relay.

    Every record has exactly ``student_id``, ``course_id``, ``file_name``,
    ``file_type``, ``raw_text`` and ``file_size_bytes`` (UTF-8 byte length).
    """
    return [
        {
            "student_id": student_id,
            "course_id": course_id,
            "file_name": record.file_name,
            "file_type": record.file_type,
            "raw_text": record.raw_text,
            "file_size_bytes": record.file_size_bytes,
        }
        for record in records
    ]
