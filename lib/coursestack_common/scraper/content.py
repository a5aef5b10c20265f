"""
Course content collection.

Builds an :class:`ExtractedContent` for one course from the REST API and,
when available, the HTML of the currently loaded course page. Rich-text
fields are normalized to plain text with :func:`html_to_text`.

Endpoints are fetched in a fixed order with the client's endpoint delay
between them. A failing endpoint is logged and recorded in
``ExtractedContent.errors``; collection continues with the next one.
"""

import logging
from collections.abc import Callable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from coursestack_common import constants
from coursestack_common.exceptions import AccessDeniedError, ResourceNotFoundError
from coursestack_common.scraper.adapters import course_name_from_html, decode_detail, decode_records
from coursestack_common.scraper.classifier import extract_filename_from_url, resolve_url
from coursestack_common.scraper.fetcher import ApiResponse, CanvasApiClient
from coursestack_common.scraper.miner import (
    element_text,
    extract_pdfs_from_html,
    html_to_text,
    parse_html,
)
from coursestack_common.scraper.models import (
    AssignmentRecord,
    CalendarEventRecord,
    ContentItem,
    DiscussionEntry,
    DiscussionRecord,
    EmbeddedContent,
    EmbeddedRef,
    ExtractedContent,
    FileRecord,
    GradeRecord,
    ModuleItemRecord,
    ModuleRecord,
    PageRecord,
    PersonRecord,
    QuizRecord,
    Source,
)
from coursestack_common.scraper.schema import (
    ApiAssignment,
    ApiCalendarEvent,
    ApiCourse,
    ApiDiscussionEntry,
    ApiDiscussionTopic,
    ApiFile,
    ApiModule,
    ApiPage,
    ApiQuiz,
    ApiUser,
    decode_list,
)

logger = logging.getLogger(__name__)

# DOM selectors for course metadata on a loaded page
COURSE_CODE_SELECTORS = (".course-info .course-code", ".ellipsible")
COURSE_TERM_SELECTORS = (".course-info .term", ".ic-app-course-menu__header-term")
INSTRUCTOR_SELECTORS = ".instructor, .teacher"
SYLLABUS_SELECTORS = ("#course_syllabus", ".syllabus", "#syllabus")

# DOM selectors for grade rows on the grades page
GRADE_ROW_SELECTORS = ".assignment_grade, .gradebook-row, tr.student_assignment"
GRADE_NAME_SELECTORS = ".assignment-name, .gradebook-cell-assignment, th.title a"
GRADE_VALUE_SELECTORS = ".grade, .gradebook-cell-grade"
GRADE_POINTS_SELECTORS = ".points, .points-possible"

VIDEO_SELECTORS = 'video, iframe[src*="youtube"], iframe[src*="vimeo"]'


class ContentCollector:
    """
    One content collection run for a single course.

    Args:
        client: Credentialed API client
        course_id: Platform course id (None skips the API steps)
        page_html: HTML of the loaded course page, if any
        page_url: URL of the loaded course page
    """

    def __init__(
        self,
        client: CanvasApiClient,
        course_id: str | None,
        page_html: str | None = None,
        page_url: str | None = None,
    ):
        self.client = client
        self.course_id = course_id
        self.page_html = page_html
        self.page_url = page_url
        self.content = ExtractedContent()
        self._soup: BeautifulSoup | None = parse_html(page_html) if page_html else None

    @property
    def course_url(self) -> str:
        return f"{self.client.base_url}/courses/{self.course_id}"

    def collect(self) -> ExtractedContent:
        """Run every collection step and return the populated content."""
        self._run_step("page metadata", self._collect_page_metadata)

        if self.course_id:
            steps: list[tuple[str, Callable[[], None]]] = [
                ("course", self._collect_course),
                ("assignments", self._collect_assignments),
                ("discussions", self._collect_discussions),
                ("announcements", self._collect_announcements),
                ("modules", self._collect_modules),
                ("files", self._collect_files),
                ("pages", self._collect_pages),
                ("quizzes", self._collect_quizzes),
                ("people", self._collect_people),
                ("calendar", self._collect_calendar),
            ]
            for index, (name, step) in enumerate(steps):
                if self.client.aborted:
                    self.content.errors.append("aborted")
                    break
                if index:
                    self.client.pause_endpoint()
                self._run_step(name, step)
        else:
            logger.warning("No course id; skipping API content collection")

        self._run_step("grades", self._collect_grades)
        self._run_step("embedded content", self._collect_embedded)

        logger.info(f"Collected course content: {self.content.summary()}")
        return self.content

    def _run_step(self, name: str, step: Callable[[], None]) -> None:
        try:
            step()
        except AccessDeniedError:
            logger.warning(f"Access denied to {name}; user may lack permission")
        except ResourceNotFoundError:
            logger.info(f"{name} not found for this course")
        except Exception as e:
            logger.error(f"Failed to collect {name}: {e}")
            self.content.errors.append(f"{name}: {e}")

    def _listing(self, name: str, response: ApiResponse) -> list | None:
        """Data of a successful listing; None (logged) otherwise."""
        if response.ok:
            return response.data
        if response.access_denied:
            logger.warning(f"Access denied to {name}; user may lack permission")
        elif response.not_found:
            logger.info(f"{name} not found for this course")
        else:
            logger.warning(f"Failed to fetch {name}: {response.error}")
            self.content.errors.append(f"{name}: {response.error}")
        return None

    # -------------------------------------------------------------------------
    # Page (DOM) steps
    # -------------------------------------------------------------------------

    def _select_text(self, selectors: tuple[str, ...]) -> str | None:
        if self._soup is None:
            return None
        for selector in selectors:
            text = element_text(self._soup.select_one(selector))
            if text:
                return text
        return None

    def _collect_page_metadata(self) -> None:
        course = self.content.course
        course.id = self.course_id
        if self._soup is None:
            return

        course.name = course_name_from_html(self.page_html, self.course_id)
        course.code = self._select_text(COURSE_CODE_SELECTORS)
        course.term = self._select_text(COURSE_TERM_SELECTORS)
        instructors = (element_text(el) for el in self._soup.select(INSTRUCTOR_SELECTORS))
        course.instructors = [text for text in instructors if text]

        syllabus = self._select_text(SYLLABUS_SELECTORS)
        if syllabus:
            self.content.syllabus = syllabus

    def _collect_grades(self) -> None:
        if self._soup is None:
            return
        for row in self._soup.select(GRADE_ROW_SELECTORS):
            assignment = element_text(row.select_one(GRADE_NAME_SELECTORS))
            if not assignment:
                continue
            self.content.grades.append(
                GradeRecord(
                    assignment=assignment,
                    grade=element_text(row.select_one(GRADE_VALUE_SELECTORS)),
                    points=element_text(row.select_one(GRADE_POINTS_SELECTORS)),
                )
            )

    def _collect_embedded(self) -> None:
        if self._soup is None:
            return

        embedded = EmbeddedContent()
        page_host = urlsplit(self.page_url or self.client.base_url).netloc

        for img in self._soup.select("img[src]"):
            embedded.images.append(
                EmbeddedRef(
                    url=resolve_url(img["src"], self.page_url),
                    title=img.get("alt") or img.get("title"),
                    kind="img",
                )
            )

        for video in self._soup.select(VIDEO_SELECTORS):
            src = video.get("src") or video.get("data-src")
            if src:
                embedded.videos.append(
                    EmbeddedRef(
                        url=resolve_url(src, self.page_url),
                        title=video.get("title"),
                        kind=video.name,
                    )
                )

        for link in self._soup.select('a[href^="http"]'):
            href = link["href"]
            if page_host and page_host in href:
                continue
            embedded.links.append(
                EmbeddedRef(url=href, title=element_text(link) or link.get("title"), kind="link")
            )

        for item in extract_pdfs_from_html(self.page_html, context="page", base_url=self.page_url):
            embedded.pdfs.append(
                EmbeddedRef(
                    url=item.url,
                    title=item.name,
                    kind=item.element_type or "embedded_url",
                )
            )

        self.content.embedded = embedded

    # -------------------------------------------------------------------------
    # API steps
    # -------------------------------------------------------------------------

    def _collect_course(self) -> None:
        data = self.client.require_json(
            f"courses/{self.course_id}",
            params={"include[]": ["syllabus_body", "term", "teachers"]},
        )
        api_course = ApiCourse.from_dict(data)
        course = self.content.course
        course.id = api_course.id or course.id
        course.name = api_course.name or course.name
        course.code = api_course.course_code or course.code
        course.term = api_course.term or course.term
        if api_course.teachers:
            course.instructors = api_course.teachers

        if api_course.syllabus_body:
            self.content.syllabus = html_to_text(api_course.syllabus_body)

    def _collect_assignments(self) -> None:
        data = self._listing(
            "assignments", self.client.get_paginated(f"courses/{self.course_id}/assignments")
        )
        for assignment in decode_list(ApiAssignment, data):
            if self.client.aborted:
                break

            if assignment.id:
                self.client.pause()
                detail = self.client.get_json(
                    f"courses/{self.course_id}/assignments/{assignment.id}"
                )
                assignment = decode_detail(ApiAssignment, detail, fallback=assignment)

            attachments = [
                ContentItem(
                    url=attachment.url,
                    name=attachment.name or extract_filename_from_url(attachment.url),
                    source=Source.ASSIGNMENT,
                    size_bytes=attachment.size,
                    assignment_name=assignment.name,
                )
                for attachment in assignment.attachments
                if attachment.url
            ]

            self.content.assignments.append(
                AssignmentRecord(
                    name=assignment.name,
                    description=html_to_text(assignment.description),
                    due_date=assignment.due_at,
                    points=assignment.points_possible,
                    url=f"{self.course_url}/assignments/{assignment.id}",
                    id=assignment.id,
                    attachments=attachments,
                )
            )

    def _discussion_record(self, topic: ApiDiscussionTopic, announcement: bool) -> DiscussionRecord:
        record = DiscussionRecord(
            title=topic.title,
            message=html_to_text(topic.message),
            author=topic.author,
            posted_at=topic.posted_at,
            reply_count=topic.reply_count,
            is_announcement=announcement,
            url=f"{self.course_url}/discussion_topics/{topic.id}",
            id=topic.id,
        )

        if topic.id and not self.client.aborted:
            self.client.pause()
            response = self.client.get_json(
                f"courses/{self.course_id}/discussion_topics/{topic.id}/entries",
                params={"per_page": constants.DISCUSSION_ENTRIES_PER_PAGE},
            )
            if response.ok:
                entries = decode_records(ApiDiscussionEntry, response.data, "discussion entries")
                record.entries = [
                    DiscussionEntry(
                        message=html_to_text(entry.message),
                        author=entry.author,
                        created_at=entry.created_at,
                    )
                    for entry in entries
                ]
            else:
                logger.warning(
                    f"Failed to get entries for discussion {topic.title}: {response.error}"
                )

        return record

    def _collect_discussions(self) -> None:
        data = self._listing(
            "discussions", self.client.get_paginated(f"courses/{self.course_id}/discussion_topics")
        )
        for topic in decode_list(ApiDiscussionTopic, data):
            if self.client.aborted:
                break
            record = self._discussion_record(topic, topic.is_announcement)
            if record.is_announcement:
                self.content.announcements.append(record)
            else:
                self.content.discussions.append(record)

    def _collect_announcements(self) -> None:
        data = self._listing(
            "announcements",
            self.client.get_paginated(
                f"courses/{self.course_id}/discussion_topics",
                params={"only_announcements": "true"},
            ),
        )
        seen = {record.id for record in self.content.announcements}
        for topic in decode_list(ApiDiscussionTopic, data):
            if self.client.aborted:
                break
            if topic.id in seen:
                continue
            seen.add(topic.id)
            self.content.announcements.append(self._discussion_record(topic, announcement=True))

    def _collect_modules(self) -> None:
        data = self._listing(
            "modules",
            self.client.get_paginated(
                f"courses/{self.course_id}/modules", params={"include[]": "items"}
            ),
        )
        for module in decode_list(ApiModule, data):
            record = ModuleRecord(
                name=module.name,
                state=module.state,
                position=module.position,
                url=f"{self.course_url}/modules/{module.id}",
                id=module.id,
            )

            for item in module.items:
                content = ""
                if item.type == "Page" and item.page_url and not self.client.aborted:
                    self.client.pause()
                    response = self.client.get_json(
                        f"courses/{self.course_id}/pages/{item.page_url}"
                    )
                    page = decode_detail(ApiPage, response)
                    if page is not None:
                        content = html_to_text(page.body)

                record.items.append(
                    ModuleItemRecord(
                        title=item.title,
                        type=item.type,
                        content=content,
                        url=item.html_url or item.url,
                        external_url=item.external_url,
                    )
                )

            self.content.modules.append(record)

    def _collect_files(self) -> None:
        data = self._listing("files", self.client.get_paginated(f"courses/{self.course_id}/files"))
        self.content.files = [
            FileRecord(
                name=api_file.filename or api_file.display_name or "",
                size=api_file.size,
                content_type=api_file.content_type,
                url=api_file.url,
                modified_at=api_file.updated_at,
            )
            for api_file in decode_list(ApiFile, data)
        ]

    def _collect_pages(self) -> None:
        data = self._listing("pages", self.client.get_paginated(f"courses/{self.course_id}/pages"))
        for page in decode_list(ApiPage, data):
            if self.client.aborted:
                break

            if page.url:
                self.client.pause()
                response = self.client.get_json(f"courses/{self.course_id}/pages/{page.url}")
                detail = decode_detail(ApiPage, response)
                if detail is not None:
                    page = detail
                else:
                    logger.warning(f"Failed to get page details for {page.url}: {response.error}")

            self.content.pages.append(
                PageRecord(
                    title=page.title,
                    body=html_to_text(page.body),
                    published=page.published,
                    updated_at=page.updated_at,
                    url=page.html_url,
                )
            )

    def _collect_quizzes(self) -> None:
        data = self._listing(
            "quizzes", self.client.get_paginated(f"courses/{self.course_id}/quizzes")
        )
        self.content.quizzes = [
            QuizRecord(
                title=quiz.title,
                description=html_to_text(quiz.description),
                instructions=html_to_text(quiz.instructions),
                points_possible=quiz.points_possible,
                question_count=quiz.question_count,
                time_limit=quiz.time_limit,
                due_date=quiz.due_at,
            )
            for quiz in decode_list(ApiQuiz, data)
        ]

    def _collect_people(self) -> None:
        data = self._listing(
            "people",
            self.client.get_paginated(
                f"courses/{self.course_id}/users", params={"include[]": ["enrollments", "email"]}
            ),
        )
        self.content.people = [
            PersonRecord(name=user.name, email=user.email, roles=user.roles)
            for user in decode_list(ApiUser, data)
        ]

    def _collect_calendar(self) -> None:
        data = self._listing(
            "calendar events",
            self.client.get_paginated(
                "calendar_events", params={"context_codes[]": f"course_{self.course_id}"}
            ),
        )
        self.content.calendar = [
            CalendarEventRecord(
                title=event.title,
                description=html_to_text(event.description),
                start_at=event.start_at,
                end_at=event.end_at,
                location=event.location,
            )
            for event in decode_list(ApiCalendarEvent, data)
        ]


def collect_course_content(
    client: CanvasApiClient,
    course_id: str | None,
    page_html: str | None = None,
    page_url: str | None = None,
) -> ExtractedContent:
    """
    Collect everything extractable about one course.

    Args:
        client: Credentialed API client
        course_id: Platform course id (None collects from the page only)
        page_html: HTML of the loaded course page
        page_url: URL of the loaded course page

    Returns:
        Populated ExtractedContent (never raises; failures land in ``errors``)
    """
    return ContentCollector(client, course_id, page_html=page_html, page_url=page_url).collect()
