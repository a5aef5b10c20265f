"""Unit tests for source adapters."""

import pytest

from coursestack_common.scraper.adapters import (
    course_id_from_url,
    course_name_from_html,
    fetch_assignment_files,
    fetch_course_files,
    fetch_course_folders,
    fetch_discussion_files,
    fetch_module_files,
    fetch_page_files,
    isolated,
    scan_dom,
)
from coursestack_common.scraper.models import ContentType, Source

FILES = [
    {
        "id": "10",
        "display_name": "Syllabus.pdf",
        "url": "https://canvas.test/files/10/download",
        "size": 1024,
        "content-type": "application/pdf",
        "folder_id": "3",
    },
    {"id": "11", "display_name": "empty.txt", "url": "https://canvas.test/files/11/download", "size": 0},
    {"id": "12", "display_name": "nourl.txt", "size": 10},
]

FOLDERS = [
    {"id": "2", "name": "course files", "full_name": "course files"},
    {"id": "3", "name": "Week 1", "full_name": "course files/Lectures/Week 1"},
]

ASSIGNMENT_DETAIL = {
    "id": "5",
    "name": "HW1",
    "description": '<p>See <a href="/courses/1/files/20/download">Prompt</a></p>',
    "attachments": [{"display_name": "rubric.pdf", "url": "https://canvas.test/files/21/download", "size": 300}],
}

MODULES = [
    {
        "id": "7",
        "name": "Week 1",
        "items": [
            {"title": "Slides", "type": "File", "content_id": "30"},
            {"title": "Reading", "type": "ExternalUrl", "external_url": "https://other.test/reading.pdf"},
            {"title": "Site", "type": "ExternalUrl", "external_url": "https://other.test/home"},
            {"title": "Intro", "type": "Page", "page_url": "intro"},
        ],
    },
    {"id": "8", "name": "Week 2"},
]

TOPICS = [
    {
        "id": "9",
        "title": "Intro",
        "message": '<a href="https://canvas.test/files/40/download">Notes</a>',
        "attachments": [{"display_name": "topic.docx", "url": "https://canvas.test/files/42/download"}],
    }
]


def course_routes():
    return {
        "/api/v1/courses/1/files": (200, FILES),
        "/api/v1/courses/1/folders": (200, FOLDERS),
        "/api/v1/courses/1/assignments": (200, [{"id": "5", "name": "HW1"}]),
        "/api/v1/courses/1/assignments/5": (200, ASSIGNMENT_DETAIL),
        "/api/v1/courses/1/modules": (200, MODULES),
        "/api/v1/courses/1/modules/8/items": (
            200,
            [{"title": "Lab", "type": "ExternalUrl", "external_url": "https://other.test/lab.zip"}],
        ),
        "/api/v1/courses/1/files/30": (
            200,
            {"id": "30", "display_name": "slides.pptx", "url": "https://canvas.test/files/30/download", "size": 500},
        ),
        "/api/v1/courses/1/discussion_topics": (200, TOPICS),
        "/api/v1/courses/1/discussion_topics/9/entries": (
            200,
            [{"id": "1", "message": '<a href="https://canvas.test/files/41/download">Reply file</a>'}],
        ),
        "/api/v1/courses/1/pages": (200, [{"url": "week-1", "title": "Week 1"}]),
        "/api/v1/courses/1/pages/week-1": (
            200,
            {
                "url": "week-1",
                "title": "Week 1",
                "body": '<a href="https://canvas.test/files/50/download">Handout</a> '
                "<p>https://canvas.test/static/extra.pdf</p>",
            },
        ),
    }


class TestIsolated:
    """Tests for the isolated decorator."""

    def test_exception_becomes_empty_result(self):
        @isolated("broken")
        def adapter():
            raise RuntimeError("boom")

        assert adapter() == []

    def test_custom_empty(self):
        @isolated("broken", empty=dict)
        def adapter():
            raise RuntimeError("boom")

        assert adapter() == {}


class TestFetchCourseFiles:
    """Tests for fetch_course_files adapter."""

    def test_keeps_only_complete_files(self, make_api, json_routes):
        items = fetch_course_files(make_api(json_routes(course_routes())), "1")

        assert len(items) == 1
        item = items[0]
        assert item.name == "Syllabus.pdf"
        assert item.source is Source.API
        assert item.size_bytes == 1024
        assert item.folder == "3"
        assert item.content_type is ContentType.PDF

    def test_access_denied_is_empty(self, make_api, json_routes):
        api = make_api(json_routes({"/api/v1/courses/1/files": (403, {})}))
        assert fetch_course_files(api, "1") == []

    def test_malformed_listing_is_empty(self, make_api, json_routes):
        api = make_api(json_routes({"/api/v1/courses/1/files": (200, {"unexpected": "object"})}))
        assert fetch_course_files(api, "1") == []

    def test_transport_failure_isolated(self, make_api):
        def handler(request):
            raise RuntimeError("socket exploded")

        assert fetch_course_files(make_api(handler), "1") == []


class TestFetchCourseFolders:
    def test_folder_paths(self, make_api, json_routes):
        folder_map = fetch_course_folders(make_api(json_routes(course_routes())), "1")
        assert folder_map == {"2": "files", "3": "Lectures/Week_1"}

    def test_missing_is_empty_dict(self, make_api, json_routes):
        assert fetch_course_folders(make_api(json_routes({})), "1") == {}


class TestFetchAssignmentFiles:
    """Tests for fetch_assignment_files adapter."""

    def test_attachments_and_embedded(self, make_api, json_routes):
        items = fetch_assignment_files(make_api(json_routes(course_routes())), "1")
        by_name = {item.name: item for item in items}

        assert set(by_name) == {"rubric.pdf", "Prompt"}
        assert by_name["rubric.pdf"].source is Source.ASSIGNMENT
        assert by_name["rubric.pdf"].size_bytes == 300
        assert by_name["Prompt"].source is Source.ASSIGNMENT_EMBEDDED
        assert by_name["Prompt"].url == "https://canvas.test/courses/1/files/20/download"
        assert by_name["Prompt"].source_context == "assignment_HW1"
        for item in items:
            assert item.folder == "assignments/HW1"
            assert item.assignment_name == "HW1"

    def test_detail_failure_uses_listing_entry(self, make_api, json_routes):
        routes = course_routes()
        routes["/api/v1/courses/1/assignments"] = (200, [dict(ASSIGNMENT_DETAIL)])
        del routes["/api/v1/courses/1/assignments/5"]

        items = fetch_assignment_files(make_api(json_routes(routes)), "1")
        assert {item.name for item in items} == {"rubric.pdf", "Prompt"}


class TestFetchModuleFiles:
    """Tests for fetch_module_files adapter."""

    def test_module_items(self, make_api, json_routes):
        items = fetch_module_files(make_api(json_routes(course_routes())), "1")
        by_name = {item.name: item for item in items}

        assert set(by_name) == {"slides.pptx", "Reading", "Lab"}
        assert by_name["slides.pptx"].source is Source.MODULE
        assert by_name["slides.pptx"].folder == "modules/Week_1"
        assert by_name["slides.pptx"].module_name == "Week 1"
        assert by_name["Reading"].source is Source.MODULE_EXTERNAL
        assert by_name["Reading"].content_type is ContentType.PDF
        assert by_name["Lab"].folder == "modules/Week_2"

    def test_file_detail_missing_skipped(self, make_api, json_routes):
        routes = course_routes()
        del routes["/api/v1/courses/1/files/30"]

        items = fetch_module_files(make_api(json_routes(routes)), "1")
        assert "slides.pptx" not in {item.name for item in items}


class TestFetchDiscussionFiles:
    """Tests for fetch_discussion_files adapter."""

    def test_topics_and_replies(self, make_api, json_routes):
        calls = []
        items = fetch_discussion_files(make_api(json_routes(course_routes(), calls)), "1")
        by_name = {item.name: item for item in items}

        assert by_name["topic.docx"].source is Source.DISCUSSION
        assert by_name["Notes"].source is Source.DISCUSSION
        assert by_name["Reply_file"].source is Source.DISCUSSION_REPLY
        assert all(item.folder == "discussions/Intro" for item in items)

        entry_calls = [url for url in calls if url.path.endswith("/entries")]
        assert entry_calls[0].params["per_page"] == "50"

    def test_access_denied_is_empty(self, make_api, json_routes):
        routes = course_routes()
        routes["/api/v1/courses/1/discussion_topics"] = (403, {"status": "unauthorized"})

        assert fetch_discussion_files(make_api(json_routes(routes)), "1") == []

    def test_entries_denied_keeps_topic_files(self, make_api, json_routes):
        routes = course_routes()
        routes["/api/v1/courses/1/discussion_topics/9/entries"] = (403, {})

        items = fetch_discussion_files(make_api(json_routes(routes)), "1")
        assert {item.name for item in items} == {"topic.docx", "Notes"}


class TestFetchPageFiles:
    """Tests for fetch_page_files adapter."""

    def test_page_bodies_and_pdf_sweep(self, make_api, json_routes):
        items = fetch_page_files(make_api(json_routes(course_routes())), "1")
        by_url = {item.url: item for item in items}

        assert set(by_url) == {
            "https://canvas.test/files/50/download",
            "https://canvas.test/static/extra.pdf",
        }
        handout = by_url["https://canvas.test/files/50/download"]
        assert handout.page_title == "Week 1"
        assert handout.source_context == "page_Week 1"

    def test_sweep_finds_pdfs_in_assignments(self, make_api, json_routes):
        routes = {
            "/api/v1/courses/1/pages": (200, []),
            "/api/v1/courses/1/assignments": (
                200,
                [{"id": "5", "name": "HW2", "description": '<a href="/files/60/guide.pdf">Guide</a>'}],
            ),
        }
        items = fetch_page_files(make_api(json_routes(routes)), "1")

        assert len(items) == 1
        assert items[0].name == "Guide.pdf"
        assert items[0].source is Source.PDF_EMBEDDED
        assert items[0].source_context == "assignment_HW2"


class TestScanDom:
    """Tests for the DOM fallback adapter."""

    def test_skips_hidden_and_anchor_links(self):
        html = """
        <html><head><title>Biology</title></head><body>
          <a href="/courses/1/files/1/download">Visible</a>
          <div style="display: none"><a href="/courses/1/files/2/download">Hidden</a></div>
          <a hidden href="/files/3/x.pdf">Hidden attr</a>
          <span aria-hidden="true"><a href="/files/4">Aria hidden</a></span>
          <p style="visibility:hidden"><a href="/files/5">Invisible</a></p>
          <a href="#files/6">Anchor</a>
        </body></html>
        """
        items = scan_dom(html, "https://canvas.test/courses/1", course_id="1", course_name="Bio")

        assert [item.name for item in items] == ["Visible"]
        item = items[0]
        assert item.url == "https://canvas.test/courses/1/files/1/download"
        assert item.source is Source.DOM_COMPREHENSIVE
        assert item.course_id == "1"
        assert item.course_name == "Bio"
        assert item.page_title == "Biology"

    def test_max_results(self):
        html = "".join(f'<a href="https://canvas.test/files/{i}/download">File {i}</a>' for i in range(5))
        items = scan_dom(html, "https://canvas.test/courses/1", max_results=2)

        assert [item.name for item in items] == ["File_0", "File_1"]

    def test_data_filename_naming(self):
        html = '<a class="instructure_file_link" data-filename="lab.docx" href="/files/8/download">Download</a>'
        items = scan_dom(html, "https://canvas.test/courses/1")
        assert items[0].name == "lab.docx"

    def test_pdf_regex_and_file_urls(self):
        html = (
            "<script>var a = 'https://canvas.test/docs/outline.pdf';</script>"
            '<div data-src="https://canvas.test/courses/1/files/77"></div>'
        )
        items = scan_dom(html, "https://canvas.test/courses/1")
        sources = {item.url: item.source for item in items}

        assert sources == {
            "https://canvas.test/docs/outline.pdf": Source.PDF_TEXT_PATTERN,
            "https://canvas.test/courses/1/files/77": Source.CANVAS_FILE_EMBEDDED,
        }

    def test_empty_page(self):
        assert scan_dom(None, None) == []


class TestCourseIdentity:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://canvas.test/courses/123/modules", "123"),
            ("https://canvas.test/courses/abc", None),
            (None, None),
        ],
    )
    def test_course_id_from_url(self, url, expected):
        assert course_id_from_url(url) == expected

    def test_course_name_strips_prefix(self):
        html = '<div id="breadcrumbs"><span class="ellipsible">Course: Biology 101</span></div>'
        assert course_name_from_html(html, "1") == "Biology 101"

    def test_course_name_fallback(self):
        assert course_name_from_html("<p>nothing</p>", "42") == "Course_42"
        assert course_name_from_html(None) == "Course_unknown"
