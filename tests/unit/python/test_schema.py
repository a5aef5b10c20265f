"""Unit tests for REST payload decoders."""

import pytest

from coursestack_common.exceptions import PayloadDecodeError
from coursestack_common.scraper.schema import (
    ApiAssignment,
    ApiCalendarEvent,
    ApiCourse,
    ApiDiscussionTopic,
    ApiFile,
    ApiModule,
    ApiUser,
    decode_list,
)


class TestApiFile:
    """Tests for ApiFile decoding."""

    def test_decodes_listing_entry(self):
        api_file = ApiFile.from_dict(
            {
                "id": "12",
                "display_name": "Syllabus.pdf",
                "filename": "syllabus-v2.pdf",
                "url": "https://x.test/files/12/download",
                "size": 2048,
                "content-type": "application/pdf",
                "folder_id": 3,
            }
        )

        assert api_file.name == "Syllabus.pdf"
        assert api_file.size == 2048
        assert api_file.content_type == "application/pdf"
        assert api_file.folder_id == "3"

    def test_case_insensitive_fields(self):
        api_file = ApiFile.from_dict({"ID": 1, "Display_Name": "A.pdf", "URL": "https://x.test/a", "SIZE": "10"})

        assert api_file.id == "1"
        assert api_file.name == "A.pdf"
        assert api_file.url == "https://x.test/a"
        assert api_file.size == 10

    def test_name_falls_back_to_filename(self):
        assert ApiFile.from_dict({"filename": "raw.txt"}).name == "raw.txt"

    def test_bad_size_is_zero(self):
        assert ApiFile.from_dict({"size": "lots"}).size == 0
        assert ApiFile.from_dict({"size": -5}).size == 0

    def test_non_object_rejected(self):
        with pytest.raises(PayloadDecodeError):
            ApiFile.from_dict(["not", "an", "object"])


class TestDecodeList:
    """Tests for decode_list function."""

    def test_none_is_empty(self):
        assert decode_list(ApiFile, None) == []

    def test_non_list_rejected(self):
        with pytest.raises(PayloadDecodeError):
            decode_list(ApiFile, {"errors": []})

    def test_malformed_entries_skipped(self):
        files = decode_list(ApiFile, [{"id": 1}, "garbage", {"id": 2}])
        assert [f.id for f in files] == ["1", "2"]


class TestNestedRecords:
    """Tests for decoders with nested structures."""

    def test_assignment_attachments(self):
        assignment = ApiAssignment.from_dict(
            {
                "id": 5,
                "name": "HW1",
                "points_possible": 10,
                "attachments": [{"display_name": "hw1.pdf", "url": "https://x.test/files/1"}],
            }
        )

        assert assignment.points_possible == 10.0
        assert [a.name for a in assignment.attachments] == ["hw1.pdf"]

    def test_single_attachment_field(self):
        topic = ApiDiscussionTopic.from_dict(
            {"title": "Week 1", "attachment": {"filename": "notes.docx"}, "author": {"display_name": "Dr. K"}}
        )

        assert [a.name for a in topic.attachments] == ["notes.docx"]
        assert topic.author == "Dr. K"

    def test_announcement_flag_from_string(self):
        assert ApiDiscussionTopic.from_dict({"is_announcement": "true"}).is_announcement is True

    def test_module_items(self):
        module = ApiModule.from_dict(
            {"id": 1, "name": "Week 1", "items": [{"title": "Slides", "type": "File", "content_id": 44}]}
        )

        assert module.items[0].type == "File"
        assert module.items[0].content_id == "44"

    def test_course_term_and_teachers(self):
        course = ApiCourse.from_dict(
            {"id": 1, "name": "Biology", "term": {"name": "Fall 2024"}, "teachers": [{"display_name": "Dr. K"}]}
        )

        assert course.term == "Fall 2024"
        assert course.teachers == ["Dr. K"]

    def test_user_roles_deduplicated(self):
        user = ApiUser.from_dict(
            {"id": 1, "name": "Sam", "enrollments": [{"role": "StudentEnrollment"}, {"role": "StudentEnrollment"}]}
        )
        assert user.roles == ["StudentEnrollment"]

    def test_calendar_location(self):
        event = ApiCalendarEvent.from_dict({"title": "Exam", "location_name": "Room 101"})
        assert event.location == "Room 101"
