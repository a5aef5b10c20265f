"""Unit tests for URL and filename classification."""

import pytest

from coursestack_common.scraper.classifier import (
    content_type_from_mime,
    content_type_of,
    extract_filename_from_url,
    is_downloadable_file,
    looks_like_pdf,
    mime_type_of,
    resolve_url,
    sanitize,
    sanitize_filename,
    sanitize_path_component,
)
from coursestack_common.scraper.models import ContentType


class TestResolveUrl:
    """Tests for resolve_url function."""

    def test_relative_path(self):
        assert resolve_url("/files/7/download", "https://x.test/courses/1") == "https://x.test/files/7/download"

    def test_sibling_path(self):
        assert resolve_url("notes.pdf", "https://x.test/courses/1/pages/") == "https://x.test/courses/1/pages/notes.pdf"

    def test_absolute_unchanged(self):
        assert resolve_url("https://other.test/a.pdf", "https://x.test/") == "https://other.test/a.pdf"

    def test_missing_base_returns_href(self):
        assert resolve_url("a.pdf", None) == "a.pdf"

    def test_none_href(self):
        assert resolve_url(None, "https://x.test/") == ""

    def test_malformed_never_raises(self):
        result = resolve_url("http://[::1", "https://x.test/")
        assert isinstance(result, str)


class TestIsDownloadableFile:
    """Tests for is_downloadable_file function."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://x.test/courses/1/files/7",
            "https://x.test/api/v1/files/7",
            "https://x.test/notes.PDF",
            "https://x.test/slides.pptx?download=1",
            "https://x.test/archive.zip#top",
            "https://x.test/download?file=report.docx",
        ],
    )
    def test_downloadable(self, url):
        assert is_downloadable_file(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "https://x.test/courses/1/pages/intro",
            "https://x.test/about.jsonp",
            "https://x.test/pdfs-are-great",
        ],
    )
    def test_not_downloadable(self, url):
        assert is_downloadable_file(url) is False

    @pytest.mark.parametrize("url", [None, "", "   ", "::::", "http://[::1"])
    def test_bad_input_never_raises(self, url):
        assert is_downloadable_file(url) in (True, False)


class TestContentTypeOf:
    """Tests for content_type_of function."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://x.test/a.pdf", ContentType.PDF),
            ("https://x.test/a.docx", ContentType.DOC),
            ("https://x.test/a.pptx", ContentType.SLIDE),
            ("https://x.test/a.csv", ContentType.SHEET),
            ("https://x.test/a.txt", ContentType.TEXT),
            ("https://x.test/a.png", ContentType.IMAGE),
            ("https://x.test/a.mp4", ContentType.MEDIA),
            ("https://x.test/a.7z", ContentType.ARCHIVE),
            ("https://x.test/a.py", ContentType.CODE),
            ("https://x.test/files/7/download?verifier=abc.pdf", ContentType.PDF),
        ],
    )
    def test_known_extensions(self, url, expected):
        assert content_type_of(url) is expected

    @pytest.mark.parametrize("url", [None, "", "https://x.test/page", "http://[::1"])
    def test_unknown(self, url):
        assert content_type_of(url) is ContentType.UNKNOWN


class TestMimeTypes:
    """Tests for MIME helpers."""

    def test_mime_type_of_pdf(self):
        assert mime_type_of("https://x.test/a.pdf") == "application/pdf"

    def test_mime_type_default(self):
        assert mime_type_of("https://x.test/page") == "application/octet-stream"

    @pytest.mark.parametrize(
        "mime,expected",
        [
            ("application/pdf", ContentType.PDF),
            ("application/pdf; charset=binary", ContentType.PDF),
            ("application/vnd.openxmlformats-officedocument.presentationml.presentation", ContentType.SLIDE),
            ("application/vnd.ms-excel", ContentType.SHEET),
            ("application/msword", ContentType.DOC),
            ("image/png", ContentType.IMAGE),
            ("video/mp4", ContentType.MEDIA),
            ("application/zip", ContentType.ARCHIVE),
            ("text/plain", ContentType.TEXT),
            ("text/x-python", ContentType.CODE),
            (None, ContentType.UNKNOWN),
            ("application/x-unheard-of", ContentType.UNKNOWN),
        ],
    )
    def test_content_type_from_mime(self, mime, expected):
        assert content_type_from_mime(mime) is expected

    def test_looks_like_pdf(self):
        assert looks_like_pdf("https://x.test/files/7?preview=pdf")
        assert not looks_like_pdf("https://x.test/files/7")
        assert not looks_like_pdf(None)


class TestExtractFilenameFromUrl:
    """Tests for extract_filename_from_url function."""

    def test_last_segment(self):
        assert extract_filename_from_url("https://x.test/a/b/notes.pdf") == "notes.pdf"

    def test_query_stripped(self):
        assert extract_filename_from_url("https://x.test/a/notes.pdf?x=1") == "notes.pdf"

    def test_url_decoded(self):
        assert extract_filename_from_url("https://x.test/Week%201%20Notes.pdf") == "Week 1 Notes.pdf"

    @pytest.mark.parametrize("url", [None, "", "https://x.test/", "http://[::1"])
    def test_fallback(self, url):
        assert extract_filename_from_url(url) == "download"

    def test_recovers_name_from_relative_link(self):
        url = resolve_url("../files/lecture-3.pdf", "https://x.test/courses/1/pages/intro")
        assert extract_filename_from_url(url) == "lecture-3.pdf"


class TestSanitize:
    """Tests for sanitize and its wrappers."""

    def test_illegal_characters_replaced(self):
        assert sanitize_filename('a<b>c:d"e/f\\g|h?i*j') == "a_b_c_d_e_f_g_h_i_j"

    def test_control_characters_replaced(self):
        assert sanitize_filename("a\x00b\x1fc") == "a_b_c"

    def test_whitespace_collapsed(self):
        assert sanitize_filename("  Week 1   Notes.pdf ") == "Week_1_Notes.pdf"

    def test_repeated_underscores_collapsed(self):
        assert sanitize_filename("a___b") == "a_b"

    def test_long_free_text_keeps_five_words(self):
        name = "This is a very long assignment title that keeps going and going"
        assert sanitize_filename(name) == "This_is_a_very_long"

    def test_filename_bound(self):
        assert len(sanitize_filename("x" * 500)) == 100

    def test_path_component_bound(self):
        assert len(sanitize_path_component("x" * 500)) == 50

    def test_truncation_does_not_leave_trailing_underscore(self):
        name = "a" * 49 + "_b"
        result = sanitize_path_component(name)
        assert not result.endswith("_")
        assert len(result) <= 50

    @pytest.mark.parametrize("name", [None, "", "___", "???"])
    def test_fallback_names(self, name):
        assert sanitize_filename(name) == "untitled"
        assert sanitize_path_component(name) == "unknown"

    @pytest.mark.parametrize(
        "name",
        [
            "Week 1: Intro / Overview?",
            "a" * 49 + "_b",
            "  __lead and trail__  ",
            "This is a very long assignment title that keeps going and going",
            "x" * 120,
            "tab\tseparated\nlines",
        ],
    )
    def test_idempotent(self, name):
        for kind in ("filename", "path-component"):
            once = sanitize(name, kind)
            assert sanitize(once, kind) == once

    @pytest.mark.parametrize("name", ['a<b>:c"d', "x" * 300, "Folder / Sub | Name"])
    def test_no_illegal_characters(self, name):
        result = sanitize_filename(name)
        assert not any(c in result for c in '<>:"/\\|?*')

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            sanitize("a", "directory")
