"""Unit tests for course file downloads."""

from pathlib import Path

import httpx
import pytest

from coursestack_common.downloader import Downloader, _unique_path, download_path, should_download
from coursestack_common.exceptions import FetchError
from coursestack_common.scraper.models import ContentItem, ScrapeConfig, Source


def make_item(name="notes.pdf", source=Source.API, folder_path="files", url=None):
    return ContentItem(
        url=url or f"https://canvas.test/files/{name}/download",
        name=name,
        source=source,
        folder_path=folder_path,
    )


def make_downloader(handler, root, **config):
    config.setdefault("download_delay_ms", 0)
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return Downloader(client, ScrapeConfig(base_url="https://canvas.test", **config), root=root)


class TestShouldDownload:
    """Tests for should_download function."""

    @pytest.mark.parametrize(
        "source,flag",
        [
            (Source.ASSIGNMENT, "include_assignments"),
            (Source.ASSIGNMENT_EMBEDDED, "include_assignments"),
            (Source.MODULE, "include_modules"),
            (Source.MODULE_EXTERNAL, "include_modules"),
            (Source.DISCUSSION, "include_discussions"),
            (Source.DISCUSSION_REPLY, "include_discussions"),
            (Source.API, "include_files"),
        ],
    )
    def test_flag_controls_source(self, source, flag):
        item = make_item(source=source)

        assert should_download(item, ScrapeConfig())
        assert not should_download(item, ScrapeConfig(**{flag: False}))

    def test_page_sources_always_included(self):
        config = ScrapeConfig(
            include_assignments=False, include_modules=False, include_discussions=False, include_files=False
        )
        assert should_download(make_item(source=Source.PAGE_SCAN), config)


class TestDownloadPath:
    """Tests for download_path function."""

    def test_nested_folder_kept(self):
        item = make_item(name="Lab 1.pdf", folder_path="modules/Week 1")
        path = download_path(item, "Biology 101", root="out")

        assert path == Path("out", "Biology_101", "modules", "Week_1", "Lab_1.pdf")

    def test_missing_folder_and_course(self):
        path = download_path(make_item(folder_path=""), None, root="out")
        assert path == Path("out", "Unknown_Course", "files", "notes.pdf")


class TestUniquePath:
    def test_free_path_unchanged(self, tmp_path):
        assert _unique_path(tmp_path / "a.pdf") == tmp_path / "a.pdf"

    def test_numbered_sibling(self, tmp_path):
        (tmp_path / "a.pdf").write_bytes(b"x")
        (tmp_path / "a (1).pdf").write_bytes(b"x")

        assert _unique_path(tmp_path / "a.pdf") == tmp_path / "a (2).pdf"


class TestDownloader:
    """Tests for Downloader class."""

    def test_download_all(self, tmp_path):
        def handler(request):
            return httpx.Response(200, content=request.url.path.encode())

        downloader = make_downloader(handler, tmp_path, include_modules=False)
        items = [make_item("a.pdf"), make_item("b.pdf"), make_item("c.pdf", source=Source.MODULE)]

        report = downloader.download_all(items, "Biology")

        assert report.total == 2
        assert report.skipped == 1
        assert report.successful == 2
        assert report.failed == 0
        target = tmp_path / "Biology" / "files" / "a.pdf"
        assert report.paths[0] == target
        assert target.read_bytes() == b"/files/a.pdf/download"
        assert not list(tmp_path.rglob("*.part"))

    def test_failures_reported_per_url(self, tmp_path):
        def handler(request):
            if "bad" in request.url.path:
                return httpx.Response(404)
            return httpx.Response(200, content=b"ok")

        downloader = make_downloader(handler, tmp_path)
        bad = make_item("bad.pdf")

        report = downloader.download_all([make_item("good.pdf"), bad], "Biology")

        assert report.successful == 1
        assert report.failed == 1
        assert "404" in report.errors[bad.url]
        assert not (tmp_path / "Biology" / "files" / "bad.pdf").exists()

    def test_same_name_items_get_separate_files(self, tmp_path):
        def handler(request):
            return httpx.Response(200, content=request.url.path.encode())

        downloader = make_downloader(handler, tmp_path, max_concurrent_downloads=3)
        items = [
            make_item("Syllabus", url="https://canvas.test/files/1"),
            make_item("Syllabus", url="https://canvas.test/files/2"),
        ]

        report = downloader.download_all(items, "Bio")

        folder = tmp_path / "Bio" / "files"
        assert report.successful == 2
        assert report.paths == [folder / "Syllabus", folder / "Syllabus (1)"]
        assert (folder / "Syllabus").read_bytes() == b"/files/1"
        assert (folder / "Syllabus (1)").read_bytes() == b"/files/2"

    def test_plan_separates_colliding_targets(self, tmp_path):
        downloader = make_downloader(lambda request: httpx.Response(200), tmp_path)
        items = [make_item("a.pdf", url=f"https://canvas.test/files/{n}") for n in range(3)]

        paths = [path.name for _, path in downloader.plan(items, "Bio")]

        assert paths == ["a.pdf", "a (1).pdf", "a (2).pdf"]

    def test_existing_file_not_overwritten(self, tmp_path):
        downloader = make_downloader(lambda request: httpx.Response(200, content=b"new"), tmp_path)
        existing = tmp_path / "Biology" / "files" / "a.pdf"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")

        path = downloader.download_one(make_item("a.pdf"), existing)

        assert path.name == "a (1).pdf"
        assert existing.read_bytes() == b"old"

    def test_transport_error_raises_fetch_error(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("refused")

        downloader = make_downloader(handler, tmp_path)

        with pytest.raises(FetchError):
            downloader.download_one(make_item(), tmp_path / "notes.pdf")

    def test_nothing_to_download(self, tmp_path):
        downloader = make_downloader(lambda request: httpx.Response(200), tmp_path, include_files=False)
        report = downloader.download_all([make_item()], "Biology")

        assert report.total == 0
        assert report.skipped == 1
