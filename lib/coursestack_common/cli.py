"""
Command line entry point.

Usage:
    coursestack scrape --course-id 123 [--download] [--json]
    coursestack report --course-id 123 [--output-dir exports]
    coursestack upload --course-id 123 [--relay-url http://localhost:3000] [--per-record]

Credentials and throttling come from the environment (see ``config.py``);
``LOG_LEVEL`` sets the log level.
"""

import argparse
import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

from coursestack_common import constants
from coursestack_common.config import load_config
from coursestack_common.downloader import Downloader
from coursestack_common.exceptions import RelayError
from coursestack_common.relay import RelayClient
from coursestack_common.scraper.adapters import course_id_from_url
from coursestack_common.scraper.content import collect_course_content
from coursestack_common.scraper.exporter import (
    format_file_size,
    generate_report,
    report_filename,
    student_id_for_course,
    to_text_records,
    to_upload_records,
)
from coursestack_common.scraper.fetcher import CanvasApiClient
from coursestack_common.scraper.models import ExtractedContent, ScrapeConfig
from coursestack_common.scraper.pipeline import scrape_course

logger = logging.getLogger(__name__)


def _print_status(message: str, level: str) -> None:
    print(f"[{level}] {message}", file=sys.stderr)


def _page_inputs(args: argparse.Namespace) -> tuple[str | None, str | None]:
    page_html = Path(args.page_html).read_text(encoding="utf-8") if args.page_html else None
    return page_html, args.page_url


def _course_id(args: argparse.Namespace) -> str | None:
    return args.course_id or course_id_from_url(args.page_url)


def _collect(config: ScrapeConfig, args: argparse.Namespace) -> ExtractedContent:
    page_html, page_url = _page_inputs(args)
    with CanvasApiClient.from_config(config) as client:
        content = collect_course_content(
            client, _course_id(args), page_html=page_html, page_url=page_url
        )
        scrape = scrape_course(
            client,
            course_id=_course_id(args),
            page_html=page_html,
            page_url=page_url,
            course_name=content.course.name,
            status_callback=_print_status,
        )
    content.items = scrape.items
    return content


def cmd_scrape(config: ScrapeConfig, args: argparse.Namespace) -> int:
    page_html, page_url = _page_inputs(args)

    with CanvasApiClient.from_config(config) as client:
        result = scrape_course(
            client,
            course_id=_course_id(args),
            page_html=page_html,
            page_url=page_url,
            max_workers=args.workers,
            status_callback=_print_status,
        )

        if not result.success:
            print(result.message, file=sys.stderr)
            return 1

        if args.json:
            print(json.dumps([item.to_dict() for item in result.items], indent=2))
        else:
            for item in result.items:
                size = format_file_size(item.size_bytes)
                kind = item.content_type.value
                print(f"{item.folder_path}/{item.name}\t{kind}\t{size}\t{item.url}")
            print(f"\n{result.message} in {result.course_name}", file=sys.stderr)

        if args.download:
            report = Downloader(client.http, config, root=args.output_dir).download_all(
                result.items, result.course_name
            )
            print(
                f"Downloaded {report.successful}/{report.total} files "
                f"({report.failed} failed, {report.skipped} skipped)",
                file=sys.stderr,
            )
            if report.failed:
                return 1

    return 0


def cmd_report(config: ScrapeConfig, args: argparse.Namespace) -> int:
    content = _collect(config, args)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / report_filename(content.course.name, datetime.now(UTC))
    path.write_text(generate_report(content), encoding="utf-8")

    print(f"Report written to {path}", file=sys.stderr)
    for error in content.errors:
        print(f"[warning] {error}", file=sys.stderr)
    return 0


def cmd_upload(config: ScrapeConfig, args: argparse.Namespace) -> int:
    content = _collect(config, args)
    course_id = content.course.id or _course_id(args)

    records = to_upload_records(
        to_text_records(content),
        student_id=student_id_for_course(course_id),
        course_id=course_id,
    )
    if not records:
        print("No content to upload", file=sys.stderr)
        return 1

    try:
        with RelayClient(args.relay_url or config.relay_url) as relay:
            relay.ping()
            results = relay.upload_records(records, batch=not args.per_record)
    except RelayError as e:
        logger.error(f"Upload failed: {e}")
        print(f"Upload failed: {e}", file=sys.stderr)
        return 1

    stored = sum(1 for r in results if r.success)
    print(f"Uploaded {stored}/{len(records)} records", file=sys.stderr)
    return 0 if stored == len(records) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coursestack",
        description="Extract course content and upload it to the relay backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  CANVAS_BASE_URL=https://school.instructure.com CANVAS_TOKEN=... coursestack scrape --course-id 123
  coursestack report --course-id 123 --page-html course.html
  coursestack upload --course-id 123 --relay-url http://localhost:3000
        """,
    )
    parser.add_argument("--base-url", help="Platform origin (default: $CANVAS_BASE_URL)")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--course-id", help="Course id (parsed from --page-url when omitted)")
    common.add_argument("--page-html", help="Saved HTML of the course page, used for page scanning")
    common.add_argument("--page-url", help="URL of the saved course page")

    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser(
        "scrape", parents=[common], help="List every downloadable course file"
    )
    scrape.add_argument("--json", action="store_true", help="Print items as JSON")
    scrape.add_argument("--download", action="store_true", help="Download the files")
    scrape.add_argument(
        "--output-dir",
        default=constants.DOWNLOAD_ROOT,
        help=f"Download root (default: {constants.DOWNLOAD_ROOT})",
    )
    scrape.add_argument(
        "--workers", type=int, default=1, help="Sources fetched concurrently (default: 1)"
    )

    report = subparsers.add_parser("report", parents=[common], help="Write the full text export")
    report.add_argument("--output-dir", default=".", help="Directory for the report (default: .)")

    upload = subparsers.add_parser(
        "upload", parents=[common], help="Upload text records to the relay"
    )
    upload.add_argument("--relay-url", help="Relay URL (default: $RELAY_URL)")
    upload.add_argument(
        "--per-record", action="store_true", help="One request per record instead of a batch"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(base_url=args.base_url)
    except ValueError as e:
        parser.error(str(e))

    if not config.base_url:
        parser.error("No platform URL: set CANVAS_BASE_URL or pass --base-url")
    if not (args.course_id or course_id_from_url(args.page_url) or args.page_html):
        parser.error("Pass --course-id, --page-url or --page-html")

    commands = {"scrape": cmd_scrape, "report": cmd_report, "upload": cmd_upload}
    return commands[args.command](config, args)


if __name__ == "__main__":
    sys.exit(main())
