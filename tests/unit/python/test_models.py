from coursestack_common.scraper.models import (
    ContentItem,
    ContentType,
    ExtractedContent,
    ScrapeConfig,
    Source,
    TextRecord,
)


def test_content_item_creation():
    item = ContentItem(url="https://canvas.test/files/1/download", name="notes.pdf")
    assert item.content_type == ContentType.UNKNOWN
    assert item.source == Source.PAGE_SCAN
    assert item.size_bytes == 0
    assert item.key == "https://canvas.test/files/1/download_notes.pdf"
    print("✓ ContentItem creation works")


def test_content_item_serialization():
    item = ContentItem(
        url="https://canvas.test/files/1/download",
        name="notes.pdf",
        content_type=ContentType.PDF,
        source=Source.MODULE,
        module_name="Week 1",
    )
    data = item.to_dict()
    assert data["content_type"] == "pdf"
    assert data["source"] == "module"
    assert data["module_name"] == "Week 1"
    assert "assignment_name" not in data

    item2 = ContentItem.from_dict(data)
    assert item2 == item
    print("✓ ContentItem serialization works")


def test_negative_size_clamped():
    item = ContentItem.from_dict({"url": "https://x.test/a.pdf", "name": "a.pdf", "size_bytes": -5})
    assert item.size_bytes == 0


def test_text_record_byte_size():
    assert TextRecord("a.txt", "page", "héllo").file_size_bytes == 6


def test_scrape_config_defaults():
    config = ScrapeConfig.from_dict({"base_url": "https://canvas.test"})
    assert config.cookie_name == "canvas_session"
    assert config.include_assignments
    assert ScrapeConfig.from_dict(config.to_dict()) == config
    print("✓ ScrapeConfig works")


def test_extracted_content_summary():
    content = ExtractedContent()
    assert content.embedded.is_empty()
    assert set(content.summary().values()) == {0}
    assert content.extracted_at


if __name__ == "__main__":
    test_content_item_creation()
    test_content_item_serialization()
    test_scrape_config_defaults()
    print("All model tests passed!")
