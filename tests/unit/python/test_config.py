"""Unit tests for environment-driven configuration."""

import pytest

from coursestack_common import constants
from coursestack_common.config import load_config, parse_flag


class TestParseFlag:
    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", " on "])
    def test_truthy(self, value):
        assert parse_flag(value)

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", "maybe"])
    def test_falsy(self, value):
        assert not parse_flag(value)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self):
        config = load_config({})

        assert config.base_url == ""
        assert config.token is None
        assert config.per_page == constants.DEFAULT_PER_PAGE
        assert config.relay_url == constants.DEFAULT_RELAY_URL
        assert config.include_files

    def test_environment_mapping(self):
        config = load_config(
            {
                "CANVAS_BASE_URL": "https://school.test",
                "CANVAS_TOKEN": "abc",
                "CANVAS_COOKIE_NAME": "_legacy_session",
                "RELAY_URL": "http://relay.test",
                "PER_PAGE": "50",
                "REQUEST_TIMEOUT": "12.5",
                "DOWNLOAD_DELAY_MS": "0",
                "INCLUDE_MODULES": "false",
                "INCLUDE_FILES": "yes",
            }
        )

        assert config.base_url == "https://school.test"
        assert config.token == "abc"
        assert config.cookie_name == "_legacy_session"
        assert config.relay_url == "http://relay.test"
        assert config.per_page == 50
        assert config.request_timeout == 12.5
        assert config.download_delay_ms == 0
        assert not config.include_modules
        assert config.include_files

    def test_empty_values_ignored(self):
        config = load_config({"PER_PAGE": "", "CANVAS_TOKEN": ""})

        assert config.per_page == constants.DEFAULT_PER_PAGE
        assert config.token is None

    def test_overrides_win(self):
        config = load_config({"CANVAS_BASE_URL": "https://env.test"}, base_url="https://cli.test", token=None)

        assert config.base_url == "https://cli.test"
        assert config.token is None

    @pytest.mark.parametrize("value", ["fast", "-5"])
    def test_invalid_number(self, value):
        with pytest.raises(ValueError, match="REQUEST_DELAY_MS"):
            load_config({"REQUEST_DELAY_MS": value})

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("CANVAS_BASE_URL", "https://os.test")
        assert load_config().base_url == "https://os.test"
