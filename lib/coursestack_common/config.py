"""Environment-driven configuration for CourseStack.

Settings are read from environment variables into a :class:`ScrapeConfig`.
Unset variables keep the dataclass defaults from ``constants.py``:

- CANVAS_BASE_URL, CANVAS_TOKEN, CANVAS_SESSION_COOKIE, CANVAS_COOKIE_NAME
- RELAY_URL
- REQUEST_DELAY_MS, ENDPOINT_DELAY_MS, REQUEST_TIMEOUT, PER_PAGE
- MAX_CONCURRENT_DOWNLOADS, DOWNLOAD_DELAY_MS
- INCLUDE_ASSIGNMENTS, INCLUDE_MODULES, INCLUDE_DISCUSSIONS, INCLUDE_FILES
"""

import logging
import os
from collections.abc import Mapping
from typing import Any

from coursestack_common.logging_utils import safe_log_event
from coursestack_common.scraper.models import ScrapeConfig

logger = logging.getLogger(__name__)

_STRING_SETTINGS = {
    "CANVAS_BASE_URL": "base_url",
    "CANVAS_TOKEN": "token",
    "CANVAS_SESSION_COOKIE": "session_cookie",
    "CANVAS_COOKIE_NAME": "cookie_name",
    "RELAY_URL": "relay_url",
}

_INT_SETTINGS = {
    "REQUEST_DELAY_MS": "request_delay_ms",
    "ENDPOINT_DELAY_MS": "endpoint_delay_ms",
    "PER_PAGE": "per_page",
    "MAX_CONCURRENT_DOWNLOADS": "max_concurrent_downloads",
    "DOWNLOAD_DELAY_MS": "download_delay_ms",
}

_FLAG_SETTINGS = {
    "INCLUDE_ASSIGNMENTS": "include_assignments",
    "INCLUDE_MODULES": "include_modules",
    "INCLUDE_DISCUSSIONS": "include_discussions",
    "INCLUDE_FILES": "include_files",
}


def parse_flag(value: str) -> bool:
    """Interpret ``true``/``1``/``yes``/``on`` (any case) as True."""
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_number(name: str, value: str, kind: type) -> Any:
    try:
        number = kind(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return number


def load_config(environ: Mapping[str, str] | None = None, **overrides: Any) -> ScrapeConfig:
    """
    Build a ScrapeConfig from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ``
        **overrides: Field values that win over the environment (CLI flags);
            ``None`` values are ignored

    Returns:
        ScrapeConfig

    Raises:
        ValueError: If a numeric variable is not a non-negative number
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    for var, key in _STRING_SETTINGS.items():
        if env.get(var):
            values[key] = env[var]

    for var, key in _INT_SETTINGS.items():
        if env.get(var):
            values[key] = _parse_number(var, env[var], int)

    if env.get("REQUEST_TIMEOUT"):
        values["request_timeout"] = _parse_number("REQUEST_TIMEOUT", env["REQUEST_TIMEOUT"], float)

    for var, key in _FLAG_SETTINGS.items():
        if env.get(var):
            values[key] = parse_flag(env[var])

    values.update({k: v for k, v in overrides.items() if v is not None})

    config = ScrapeConfig.from_dict(values)
    logger.debug(f"Loaded configuration: {safe_log_event(config.to_dict())}")
    return config
