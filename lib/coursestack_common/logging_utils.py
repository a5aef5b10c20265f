"""
Masking helpers for log output.

Upload records carry scraped course text and the scrape configuration
carries session credentials; both pass through :func:`safe_log_event`
before being logged. :func:`log_summary` builds the one-line structured
summary logged at the end of a scrape.
"""

from typing import Any

# Key substrings whose values never reach the log verbatim
SENSITIVE_KEYS = frozenset(
    {
        "token",
        "cookie",
        "session",
        "authorization",
        "raw_text",
    }
)

_PREVIEW_CHARS = 10
_PREVIEW_MIN_LENGTH = 20
_MAX_ERROR_CHARS = 500


def is_sensitive(key: str) -> bool:
    """True when ``key`` contains one of :data:`SENSITIVE_KEYS` (case-insensitive)."""
    key = key.lower()
    return any(marker in key for marker in SENSITIVE_KEYS)


def mask_value(key: str, value: Any) -> Any:
    """
    Mask ``value`` when ``key`` is sensitive.

    Long text keeps a short preview and its length so a record can still be
    recognized in the log; anything else sensitive becomes ``***``. Nested
    dicts (request headers) are masked key by key.
    """
    if is_sensitive(key):
        if value is None:
            return None
        if isinstance(value, str) and len(value) > _PREVIEW_MIN_LENGTH:
            return f"{value[:_PREVIEW_CHARS]}...({len(value)} chars)"
        return "***"
    if isinstance(value, dict):
        return {k: mask_value(k, v) for k, v in value.items()}
    return value


def safe_log_event(event: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``event`` that is safe to log.

    Example:
        ```python
        logger.debug(f"Ingesting record: {safe_log_event(record)}")
        # {'file_name': 'syllabus.txt', 'raw_text': 'Welcome to...(5120 chars)', ...}
        ```
    """
    return {key: mask_value(key, value) for key, value in event.items()}


def log_summary(
    operation: str,
    *,
    success: bool = True,
    duration_ms: float | None = None,
    error: str | None = None,
    **counts: Any,
) -> dict[str, Any]:
    """
    Structured end-of-operation summary.

    Scalars are kept as is, per-category count dicts are kept with their
    numeric entries only, and sequences are reduced to their length.

    Args:
        operation: Operation name, e.g. ``scrape_course``
        success: Whether the operation produced a result
        duration_ms: Wall time in milliseconds
        error: Error message (truncated)
        **counts: Extra fields such as ``course_id`` or ``by_source``

    Returns:
        Dictionary for ``logger.info``
    """
    summary: dict[str, Any] = {"operation": operation, "success": success}
    if duration_ms is not None:
        summary["duration_ms"] = round(duration_ms, 2)
    if error:
        summary["error"] = error[:_MAX_ERROR_CHARS]

    for key, value in counts.items():
        if isinstance(value, dict):
            summary[key] = {k: v for k, v in value.items() if isinstance(v, (int, float))}
        elif isinstance(value, (list, tuple, set)):
            summary[key] = len(value)
        else:
            summary[key] = value

    return summary
