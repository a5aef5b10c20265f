"""Common Library

Shared utilities for course content extraction, export and relay upload.
"""

from coursestack_common import constants
from coursestack_common.config import load_config
from coursestack_common.logging_utils import log_summary, safe_log_event

__all__ = [
    "constants",
    "load_config",
    "log_summary",
    "safe_log_event",
]
