"""
Constants used throughout the CourseStack application.

Centralizes magic numbers and configuration values to improve
maintainability and make tuning easier.
"""

# =============================================================================
# Platform REST API
# =============================================================================

# Path prefix of the platform REST API
API_PREFIX = "/api/v1"

# Accept header asking the platform to serialize ids as strings
API_ACCEPT_HEADER = "application/json+canvas-string-ids"

# Page size for paginated listing endpoints (files)
DEFAULT_PER_PAGE = 100

# Page size for discussion entries (replies are capped to limit requests)
DISCUSSION_ENTRIES_PER_PAGE = 50

# Safety cap on pages walked for a single paginated listing
MAX_PAGES = 50


# =============================================================================
# Throttling (in milliseconds)
# =============================================================================

# Delay between nested per-item fetches (assignment detail, page body, entries)
NESTED_REQUEST_DELAY_MS = 100

# Delay between top-level endpoint fetches
ENDPOINT_REQUEST_DELAY_MS = 200

# Maximum number of concurrent downloads/uploads in one batch window
MAX_CONCURRENT_DOWNLOADS = 3

# Delay between batch windows
DOWNLOAD_BATCH_DELAY_MS = 1000


# =============================================================================
# Timeouts (in seconds)
# =============================================================================

# Timeout for a single REST request
REQUEST_TIMEOUT = 30.0

# Timeout for a single file download
DOWNLOAD_TIMEOUT = 30.0

# Timeout for relay uploads (batches can be large)
RELAY_TIMEOUT = 60.0

# Maximum retry attempts for retryable REST failures
MAX_RETRIES = 3


# =============================================================================
# Naming
# =============================================================================

# Maximum length of a sanitized filename
MAX_FILENAME_LENGTH = 100

# Maximum length of a sanitized path component (folder names)
MAX_PATH_COMPONENT_LENGTH = 50

# Names longer than this that contain spaces are treated as free text
FREE_TEXT_NAME_THRESHOLD = 50

# Number of words kept from a free-text name
FREE_TEXT_NAME_WORDS = 5

# Root directory for downloaded course files
DOWNLOAD_ROOT = "canvas_downloads"


# =============================================================================
# Relay
# =============================================================================

# Default relay backend URL
DEFAULT_RELAY_URL = "http://localhost:3000"

# Prefix of the per-course student id used by the relay
STUDENT_ID_PREFIX = "student_course_"
