"""
Shared selector and extension tables.

The classifier, the HTML miner and the DOM adapter all read from these
tables so they agree on what counts as a downloadable file.
"""

from coursestack_common.scraper.models import ContentType

# Extensions recognized as downloadable, grouped by content category
EXTENSIONS_BY_TYPE: dict[ContentType, tuple[str, ...]] = {
    ContentType.PDF: ("pdf",),
    ContentType.DOC: ("doc", "docx", "rtf", "odt"),
    ContentType.SLIDE: ("ppt", "pptx", "odp"),
    ContentType.SHEET: ("xls", "xlsx", "ods", "csv"),
    ContentType.TEXT: ("txt",),
    ContentType.ARCHIVE: ("zip", "rar", "tar", "gz", "7z"),
    ContentType.CODE: ("py", "java", "cpp", "c", "h", "html", "css", "js", "json", "xml", "sql"),
    ContentType.IMAGE: ("jpg", "jpeg", "png", "gif", "bmp", "svg", "tiff"),
    ContentType.MEDIA: ("mp4", "mp3", "wav", "avi", "mov", "wmv"),
}

# Extension -> content type lookup
TYPE_BY_EXTENSION: dict[str, ContentType] = {
    ext: content_type
    for content_type, extensions in EXTENSIONS_BY_TYPE.items()
    for ext in extensions
}

MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "rtf": "application/rtf",
    "odt": "application/vnd.oasis.opendocument.text",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "odp": "application/vnd.oasis.opendocument.presentation",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    "csv": "text/csv",
    "txt": "text/plain",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "7z": "application/x-7z-compressed",
    "html": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "json": "application/json",
    "xml": "application/xml",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "tiff": "image/tiff",
    "mp4": "video/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# Path markers of platform-hosted files
FILE_PATH_MARKERS = ("/files/", "/api/v1/files/")

# Extensions probed with anchor substring selectors
_ANCHOR_EXTENSIONS = (
    "pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "txt", "zip", "rar", "py", "java", "cpp",
)

# Elements that embed a PDF directly
PDF_EMBED_SELECTORS = (
    'iframe[src*=".pdf"]',
    'embed[src*=".pdf"]',
    'object[data*=".pdf"]',
)

# Anchors that hint at a PDF without a .pdf extension
PDF_HINT_SELECTORS = (
    'a[href*="/files/"][href*="pdf"]',
    'a[href*="preview=pdf"]',
    'a[href*="content-type=application%2Fpdf"]',
    'a[title*="pdf" i]',
)

# Ordered selectors for file references inside rich-text HTML
FILE_SELECTORS: tuple[str, ...] = (
    'a[href*="/files/"]',
    'a[href*="/api/v1/files/"]',
    'a[href*="verifier="]',
    *(f'a[href*=".{ext}"]' for ext in _ANCHOR_EXTENSIONS),
    'a[title*="pdf" i]',
    'a[href*="preview=pdf"]',
    'a[href*="content-type=application%2Fpdf"]',
    "a[download]",
    *PDF_EMBED_SELECTORS,
)

# Ordered selectors for PDF references only
PDF_SELECTORS: tuple[str, ...] = (
    'a[href*=".pdf"]',
    *PDF_EMBED_SELECTORS,
    *PDF_HINT_SELECTORS,
)

# Ordered selectors for a full-page DOM scan (platform file-link markup included)
DOM_SELECTORS: tuple[str, ...] = (
    'a[href*="/files/"]',
    'a[href*="/api/v1/files/"]',
    'a[href*="/download?"]',
    *(f'a[href*=".{ext}"]' for ext in _ANCHOR_EXTENSIONS),
    "a[download]",
    "a.download-file",
    "a.file_link",
    "a.file-link",
    "a.instructure_file_link",
    'a[data-api-endpoint*="files"]',
    ".attachment a",
    ".file-link a",
    *PDF_EMBED_SELECTORS,
)

# Selectors locating the course name in a course page, most specific first
COURSE_NAME_SELECTORS: tuple[str, ...] = (
    "#breadcrumbs .ellipsible",
    "h1.course-title",
    ".course-title",
    ".course_name",
    ".course-name",
    '[data-testid="course-name"]',
    "h1",
)

# Attributes that may carry a file URL, in lookup order
URL_ATTRIBUTES = ("href", "src", "data", "data-api-endpoint")
