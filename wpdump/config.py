import os
import re

APP_VERSION = "1.2.0"

# Namespaces whose pages never carry article content
EXCLUDED_NAMESPACES = (
    "file",
    "talk",
    "special",
    "wikipedia",
    "wiktionary",
    "user",
    "user_talk",
)
# Canonical titles are percent-encoded, so ":" shows up as "%3A"
NAMESPACE_PATTERN = re.compile(
    r"^(?:" + "|".join(EXCLUDED_NAMESPACES) + r")(?::|%3a)",
    re.IGNORECASE,
)

# Worker pool sizing
DEFAULT_WORKERS = os.cpu_count() or 1
INTAKE_QUEUE_FACTOR = 4  # Pending pages per worker before the decoder blocks
OUTTAKE_QUEUE_SIZE = 10000  # Pending output lines before workers block

# Dump decoding
PAGE_TAG = "page"
COMPRESSED_SUFFIXES = {".gz": "gzip", ".bz2": "bz2"}

# JSON output layout
JSON_SEPARATORS = (",", ":")

# Run logging and progress display
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PROGRESS_MINITERS = 1000
PROGRESS_BAR_FORMAT = "{desc}: {n:,}{unit} [{elapsed}, {rate_fmt}]"
