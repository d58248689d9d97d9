"""Project-wide configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(os.environ.get("CULLING_PROJECT_ROOT", Path.cwd()))

load_dotenv(PROJECT_ROOT / ".env")

# Analysis service
CULLING_API_URL = os.environ.get("CULLING_API_URL", "http://localhost:8000")
CULLING_API_TIMEOUT = float(os.environ.get("CULLING_API_TIMEOUT", "120"))
CULLING_USER_ID = os.environ.get("CULLING_USER_ID", "")

# Retry policy for transient transport failures
RETRY_ATTEMPTS = 3
RETRY_MAX_WAIT = 10

# Analysis orchestration
ANALYSIS_CONCURRENCY = 2
PERSON_GROUPING_DELAY = 0.5  # seconds after analysis completes

# Scoring
HIGH_SCORE_THRESHOLD = 7.0
CULL_SCORE_THRESHOLD = 5.0
SIMILARITY_THRESHOLD = 0.98

# Upload allow-lists (lowercase, without the dot)
STANDARD_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "tiff", "bmp", "webp"})
RAW_EXTENSIONS = frozenset(
    {"cr2", "cr3", "nef", "arw", "dng", "orf", "raf", "pef", "rw2", "srw", "x3f"}
)

# RAW placeholder preview
PLACEHOLDER_SIZE = (400, 300)
PLACEHOLDER_COLOR = (243, 244, 246)

# Logging
LOG_LEVEL = os.environ.get("CULLING_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Notifications kept in memory
NOTIFICATION_HISTORY = 50
