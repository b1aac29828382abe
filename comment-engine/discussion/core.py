"""
FILE DESCRIPTION: Foundational module for global configuration and logging.
KEY FUNCTIONS/CLASSES: setup_logger, EngineFormatter, tunable engine constants
"""

import logging
import sys
import os
from datetime import datetime, timezone
from pathlib import Path
from dotenv import load_dotenv

# === CONFIGURATION SECTION ===

# Load .env at the beginning of core
load_dotenv(Path(__file__).resolve().parents[2] / '.env')


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Source matching: a candidate must score strictly above this to be accepted
MATCH_SCORE_THRESHOLD = float(os.getenv("MATCH_SCORE_THRESHOLD", 2.5))

# Number of preceding comments a fingerprint carries (fixed, not tunable)
PRECEDING_LOOKBACK = 2

# Comments are dated to the minute; everything within this window counts as "same minute"
NEW_COMMENT_TOLERANCE_SECONDS = 60

# Comments dated further than this in the future are treated as not new
FUTURE_DATE_TOLERANCE_MINUTES = 3

# Revision search window around a comment's date when attributing it to an edit
ATTRIBUTION_WINDOW_BEFORE_MINUTES = int(os.getenv("ATTRIBUTION_WINDOW_BEFORE_MINUTES", 10))
ATTRIBUTION_WINDOW_AFTER_MINUTES = int(os.getenv("ATTRIBUTION_WINDOW_AFTER_MINUTES", 3))

# Visits older than this are pruned from the visit log
HIGHLIGHT_NEW_INTERVAL_MINUTES = int(os.getenv("HIGHLIGHT_NEW_INTERVAL_MINUTES", 15))

# Whether an edit to a seen comment makes it unseen again
COUNT_EDITS_AS_NEW_COMMENTS = _env_bool("COUNT_EDITS_AS_NEW_COMMENTS", False)

# Unsigned templates recognised in source (comma separated in the environment)
UNSIGNED_TEMPLATES = [
    name.strip()
    for name in os.getenv("UNSIGNED_TEMPLATES", "unsigned,unsignedIP,unsigned2,unsignedIP2").split(",")
    if name.strip()
]

# MediaWiki action API used by the revision client
API_URL = os.getenv("API_URL", "https://en.wikipedia.org/w/api.php")
USER_AGENT = os.getenv("USER_AGENT", "comment-engine/0.1 (talk page comment reconciliation)")

# Network timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None


# === LOGGING SECTION ===

class EngineFormatter(logging.Formatter):
    """
    One line per record: the UTC time in brackets, then level, context and message,
    e.g. "[ Mon Oct 19 02:02:07 PM UTC 2026 ] : WARNING : attribution : ...".
    Context is taken from `extra={"context": ...}`; records without one log as 'root'.
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")
        context = getattr(record, 'context', 'root')
        return f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"


def setup_logger(name="discussion", log_file=None, level=None):
    """
    Initializes or retrieves a logger. Child loggers propagate to the root
    'discussion' logger, which alone owns the console and optional file handlers.
    Level defaults to LOG_LEVEL.
    """
    if level is None:
        level = getattr(logging, LOG_LEVEL, logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    if name != "discussion":
        logger.propagate = True
        setup_logger("discussion", log_file=log_file, level=level)
        return logger

    formatter = EngineFormatter()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Global logger instance
logger = setup_logger(log_file=LOG_FILE)
