from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from discussion.core import UNSIGNED_TEMPLATES

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class UndatedSentinel:
    """
    Author placeholder for signatures that explicitly mark a comment as unattributed.
    Compares equal only to itself.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<undated>"

    def __str__(self):
        return "<undated>"

    def __reduce__(self):
        return (UndatedSentinel, ())


UNDATED = UndatedSentinel()


@dataclass(frozen=True)
class TimestampFormat:
    """
    One timestamp notation. Patterns must use non-capturing groups only: they are
    spliced into larger expressions whose group numbers are fixed.
    `strptime_format` is applied to the text matched by `pattern_no_timezone`.
    """
    name: str
    pattern_no_timezone: str
    timezone_pattern: str
    strptime_format: str
    timezone_optional: bool = False

    @property
    def pattern(self) -> str:
        tz = f"(?:{self.timezone_pattern})"
        if self.timezone_optional:
            tz += "?"
        return f"(?:{self.pattern_no_timezone}){tz}"


MEDIAWIKI_TIMESTAMP = TimestampFormat(
    name="mediawiki",
    pattern_no_timezone=r"\b\d\d:\d\d, \d{1,2} (?:" + "|".join(MONTHS) + r") \d{4}",
    timezone_pattern=r" \((?:UTC|GMT)\)",
    strptime_format="%H:%M, %d %B %Y",
)

ISO_TIMESTAMP = TimestampFormat(
    name="iso",
    pattern_no_timezone=r"\b\d{4}-\d\d-\d\dT\d\d:\d\d",
    timezone_pattern=r"Z| \((?:UTC|GMT)\)",
    strptime_format="%Y-%m-%dT%H:%M",
    timezone_optional=True,
)


@dataclass(frozen=True)
class SignatureConfig:
    """
    Pattern configuration for signature extraction. Passed explicitly to the
    extractor so tests can run against any wiki's conventions.
    """
    user_namespaces: Tuple[str, ...] = ("User", "User talk")
    contributions_page: str = "Special:Contributions"
    unsigned_templates: Tuple[str, ...] = tuple(UNSIGNED_TEMPLATES)
    undated_templates: Tuple[str, ...] = ("undated",)
    timestamp_formats: Tuple[TimestampFormat, ...] = (MEDIAWIKI_TIMESTAMP, ISO_TIMESTAMP)
    # Abbreviation -> offset from UTC in minutes
    timezone_offsets: Dict[str, int] = field(default_factory=lambda: {"UTC": 0, "GMT": 0, "Z": 0})
    quote_tags: Tuple[Tuple[str, str], ...] = (("<blockquote>", "</blockquote>"), ("<q>", "</q>"))
    # Regex sources; any line matching one is not scanned for signatures
    comment_antipatterns: Tuple[str, ...] = ()
    # 255 (max signature length) minus len('[[u:a'), plus the space before the timestamp
    signature_scan_limit: int = 251


@dataclass(frozen=True)
class SignatureCandidate:
    """
    A signature found in page source.
    Invariant: line_start_offset <= signature_end_offset <= len(source).
    """
    author: Union[str, UndatedSentinel]
    raw_timestamp: str
    date: Optional[datetime]
    line_start_offset: int
    comment_start_offset: int
    signature_start_offset: int
    signature_end_offset: int
    next_comment_start_offset: int
    dirty_signature: str
    ordinal: int
    is_unsigned_template: bool = False

    @property
    def is_undated(self) -> bool:
        return self.author is UNDATED
