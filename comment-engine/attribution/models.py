from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AttributionFailure(Enum):
    AMBIGUOUS = "AMBIGUOUS"


@dataclass(frozen=True)
class RevisionRef:
    revid: int
    timestamp: datetime
    user: Optional[str] = None
    parent_id: Optional[int] = None
    comment: str = ""


@dataclass(frozen=True)
class RevisionDiff:
    """A revision and the HTML diff body of its change against the previous revision."""
    revision: RevisionRef
    body: Optional[str]


@dataclass(frozen=True)
class DiffMatch:
    revision: RevisionRef
    word_overlap: float
    date_proximity_ms: int
    added_text: str = ""
    rendered: bool = False
