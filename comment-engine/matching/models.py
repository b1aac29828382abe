from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from signatures.models import SignatureCandidate


class LocateFailure(Enum):
    NOT_FOUND = "locateComment"


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor contributions. `total` is their sum."""
    certainty: float
    text_overlap: float
    heading_agreement: float
    section_agreement: float
    position_agreement: float
    index_agreement: float

    @property
    def total(self) -> float:
        return (
            self.certainty
            + self.text_overlap
            + self.heading_agreement
            + self.section_agreement
            + self.position_agreement
            + self.index_agreement
        )


@dataclass(frozen=True)
class MatchCandidate:
    """
    A signature candidate the fingerprint was matched to.
    The span covers the comment body and signature, excluding a heading line
    that precedes the comment.
    """
    signature: SignatureCandidate
    score: float
    breakdown: ScoreBreakdown
    span_start: int
    span_end: int
    code: str
    heading_code: Optional[str] = None
    extra_signatures: Tuple[SignatureCandidate, ...] = ()
