from attribution.models import AttributionFailure, DiffMatch, RevisionDiff, RevisionRef
from attribution.engine import DiffMatcher, EditAttributor, MarkupRenderer, RevisionSource

__all__ = [
    "AttributionFailure",
    "DiffMatch",
    "RevisionDiff",
    "RevisionRef",
    "DiffMatcher",
    "EditAttributor",
    "MarkupRenderer",
    "RevisionSource",
]
