from matching.models import LocateFailure, MatchCandidate, ScoreBreakdown
from matching.engine import SourceMatcher

__all__ = ["LocateFailure", "MatchCandidate", "ScoreBreakdown", "SourceMatcher"]
