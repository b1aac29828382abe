from typing import Iterable, List

from discussion.core import HIGHLIGHT_NEW_INTERVAL_MINUTES, NEW_COMMENT_TOLERANCE_SECONDS
from reconcile.models import VisitRecord


class VisitLog:
    """
    Visit timestamps of one page, oldest first. Storage is the caller's concern;
    this class only prunes and appends.
    """

    def __init__(self, visits: Iterable[int] = (), highlight_new_interval: int = HIGHLIGHT_NEW_INTERVAL_MINUTES):
        self._visits: List[int] = sorted(int(v) for v in visits)
        self._interval = highlight_new_interval

    @property
    def visits(self) -> List[int]:
        return list(self._visits)

    def prune(self, now: int, mark_as_read: bool = False):
        """
        Drops visits before the newest one that falls outside the highlight interval.
        With a zero interval or a mark-as-read request only the newest visit is kept;
        it may lie in the future after a time conflict.
        """
        threshold = now - 60 * self._interval
        for i in range(len(self._visits) - 1, -1, -1):
            if self._visits[i] < threshold or not self._interval or mark_as_read:
                del self._visits[:i]
                break

    def record(self, now: int) -> VisitRecord:
        return VisitRecord(visits=tuple(self._visits), now=now)

    def register(self, now: int, time_conflict: bool = False) -> int:
        """
        Appends the current visit. When a comment was posted in the current minute the
        visit is pushed a minute ahead so that comment is not new again on the next load.
        """
        visit = now + (NEW_COMMENT_TOLERANCE_SECONDS if time_conflict else 0)
        self._visits.append(visit)
        return visit
