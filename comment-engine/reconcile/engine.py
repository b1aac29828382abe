from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Tuple

from discussion.core import (
    COUNT_EDITS_AS_NEW_COMMENTS,
    FUTURE_DATE_TOLERANCE_MINUTES,
    NEW_COMMENT_TOLERANCE_SECONDS,
    setup_logger,
)
from reconcile.models import (
    ChangeTrigger,
    CommentSnapshot,
    ReconcileVerdict,
    TrackedComment,
    UnseenComment,
    VisitRecord,
)
from reconcile.visits import VisitLog

logger = setup_logger("discussion.reconcile")

MARK_TRIGGERS = (ChangeTrigger.CHANGED, ChangeTrigger.CHANGED_SINCE, ChangeTrigger.DELETED)
UNMARK_TRIGGERS = (ChangeTrigger.REVERTED, ChangeTrigger.RESTORED)


class ChangeReconciler:
    """
    Decides whether a changed comment can be patched in place and keeps its
    new/seen/changed state.
    Invariants:
    - Changed/deleted states only come from external triggers.
    - A reverted change restores the cached seen state instead of recomputing it.
    """

    def __init__(self, count_edits_as_new: bool = COUNT_EDITS_AS_NEW_COMMENTS):
        self._count_edits_as_new = count_edits_as_new

    # === PATCHING ===

    def is_patchable(self, previous: CommentSnapshot, current: CommentSnapshot) -> Tuple[bool, Tuple[str, ...]]:
        """
        In-place HTML replacement is safe only if the element structure is the same,
        no references are involved (their text lives outside the comment) and no
        template style tag was replaced with another element.
        """
        reasons = []

        if tuple(previous.element_names) != tuple(current.element_names):
            reasons.append("element_structure_changed")

        if any(el.type == "reference" for el in previous.hidden_elements + current.hidden_elements):
            reasons.append("references_present")

        style_tags_kept = (
            not current.hidden_elements
            or all(el.type != "templateStyles" or el.tag_name.upper() == "STYLE" for el in current.hidden_elements)
            or all(el.type != "templateStyles" or el.tag_name.upper() != "STYLE" for el in previous.hidden_elements)
        )
        if not style_tags_kept:
            reasons.append("template_styles_replaced")

        return not reasons, tuple(reasons)

    def reconcile(
        self,
        previous: CommentSnapshot,
        current: CommentSnapshot,
        comment: TrackedComment,
        trigger: Optional[ChangeTrigger] = None,
    ) -> ReconcileVerdict:
        patchable, reasons = self.is_patchable(previous, current)

        if trigger in MARK_TRIGGERS:
            self.mark_as_changed(comment, trigger)
        elif trigger in UNMARK_TRIGGERS:
            self.unmark_as_changed(comment, trigger)

        if not patchable:
            logger.info(f"Comment {comment.id} needs a full rerender: {', '.join(reasons)}",
                        extra={"context": "reconcile"})

        return ReconcileVerdict(
            patchable=patchable,
            lifecycle=comment.lifecycle,
            seen=comment.is_seen,
            reasons=reasons,
        )

    # === CHANGE MARKS ===

    def mark_as_changed(self, comment: TrackedComment, trigger: ChangeTrigger):
        if trigger is ChangeTrigger.CHANGED:
            comment.is_changed = True
        elif trigger is ChangeTrigger.CHANGED_SINCE:
            comment.is_changed_since_previous_visit = True
        elif trigger is ChangeTrigger.DELETED:
            comment.is_deleted = True
        else:
            raise ValueError(f"{trigger} is not a change mark")

        if self._count_edits_as_new and trigger in (ChangeTrigger.CHANGED, ChangeTrigger.CHANGED_SINCE):
            if comment.seen_before_changed is None:
                comment.seen_before_changed = comment.is_seen
            comment.is_seen = False

    def unmark_as_changed(self, comment: TrackedComment, trigger: ChangeTrigger):
        if trigger is ChangeTrigger.REVERTED:
            comment.is_changed = False
        elif trigger is ChangeTrigger.RESTORED:
            comment.is_deleted = False
        else:
            raise ValueError(f"{trigger} does not undo a change mark")

        if self._count_edits_as_new and comment.is_seen is False and comment.seen_before_changed is True:
            comment.is_seen = True
            comment.seen_before_changed = None

    # === NEW / SEEN ===

    def init_new_and_seen(
        self,
        comment: TrackedComment,
        record: VisitRecord,
        unseen: Optional[UnseenComment] = None,
    ) -> bool:
        """
        Sets is_new and is_seen from the visit record. Returns True when the comment was
        posted in the current minute (a time conflict).
        """
        now = datetime.fromtimestamp(record.now, tz=timezone.utc)
        if (
            comment.date is None
            or not record.visits
            or comment.date > now + timedelta(minutes=FUTURE_DATE_TOLERANCE_MINUTES)
        ):
            comment.is_new = False
            comment.is_seen = True
            return False

        comment_time = int(comment.date.timestamp())

        # Comment times have no seconds while visit times do
        comment.is_new = bool(
            comment_time + NEW_COMMENT_TOLERANCE_SECONDS > record.visits[0]
            or (unseen is not None and unseen.is_new)
        )
        comment.is_seen = bool(
            (comment_time + NEW_COMMENT_TOLERANCE_SECONDS <= record.visits[-1] or comment.is_own)
            and unseen is None
        )

        return comment_time <= record.now < comment_time + NEW_COMMENT_TOLERANCE_SECONDS

    def process_visits(
        self,
        comments: Iterable[TrackedComment],
        log: VisitLog,
        now: int,
        unseen_comments: Optional[Dict[str, UnseenComment]] = None,
        mark_as_read: bool = False,
    ) -> bool:
        """
        Page-level visit processing: prune the log, compute new/seen for every comment,
        then register the current visit. Returns whether a time conflict occurred.
        """
        log.prune(now, mark_as_read)
        record = log.record(now)

        time_conflict = False
        if record.visits:
            for comment in comments:
                unseen = None if mark_as_read else (unseen_comments or {}).get(comment.id)
                time_conflict = self.init_new_and_seen(comment, record, unseen) or time_conflict

        log.register(now, time_conflict)
        logger.debug(f"Visit registered at {now} (time conflict: {time_conflict})", extra={"context": "reconcile"})
        return time_conflict
