import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class LifecycleState(Enum):
    NEW = "NEW"
    CHANGED = "CHANGED"
    CHANGED_SINCE_PREVIOUS_VISIT = "CHANGED_SINCE_PREVIOUS_VISIT"
    DELETED = "DELETED"
    UNCHANGED = "UNCHANGED"


class ChangeTrigger(Enum):
    """External change signals delivered by the page update checker."""
    CHANGED = "changed"
    CHANGED_SINCE = "changedSince"
    DELETED = "deleted"
    # Undo a CHANGED mark (the edit was reverted)
    REVERTED = "reverted"
    # Undo a DELETED mark (the comment reappeared)
    RESTORED = "restored"


@dataclass(frozen=True)
class HiddenElement:
    """An element the page parser hid from the comment HTML (reference, template styles, ...)."""
    type: str
    tag_name: str
    html: str = ""


@dataclass(frozen=True)
class CommentSnapshot:
    """Structure of one rendering of a comment, used to decide whether HTML can be patched in place."""
    element_names: Tuple[str, ...]
    hidden_elements: Tuple[HiddenElement, ...] = ()
    html: str = ""


@dataclass(frozen=True)
class UnseenComment:
    """Seen-state of a comment carried over from the previous session."""
    id: str
    is_new: bool = False
    is_changed_since_previous_visit: bool = False


@dataclass(frozen=True)
class VisitRecord:
    """
    Past visit times (Unix seconds, oldest first) and the current time.
    Read-only input to new/seen computation.
    """
    visits: Tuple[int, ...]
    now: int


@dataclass
class TrackedComment:
    """
    Mutable per-session state of a comment.
    `adding_edit` is written at most once; concurrent attribution attempts
    keep the first recorded revision.
    """
    id: str
    date: Optional[datetime] = None
    is_own: bool = False
    is_new: bool = False
    is_seen: bool = True
    is_changed: bool = False
    is_changed_since_previous_visit: bool = False
    is_deleted: bool = False
    seen_before_changed: Optional[bool] = None
    _adding_edit: object = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def adding_edit(self):
        return self._adding_edit

    def record_adding_edit(self, revision):
        with self._lock:
            if self._adding_edit is None:
                self._adding_edit = revision
            return self._adding_edit

    @property
    def lifecycle(self) -> LifecycleState:
        if self.is_deleted:
            return LifecycleState.DELETED
        if self.is_changed_since_previous_visit:
            return LifecycleState.CHANGED_SINCE_PREVIOUS_VISIT
        if self.is_changed:
            return LifecycleState.CHANGED
        if self.is_new:
            return LifecycleState.NEW
        return LifecycleState.UNCHANGED


@dataclass(frozen=True)
class ReconcileVerdict:
    patchable: bool
    lifecycle: LifecycleState
    seen: bool
    reasons: Tuple[str, ...] = ()
