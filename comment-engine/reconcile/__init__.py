from reconcile.models import (
    ChangeTrigger,
    CommentSnapshot,
    HiddenElement,
    LifecycleState,
    ReconcileVerdict,
    TrackedComment,
    UnseenComment,
    VisitRecord,
)
from reconcile.engine import ChangeReconciler
from reconcile.visits import VisitLog

__all__ = [
    "ChangeTrigger",
    "CommentSnapshot",
    "HiddenElement",
    "LifecycleState",
    "ReconcileVerdict",
    "TrackedComment",
    "UnseenComment",
    "VisitRecord",
    "ChangeReconciler",
    "VisitLog",
]
