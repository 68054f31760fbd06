# Application Package
from .card_ops import new_card, reactivate, reset_progress, suspend
from .ledger import CounterLedger, local_day
from .leech import check as check_leech
from .queue_builder import QueueBuildResult, build_queue, plan_queue
from .scheduler import ReviewResult, apply_outcome, review, transition
from .session import StudySession
from .stats import ProjectStats, compute_project_stats

__all__ = [
    "CounterLedger",
    "ProjectStats",
    "QueueBuildResult",
    "ReviewResult",
    "StudySession",
    "apply_outcome",
    "build_queue",
    "check_leech",
    "compute_project_stats",
    "local_day",
    "new_card",
    "plan_queue",
    "reactivate",
    "reset_progress",
    "review",
    "suspend",
    "transition",
]
