"""
Project study stats derived from card snapshots.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from cadence.application.queue_builder import plan_queue
from cadence.domain.models import Card, CardState, DailyCounters
from cadence.domain.parameters import ParameterSet


@dataclass(frozen=True)
class ProjectStats:
    """
    What a project has to offer right now, after daily caps.

    Attributes:
        available_new: New cards that can still be introduced today.
        due_learning: Learning/relearning cards due now.
        due_review: Review cards due now within the review cap.
        due: due_learning + due_review (new cards are not "due").
        total: All cards in the project.
        suspended: Suspended cards.
        leeches: Cards flagged as leeches.
    """

    project_id: str
    available_new: int
    due_learning: int
    due_review: int
    due: int
    total: int
    suspended: int
    leeches: int


def compute_project_stats(
    cards: Iterable[Card],
    params: ParameterSet,
    counters: DailyCounters,
    now: datetime,
) -> ProjectStats:
    cards = list(cards)
    plan = plan_queue(cards, params, counters, now)

    return ProjectStats(
        project_id=counters.project_id,
        available_new=len(plan.new),
        due_learning=len(plan.learning),
        due_review=len(plan.review),
        due=len(plan.learning) + len(plan.review),
        total=len(cards),
        suspended=sum(1 for c in cards if c.state == CardState.SUSPENDED),
        leeches=sum(1 for c in cards if c.is_leech),
    )
