"""
Domain models for the scheduling engine.

These are pure data structures with no I/O or external dependencies.
Cards are immutable snapshots; every state change produces a new instance.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"
    SUSPENDED = "suspended"


class Grade(IntEnum):
    """Answer buttons, on the same 0-3 scale the review log stores."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3


class LeechAction(str, Enum):
    SUSPEND = "suspend"
    TAG = "tag"


class LeechOutcome(str, Enum):
    NONE = "none"
    SUSPENDED = "suspended"
    TAGGED = "tagged"


class NewCardOrder(str, Enum):
    RANDOM = "random"
    FIFO = "fifo"


@dataclass(frozen=True)
class Card:
    """
    Scheduling state of a single flashcard.

    Content (front/back) lives with the external layer; only SRS state is kept here.

    Attributes:
        id: Stable card identifier.
        project_id: Owning project.
        state: Current lifecycle state.
        due_at: Next eligible study time (timezone-aware).
        step_index: Position within learning/relearning steps.
        interval_days: Current review interval, 0 before graduation.
        ease_factor: Interval growth multiplier.
        lapse_count: Times the card failed from Review.
        is_leech: Whether the leech detector has flagged the card.
        sibling_group_id: Cards sharing this id are buried together.
        created_at: Creation time, used for FIFO ordering of new cards.
        repetitions: Successful review count.
        last_reviewed_at: Time of the last answered review.
        is_buried: Hidden until the next local day.
        tags: External labels carried through untouched.
    """

    id: str
    project_id: str
    state: CardState
    due_at: datetime
    step_index: int = 0
    interval_days: float = 0.0
    ease_factor: float = 2.5
    lapse_count: int = 0
    is_leech: bool = False
    sibling_group_id: str | None = None
    created_at: datetime | None = None
    repetitions: int = 0
    last_reviewed_at: datetime | None = None
    is_buried: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_learning(self) -> bool:
        return self.state in (CardState.LEARNING, CardState.RELEARNING)


@dataclass(frozen=True)
class ReviewOutcome:
    """A single answer: the grade pressed and when."""

    grade: Grade
    reviewed_at: datetime


@dataclass(frozen=True)
class LeechCheck:
    """Result of running the leech detector on a lapse."""

    is_leech: bool
    action_taken: LeechOutcome = LeechOutcome.NONE


@dataclass
class DailyCounters:
    """
    Per-project quota consumption for one local calendar day.

    Owned by the CounterLedger; mutate only through it.
    """

    project_id: str
    day: date
    new_cards_introduced: int = 0
    reviews_shown: int = 0
