"""
Study session: answers cards in one sitting and keeps a bounded undo history.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from cadence.application.ledger import CounterLedger
from cadence.application.scheduler import ReviewResult, review
from cadence.domain.constants import DEFAULT_TIMEZONE, UNDO_HISTORY_LIMIT
from cadence.domain.models import Card, CardState, Grade
from cadence.domain.parameters import ParameterSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewRecord:
    previous: Card  # Snapshot before the answer
    grade: Grade
    reviewed_at: datetime


@dataclass(frozen=True)
class SessionSummary:
    new_cards_studied: int
    reviews_completed: int
    lapses: int
    accuracy: float  # Percentage of Good/Easy answers


@dataclass
class StudySession:
    """
    One sitting of study for a project.

    If a ledger is attached, answering a card consumes its quota and undoing
    the answer gives it back.
    """

    project_id: str
    params: ParameterSet
    ledger: CounterLedger | None = None
    timezone: str = DEFAULT_TIMEZONE
    history: list[ReviewRecord] = field(default_factory=list)
    new_cards_studied: int = 0
    reviews_completed: int = 0

    def answer(self, card: Card, grade: Grade, now: datetime) -> ReviewResult:
        result = review(card, self.params, grade, now)

        if card.state == CardState.SUSPENDED:
            return result

        self.history.append(ReviewRecord(previous=card, grade=Grade(grade), reviewed_at=now))
        if len(self.history) > UNDO_HISTORY_LIMIT:
            del self.history[0]

        if card.state == CardState.NEW:
            self.new_cards_studied += 1
        elif card.state == CardState.REVIEW:
            self.reviews_completed += 1

        if self.ledger is not None:
            self.ledger.record_shown(self.project_id, card, now, self.timezone)

        return result

    def undo_last(self, now: datetime) -> Card | None:
        """
        Revert the most recent answer.

        Returns:
            The card as it was before that answer, or None if there is
            nothing to undo.
        """
        if not self.history:
            logger.warning(f"Session {self.project_id}: nothing to undo")
            return None

        record = self.history.pop()
        previous = record.previous

        if previous.state == CardState.NEW:
            self.new_cards_studied = max(0, self.new_cards_studied - 1)
        elif previous.state == CardState.REVIEW:
            self.reviews_completed = max(0, self.reviews_completed - 1)

        if self.ledger is not None:
            self.ledger.release(self.project_id, previous, now, self.timezone)

        logger.debug(f"Undid {record.grade.name} on card {previous.id}")
        return previous

    def summary(self) -> SessionSummary:
        total = len(self.history)
        passed = sum(1 for r in self.history if r.grade >= Grade.GOOD)
        lapses = sum(
            1
            for r in self.history
            if r.grade == Grade.AGAIN and r.previous.state == CardState.REVIEW
        )
        return SessionSummary(
            new_cards_studied=self.new_cards_studied,
            reviews_completed=self.reviews_completed,
            lapses=lapses,
            accuracy=(passed / total) * 100 if total else 0.0,
        )
