"""
Card state machine.

Maps (card, parameters, grade, now) to the card's next state. Every function
here is pure: no clock reads, no shared state, safe from any thread or task.

States:
    NEW -> LEARNING -> REVIEW <-> RELEARNING
    SUSPENDED is terminal for the engine; only card_ops.reactivate leaves it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime

from cadence.application import leech
from cadence.application.intervals import (
    clamp_interval,
    due_in_days,
    due_in_minutes,
    next_review_interval,
    relearn_interval,
)
from cadence.application.ledger import as_utc
from cadence.domain.errors import UnknownCardStateError
from cadence.domain.models import Card, CardState, Grade, LeechCheck, LeechOutcome, ReviewOutcome
from cadence.domain.parameters import ParameterSet

logger = logging.getLogger(__name__)

_NO_LEECH = LeechCheck(is_leech=False)


@dataclass(frozen=True)
class ReviewResult:
    """Outcome of answering one card."""

    card: Card
    previous_state: CardState
    leech: LeechCheck = _NO_LEECH

    @property
    def graduated(self) -> bool:
        return self.previous_state != CardState.REVIEW and self.card.state == CardState.REVIEW

    @property
    def lapsed(self) -> bool:
        return self.previous_state == CardState.REVIEW and self.card.state in (
            CardState.RELEARNING,
            CardState.SUSPENDED,
        )


def transition(card: Card, params: ParameterSet, grade: Grade, now: datetime) -> Card:
    """Return the card's next state after answering `grade` at `now`."""
    return review(card, params, grade, now).card


def apply_outcome(card: Card, params: ParameterSet, outcome: ReviewOutcome) -> ReviewResult:
    """Answer a card from a ReviewOutcome, using its timestamp as `now`."""
    return review(card, params, outcome.grade, outcome.reviewed_at)


def review(card: Card, params: ParameterSet, grade: Grade, now: datetime) -> ReviewResult:
    """
    Answer a card and report what happened alongside the new state.

    Raises:
        UnknownCardStateError: If the card's step/interval cannot be reconciled
            with its state (caller-side data corruption).
    """
    grade = Grade(grade)
    now = as_utc(now)
    if card.state == CardState.SUSPENDED:
        logger.debug(f"Card {card.id} is suspended; ignoring grade {grade.name}")
        return ReviewResult(card=card, previous_state=card.state)

    handler = _HANDLERS.get(card.state)
    if handler is None:
        raise UnknownCardStateError(card.id, str(card.state), "unrecognized state")

    result = handler(card, params, grade, now)
    logger.debug(
        f"Card {card.id}: {card.state.value} --{grade.name}--> {result.card.state.value} "
        f"(step={result.card.step_index}, interval={result.card.interval_days:.2f}, "
        f"ease={result.card.ease_factor:.2f}, due={result.card.due_at.isoformat()})"
    )
    return result


# ---------------------------------------------------------------------------
# Per-state handlers
# ---------------------------------------------------------------------------


def _answer_new(card: Card, params: ParameterSet, grade: Grade, now: datetime) -> ReviewResult:
    # The first exposure always enters learning at step 0, regardless of grade.
    updated = replace(
        card,
        state=CardState.LEARNING,
        step_index=0,
        due_at=due_in_minutes(now, params.learning_steps[0]),
        last_reviewed_at=now,
        is_buried=False,
    )
    return ReviewResult(card=updated, previous_state=card.state)


def _answer_learning(
    card: Card, params: ParameterSet, grade: Grade, now: datetime
) -> ReviewResult:
    steps = params.learning_steps
    _require_step_in_range(card, steps)
    stamped = replace(card, last_reviewed_at=now)

    if grade == Grade.AGAIN:
        updated = replace(stamped, step_index=0, due_at=due_in_minutes(now, steps[0]))
    elif grade == Grade.HARD:
        updated = replace(stamped, due_at=due_in_minutes(now, steps[card.step_index]))
    elif grade == Grade.GOOD:
        next_step = card.step_index + 1
        if next_step < len(steps):
            updated = replace(
                stamped, step_index=next_step, due_at=due_in_minutes(now, steps[next_step])
            )
        else:
            updated = _graduate(stamped, params.graduating_interval, params, now)
    else:
        updated = _graduate(stamped, params.easy_interval, params, now)

    return ReviewResult(card=updated, previous_state=card.state)


def _answer_review(
    card: Card, params: ParameterSet, grade: Grade, now: datetime
) -> ReviewResult:
    _require_positive_interval(card)
    result = next_review_interval(card.interval_days, card.ease_factor, grade, params)

    if grade == Grade.AGAIN:
        return _lapse(card, params, result.ease_factor, now)

    updated = replace(
        card,
        interval_days=result.interval_days,
        ease_factor=result.ease_factor,
        due_at=due_in_days(now, result.interval_days),
        repetitions=card.repetitions + 1,
        last_reviewed_at=now,
    )
    return ReviewResult(card=updated, previous_state=card.state)


def _answer_relearning(
    card: Card, params: ParameterSet, grade: Grade, now: datetime
) -> ReviewResult:
    steps = params.relearning_steps
    _require_step_in_range(card, steps)
    _require_positive_interval(card)
    stamped = replace(card, last_reviewed_at=now)

    if grade == Grade.AGAIN:
        updated = replace(stamped, step_index=0, due_at=due_in_minutes(now, steps[0]))
    elif grade == Grade.HARD:
        updated = replace(stamped, due_at=due_in_minutes(now, steps[card.step_index]))
    elif grade == Grade.GOOD and card.step_index + 1 < len(steps):
        next_step = card.step_index + 1
        updated = replace(
            stamped, step_index=next_step, due_at=due_in_minutes(now, steps[next_step])
        )
    else:
        interval = relearn_interval(card.interval_days, params)
        updated = replace(
            stamped,
            state=CardState.REVIEW,
            step_index=0,
            interval_days=interval,
            due_at=due_in_days(now, interval),
        )

    return ReviewResult(card=updated, previous_state=card.state)


_Handler = Callable[[Card, ParameterSet, Grade, datetime], ReviewResult]

_HANDLERS: dict[CardState, _Handler] = {
    CardState.NEW: _answer_new,
    CardState.LEARNING: _answer_learning,
    CardState.REVIEW: _answer_review,
    CardState.RELEARNING: _answer_relearning,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _graduate(card: Card, days: int, params: ParameterSet, now: datetime) -> Card:
    interval = clamp_interval(float(days), params)
    return replace(
        card,
        state=CardState.REVIEW,
        step_index=0,
        interval_days=interval,
        due_at=due_in_days(now, interval),
        repetitions=card.repetitions + 1,
    )


def _lapse(card: Card, params: ParameterSet, new_ease: float, now: datetime) -> ReviewResult:
    # interval_days is kept: re-graduation scales the pre-lapse interval.
    lapsed = replace(
        card,
        state=CardState.RELEARNING,
        lapse_count=card.lapse_count + 1,
        ease_factor=new_ease,
        step_index=0,
        due_at=due_in_minutes(now, params.relearning_steps[0]),
        last_reviewed_at=now,
        is_buried=False,
    )

    verdict = leech.check(lapsed, params)
    if verdict.action_taken == LeechOutcome.SUSPENDED:
        lapsed = replace(lapsed, state=CardState.SUSPENDED, is_leech=True)
    elif verdict.action_taken == LeechOutcome.TAGGED:
        lapsed = replace(lapsed, is_leech=True)

    return ReviewResult(card=lapsed, previous_state=card.state, leech=verdict)


def _require_step_in_range(card: Card, steps: tuple[int, ...]) -> None:
    if not 0 <= card.step_index < len(steps):
        raise UnknownCardStateError(
            card.id,
            card.state.value,
            f"step_index {card.step_index} outside {len(steps)} configured steps",
        )


def _require_positive_interval(card: Card) -> None:
    if card.interval_days <= 0:
        raise UnknownCardStateError(
            card.id, card.state.value, f"interval_days {card.interval_days} must be positive"
        )
