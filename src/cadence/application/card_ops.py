"""
Card maintenance operations outside the grading state machine.

Creation, suspension, reactivation, burial and manual rescheduling. All of
them return new Card snapshots; nothing here performs I/O.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from ulid import ULID

from cadence.application.intervals import clamp_interval, due_in_days
from cadence.application.ledger import as_utc
from cadence.domain.errors import InvalidReactivationError
from cadence.domain.models import Card, CardState
from cadence.domain.parameters import ParameterSet

logger = logging.getLogger(__name__)


def generate_card_id() -> str:
    """Generate a stable card ID using ULID."""
    return f"card_{ULID()}"


def new_card(
    project_id: str,
    params: ParameterSet,
    now: datetime,
    card_id: str | None = None,
    sibling_group_id: str | None = None,
    tags: Iterable[str] = (),
) -> Card:
    """Create a card in New state, due immediately, at the project's starting ease."""
    now = as_utc(now)
    return Card(
        id=card_id or generate_card_id(),
        project_id=project_id,
        state=CardState.NEW,
        due_at=now,
        ease_factor=params.starting_ease,
        sibling_group_id=sibling_group_id,
        created_at=now,
        tags=tuple(tags),
    )


def suspend(card: Card) -> Card:
    return replace(card, state=CardState.SUSPENDED)


def reactivate(card: Card, target: CardState, now: datetime) -> Card:
    """
    Move a suspended card back into scheduling.

    REVIEW keeps the card's interval and makes it due now; NEW starts it over
    with its ease and lapse history intact.

    Raises:
        InvalidReactivationError: If the card is not suspended, the target is
            not REVIEW/NEW, or REVIEW is requested for a never-graduated card.
    """
    now = as_utc(now)
    if card.state != CardState.SUSPENDED:
        raise InvalidReactivationError(f"Card {card.id} is {card.state.value}, not suspended")

    if target == CardState.REVIEW:
        if card.interval_days <= 0:
            raise InvalidReactivationError(
                f"Card {card.id} has never graduated; reactivate it as new"
            )
        return replace(card, state=CardState.REVIEW, step_index=0, due_at=now)

    if target == CardState.NEW:
        return replace(card, state=CardState.NEW, step_index=0, interval_days=0.0, due_at=now)

    raise InvalidReactivationError(f"Cannot reactivate card {card.id} into {target.value}")


def bury(card: Card) -> Card:
    return replace(card, is_buried=True)


def unbury(card: Card) -> Card:
    return replace(card, is_buried=False)


def clear_buried(cards: Iterable[Card]) -> list[Card]:
    """Lift every burial, as happens at the local day boundary."""
    return [unbury(card) if card.is_buried else card for card in cards]


def bury_siblings_after_review(
    cards: Iterable[Card], reviewed: Card, params: ParameterSet
) -> list[Card]:
    """
    Bury the reviewed card's new/review siblings for the rest of the day.

    Learning siblings stay visible; learning steps must always complete.
    """
    cards = list(cards)
    if not params.bury_siblings or reviewed.sibling_group_id is None:
        return cards

    result: list[Card] = []
    for card in cards:
        if (
            card.id != reviewed.id
            and card.sibling_group_id == reviewed.sibling_group_id
            and card.state in (CardState.NEW, CardState.REVIEW)
        ):
            result.append(bury(card))
        else:
            result.append(card)

    return result


def set_interval(
    card: Card,
    interval_days: float,
    params: ParameterSet,
    now: datetime,
    ease_factor: float | None = None,
    reset_lapses: bool = False,
) -> Card:
    """
    Manually reschedule a card as a Review card `interval_days` from now.

    A non-positive interval leaves the state alone and only makes the card due now.
    """
    now = as_utc(now)
    if interval_days <= 0:
        updated = replace(card, due_at=now)
    else:
        interval = clamp_interval(float(interval_days), params)
        updated = replace(
            card,
            state=CardState.REVIEW,
            step_index=0,
            interval_days=interval,
            due_at=due_in_days(now, interval),
        )

    if ease_factor is not None:
        updated = replace(updated, ease_factor=max(params.minimum_ease, ease_factor))

    if reset_lapses:
        updated = replace(updated, lapse_count=0, is_leech=False)

    return updated


def reset_progress(card: Card, params: ParameterSet, now: datetime) -> Card:
    """Forget all scheduling history and start the card over as New."""
    now = as_utc(now)
    logger.info(f"Resetting progress of card {card.id}")
    return replace(
        card,
        state=CardState.NEW,
        step_index=0,
        due_at=now,
        interval_days=0.0,
        ease_factor=params.starting_ease,
        lapse_count=0,
        is_leech=False,
        repetitions=0,
        is_buried=False,
    )
