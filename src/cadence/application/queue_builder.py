"""
Queue builder for daily study sessions.

Builds ordered study queues by:
1. Partitioning cards into due learning, due review and eligible new buckets
2. Capping review and new buckets by what is left of today's quotas
3. Burying siblings so one card per sibling group surfaces
4. Ordering learning first, then reviews with new cards spread among them
"""

import logging
import random
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cadence.application.ledger import as_utc
from cadence.domain.constants import REVIEW_AHEAD_DAYS
from cadence.domain.models import Card, CardState, DailyCounters, NewCardOrder
from cadence.domain.parameters import ParameterSet

logger = logging.getLogger(__name__)


@dataclass
class QueueBuildResult:
    """Result of queue building operation."""

    learning: list[Card]  # Due learning/relearning cards, never capped
    review: list[Card]  # Selected review cards (due_at ascending)
    new: list[Card]  # Selected new cards (per new_card_order)
    ordered: list[Card]  # Final presentation order
    buried: list[str] = field(default_factory=list)  # Ids dropped by sibling burial

    @property
    def card_ids(self) -> list[str]:
        return [card.id for card in self.ordered]

    def __len__(self) -> int:
        return len(self.ordered)


def build_queue(
    cards: Iterable[Card],
    params: ParameterSet,
    counters: DailyCounters,
    now: datetime,
    seed: int | str | None = None,
) -> Iterator[Card]:
    """
    Produce the cards eligible for study right now, in presentation order.

    Does not touch `counters`; the caller records each card as it is shown,
    so an aborted session does not burn quota. The returned iterator is
    single-pass; call again for a fresh queue.
    """
    return iter(plan_queue(cards, params, counters, now, seed=seed).ordered)


def plan_queue(
    cards: Iterable[Card],
    params: ParameterSet,
    counters: DailyCounters,
    now: datetime,
    seed: int | str | None = None,
) -> QueueBuildResult:
    """
    Build the study queue and keep the intermediate buckets for diagnostics.

    Args:
        cards: Every card of the project.
        params: The project's validated parameters.
        counters: Today's consumption (read only).
        now: Current time. Naive values are taken as UTC.
        seed: Seed for Random new-card order. Defaults to one derived from
            the project and day so the order is stable within a day.

    Returns:
        QueueBuildResult with the selected buckets and final order.
    """
    now = as_utc(now)
    due_learning, due_review, eligible_new = _partition(cards, params, now)

    due_learning.sort(key=lambda c: (c.due_at, c.id))
    due_review.sort(key=lambda c: (c.due_at, c.id))
    eligible_new = _order_new(eligible_new, params, counters, seed)

    review_cap = _remaining(
        params.max_reviews_per_day, counters.reviews_shown, zero_is_unlimited=True
    )
    new_cap = _remaining(params.new_cards_per_day, counters.new_cards_introduced)

    # Learning cards are exempt from burial and do not claim their group.
    claimed_groups: set[str] = set()
    buried: list[str] = []
    reviews = _take(due_review, review_cap, params.bury_siblings, claimed_groups, buried)
    new = _take(eligible_new, new_cap, params.bury_siblings, claimed_groups, buried)

    ordered = due_learning + _interleave(reviews, new)

    logger.debug(
        f"Queue: learning={len(due_learning)} review={len(reviews)}/{len(due_review)} "
        f"new={len(new)}/{len(eligible_new)} buried={len(buried)}"
    )

    return QueueBuildResult(
        learning=due_learning,
        review=reviews,
        new=new,
        ordered=ordered,
        buried=buried,
    )


def _partition(
    cards: Iterable[Card], params: ParameterSet, now: datetime
) -> tuple[list[Card], list[Card], list[Card]]:
    review_horizon = now + timedelta(days=REVIEW_AHEAD_DAYS) if params.review_ahead else now

    due_learning: list[Card] = []
    due_review: list[Card] = []
    eligible_new: list[Card] = []

    for card in cards:
        # Burial only hides new and review cards; learning steps always run.
        if card.is_learning:
            if card.due_at <= now:
                due_learning.append(card)
        elif card.is_buried:
            continue
        elif card.state == CardState.REVIEW:
            if card.due_at <= review_horizon:
                due_review.append(card)
        elif card.state == CardState.NEW:
            eligible_new.append(card)

    return due_learning, due_review, eligible_new


def _order_new(
    cards: list[Card],
    params: ParameterSet,
    counters: DailyCounters,
    seed: int | str | None,
) -> list[Card]:
    if params.new_card_order == NewCardOrder.FIFO:
        return sorted(cards, key=lambda c: (c.created_at or c.due_at, c.id))

    # Sort first so the shuffle does not depend on the caller's iteration order.
    shuffled = sorted(cards, key=lambda c: c.id)
    if seed is None:
        seed = f"{counters.project_id}:{counters.day.isoformat()}"
    random.Random(seed).shuffle(shuffled)
    return shuffled


def _remaining(cap: int, used: int, zero_is_unlimited: bool = False) -> int | None:
    """Quota left today; None means unlimited."""
    if zero_is_unlimited and cap == 0:
        return None
    return max(0, cap - used)


def _take(
    candidates: list[Card],
    limit: int | None,
    bury_siblings: bool,
    claimed_groups: set[str],
    buried: list[str],
) -> list[Card]:
    selected: list[Card] = []

    for card in candidates:
        if limit is not None and len(selected) >= limit:
            break

        group = card.sibling_group_id
        if bury_siblings and group is not None:
            if group in claimed_groups:
                buried.append(card.id)
                continue
            claimed_groups.add(group)

        selected.append(card)

    return selected


def _interleave(reviews: list[Card], new: list[Card]) -> list[Card]:
    """Spread new cards evenly through the review sequence, keeping both orders."""
    if not reviews or not new:
        return reviews + new

    result: list[Card] = []
    taken = 0
    for i, card in enumerate(new):
        upto = ((i + 1) * len(reviews)) // (len(new) + 1)
        result.extend(reviews[taken:upto])
        taken = upto
        result.append(card)
    result.extend(reviews[taken:])

    return result
