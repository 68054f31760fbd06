"""Leech detection on the Review -> Relearning lapse edge."""

import logging

from cadence.domain.models import Card, LeechAction, LeechCheck, LeechOutcome
from cadence.domain.parameters import ParameterSet

logger = logging.getLogger(__name__)


def check(card: Card, params: ParameterSet) -> LeechCheck:
    """
    Decide whether a just-lapsed card is a leech.

    Fires on every multiple of leech_threshold, not just the first, so a card
    that keeps failing is re-flagged. `card.lapse_count` must already include
    the lapse being processed.
    """
    if card.lapse_count <= 0 or card.lapse_count % params.leech_threshold != 0:
        return LeechCheck(is_leech=card.is_leech, action_taken=LeechOutcome.NONE)

    if params.leech_action == LeechAction.SUSPEND:
        action = LeechOutcome.SUSPENDED
    else:
        action = LeechOutcome.TAGGED

    logger.info(
        f"Card {card.id} is a leech ({card.lapse_count} lapses), action={action.value}"
    )
    return LeechCheck(is_leech=True, action_taken=action)
