"""
Interval calculator for Review-state cards.

Pure numeric policy, no I/O. Intervals keep float precision between reviews;
only due-date arithmetic rounds to whole days.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from cadence.domain.constants import EASY_EASE_BONUS
from cadence.domain.models import Grade
from cadence.domain.parameters import ParameterSet


@dataclass(frozen=True)
class IntervalResult:
    """New interval (days) and ease factor after a review answer."""

    interval_days: float
    ease_factor: float


def round_days(interval_days: float) -> int:
    """Round half-up to whole days."""
    return int(math.floor(interval_days + 0.5))


def due_in_days(now: datetime, interval_days: float) -> datetime:
    return now + timedelta(days=round_days(interval_days))


def due_in_minutes(now: datetime, minutes: int) -> datetime:
    return now + timedelta(minutes=minutes)


def clamp_interval(interval_days: float, params: ParameterSet) -> float:
    return min(interval_days, float(params.max_interval))


def lapse_ease(ease_factor: float, params: ParameterSet) -> float:
    """Ease after a lapse, floored at minimum_ease."""
    return max(params.minimum_ease, ease_factor - params.lapse_ease_penalty)


def relearn_interval(previous_interval_days: float, params: ParameterSet) -> float:
    """Interval assigned when a relearning card graduates back to Review."""
    return clamp_interval(max(1.0, previous_interval_days * params.lapse_recovery_factor), params)


def next_review_interval(
    interval_days: float,
    ease_factor: float,
    grade: Grade,
    params: ParameterSet,
) -> IntervalResult:
    """
    Compute the next interval and ease for a Review-state answer.

    Guarantees:
        - Good/Easy never shrink the interval.
        - Hard grows by at least one day (hard_interval_factor <= 1).
        - Every grade is capped at max_interval.
        - Ease never drops below minimum_ease.

    Again keeps the interval (it is read again at re-graduation) and only
    applies the lapse ease penalty.
    """
    if grade == Grade.AGAIN:
        return IntervalResult(interval_days, lapse_ease(ease_factor, params))

    modifier = params.interval_modifier
    new_ease = ease_factor

    if grade == Grade.HARD:
        new_interval = max(
            interval_days * params.hard_interval_factor * modifier, interval_days + 1
        )
    elif grade == Grade.GOOD:
        new_interval = max(interval_days * ease_factor * modifier, interval_days)
    else:
        new_interval = max(
            interval_days * ease_factor * params.easy_bonus * modifier, interval_days
        )
        new_ease = max(params.minimum_ease, ease_factor + EASY_EASE_BONUS)

    return IntervalResult(clamp_interval(new_interval, params), new_ease)
