from dataclasses import replace
from datetime import datetime, timezone

import pytest

from cadence.domain.models import Card, CardState, DailyCounters
from cadence.domain.parameters import ParameterSet

NOW = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def params():
    return ParameterSet()


@pytest.fixture
def make_card():
    """Factory for cards in any state; keyword arguments override defaults."""

    def _make(card_id: str = "c1", state: CardState = CardState.NEW, **overrides) -> Card:
        card = Card(
            id=card_id,
            project_id="p1",
            state=state,
            due_at=NOW,
            created_at=NOW,
        )
        if state in (CardState.REVIEW, CardState.RELEARNING):
            card = replace(card, interval_days=10.0)
        return replace(card, **overrides)

    return _make


@pytest.fixture
def counters():
    return DailyCounters(project_id="p1", day=NOW.date())
