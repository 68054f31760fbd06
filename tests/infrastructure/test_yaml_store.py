from datetime import datetime, timedelta, timezone

import pytest
import yaml

from cadence.domain.errors import DeckFormatError, DeckNotFoundError, ParameterValidationError
from cadence.domain.models import CardState, DailyCounters
from cadence.domain.parameters import ParameterSet
from cadence.domain.ports import Deck
from cadence.infrastructure.yaml_store import YamlDeckStore, card_from_dict


@pytest.fixture
def deck(make_card, now):
    return Deck(
        project_id="p1",
        params=ParameterSet(new_cards_per_day=7, learning_steps=[2, 20]),
        cards=[
            make_card("a"),
            make_card(
                "b",
                CardState.RELEARNING,
                interval_days=12.5,
                ease_factor=2.1,
                lapse_count=3,
                sibling_group_id="g",
                last_reviewed_at=now,
                tags=("leech",),
                is_leech=True,
            ),
        ],
        counters=DailyCounters("p1", now.date(), new_cards_introduced=2, reviews_shown=5),
        timezone="Europe/Berlin",
    )


def test_save_then_load(tmp_path, deck):
    store = YamlDeckStore(tmp_path / "nested" / "deck.yaml")

    store.save(deck)
    loaded = store.load()

    assert loaded.project_id == "p1"
    assert loaded.timezone == "Europe/Berlin"
    assert loaded.params == deck.params
    assert loaded.cards == deck.cards
    assert loaded.counters == deck.counters


def test_file_is_readable_yaml(tmp_path, deck):
    store = YamlDeckStore(tmp_path / "deck.yaml")
    store.save(deck)

    raw = yaml.safe_load(store.path.read_text())

    assert raw["params"]["learning_steps"] == [2, 20]
    assert raw["cards"][1]["state"] == "relearning"
    assert raw["counters"]["day"] == "2026-01-05"


def test_missing_deck(tmp_path):
    with pytest.raises(DeckNotFoundError):
        YamlDeckStore(tmp_path / "nope.yaml").load()


@pytest.mark.parametrize(
    "content",
    [
        "project_id: [unclosed",
        "- just\n- a list\n",
        "timezone: UTC\n",
        "project_id: p1\ntimezone: Nowhere/Special\n",
        "project_id: p1\ncards:\n  - id: x\n    state: dormant\n    due_at: 2026-01-05\n",
    ],
)
def test_malformed_decks(tmp_path, content):
    path = tmp_path / "deck.yaml"
    path.write_text(content)

    with pytest.raises(DeckFormatError):
        YamlDeckStore(path).load()


def test_invalid_params_are_reported_as_such(tmp_path):
    path = tmp_path / "deck.yaml"
    path.write_text("project_id: p1\nparams:\n  learning_steps: []\n  leech_threshold: 0\n")

    with pytest.raises(ParameterValidationError) as exc_info:
        YamlDeckStore(path).load()

    assert len(exc_info.value.violations) == 2


def test_card_from_dict_defaults_and_naive_times():
    card = card_from_dict({"id": "x", "due_at": "2026-01-05T09:00:00"}, "p1")

    assert card.project_id == "p1"
    assert card.state == CardState.NEW
    assert card.due_at == datetime(2026, 1, 5, 9, tzinfo=timezone.utc)
    assert card.ease_factor == 2.5
    assert card.tags == ()


def test_card_from_dict_keeps_offsets():
    data = {"id": "x", "state": "REVIEW", "due_at": "2026-01-05T09:00:00+02:00", "interval_days": 3}

    card = card_from_dict(data, "p1")

    assert card.state == CardState.REVIEW
    assert card.due_at.utcoffset() == timedelta(hours=2)
    assert card.interval_days == 3.0


def test_undecodable_deck(tmp_path):
    path = tmp_path / "deck.yaml"
    path.write_bytes(b"project_id: \xff\xfe\x00p1\n")

    with pytest.raises(DeckFormatError):
        YamlDeckStore(path).load()
