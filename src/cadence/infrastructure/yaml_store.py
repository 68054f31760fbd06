"""
YAML deck store, an infrastructure adapter persisting a deck as one YAML document.

Implements CardRepository for the CLI. Timestamps are written as ISO-8601
strings so they round-trip with their UTC offsets.
"""

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from cadence.domain.constants import DEFAULT_TIMEZONE
from cadence.domain.errors import (
    DeckFormatError,
    DeckNotFoundError,
    ParameterValidationError,
)
from cadence.domain.models import Card, CardState, DailyCounters
from cadence.domain.parameters import ParameterSet
from cadence.domain.ports import CardRepository, Deck

logger = logging.getLogger(__name__)


class YamlDeckStore(CardRepository):
    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Deck:
        if not self.exists():
            raise DeckNotFoundError(f"No deck at {self.path}")

        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise DeckFormatError(f"Invalid YAML in {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise DeckFormatError(f"{self.path}: top level must be a mapping")

        try:
            project_id = str(raw["project_id"])
            params = ParameterSet.from_mapping(raw.get("params"))
            cards = [card_from_dict(item, project_id) for item in raw.get("cards") or []]
            tz_name = str(raw.get("timezone") or DEFAULT_TIMEZONE)
            ZoneInfo(tz_name)
            counters = (
                counters_from_dict(raw["counters"], project_id) if raw.get("counters") else None
            )
        except ParameterValidationError:
            raise
        except (KeyError, TypeError, ValueError, ZoneInfoNotFoundError) as e:
            raise DeckFormatError(f"{self.path}: {e}") from e

        logger.debug(f"Loaded deck {project_id} with {len(cards)} cards from {self.path}")
        return Deck(
            project_id=project_id,
            params=params,
            cards=cards,
            counters=counters,
            timezone=tz_name,
        )

    def save(self, deck: Deck) -> None:
        doc: dict[str, Any] = {
            "project_id": deck.project_id,
            "timezone": deck.timezone,
            "params": deck.params.to_dict(),
            "counters": counters_to_dict(deck.counters) if deck.counters else None,
            "cards": [card_to_dict(card) for card in deck.cards],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(doc, sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        logger.debug(f"Saved deck {deck.project_id} ({len(deck.cards)} cards) to {self.path}")


# ---------- Codecs ----------


def _parse_datetime(value: Any) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "state": card.state.value,
        "due_at": card.due_at.isoformat(),
        "step_index": card.step_index,
        "interval_days": card.interval_days,
        "ease_factor": card.ease_factor,
        "lapse_count": card.lapse_count,
        "is_leech": card.is_leech,
        "sibling_group_id": card.sibling_group_id,
        "created_at": card.created_at.isoformat() if card.created_at else None,
        "repetitions": card.repetitions,
        "last_reviewed_at": card.last_reviewed_at.isoformat() if card.last_reviewed_at else None,
        "is_buried": card.is_buried,
        "tags": list(card.tags),
    }


def card_from_dict(data: dict[str, Any], project_id: str) -> Card:
    return Card(
        id=str(data["id"]),
        project_id=str(data.get("project_id") or project_id),
        state=CardState(str(data.get("state", "new")).lower()),
        due_at=_parse_datetime(data["due_at"]),
        step_index=int(data.get("step_index", 0)),
        interval_days=float(data.get("interval_days", 0.0)),
        ease_factor=float(data.get("ease_factor", 2.5)),
        lapse_count=int(data.get("lapse_count", 0)),
        is_leech=bool(data.get("is_leech", False)),
        sibling_group_id=data.get("sibling_group_id"),
        created_at=_parse_datetime(data["created_at"]) if data.get("created_at") else None,
        repetitions=int(data.get("repetitions", 0)),
        last_reviewed_at=(
            _parse_datetime(data["last_reviewed_at"]) if data.get("last_reviewed_at") else None
        ),
        is_buried=bool(data.get("is_buried", False)),
        tags=tuple(data.get("tags") or ()),
    )


def counters_to_dict(counters: DailyCounters) -> dict[str, Any]:
    return {
        "day": counters.day.isoformat(),
        "new_cards_introduced": counters.new_cards_introduced,
        "reviews_shown": counters.reviews_shown,
    }


def counters_from_dict(data: dict[str, Any], project_id: str) -> DailyCounters:
    return DailyCounters(
        project_id=project_id,
        day=_parse_date(data["day"]),
        new_cards_introduced=int(data.get("new_cards_introduced", 0)),
        reviews_shown=int(data.get("reviews_shown", 0)),
    )
