"""
Ports (interfaces) for deck persistence.

The engine never performs I/O. These define the contract that the external
collaborator's storage adapters implement; only the CLI depends on them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from cadence.domain.constants import DEFAULT_TIMEZONE
from cadence.domain.models import Card, DailyCounters
from cadence.domain.parameters import ParameterSet


@dataclass
class Deck:
    """Everything the external layer loads before a scheduling call."""

    project_id: str
    params: ParameterSet
    cards: list[Card] = field(default_factory=list)
    counters: DailyCounters | None = None
    timezone: str = DEFAULT_TIMEZONE

    def get_card(self, card_id: str) -> Card | None:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def replace_card(self, updated: Card) -> None:
        self.cards = [updated if card.id == updated.id else card for card in self.cards]


class CardRepository(ABC):
    """
    Port for loading and saving decks.

    Implementations:
        - YamlDeckStore: One YAML document per deck on disk.
    """

    @abstractmethod
    def load(self) -> Deck:
        """
        Load the deck with its parameters, cards and today's counters.

        Raises:
            DeckNotFoundError: If the deck does not exist.
            ParameterValidationError: If stored parameters are invalid.
        """
        pass

    @abstractmethod
    def save(self, deck: Deck) -> None:
        """Persist the deck, replacing any previous version."""
        pass
