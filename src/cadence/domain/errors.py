"""Exception hierarchy for the scheduling engine."""


class CadenceError(Exception):
    """Base class for every error raised by cadence."""


class ParameterValidationError(CadenceError, ValueError):
    """
    Raised when a ParameterSet violates one or more of its documented bounds.

    Attributes:
        violations: Every violated constraint, one human-readable line each.
    """

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        joined = "; ".join(self.violations)
        super().__init__(f"Invalid scheduling parameters ({len(self.violations)}): {joined}")


# Public alias used at the library boundary.
ValidationError = ParameterValidationError


class UnknownCardStateError(CadenceError):
    """
    A card arrived with a state/step combination the state machine cannot reconcile.

    Indicates caller-side data corruption. Never clamped silently.
    """

    def __init__(self, card_id: str, state: str, detail: str):
        self.card_id = card_id
        self.state = state
        self.detail = detail
        super().__init__(f"Card {card_id} in state {state!r} is inconsistent: {detail}")


class InvalidReactivationError(CadenceError):
    """Raised when a card cannot be reactivated into the requested state."""


class DeckNotFoundError(CadenceError):
    """Raised by deck stores when the requested deck does not exist."""


class DeckFormatError(CadenceError):
    """Raised by deck stores when a stored deck cannot be decoded."""
