# Domain Package
from .errors import (
    CadenceError,
    ParameterValidationError,
    UnknownCardStateError,
    ValidationError,
)
from .models import (
    Card,
    CardState,
    DailyCounters,
    Grade,
    LeechAction,
    LeechCheck,
    LeechOutcome,
    NewCardOrder,
    ReviewOutcome,
)
from .parameters import ParameterSet

__all__ = [
    "CadenceError",
    "Card",
    "CardState",
    "DailyCounters",
    "Grade",
    "LeechAction",
    "LeechCheck",
    "LeechOutcome",
    "NewCardOrder",
    "ParameterSet",
    "ParameterValidationError",
    "ReviewOutcome",
    "UnknownCardStateError",
    "ValidationError",
]
