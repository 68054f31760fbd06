"""
Per-project scheduling parameters.

A ParameterSet is validated once at construction and is immutable afterwards,
so every scheduling pass can trust its bounds without re-checking them.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from cadence.domain import constants as c
from cadence.domain.errors import ParameterValidationError
from cadence.domain.models import LeechAction, NewCardOrder


class ParameterSet(BaseModel):
    """
    Validated, immutable bundle of SRS tunables for one project.

    Construction raises ParameterValidationError listing every violated
    constraint, not only the first.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Daily limits
    new_cards_per_day: int = Field(default=c.DEFAULT_NEW_CARDS_PER_DAY, ge=0)
    max_reviews_per_day: int = Field(default=c.DEFAULT_MAX_REVIEWS_PER_DAY, ge=0)

    # Steps in minutes
    learning_steps: tuple[PositiveInt, ...] = Field(
        default=c.DEFAULT_LEARNING_STEPS, min_length=1
    )
    relearning_steps: tuple[PositiveInt, ...] = Field(
        default=c.DEFAULT_RELEARNING_STEPS, min_length=1
    )

    # Graduation in days
    graduating_interval: int = Field(default=c.DEFAULT_GRADUATING_INTERVAL, ge=1)
    easy_interval: int = Field(default=c.DEFAULT_EASY_INTERVAL, ge=1)

    # Ease
    starting_ease: float = Field(default=c.DEFAULT_STARTING_EASE, ge=1.3)
    minimum_ease: float = Field(default=c.DEFAULT_MINIMUM_EASE, ge=1.0)
    easy_bonus: float = Field(default=c.DEFAULT_EASY_BONUS, ge=1.0)

    # Interval factors
    hard_interval_factor: float = Field(default=c.DEFAULT_HARD_INTERVAL_FACTOR, gt=0, le=1)
    easy_interval_factor: float = Field(default=c.DEFAULT_EASY_INTERVAL_FACTOR, ge=1.0)
    interval_modifier: float = Field(default=c.DEFAULT_INTERVAL_MODIFIER, gt=0, le=3.0)

    # Lapses
    lapse_recovery_factor: float = Field(default=c.DEFAULT_LAPSE_RECOVERY_FACTOR, gt=0, le=1)
    lapse_ease_penalty: float = Field(default=c.DEFAULT_LAPSE_EASE_PENALTY, ge=0)
    leech_threshold: int = Field(default=c.DEFAULT_LEECH_THRESHOLD, ge=1)
    leech_action: LeechAction = LeechAction.SUSPEND

    # Deck options
    new_card_order: NewCardOrder = NewCardOrder.RANDOM
    review_ahead: bool = False
    bury_siblings: bool = False
    max_interval: int = Field(default=c.DEFAULT_MAX_INTERVAL, ge=1)

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            violations = [_format_error(err) for err in e.errors()]
            violations.extend(_cross_field_violations(data))
            raise ParameterValidationError(violations) from e

        violations = _cross_field_violations(data)
        if violations:
            raise ParameterValidationError(violations)

    @field_validator("leech_action", "new_card_order", mode="before")
    @classmethod
    def normalize_enum_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ParameterSet":
        """Build a ParameterSet from a settings row; missing keys take defaults."""
        return cls(**dict(data or {}))

    def to_dict(self) -> dict[str, Any]:
        """JSON/YAML friendly representation (enums as strings, steps as lists)."""
        d = self.model_dump(mode="json")
        d["learning_steps"] = list(self.learning_steps)
        d["relearning_steps"] = list(self.relearning_steps)
        return d


def _format_error(err: Mapping[str, Any]) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid value')}"


def _cross_field_violations(data: Mapping[str, Any]) -> list[str]:
    """Constraints spanning more than one field, checked on the raw input."""
    violations: list[str] = []

    starting = data.get("starting_ease", c.DEFAULT_STARTING_EASE)
    minimum = data.get("minimum_ease", c.DEFAULT_MINIMUM_EASE)
    try:
        if float(minimum) > float(starting):
            violations.append(
                f"minimum_ease: {minimum} must not exceed starting_ease {starting}"
            )
    except (TypeError, ValueError):
        pass  # Already reported by the field validators

    return violations
