"""Validation schema for match rule configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .roles import ACTIONS, Action, deck_roles

# Two cards per seat plus the two drawn by an exchange.
STARTING_INFLUENCE = 2
EXCHANGE_DRAW = 2


class RuleSet(BaseModel):
    seat_count: int = Field(2, ge=2, description="Number of seats; play starts once all are filled.")
    starting_cash: int = Field(2, ge=0, description="Cash each player is seated with.")
    copies_per_role: int = Field(3, ge=1, description="Copies of every role in the court deck.")
    forced_coup_cash: int = Field(10, description="Cash at which a coup becomes the only legal action.")

    @field_validator("forced_coup_cash")
    @classmethod
    def coup_must_be_affordable(cls, value: int) -> int:
        coup_cost = ACTIONS[Action.COUP].cost
        if value < coup_cost:
            raise ValueError(f"Forced coup threshold must be at least the coup cost ({coup_cost}).")
        return value

    @model_validator(mode="after")
    def deck_covers_table(self) -> "RuleSet":
        needed = self.seat_count * STARTING_INFLUENCE + EXCHANGE_DRAW
        if self.total_cards < needed:
            raise ValueError(
                f"A deck of {self.total_cards} cards cannot seat {self.seat_count} players "
                f"and still serve an exchange (needs {needed})."
            )
        return self

    @property
    def total_cards(self) -> int:
        return self.copies_per_role * len(deck_roles())


def load_rules(path: Union[str, Path]) -> RuleSet:
    """Read a JSON rules file."""
    return RuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))
