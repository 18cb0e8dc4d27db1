"""Per-seat cash and influence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .roles import Role


class InfluenceError(RuntimeError):
    """Raised when an influence slot is used in a way the rules do not allow."""


@dataclass
class Influence:
    role: Role
    revealed: bool = False


@dataclass
class Player:
    player_id: str
    name: str
    cash: int
    influence: List[Influence] = field(default_factory=list)

    @property
    def is_alive(self) -> bool:
        return self.live_influence_count() > 0

    def live_influence_count(self) -> int:
        return sum(1 for slot in self.influence if not slot.revealed)

    def live_roles(self) -> List[Role]:
        return [slot.role for slot in self.influence if not slot.revealed]

    def live_slots(self) -> List[int]:
        return [index for index, slot in enumerate(self.influence) if not slot.revealed]

    def find_live_influence(self, role: Role) -> Optional[int]:
        """Return the index of an unrevealed slot holding ``role``, if any."""
        for index, slot in enumerate(self.influence):
            if slot.role is role and not slot.revealed:
                return index
        return None

    def reveal_one(self, role: Role) -> int:
        index = self.find_live_influence(role)
        if index is None:
            raise InfluenceError(f"No unrevealed {role} to reveal.")
        self.influence[index].revealed = True
        return index

    def reveal_all(self) -> None:
        for slot in self.influence:
            slot.revealed = True

    def replace_role(self, index: int, role: Role) -> Role:
        """Swap the card in a live slot, returning the card it held."""
        slot = self.influence[index]
        if slot.revealed:
            raise InfluenceError("Revealed influence cannot be replaced.")
        previous = slot.role
        slot.role = role
        return previous
