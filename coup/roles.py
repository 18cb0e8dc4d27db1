"""Roles, actions and the action table for Coup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Mapping, Optional


class Role(Enum):
    DUKE = "duke"
    CAPTAIN = "captain"
    ASSASSIN = "assassin"
    AMBASSADOR = "ambassador"
    CONTESSA = "contessa"

    def __str__(self) -> str:
        return self.value


class Action(Enum):
    INCOME = "income"
    FOREIGN_AID = "foreign-aid"
    COUP = "coup"
    TAX = "tax"
    ASSASSINATE = "assassinate"
    STEAL = "steal"
    EXCHANGE = "exchange"

    def __str__(self) -> str:
        return self.value


# Marker shown in place of a role the viewer is not allowed to see.
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ActionSpec:
    """Static description of one action."""

    cost: int = 0
    gain: int = 0
    role: Optional[Role] = None
    blocked_by: FrozenSet[Role] = frozenset()
    targeted: bool = False

    @property
    def contestable(self) -> bool:
        return self.role is not None or bool(self.blocked_by)


# For steal, ``gain`` is the most that can be taken from the target.
ACTIONS: Mapping[Action, ActionSpec] = {
    Action.INCOME: ActionSpec(gain=1),
    Action.FOREIGN_AID: ActionSpec(gain=2, blocked_by=frozenset({Role.DUKE})),
    Action.COUP: ActionSpec(cost=7, targeted=True),
    Action.TAX: ActionSpec(gain=3, role=Role.DUKE),
    Action.ASSASSINATE: ActionSpec(
        cost=3,
        role=Role.ASSASSIN,
        blocked_by=frozenset({Role.CONTESSA}),
        targeted=True,
    ),
    Action.STEAL: ActionSpec(
        gain=2,
        role=Role.CAPTAIN,
        blocked_by=frozenset({Role.CAPTAIN, Role.AMBASSADOR}),
        targeted=True,
    ),
    Action.EXCHANGE: ActionSpec(role=Role.AMBASSADOR),
}


def deck_roles(actions: Mapping[Action, ActionSpec] = ACTIONS) -> List[Role]:
    """Return every role that is claimed or used to block, in enum order."""
    in_play = set()
    for spec in actions.values():
        if spec.role is not None:
            in_play.add(spec.role)
        in_play.update(spec.blocked_by)
    return [role for role in Role if role in in_play]
