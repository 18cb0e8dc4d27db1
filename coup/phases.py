"""Turn phases. Each variant carries only the fields that make sense for it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from .roles import Action, Role


@dataclass(frozen=True)
class WaitingForPlayers:
    name: ClassVar[str] = "waiting-for-players"


@dataclass(frozen=True)
class StartOfTurn:
    name: ClassVar[str] = "start-of-turn"

    player: int


@dataclass(frozen=True)
class ActionResponse:
    """Everyone but the actor may block, challenge or allow the announced action."""

    name: ClassVar[str] = "action-response"

    player: int
    action: Action
    target: Optional[int] = None
    allowed: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class BlockResponse:
    """Everyone but the blocker may challenge or allow the block."""

    name: ClassVar[str] = "block-response"

    player: int
    action: Action
    blocker: int
    role: Role
    target: Optional[int] = None
    allowed: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class RevealInfluence:
    """``target`` must reveal one card before play continues.

    ``then_exchange`` marks a lost challenge against an exchange: the actor's
    draw happens only once the reveal is done.
    """

    name: ClassVar[str] = "reveal-influence"

    player: int
    target: int
    message: str
    action: Optional[Action] = None
    then_exchange: bool = False


@dataclass(frozen=True)
class Exchange:
    name: ClassVar[str] = "exchange"

    player: int
    options: Tuple[Role, ...]


@dataclass(frozen=True)
class GameWon:
    name: ClassVar[str] = "game-won"

    winner: int


Phase = Union[
    WaitingForPlayers,
    StartOfTurn,
    ActionResponse,
    BlockResponse,
    RevealInfluence,
    Exchange,
    GameWon,
]

# Phases in which some seat is taking its turn.
TURN_PHASES = (StartOfTurn, ActionResponse, BlockResponse, RevealInfluence, Exchange)


def acting_player(phase: Phase) -> Optional[int]:
    if isinstance(phase, TURN_PHASES):
        return phase.player
    return None
