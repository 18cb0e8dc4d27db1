"""Per-seat projections of the authoritative state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .history import HistoryEntry
from .phases import ActionResponse, BlockResponse, Exchange, GameWon, Phase, RevealInfluence, acting_player
from .roles import UNKNOWN
from .state import GameState


@dataclass(frozen=True)
class InfluenceView:
    role: str
    revealed: bool


@dataclass(frozen=True)
class PlayerView:
    player_id: str
    name: str
    cash: int
    influence: Tuple[InfluenceView, ...]


@dataclass(frozen=True)
class PhaseView:
    name: str
    player: Optional[int] = None
    action: Optional[str] = None
    target: Optional[int] = None
    blocker: Optional[int] = None
    role: Optional[str] = None
    message: Optional[str] = None
    winner: Optional[int] = None


@dataclass(frozen=True)
class MatchView:
    match_id: Optional[str]
    sequence_id: int
    seat_count: int
    seat: int
    player_id: str
    phase: PhaseView
    players: Tuple[PlayerView, ...]
    history: Tuple[HistoryEntry, ...]


def mask_state(state: GameState, seat: int, match_id: Optional[str] = None) -> MatchView:
    """Build the view ``seat`` is allowed to see. Never touches ``state``."""
    if not 0 <= seat < len(state.players):
        raise ValueError(f"Seat {seat} is not occupied.")
    players = tuple(
        PlayerView(
            player_id=player.player_id,
            name=player.name,
            cash=player.cash,
            influence=tuple(
                InfluenceView(
                    role=slot.role.value if slot.revealed or index == seat else UNKNOWN,
                    revealed=slot.revealed,
                )
                for slot in player.influence
            ),
        )
        for index, player in enumerate(state.players)
    )
    return MatchView(
        match_id=match_id,
        sequence_id=state.sequence_id,
        seat_count=state.seat_count,
        seat=seat,
        player_id=state.players[seat].player_id,
        phase=phase_view(state.phase),
        players=players,
        history=state.history.entries,
    )


def phase_view(phase: Phase) -> PhaseView:
    if isinstance(phase, ActionResponse):
        return PhaseView(name=phase.name, player=phase.player, action=phase.action.value, target=phase.target)
    if isinstance(phase, BlockResponse):
        return PhaseView(
            name=phase.name,
            player=phase.player,
            action=phase.action.value,
            target=phase.target,
            blocker=phase.blocker,
            role=phase.role.value,
        )
    if isinstance(phase, RevealInfluence):
        return PhaseView(
            name=phase.name,
            player=phase.player,
            action=phase.action.value if phase.action else None,
            target=phase.target,
            message=phase.message,
        )
    if isinstance(phase, Exchange):
        # Options are private to the actor and go out on their own channel.
        return PhaseView(name=phase.name, player=phase.player, action="exchange")
    if isinstance(phase, GameWon):
        return PhaseView(name=phase.name, winner=phase.winner)
    return PhaseView(name=phase.name, player=acting_player(phase))
