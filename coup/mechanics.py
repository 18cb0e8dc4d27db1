"""Legal command generation for Coup."""

from __future__ import annotations

from itertools import combinations
from typing import Any, Dict, List

from .phases import ActionResponse, BlockResponse, Exchange, RevealInfluence, StartOfTurn
from .roles import ACTIONS, Action, Role
from .state import GameState


def legal_commands(state: GameState, seat: int) -> List[Dict[str, Any]]:
    """Return every command payload ``seat`` could submit right now."""
    if not state.is_alive(seat):
        return []
    phase = state.phase
    commands: List[Dict[str, Any]] = []

    if isinstance(phase, StartOfTurn) and phase.player == seat:
        commands = _action_commands(state, seat)
    elif isinstance(phase, ActionResponse) and seat != phase.player and seat not in phase.allowed:
        spec = ACTIONS[phase.action]
        commands.append({"command": "allow"})
        if spec.role is not None:
            commands.append({"command": "challenge"})
        for role in Role:
            if role in spec.blocked_by:
                commands.append({"command": "block", "role": role.value})
    elif isinstance(phase, BlockResponse) and seat != phase.blocker and seat not in phase.allowed:
        commands = [{"command": "allow"}, {"command": "challenge"}]
    elif isinstance(phase, RevealInfluence) and phase.target == seat:
        roles = dict.fromkeys(state.players[seat].live_roles())
        commands = [{"command": "reveal", "role": role.value} for role in roles]
    elif isinstance(phase, Exchange) and phase.player == seat:
        player = state.players[seat]
        pool = sorted(role.value for role in player.live_roles() + list(phase.options))
        keeps = sorted(set(combinations(pool, player.live_influence_count())))
        commands = [{"command": "exchange", "roles": list(keep)} for keep in keeps]

    for command in commands:
        command["sequenceId"] = state.sequence_id
    return commands


def _action_commands(state: GameState, seat: int) -> List[Dict[str, Any]]:
    player = state.players[seat]
    forced = player.cash >= state.rules.forced_coup_cash
    targets = [other for other in state.live_seats() if other != seat]
    commands: List[Dict[str, Any]] = []
    for action, spec in ACTIONS.items():
        if forced and action is not Action.COUP:
            continue
        if player.cash < spec.cost:
            continue
        if spec.targeted:
            for target in targets:
                commands.append({"command": "play-action", "action": action.value, "target": target})
        else:
            commands.append({"command": "play-action", "action": action.value})
    return commands
