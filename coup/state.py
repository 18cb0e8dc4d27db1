"""Authoritative match state and the turn state machine for Coup."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from random import Random
from typing import List, Optional, Sequence, Union

from .deck import Deck
from .history import History
from .phases import (
    ActionResponse,
    BlockResponse,
    Exchange,
    GameWon,
    Phase,
    RevealInfluence,
    StartOfTurn,
    WaitingForPlayers,
    acting_player,
)
from .player import Influence, Player
from .roles import ACTIONS, Action, Role
from .rules_schema import EXCHANGE_DRAW, STARTING_INFLUENCE, RuleSet

logger = logging.getLogger(__name__)


class IllegalCommand(RuntimeError):
    """Raised when a command is not legal in the current state."""


class MatchFull(RuntimeError):
    """Raised when a seat is requested from a match with no free seats."""


class InvariantViolation(RuntimeError):
    """Raised when the state reaches a condition the rules make impossible."""


ANNOUNCEMENTS = {
    Action.STEAL: "attempted to steal from",
    Action.ASSASSINATE: "attempted to assassinate",
    Action.EXCHANGE: "attempted to exchange",
}


@dataclass
class GameState:
    rules: RuleSet = field(default_factory=RuleSet)
    rng: Optional[Random] = None
    deck_order: Optional[Sequence[Role]] = None

    sequence_id: int = field(init=False, default=1)
    players: List[Player] = field(init=False, default_factory=list)
    phase: Phase = field(init=False, default_factory=WaitingForPlayers)
    history: History = field(init=False, default_factory=History)
    deck: Deck = field(init=False)

    def __post_init__(self) -> None:
        self.deck = Deck(copies_per_role=self.rules.copies_per_role, rng=self.rng, cards=self.deck_order)

    @property
    def seat_count(self) -> int:
        return self.rules.seat_count

    def is_full(self) -> bool:
        return len(self.players) >= self.seat_count

    def is_alive(self, seat: int) -> bool:
        return 0 <= seat < len(self.players) and self.players[seat].is_alive

    def live_seats(self) -> List[int]:
        return [seat for seat, player in enumerate(self.players) if player.is_alive]

    # Seating -----------------------------------------------------------

    def add_player(self, name: Optional[str] = None) -> int:
        if self.is_full():
            raise MatchFull(f"All {self.seat_count} seats are taken.")
        seat = len(self.players)
        influence = [Influence(self.deck.draw()) for _ in range(STARTING_INFLUENCE)]
        self.players.append(
            Player(
                player_id=uuid.uuid4().hex,
                name=name or f"Player {seat + 1}",
                cash=self.rules.starting_cash,
                influence=influence,
            )
        )
        if self.is_full():
            self.phase = StartOfTurn(player=0)
        self.history.append(seat, "joined the game")
        return seat

    def remove_player(self, seat: int) -> None:
        """Give up a seat before seating closes; later seats move down by one."""
        if not isinstance(self.phase, WaitingForPlayers):
            raise IllegalCommand("Seating has closed; leaving players are eliminated instead.")
        self.history.append(seat, "left the game")
        player = self.players.pop(seat)
        self.deck.put_back(slot.role for slot in player.influence)

    def forfeit(self, seat: int) -> None:
        """Eliminate a seat that disconnected mid-match."""
        if isinstance(self.phase, GameWon) or not self.is_alive(seat):
            self.history.append(seat, "left the game")
            return
        self.kill_player(seat)
        self.history.append(seat, "left the game")
        phase = self.phase
        if isinstance(phase, RevealInfluence) and phase.target == seat:
            self._finish_reveal(phase)
        elif isinstance(phase, BlockResponse) and phase.blocker == seat:
            # The block leaves with its claimant; the action goes ahead unopposed.
            self.history.append(seat, "abandoned the block")
            if self._play(phase.player, phase.action, phase.target):
                self.next_turn()
        elif isinstance(phase, (ActionResponse, BlockResponse)) and not self.pending_responders():
            self._settle_allowed(phase)

    # Commands ----------------------------------------------------------

    def play_action(self, seat: int, action: Action, target: Optional[int] = None) -> None:
        if not isinstance(self.phase, StartOfTurn) or seat != self.phase.player:
            raise IllegalCommand("Not your turn.")
        spec = ACTIONS[action]
        player = self.players[seat]
        if player.cash >= self.rules.forced_coup_cash and action is not Action.COUP:
            raise IllegalCommand(f"Must coup when holding {self.rules.forced_coup_cash} or more cash.")
        if player.cash < spec.cost:
            raise IllegalCommand(f"{action} costs {spec.cost}; only {player.cash} available.")
        if spec.targeted:
            if target is None:
                raise IllegalCommand(f"{action} requires a target.")
            if not 0 <= target < self.seat_count:
                raise IllegalCommand(f"Invalid target seat {target}.")
            if target == seat:
                raise IllegalCommand("Cannot target yourself.")
            if not self.is_alive(target):
                raise IllegalCommand("Cannot target an eliminated player.")
        else:
            target = None

        player.cash -= spec.cost
        if not spec.contestable:
            if self._play(seat, action, target):
                self.next_turn()
            return

        self.history.append(seat, ANNOUNCEMENTS.get(action, f"attempted to draw {action}"), target)
        self.phase = ActionResponse(player=seat, action=action, target=target)

    def challenge(self, seat: int) -> None:
        phase = self.phase
        if isinstance(phase, ActionResponse):
            if seat == phase.player:
                raise IllegalCommand("Cannot challenge your own action.")
            role = ACTIONS[phase.action].role
            if role is None:
                raise IllegalCommand(f"{phase.action} cannot be challenged.")
            challenged = phase.player
        elif isinstance(phase, BlockResponse):
            if seat == phase.blocker:
                raise IllegalCommand("Cannot challenge your own block.")
            role, challenged = phase.role, phase.blocker
        else:
            raise IllegalCommand(f"Nothing to challenge in {phase.name}.")
        if seat in phase.allowed:
            raise IllegalCommand("Already allowed.")
        self._resolve_challenge(phase, seat, challenged, role)

    def block(self, seat: int, role: Role) -> None:
        phase = self.phase
        if not isinstance(phase, ActionResponse):
            raise IllegalCommand(f"Nothing to block in {self.phase.name}.")
        if seat == phase.player:
            raise IllegalCommand("Cannot block your own action.")
        if seat in phase.allowed:
            raise IllegalCommand("Already allowed.")
        blockers = ACTIONS[phase.action].blocked_by
        if not blockers:
            raise IllegalCommand(f"{phase.action} cannot be blocked.")
        if role not in blockers:
            raise IllegalCommand(f"{phase.action} cannot be blocked by {role}.")

        self.history.append(seat, f"attempted to block with {role}")
        self.phase = BlockResponse(
            player=phase.player,
            action=phase.action,
            target=phase.target,
            blocker=seat,
            role=role,
        )

    def allow(self, seat: int) -> None:
        phase = self.phase
        if isinstance(phase, ActionResponse):
            if seat == phase.player:
                raise IllegalCommand("Cannot allow your own action.")
        elif isinstance(phase, BlockResponse):
            if seat == phase.blocker:
                raise IllegalCommand("Cannot allow your own block.")
        else:
            raise IllegalCommand(f"Nothing to allow in {phase.name}.")
        if seat in phase.allowed:
            raise IllegalCommand("Already allowed.")

        self.phase = replace(phase, allowed=phase.allowed | {seat})
        if not self.pending_responders():
            self._settle_allowed(phase)

    def reveal(self, seat: int, role: Role) -> None:
        phase = self.phase
        if not isinstance(phase, RevealInfluence):
            raise IllegalCommand(f"Nothing to reveal in {self.phase.name}.")
        if seat != phase.target:
            raise IllegalCommand("Not your turn to reveal an influence.")
        player = self.players[seat]
        if player.find_live_influence(role) is None:
            raise IllegalCommand(f"No unrevealed {role} to reveal.")

        player.reveal_one(role)
        self.history.append(seat, f"revealed {role}")
        self._finish_reveal(phase)

    def exchange(self, seat: int, roles: Sequence[Role]) -> None:
        phase = self.phase
        if not isinstance(phase, Exchange):
            raise IllegalCommand(f"Nothing to exchange in {self.phase.name}.")
        if seat != phase.player:
            raise IllegalCommand("Not your turn.")
        player = self.players[seat]
        slots = player.live_slots()
        if len(roles) != len(slots):
            raise IllegalCommand(f"Must keep exactly {len(slots)} roles.")
        pool = Counter(player.live_roles()) + Counter(phase.options)
        kept = Counter(roles)
        if kept - pool:
            raise IllegalCommand("Kept roles must come from your hand or the drawn cards.")

        for slot, role in zip(slots, roles):
            player.replace_role(slot, role)
        self.deck.put_back((pool - kept).elements())
        self.history.append(seat, "exchanged roles")
        self.next_turn()

    # Turn machinery ----------------------------------------------------

    def pending_responders(self) -> List[int]:
        """Live seats that still owe a response to the current action or block."""
        phase = self.phase
        if isinstance(phase, ActionResponse):
            excluded = phase.player
        elif isinstance(phase, BlockResponse):
            excluded = phase.blocker
        else:
            return []
        return [seat for seat in self.live_seats() if seat != excluded and seat not in phase.allowed]

    def next_turn(self) -> None:
        current = acting_player(self.phase)
        if current is None:
            raise InvariantViolation(f"No acting player to advance from in {self.phase.name}.")
        for offset in range(1, self.seat_count):
            candidate = (current + offset) % self.seat_count
            if self.is_alive(candidate):
                self.phase = StartOfTurn(player=candidate)
                return
        logger.error("No live seat to pass the turn to after seat %s", current)
        raise InvariantViolation("No live players left to take a turn.")

    def kill_player(self, seat: int) -> None:
        """Reveal everything a seat still holds and settle the consequences."""
        phase = self.phase
        self.players[seat].reveal_all()
        logger.info("Seat %s eliminated", seat)
        if isinstance(phase, Exchange) and phase.player == seat:
            self.deck.put_back(phase.options)
        if acting_player(phase) == seat:
            self.next_turn()
        self.check_for_game_end()

    def check_for_game_end(self) -> Optional[int]:
        if isinstance(self.phase, (WaitingForPlayers, GameWon)):
            return None
        live = self.live_seats()
        if len(live) != 1:
            if not live:
                logger.error("Game-end check found no live seats")
            return None
        winner = live[0]
        self.phase = GameWon(winner=winner)
        self.history.append(winner, "won the game")
        logger.info("Seat %s won the game", winner)
        return winner

    def is_over(self) -> bool:
        return isinstance(self.phase, GameWon)

    def _play(self, seat: int, action: Action, target: Optional[int]) -> bool:
        """Apply an action's effect. Returns True when the turn is over."""
        spec = ACTIONS[action]
        player = self.players[seat]
        if spec.targeted and target is None:
            raise InvariantViolation(f"{action} reached resolution without a target.")
        if action in (Action.ASSASSINATE, Action.COUP):
            if not self.is_alive(target):
                return True
            if action is Action.ASSASSINATE:
                self.history.append(seat, "assassinated", target)
                message = "assassinated"
            else:
                self.history.append(seat, "staged a coup on", target)
                message = "coup"
            self.phase = RevealInfluence(player=seat, target=target, message=message, action=action)
            return False
        if action is Action.STEAL:
            victim = self.players[target]
            taken = min(spec.gain, victim.cash)
            victim.cash -= taken
            player.cash += taken
            self.history.append(seat, "stole from", target)
            return True
        if action is Action.EXCHANGE:
            options = tuple(self.deck.draw() for _ in range(EXCHANGE_DRAW))
            self.phase = Exchange(player=seat, options=options)
            return False
        player.cash += spec.gain
        self.history.append(seat, f"drew {action}")
        return True

    def _settle_allowed(self, phase: Union[ActionResponse, BlockResponse]) -> None:
        if isinstance(phase, BlockResponse):
            self.history.append(phase.blocker, f"blocked with {phase.role}")
            self.next_turn()
        elif self._play(phase.player, phase.action, phase.target):
            self.next_turn()

    def _resolve_challenge(
        self,
        phase: Union[ActionResponse, BlockResponse],
        challenger: int,
        challenged: int,
        role: Role,
    ) -> None:
        in_action_response = isinstance(phase, ActionResponse)
        slot = self.players[challenged].find_live_influence(role)
        if slot is not None:
            self.history.append(challenger, "incorrectly challenged", challenged)
            loser, message = challenger, "failed challenge"
            # A failed challenge of the action lets it go through.
            action_stands = in_action_response
        else:
            self.history.append(challenger, "successfully challenged", challenged)
            loser, message = challenged, "successfully challenged"
            # A bluffed block no longer stops the action.
            action_stands = not in_action_response

        # Losing a challenge while resisting an assassination costs the
        # challenge card and the assassination card at once. Keyed on the
        # contested action, not on whether the loser is the assassination target.
        resisted_assassination = phase.action is Action.ASSASSINATE and (loser == challenger) == in_action_response
        live = self.players[loser].live_influence_count()

        if live <= 1 or (resisted_assassination and live <= 2):
            self.kill_player(loser)
            if not self.is_over() and loser != phase.player:
                if not action_stands or self._play(phase.player, phase.action, phase.target):
                    self.next_turn()
        else:
            then_exchange = action_stands and phase.action is Action.EXCHANGE
            if action_stands and not then_exchange:
                self._play(phase.player, phase.action, phase.target)
            self.phase = RevealInfluence(
                player=phase.player,
                target=loser,
                message=message,
                action=phase.action,
                then_exchange=then_exchange,
            )

        if slot is not None:
            proven = self.players[challenged]
            proven.replace_role(slot, self.deck.return_and_redraw(role))

    def _finish_reveal(self, phase: RevealInfluence) -> None:
        if not self.players[phase.target].is_alive:
            logger.info("Seat %s eliminated", phase.target)
            self.check_for_game_end()
            if self.is_over():
                return
        if phase.then_exchange and self.is_alive(phase.player):
            self._play(phase.player, Action.EXCHANGE, None)
        else:
            self.next_turn()

    # Accounting --------------------------------------------------------

    def card_count(self) -> int:
        in_hands = sum(len(player.influence) for player in self.players)
        pending = len(self.phase.options) if isinstance(self.phase, Exchange) else 0
        return len(self.deck) + in_hands + pending

    def check_invariants(self) -> None:
        if self.card_count() != self.rules.total_cards:
            raise InvariantViolation(
                f"Card accounting broken: {self.card_count()} cards tracked, {self.rules.total_cards} expected."
            )
        for seat, player in enumerate(self.players):
            if player.cash < 0:
                raise InvariantViolation(f"Seat {seat} has negative cash.")
            if len(player.influence) != STARTING_INFLUENCE:
                raise InvariantViolation(f"Seat {seat} holds {len(player.influence)} influence slots.")
