"""Match orchestration: seats, command admission and state broadcast."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from random import Random
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple, Type

from pydantic import ValidationError

from .commands import (
    AllowCommand,
    BlockCommand,
    ChallengeCommand,
    CommandBase,
    ExchangeCommand,
    PlayActionCommand,
    RevealCommand,
    parse_command,
)
from .deck import DeckError
from .phases import (
    ActionResponse,
    BlockResponse,
    Exchange,
    GameWon,
    Phase,
    RevealInfluence,
    StartOfTurn,
    WaitingForPlayers,
)
from .roles import Role
from .rules_schema import RuleSet
from .state import GameState, IllegalCommand, InvariantViolation
from .views import MatchView, mask_state

logger = logging.getLogger(__name__)

STATE_CHANNEL = "state"
EXCHANGE_OPTIONS_CHANNEL = "exchange-options"

Emitter = Callable[[Any, str, Any], None]
Handler = Callable[[GameState, int, Any], None]


class MatchFailed(RuntimeError):
    """Raised when a match hit an invariant violation and has been frozen."""


def discard_emit(handle: Any, channel: str, payload: Any) -> None:
    return None


# Every (phase, command) pair a seat may submit. Anything missing is dropped.
ADMISSION: Dict[Tuple[type, Type[CommandBase]], Handler] = {
    (StartOfTurn, PlayActionCommand): lambda state, seat, cmd: state.play_action(seat, cmd.action, cmd.target),
    (ActionResponse, ChallengeCommand): lambda state, seat, cmd: state.challenge(seat),
    (ActionResponse, BlockCommand): lambda state, seat, cmd: state.block(seat, cmd.role),
    (ActionResponse, AllowCommand): lambda state, seat, cmd: state.allow(seat),
    (BlockResponse, ChallengeCommand): lambda state, seat, cmd: state.challenge(seat),
    (BlockResponse, AllowCommand): lambda state, seat, cmd: state.allow(seat),
    (RevealInfluence, RevealCommand): lambda state, seat, cmd: state.reveal(seat, cmd.role),
    (Exchange, ExchangeCommand): lambda state, seat, cmd: state.exchange(seat, cmd.roles),
}


@dataclass
class Match:
    """One game of Coup and the seat handles attached to it."""

    emit: Emitter = discard_emit
    rules: RuleSet = field(default_factory=RuleSet)
    rng: Optional[Random] = None
    deck: Optional[Sequence[Role]] = None
    match_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    state: GameState = field(init=False)
    seats: List[Optional[Hashable]] = field(init=False, default_factory=list)
    failed: bool = field(init=False, default=False)
    _joined: bool = field(init=False, default=False, repr=False)

    def __post_init__(self) -> None:
        self.state = GameState(rules=self.rules, rng=self.rng, deck_order=self.deck)

    # Seat collaborator -------------------------------------------------

    def seat_joined(self, handle: Hashable, name: Optional[str] = None) -> int:
        """Seat a new player. Raises ``MatchFull`` when no seat is free."""
        seat = self.state.add_player(name)
        self.seats.append(handle)
        self._joined = True
        logger.info("Match %s: %s took seat %s", self.match_id, self.state.players[seat].name, seat)
        self._emit_state()
        return seat

    def seat_left(self, handle: Hashable) -> None:
        seat = self.seat_of(handle)
        if seat is None:
            logger.debug("Match %s: unknown seat handle left", self.match_id)
            return
        if isinstance(self.state.phase, WaitingForPlayers):
            self.state.remove_player(seat)
            del self.seats[seat]
        else:
            self.seats[seat] = None
            if not self.failed:
                previous_phase = self.state.phase
                self._guarded(lambda: self.state.forfeit(seat))
                self._emit_exchange_options(previous_phase)
        logger.info("Match %s: seat %s left", self.match_id, seat)
        self._emit_state()

    def is_full(self) -> bool:
        return self.state.is_full()

    def is_over(self) -> bool:
        """True once the game is won, the match failed, or every seat is vacated."""
        if self.failed or self.state.is_over():
            return True
        return self._joined and all(handle is None for handle in self.seats)

    def seat_of(self, handle: Hashable) -> Optional[int]:
        for seat, seated in enumerate(self.seats):
            if seated is not None and seated == handle:
                return seat
        return None

    # Commands ----------------------------------------------------------

    def submit_command(self, handle: Hashable, payload: Any) -> bool:
        """Apply a command if admissible. Returns whether the state changed.

        Inadmissible commands are dropped silently; only an invariant
        violation surfaces, as ``MatchFailed``.
        """
        if self.failed:
            logger.debug("Match %s: dropped command, match has failed", self.match_id)
            return False
        seat = self.seat_of(handle)
        if seat is None:
            logger.debug("Match %s: dropped command from unknown seat", self.match_id)
            return False
        try:
            command = parse_command(payload)
        except ValidationError as exc:
            logger.debug("Match %s: dropped malformed command from seat %s: %s", self.match_id, seat, exc)
            return False
        if command.sequence_id != self.state.sequence_id:
            logger.debug(
                "Match %s: dropped stale command from seat %s (%s != %s)",
                self.match_id,
                seat,
                command.sequence_id,
                self.state.sequence_id,
            )
            return False
        if not self.state.is_alive(seat):
            logger.debug("Match %s: dropped command from eliminated seat %s", self.match_id, seat)
            return False
        handler = ADMISSION.get((type(self.state.phase), type(command)))
        if handler is None:
            logger.debug(
                "Match %s: %s not admissible in %s", self.match_id, command.command, self.state.phase.name
            )
            return False

        previous_phase = self.state.phase
        try:
            self._guarded(lambda: handler(self.state, seat, command))
        except IllegalCommand as exc:
            logger.debug("Match %s: rejected %s from seat %s: %s", self.match_id, command.command, seat, exc)
            return False

        self._emit_exchange_options(previous_phase)
        self._emit_state()
        return True

    # Views -------------------------------------------------------------

    def view_for(self, seat: int) -> MatchView:
        return mask_state(self.state, seat, match_id=self.match_id)

    @property
    def winner(self) -> Optional[int]:
        phase = self.state.phase
        return phase.winner if isinstance(phase, GameWon) else None

    # Helpers -----------------------------------------------------------

    def _guarded(self, mutation: Callable[[], None]) -> None:
        try:
            mutation()
            self.state.check_invariants()
        except (InvariantViolation, DeckError) as exc:
            self.failed = True
            logger.exception("Match %s frozen after invariant violation", self.match_id)
            raise MatchFailed(f"Match {self.match_id} aborted: {exc}") from exc

    def _emit_exchange_options(self, previous_phase: Phase) -> None:
        """Send freshly drawn exchange cards to the actor alone."""
        phase = self.state.phase
        if isinstance(phase, Exchange) and phase is not previous_phase:
            self._emit_to_seat(phase.player, EXCHANGE_OPTIONS_CHANNEL, [role.value for role in phase.options])

    def _emit_state(self) -> None:
        self.state.sequence_id += 1
        for seat in range(len(self.state.players)):
            if self.seats[seat] is not None:
                self._emit_to_seat(seat, STATE_CHANNEL, self.view_for(seat))

    def _emit_to_seat(self, seat: int, channel: str, payload: Any) -> None:
        handle = self.seats[seat]
        if handle is not None:
            self.emit(handle, channel, payload)
