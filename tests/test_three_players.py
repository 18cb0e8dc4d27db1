from random import Random

from coup.deck import build_deck
from coup.game import Match
from coup.phases import ActionResponse, BlockResponse, GameWon, RevealInfluence, StartOfTurn
from coup.roles import Action, Role
from coup.rules_schema import RuleSet

HANDS = (
    (Role.DUKE, Role.ASSASSIN),
    (Role.CAPTAIN, Role.CONTESSA),
    (Role.AMBASSADOR, Role.CAPTAIN),
)


def stacked_deck(*hands):
    rest = build_deck()
    for hand in hands:
        for role in hand:
            rest.remove(role)
    return [role for hand in hands for role in hand] + rest


def start_match(hands=HANDS):
    match = Match(rules=RuleSet(seat_count=3), deck=stacked_deck(*hands), rng=Random(5))
    for seat in range(3):
        match.seat_joined(f"seat{seat}")
    return match


def send(match, seat, command, **fields):
    payload = {"command": command, "sequenceId": match.state.sequence_id, **fields}
    return match.submit_command(f"seat{seat}", payload)


def test_action_resolves_only_after_every_responder_allows():
    match = start_match()
    send(match, 0, "play-action", action="foreign-aid")
    send(match, 1, "allow")

    phase = match.state.phase
    assert isinstance(phase, ActionResponse)
    assert phase.allowed == frozenset({1})
    assert match.state.players[0].cash == 2

    assert not send(match, 1, "allow")
    assert not send(match, 1, "block", role="duke")

    send(match, 2, "allow")

    assert match.state.players[0].cash == 4
    assert match.state.phase == StartOfTurn(player=1)


def test_any_responder_may_still_block_after_another_allowed():
    match = start_match()
    send(match, 0, "play-action", action="foreign-aid")
    send(match, 1, "allow")
    send(match, 2, "block", role="duke")

    phase = match.state.phase
    assert isinstance(phase, BlockResponse)
    assert phase.blocker == 2
    assert phase.allowed == frozenset()

    send(match, 0, "allow")
    assert isinstance(match.state.phase, BlockResponse)
    send(match, 1, "allow")

    assert match.state.players[0].cash == 2
    assert match.state.phase == StartOfTurn(player=1)


def test_bystander_losing_an_assassination_challenge_is_eliminated():
    # Losing a challenge against an assassination costs two cards whoever
    # the challenger is; the assassination then proceeds against its target.
    match = start_match()
    match.state.players[0].cash = 3

    send(match, 0, "play-action", action="assassinate", target=1)
    send(match, 2, "challenge")

    state = match.state
    assert not state.players[2].is_alive
    assert state.phase == RevealInfluence(player=0, target=1, message="assassinated", action=Action.ASSASSINATE)
    assert state.card_count() == 15

    send(match, 1, "reveal", role="captain")

    assert state.players[1].live_roles() == [Role.CONTESSA]
    assert state.phase == StartOfTurn(player=1)


def test_turn_order_skips_eliminated_seats():
    match = start_match()
    match.state.players[1].reveal_all()

    send(match, 0, "play-action", action="income")
    assert match.state.phase == StartOfTurn(player=2)

    send(match, 2, "play-action", action="income")
    assert match.state.phase == StartOfTurn(player=0)


def test_eliminated_seats_are_not_waited_on():
    match = start_match()
    match.state.players[2].reveal_all()

    send(match, 0, "play-action", action="tax")
    send(match, 1, "allow")

    assert match.state.players[0].cash == 5
    assert match.state.phase == StartOfTurn(player=1)


def test_eliminated_seats_cannot_be_targeted():
    match = start_match()
    match.state.players[0].cash = 7
    match.state.players[2].reveal_all()

    assert not send(match, 0, "play-action", action="coup", target=2)
    assert send(match, 0, "play-action", action="coup", target=1)


def test_last_standing_seat_wins():
    match = start_match()
    match.state.players[1].reveal_all()
    match.state.players[0].cash = 7
    match.state.players[2].influence[0].revealed = True

    send(match, 0, "play-action", action="coup", target=2)
    send(match, 2, "reveal", role="captain")

    assert match.state.phase == GameWon(winner=0)
    assert match.state.history.last().message == "won the game"
