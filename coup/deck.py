"""The shared court deck."""

from __future__ import annotations

from collections import Counter
from random import Random
from typing import Iterable, List, Optional, Sequence, Tuple

from .roles import Role, deck_roles


class DeckError(RuntimeError):
    """Raised when the closed-card accounting of the deck is broken."""


class EmptyDeck(DeckError):
    """Raised when drawing from a deck with no cards left."""


def build_deck(copies_per_role: int = 3) -> List[Role]:
    """Return the ordered deck: ``copies_per_role`` copies of every role in play."""
    return [role for _ in range(copies_per_role) for role in deck_roles()]


class Deck:
    """Face-down pool of role cards. The top of the deck is index 0."""

    def __init__(
        self,
        *,
        copies_per_role: int = 3,
        rng: Optional[Random] = None,
        cards: Optional[Sequence[Role]] = None,
    ) -> None:
        self._rng = rng if rng is not None else Random()
        full = build_deck(copies_per_role)
        if cards is not None:
            if Counter(cards) != Counter(full):
                raise ValueError(f"Deck must contain exactly {copies_per_role} copies of each role.")
            self._cards = list(cards)
        else:
            self._cards = full
            self.shuffle()

    def __len__(self) -> int:
        return len(self._cards)

    @property
    def cards(self) -> Tuple[Role, ...]:
        return tuple(self._cards)

    def shuffle(self) -> None:
        self._rng.shuffle(self._cards)

    def draw(self) -> Role:
        if not self._cards:
            raise EmptyDeck("Cannot draw from an empty deck.")
        return self._cards.pop(0)

    def return_and_redraw(self, role: Role) -> Role:
        """Put ``role`` back, reshuffle everything and draw a replacement."""
        self._cards.append(role)
        self.shuffle()
        return self.draw()

    def put_back(self, roles: Iterable[Role]) -> None:
        self._cards.extend(roles)
        self.shuffle()
