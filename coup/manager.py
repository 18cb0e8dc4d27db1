"""Registry of live matches with explicit creation and teardown."""

from __future__ import annotations

import logging
from random import Random
from typing import Dict, Hashable, List, Optional

from .game import Emitter, Match, discard_emit
from .rules_schema import RuleSet

logger = logging.getLogger(__name__)


class UnknownMatch(KeyError):
    """Raised when a match id is not registered."""


class MatchManager:
    """Own every match a process is hosting, keyed by match id."""

    def __init__(self, emit: Emitter = discard_emit, rules: Optional[RuleSet] = None, seed: Optional[int] = None) -> None:
        self.emit = emit
        self.rules = rules or RuleSet()
        self._rng = Random(seed)
        self._matches: Dict[str, Match] = {}
        self._public: List[str] = []

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, match_id: object) -> bool:
        return match_id in self._matches

    def create_match(self, *, public: bool = False, rules: Optional[RuleSet] = None) -> Match:
        # Each match gets its own generator so matches never share random state.
        match = Match(
            emit=self.emit,
            rules=rules or self.rules,
            rng=Random(self._rng.getrandbits(64)),
        )
        self._matches[match.match_id] = match
        if public:
            self._public.append(match.match_id)
        logger.info("Created %s match %s", "public" if public else "private", match.match_id)
        return match

    def get(self, match_id: str) -> Match:
        try:
            return self._matches[match_id]
        except KeyError as exc:
            raise UnknownMatch(match_id) from exc

    def join_public(self, handle: Hashable, name: Optional[str] = None) -> Match:
        """Seat ``handle`` in the oldest public match with a free seat, creating one if needed."""
        match = next(
            (
                self._matches[match_id]
                for match_id in self._public
                if not self._matches[match_id].is_full() and not self._matches[match_id].is_over()
            ),
            None,
        )
        if match is None:
            match = self.create_match(public=True)
        match.seat_joined(handle, name)
        return match

    def close(self, match_id: str) -> None:
        self._matches.pop(match_id, None)
        if match_id in self._public:
            self._public.remove(match_id)
        logger.info("Closed match %s", match_id)

    def reap(self) -> List[str]:
        """Tear down every match that is won, failed or abandoned."""
        finished = [match_id for match_id, match in self._matches.items() if match.is_over()]
        for match_id in finished:
            self.close(match_id)
        return finished
