"""Append-only record of what happened in a match."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class HistoryEntry:
    actor: int
    message: str
    target: Optional[int] = None


class History:
    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []

    def append(self, actor: int, message: str, target: Optional[int] = None) -> HistoryEntry:
        entry = HistoryEntry(actor=actor, message=message, target=target)
        self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None
