"""Queue position bookkeeping."""

from __future__ import annotations

from typing import Tuple

from .entities import Session


class QueuePositionAllocator:
    """Owns the head and tail counters of one session.

    ``tail`` is the position the next check-in receives and ``head`` is
    where a promoted team re-enters the line.  Both only ever grow; the
    tail never hands out the same number twice within a session.
    """

    def __init__(self, head: int = 1, tail: int = 1) -> None:
        if head < 1 or tail < head:
            raise ValueError("Counters must satisfy 1 <= head <= tail")
        self._head = head
        self._tail = tail

    @classmethod
    def for_session(cls, session: Session) -> "QueuePositionAllocator":
        return cls(head=session.head, tail=session.tail)

    @property
    def head(self) -> int:
        return self._head

    @property
    def tail(self) -> int:
        return self._tail

    def next_position(self) -> int:
        position = self._tail
        self._tail += 1
        return position

    def reserve(self, count: int) -> range:
        if count < 0:
            raise ValueError("Cannot reserve a negative number of positions")
        block = range(self._tail, self._tail + count)
        self._tail += count
        return block

    def advance_head(self, count: int) -> int:
        """Move the head forward and return where it stood before."""

        if count < 0:
            raise ValueError("Cannot move the head backwards")
        previous = self._head
        self._head += count
        return previous

    def counters(self) -> Tuple[int, int]:
        return self._head, self._tail
