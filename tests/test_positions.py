from __future__ import annotations

import pytest

from courtqueue.config import SessionConfig
from courtqueue.entities import Session
from courtqueue.positions import QueuePositionAllocator


def test_check_ins_receive_increasing_positions():
    allocator = QueuePositionAllocator()
    positions = [allocator.next_position() for _ in range(5)]
    assert positions == [1, 2, 3, 4, 5]
    assert allocator.counters() == (1, 6)


def test_reserve_hands_out_contiguous_block():
    allocator = QueuePositionAllocator(head=1, tail=11)
    block = allocator.reserve(4)
    assert list(block) == [11, 12, 13, 14]
    assert allocator.tail == 15
    assert list(allocator.reserve(0)) == []
    assert allocator.tail == 15


def test_advance_head_returns_previous_head():
    allocator = QueuePositionAllocator(head=3, tail=20)
    assert allocator.advance_head(4) == 3
    assert allocator.head == 7


def test_negative_counts_are_rejected():
    allocator = QueuePositionAllocator()
    with pytest.raises(ValueError):
        allocator.reserve(-1)
    with pytest.raises(ValueError):
        allocator.advance_head(-2)


def test_invalid_starting_counters():
    with pytest.raises(ValueError):
        QueuePositionAllocator(head=0, tail=1)
    with pytest.raises(ValueError):
        QueuePositionAllocator(head=5, tail=2)


def test_allocator_resumes_from_session_counters():
    session = Session(id=1, config=SessionConfig(), head=5, tail=18)
    allocator = QueuePositionAllocator.for_session(session)
    assert allocator.next_position() == 18
    assert allocator.counters() == (5, 19)
