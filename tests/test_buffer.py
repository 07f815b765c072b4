"""Tests for docsink.buffer module."""

import pytest

from docsink.buffer import EventBuffer


class TestEventBuffer:
    """Tests for EventBuffer class."""

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            EventBuffer(-1)

    def test_zero_capacity_is_unbuffered(self):
        assert not EventBuffer(0).enabled
        assert EventBuffer(1).enabled

    def test_fills_up_to_capacity(self):
        buffer = EventBuffer(2)
        buffer.append("a")
        assert not buffer.is_full()
        buffer.append("b")
        assert buffer.is_full()
        assert len(buffer) == 2

    def test_drain_preserves_order_and_empties(self):
        buffer = EventBuffer(3)
        for item in ("a", "b", "c"):
            buffer.append(item)

        assert buffer.drain() == ["a", "b", "c"]
        assert len(buffer) == 0
        assert not buffer

    def test_drain_returns_copy(self):
        buffer = EventBuffer(3)
        buffer.append("a")
        batch = buffer.drain()
        buffer.append("b")
        assert batch == ["a"]
