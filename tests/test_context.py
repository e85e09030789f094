"""
Tests for cancellation contexts.
"""

import time

import pytest

from initdatabase.context import Context
from initdatabase.errors import DeadlineExceededError, OperationCancelledError


class TestContext:
    def test_background_is_live(self):
        ctx = Context.background()
        ctx.check()
        assert not ctx.done()
        assert ctx.remaining() is None

    def test_cancel(self):
        ctx = Context()
        ctx.cancel()
        assert ctx.cancelled()
        with pytest.raises(OperationCancelledError):
            ctx.check()

    def test_deadline(self):
        ctx = Context(timeout=0.01)
        time.sleep(0.02)
        assert ctx.expired()
        assert ctx.remaining() == 0.0
        with pytest.raises(DeadlineExceededError):
            ctx.check()

    def test_deadline_not_yet_reached(self):
        ctx = Context(timeout=60)
        ctx.check()
        assert 0 < ctx.remaining() <= 60
