from __future__ import annotations

import time

import pytest

from radiocast.domain.errors import ContextCancelledError
from radiocast.utils.context import RequestContext
from radiocast.utils.timeparse import format_rfc3339, parse_time


def test_cancel_propagates_to_children():
    parent = RequestContext()
    child = parent.child()
    grandchild = child.child(timeout=100)

    parent.cancel()

    assert child.cancelled()
    assert grandchild.cancelled()
    with pytest.raises(ContextCancelledError):
        grandchild.check()


def test_child_cancel_does_not_reach_parent():
    parent = RequestContext()
    parent.child().cancel()

    assert not parent.cancelled()
    parent.check()


def test_child_never_outlives_parent_deadline():
    parent = RequestContext(timeout=1.0)
    child = parent.child(timeout=100.0)

    assert child.deadline == parent.deadline
    assert child.remaining() <= 1.0


def test_deadline_expires():
    ctx = RequestContext(timeout=0.05)
    time.sleep(0.1)

    assert ctx.cancelled()
    assert ctx.remaining() == 0.0


def test_timeout_is_capped_by_remaining_time():
    assert RequestContext().timeout(30) == 30
    assert RequestContext(timeout=2).timeout(30) <= 2


def test_wait_returns_early_on_cancel():
    ctx = RequestContext()
    ctx.cancel()

    started = time.monotonic()
    assert ctx.wait(5.0) is True
    assert time.monotonic() - started < 1.0
    assert RequestContext().wait(0.01) is False


@pytest.mark.parametrize("raw, expected", [
    ("2025-09-17T12:00:00", "2025-09-17T12:00:00Z"),
    ("2025-09-17T12:00:00Z", "2025-09-17T12:00:00Z"),
    ("2025-09-17T14:00:00+02:00", "2025-09-17T12:00:00Z"),
    ("2025-09-17 12:00:00.000", "2025-09-17T12:00:00Z"),
    ("2025-09", "2025-09-01T00:00:00Z"),
])
def test_parse_time_layouts(raw, expected):
    assert format_rfc3339(parse_time(raw)) == expected


@pytest.mark.parametrize("raw", ["", None, "yesterday", "2025-13"])
def test_parse_time_rejects_garbage(raw):
    assert parse_time(raw) is None
