"""
Tests for qcd/stack.py

Tests the per-session directory stack:
- top/push/pop/drop/swap
- duplicate suppression against the top entry only
- session isolation
- expiry sweep across sessions, and sweep failures
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from qcd.errors import EmptyStack, ErrorKind
from qcd.stack import DirectoryStack

from tests.conftest import DAY, SESSION_A, SESSION_B


def stack_dirs(stack, sessionid=SESSION_A):
    return [entry.directory for entry in stack.entries(sessionid)]


class TestTop:
    """Test DirectoryStack.top()."""

    def test_empty(self, stack):
        with pytest.raises(EmptyStack) as exc_info:
            stack.top(SESSION_A)
        assert exc_info.value.kind is ErrorKind.EMPTY_STACK

    def test_latest_push_is_top(self, stack):
        stack.push(SESSION_A, "/a")
        stack.push(SESSION_A, "/b")

        assert stack.top(SESSION_A).directory == "/b"

    def test_top_does_not_sweep(self, stack, clock):
        """Reading the top leaves expired entries alone."""
        stack.push(SESSION_A, "/a")
        clock.advance(30 * DAY)

        assert stack.top(SESSION_A).directory == "/a"


class TestPush:
    """Test DirectoryStack.push()."""

    def test_push_returns_entry(self, stack, clock):
        entry = stack.push(SESSION_A, "/a")

        assert entry.directory == "/a"
        assert entry.sessionid == SESSION_A
        assert entry.timestamp == int(clock.now)

    def test_consecutive_duplicate_is_suppressed(self, stack):
        """Pushing the top again adds nothing."""
        stack.push(SESSION_A, "/a")
        assert stack.push(SESSION_A, "/a") is None

        assert stack_dirs(stack) == ["/a"]

    def test_non_consecutive_duplicates_allowed(self, stack):
        stack.push(SESSION_A, "/d")
        stack.push(SESSION_A, "/e")
        stack.push(SESSION_A, "/d")

        assert stack_dirs(stack) == ["/d", "/e", "/d"]

    def test_same_directory_in_other_session(self, stack):
        """Duplicate suppression only looks at the own session."""
        stack.push(SESSION_A, "/a")
        stack.push(SESSION_B, "/a")

        assert stack_dirs(stack, SESSION_A) == ["/a"]
        assert stack_dirs(stack, SESSION_B) == ["/a"]


class TestPop:
    """Test DirectoryStack.pop() and drop()."""

    def test_lifo_order(self, stack):
        for directory in ("/a", "/b", "/c"):
            stack.push(SESSION_A, directory)

        assert stack.pop(SESSION_A) == "/c"
        assert stack.pop(SESSION_A) == "/b"
        assert stack.pop(SESSION_A) == "/a"
        with pytest.raises(EmptyStack):
            stack.pop(SESSION_A)

    def test_sessions_are_isolated(self, stack):
        stack.push(SESSION_A, "/a")
        stack.push(SESSION_B, "/b")

        assert stack.pop(SESSION_A) == "/a"
        with pytest.raises(EmptyStack):
            stack.pop(SESSION_A)
        assert stack.top(SESSION_B).directory == "/b"

    def test_lifo_independent_of_timestamps(self, stack, clock):
        """The greatest id is the top even if the clock went backwards."""
        stack.push(SESSION_A, "/a")
        clock.advance(-60)
        stack.push(SESSION_A, "/b")

        assert stack.pop(SESSION_A) == "/b"

    def test_drop(self, stack):
        stack.push(SESSION_A, "/a")
        stack.push(SESSION_A, "/b")

        assert stack.drop(SESSION_A) is None
        assert stack_dirs(stack) == ["/a"]

    def test_drop_empty(self, stack):
        with pytest.raises(EmptyStack):
            stack.drop(SESSION_A)


class TestSwap:
    """Test DirectoryStack.swap()."""

    def test_swap(self, stack):
        """[A, B] swapped with C returns B and leaves [A, C]."""
        stack.push(SESSION_A, "/A")
        stack.push(SESSION_A, "/B")

        assert stack.swap(SESSION_A, "/C") == "/B"
        assert stack_dirs(stack) == ["/C", "/A"]

    def test_swap_with_entry_below(self, stack):
        """The pushed directory is compared with the new top."""
        stack.push(SESSION_A, "/A")
        stack.push(SESSION_A, "/B")

        assert stack.swap(SESSION_A, "/A") == "/B"
        assert stack_dirs(stack) == ["/A"]

    def test_swap_empty(self, stack):
        with pytest.raises(EmptyStack):
            stack.swap(SESSION_A, "/C")
        assert stack_dirs(stack) == []


class TestExpiry:
    """Test the expiry sweep."""

    def test_old_entries_removed_by_push_in_other_session(self, stack, clock):
        stack.push(SESSION_A, "/old")
        clock.advance(22 * DAY)
        stack.push(SESSION_B, "/new")

        with pytest.raises(EmptyStack):
            stack.top(SESSION_A)
        assert stack.top(SESSION_B).directory == "/new"
        assert stack.last_sweep == 1

    def test_old_entries_removed_by_pop(self, stack, clock):
        stack.push(SESSION_A, "/old")
        clock.advance(10 * DAY)
        stack.push(SESSION_B, "/recent")
        clock.advance(12 * DAY)

        assert stack.pop(SESSION_B) == "/recent"
        with pytest.raises(EmptyStack):
            stack.top(SESSION_A)

    def test_entries_within_window_kept(self, stack, clock):
        stack.push(SESSION_A, "/a")
        clock.advance(21 * DAY)
        stack.push(SESSION_B, "/b")

        assert stack.top(SESSION_A).directory == "/a"
        assert stack.last_sweep == 0

    def test_pop_of_expired_top_reports_empty(self, stack, clock):
        stack.push(SESSION_A, "/a")
        clock.advance(22 * DAY)

        with pytest.raises(EmptyStack):
            stack.pop(SESSION_A)

    def test_custom_retention(self, db, clock):
        stack = DirectoryStack(db, clock=clock, expire_days=1)
        stack.push(SESSION_A, "/a")
        clock.advance(2 * DAY)

        assert stack.tidy_up() == 1
        assert stack_dirs(stack) == []

    def test_push_succeeds_when_sweep_fails(self, stack):
        """A failing sweep is logged and the push still happens."""
        error = OperationalError("DELETE", {}, Exception("database is locked"))
        with patch("qcd.stack.delete", side_effect=error):
            entry = stack.push(SESSION_A, "/a")

        assert entry is not None
        assert stack.sweep_failed is True
        assert stack.last_sweep is None
        assert stack.top(SESSION_A).directory == "/a"

    def test_pop_succeeds_when_sweep_fails(self, stack, caplog):
        stack.push(SESSION_A, "/a")

        error = OperationalError("DELETE", {}, Exception("database is locked"))
        with patch("qcd.stack.delete", side_effect=error):
            assert stack.pop(SESSION_A) == "/a"

        assert stack.sweep_failed is True
        assert "Could not tidy up stack" in caplog.text

    def test_sweep_recovers(self, stack):
        error = OperationalError("DELETE", {}, Exception("database is locked"))
        with patch("qcd.stack.delete", side_effect=error):
            stack.push(SESSION_A, "/a")

        stack.push(SESSION_A, "/b")

        assert stack.sweep_failed is False
        assert stack.last_sweep == 0
