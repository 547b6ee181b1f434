"""Tests for ChangeHistory."""
import threading

import pytest

from managedprops import ChangeHistory, InvalidValueError


class TestPush:
    """push() semantics."""

    def test_initial_state(self):
        history = ChangeHistory("a")

        assert history.current == "a"
        assert history.saved_value == "a"
        assert history.cursor == 0
        assert history.saved_cursor == 0
        assert not history.is_modified()

    def test_push_new_value(self):
        history = ChangeHistory("a")

        assert history.push("b") is True
        assert history.current == "b"
        assert history.entries == ("a", "b")
        assert history.is_modified()

    def test_push_same_value_is_noop(self):
        history = ChangeHistory("a")
        history.push("b")

        assert history.push("b") is False
        assert history.entries == ("a", "b")

    def test_push_none_rejected(self):
        history = ChangeHistory("a")

        with pytest.raises(InvalidValueError):
            history.push(None)

    def test_none_initial_value_rejected(self):
        with pytest.raises(InvalidValueError):
            ChangeHistory(None)

    def test_push_after_undo_truncates_redo(self):
        history = ChangeHistory("a")
        history.push("b")
        history.push("c")
        history.undo()

        history.push("x")

        assert history.entries == ("a", "b", "x")
        assert not history.can_redo()
        assert history.redo() == "x"


class TestUndoRedo:
    """undo()/redo() navigation and boundaries."""

    def test_round_trip(self):
        values = ["v1", "v2", "v3", "v4"]
        history = ChangeHistory("v0")
        for value in values:
            history.push(value)

        for _ in values:
            history.undo()
        assert history.current == "v0"

        for _ in values:
            history.redo()
        assert history.current == "v4"

    def test_undo_at_oldest_returns_current(self):
        history = ChangeHistory("a")

        assert not history.can_undo()
        assert history.undo() == "a"
        assert history.cursor == 0

    def test_redo_at_newest_returns_current(self):
        history = ChangeHistory("a")
        history.push("b")

        assert not history.can_redo()
        assert history.redo() == "b"
        assert history.cursor == 1

    def test_undo_back_to_saved_is_unmodified(self):
        history = ChangeHistory("a")
        history.push("b")

        history.undo()

        assert not history.is_modified()


class TestSync:
    """mark_synced()/sync() and modification tracking."""

    def test_mark_synced_clears_modified(self):
        history = ChangeHistory("a")
        history.push("b")

        history.mark_synced()

        assert not history.is_modified()
        assert history.saved_cursor == 1
        # History survives the sync
        assert history.undo() == "a"
        assert history.is_modified()

    def test_push_after_sync_is_modified(self):
        history = ChangeHistory("a")
        history.mark_synced()

        history.push("b")

        assert history.is_modified()

    def test_equal_value_is_not_modified(self):
        history = ChangeHistory("a")
        history.push("b")
        history.push("a")

        assert not history.is_modified()

    def test_saved_value_survives_redo_truncation(self):
        history = ChangeHistory("a")
        history.push("b")
        history.push("c")
        history.mark_synced()
        history.undo()
        history.undo()

        history.push("d")

        assert history.entries == ("a", "d")
        assert history.saved_cursor == -1
        assert history.saved_value == "c"
        assert history.is_modified()
        history.push("c")
        assert not history.is_modified()

    def test_saved_value_one_step_ahead_is_kept(self):
        history = ChangeHistory("a")
        history.push("b")
        history.mark_synced()
        history.undo()

        history.push("c")

        assert history.saved_value == "b"
        assert history.is_modified()

    def test_sync_pushes_and_marks(self):
        history = ChangeHistory("a")

        assert history.sync("b") is True
        assert history.current == "b"
        assert not history.is_modified()
        assert history.can_undo()


class TestLimit:
    """Bounded history eviction."""

    def test_oldest_entries_evicted(self):
        history = ChangeHistory("v0", limit=3)
        for index in range(1, 6):
            history.push(f"v{index}")

        assert history.entries == ("v3", "v4", "v5")
        assert history.cursor == 2

    def test_saved_value_survives_eviction(self):
        history = ChangeHistory("saved", limit=2)
        history.push("b")
        history.push("c")

        assert history.saved_cursor == -1
        assert history.saved_value == "saved"
        assert history.is_modified()

        history.push("saved")
        assert not history.is_modified()

    def test_saved_cursor_shifts_with_eviction(self):
        history = ChangeHistory("a", limit=3)
        history.push("b")
        history.mark_synced()
        history.push("c")
        history.push("d")

        assert history.entries == ("b", "c", "d")
        assert history.saved_cursor == 0
        assert history.saved_value == "b"

    def test_unbounded_history(self):
        history = ChangeHistory(0, limit=0)
        for value in range(1, 500):
            history.push(value)

        assert len(history) == 500

    def test_limit_from_framework_config(self):
        from managedprops import get_framework_config

        get_framework_config().history_limit = 2
        history = ChangeHistory("a")
        history.push("b")
        history.push("c")

        assert history.limit == 2
        assert history.entries == ("b", "c")


def test_concurrent_pushes_keep_history_consistent():
    """Concurrent pushes never leave equal consecutive entries."""
    history = ChangeHistory("start", limit=0)
    barrier = threading.Barrier(8)

    def worker(worker_id):
        barrier.wait()
        for index in range(200):
            history.push(f"{worker_id}-{index % 3}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entries = history.entries
    assert history.cursor == len(entries) - 1
    assert all(a != b for a, b in zip(entries, entries[1:]))
