"""Tests for the ReplayGuard — persistent, monotonic used flags."""

from __future__ import annotations

import sqlite3
import threading

import pytest

from custodybridge.core.hasher import keccak, to_hex
from custodybridge.core.replay_guard import ReplayGuard, UsedReason

H1 = keccak(b"one")
H2 = keccak(b"two")


class TestReplayGuard:
    def test_unknown_hash_is_unused(self, replay_guard: ReplayGuard):
        assert replay_guard.is_used(H1) is False
        assert replay_guard.get_record(H1) is None

    def test_mark_used_sets_flag(self, replay_guard: ReplayGuard):
        assert replay_guard.mark_used(H1, UsedReason.EXECUTED) is True
        assert replay_guard.is_used(H1) is True
        assert replay_guard.is_used(H2) is False

    def test_mark_used_is_compare_and_set(self, replay_guard: ReplayGuard):
        assert replay_guard.mark_used(H1, UsedReason.INVALIDATED) is True
        assert replay_guard.mark_used(H1, UsedReason.EXECUTED) is False
        record = replay_guard.get_record(H1)
        assert record is not None
        assert record.reason is UsedReason.INVALIDATED
        assert record.transfer_hash == to_hex(H1)

    def test_used_count(self, replay_guard: ReplayGuard):
        replay_guard.mark_used(H1, UsedReason.EXECUTED)
        replay_guard.mark_used(H1, UsedReason.EXECUTED)
        replay_guard.mark_used(H2, UsedReason.INVALIDATED)
        assert replay_guard.used_count() == 2

    def test_persists_across_instances(self, tmp_dir):
        ReplayGuard(tmp_dir / "guard.db").mark_used(H1, UsedReason.EXECUTED)
        assert ReplayGuard(tmp_dir / "guard.db").is_used(H1) is True

    def test_creates_parent_directory(self, tmp_dir):
        guard = ReplayGuard(tmp_dir / "nested" / "dir" / "guard.db")
        assert guard.db_path.parent.is_dir()

    def test_no_reset_path(self, replay_guard: ReplayGuard):
        """The guard exposes no way to clear a flag."""
        public = {name for name in dir(replay_guard) if not name.startswith("_")}
        assert not public & {"reset", "clear", "unmark", "delete", "remove"}

    def test_hash_is_unique_in_storage(self, replay_guard: ReplayGuard):
        replay_guard.mark_used(H1, UsedReason.EXECUTED)
        conn = sqlite3.connect(str(replay_guard.db_path))
        try:
            rows = conn.execute("SELECT COUNT(*) FROM used_transfer_hashes").fetchone()
        finally:
            conn.close()
        assert rows[0] == 1


class TestHold:
    def test_hold_serializes_same_hash(self, replay_guard: ReplayGuard):
        order: list[str] = []
        inside = threading.Event()
        release = threading.Event()

        def first():
            with replay_guard.hold(H1):
                order.append("first-in")
                inside.set()
                release.wait(timeout=5)
                order.append("first-out")

        def second():
            inside.wait(timeout=5)
            with replay_guard.hold(H1):
                order.append("second-in")

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        inside.wait(timeout=5)
        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)
        assert order == ["first-in", "first-out", "second-in"]

    def test_hold_does_not_block_other_hashes(self, replay_guard: ReplayGuard):
        with replay_guard.hold(H1):
            acquired = threading.Event()

            def other():
                with replay_guard.hold(H2):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            t.join(timeout=5)
            assert acquired.is_set()

    def test_locks_are_released_after_use(self, replay_guard: ReplayGuard):
        for i in range(200):
            with replay_guard.hold(keccak(str(i).encode())):
                assert replay_guard.held_count() == 1
        assert replay_guard.held_count() == 0

    def test_lock_released_when_block_raises(self, replay_guard: ReplayGuard):
        with pytest.raises(RuntimeError):
            with replay_guard.hold(H1):
                raise RuntimeError("ledger down")
        assert replay_guard.held_count() == 0
        with replay_guard.hold(H1):
            pass

    def test_waiter_keeps_lock_alive(self, replay_guard: ReplayGuard):
        inside = threading.Event()
        release = threading.Event()
        entered = threading.Event()

        def first():
            with replay_guard.hold(H1):
                inside.set()
                release.wait(timeout=5)

        def second():
            inside.wait(timeout=5)
            with replay_guard.hold(H1):
                entered.set()

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        inside.wait(timeout=5)
        assert replay_guard.held_count() == 1
        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)
        assert entered.is_set()
        assert replay_guard.held_count() == 0
