"""Tests for KeyedLock and GlobalLock."""

import threading
import time

import pytest

from stock_intel.utils.locks import GlobalLock, KeyedLock


def _run_concurrently(target, args_list) -> None:
    threads = [threading.Thread(target=target, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)


class TestKeyedLock:
    """Tests for per-key locking."""

    def test_same_key_is_mutually_exclusive(self) -> None:
        """Test holders of one key never overlap."""
        locks = KeyedLock()
        active = 0
        max_active = 0
        counter_lock = threading.Lock()

        def work(key: str) -> None:
            nonlocal active, max_active
            with locks.hold(key):
                with counter_lock:
                    active += 1
                    max_active = max(max_active, active)
                time.sleep(0.01)
                with counter_lock:
                    active -= 1

        _run_concurrently(work, [("ACME",)] * 6)
        assert max_active == 1

    def test_different_keys_do_not_block(self) -> None:
        """Test two keys can be held at the same time."""
        locks = KeyedLock()
        barrier = threading.Barrier(2, timeout=2)
        errors: list[Exception] = []

        def work(key: str) -> None:
            with locks.hold(key):
                try:
                    # Both threads must be inside their hold to pass the barrier
                    barrier.wait()
                except threading.BrokenBarrierError as e:
                    errors.append(e)

        _run_concurrently(work, [("ACME",), ("BETA",)])
        assert errors == []

    def test_entries_removed_after_release(self) -> None:
        """Test the lock table only holds active keys."""
        locks = KeyedLock()
        with locks.hold("ACME"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_released_on_exception(self) -> None:
        """Test an exception inside the block releases the key."""
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("ACME"):
                raise RuntimeError("boom")
        assert len(locks) == 0
        with locks.hold("ACME"):
            pass


class TestGlobalLock:
    """Tests for the serialize-everything lock."""

    def test_different_keys_are_serialized(self) -> None:
        """Test holders of different keys never overlap."""
        locks = GlobalLock()
        active = 0
        max_active = 0
        counter_lock = threading.Lock()

        def work(key: str) -> None:
            nonlocal active, max_active
            with locks.hold(key):
                with counter_lock:
                    active += 1
                    max_active = max(max_active, active)
                time.sleep(0.01)
                with counter_lock:
                    active -= 1

        _run_concurrently(work, [("ACME",), ("BETA",), ("GAMMA",)])
        assert max_active == 1
