from __future__ import annotations

"""
Unit tests for the Completion Synchronizer.

Verifies the single release under every ordering of 'enumeration finished'
and 'last file completed', including concurrent producers.
"""

import threading

import pytest

from dirun.core.services.sync import CompletionSynchronizer


def test_total_zero_releases_immediately() -> None:
    sync = CompletionSynchronizer()

    assert sync.set_total(0) is True
    assert sync.released
    assert sync.wait(timeout=0) is True


def test_completions_before_total() -> None:
    sync = CompletionSynchronizer()
    sync.mark_completed()
    sync.mark_completed()

    assert not sync.released
    assert sync.set_total(2) is True
    assert sync.released


def test_total_before_completions() -> None:
    sync = CompletionSynchronizer()

    assert sync.set_total(2) is False
    assert sync.mark_completed() is False
    assert not sync.released
    assert sync.mark_completed() is True
    assert sync.wait(timeout=1)


def test_wait_times_out_while_pending() -> None:
    sync = CompletionSynchronizer()
    sync.set_total(1)

    assert sync.wait(timeout=0.01) is False


def test_counter_beyond_total_does_not_release_twice() -> None:
    sync = CompletionSynchronizer()
    sync.set_total(1)

    assert sync.mark_completed() is True
    assert sync.mark_completed() is False
    assert sync.completed == 2


def test_total_can_only_be_set_once() -> None:
    sync = CompletionSynchronizer()
    sync.set_total(1)

    with pytest.raises(RuntimeError):
        sync.set_total(1)


@pytest.mark.parametrize("completed_first", [0, 10, 25, 50])
def test_concurrent_producers_release_exactly_once(completed_first: int) -> None:
    """Completions race from many threads with the total published midway."""
    total = 50
    sync = CompletionSynchronizer()
    releases = []
    lock = threading.Lock()

    def complete() -> None:
        if sync.mark_completed():
            with lock:
                releases.append("file")

    early = [threading.Thread(target=complete) for _ in range(completed_first)]
    for t in early:
        t.start()
    for t in early:
        t.join()

    gate = threading.Barrier(total - completed_first + 1)

    def complete_after_gate() -> None:
        gate.wait()
        complete()

    late = [threading.Thread(target=complete_after_gate) for _ in range(total - completed_first)]
    for t in late:
        t.start()

    gate.wait()
    if sync.set_total(total):
        with lock:
            releases.append("total")

    for t in late:
        t.join()

    assert sync.wait(timeout=5)
    assert len(releases) == 1
    assert sync.completed == total
