"""Tests for per-path file locks."""

from __future__ import annotations

import threading
from pathlib import Path

from cmsmark.locks import FileLockRegistry, acquire_file_lock, file_lock


def test_acquire_returns_idempotent_release(tmp_path: Path) -> None:
    registry = FileLockRegistry()
    target = tmp_path / "manifest.json"

    release = registry.acquire(target)
    assert registry.is_locked(target)

    release()
    release()
    assert not registry.is_locked(target)


def test_second_holder_waits_for_release(tmp_path: Path) -> None:
    registry = FileLockRegistry()
    target = tmp_path / "manifest.json"
    acquired = threading.Event()

    def worker() -> None:
        with registry.hold(target):
            acquired.set()

    release = registry.acquire(target)
    thread = threading.Thread(target=worker)
    thread.start()

    assert not acquired.wait(0.1)
    release()
    thread.join(timeout=5)
    assert acquired.is_set()
    assert not registry.is_locked(target)


def test_locks_are_per_path(tmp_path: Path) -> None:
    registry = FileLockRegistry()
    first = registry.acquire(tmp_path / "a.json")

    with registry.hold(tmp_path / "b.json"):
        assert registry.is_locked(tmp_path / "b.json")

    first()


def test_module_level_helpers(tmp_path: Path) -> None:
    target = tmp_path / "shared.json"

    release = acquire_file_lock(target)
    release()
    with file_lock(target):
        pass
