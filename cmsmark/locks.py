"""Per-path advisory locks for read-modify-write on shared files."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
import threading
from typing import Callable, Dict, Iterator


@dataclass
class _PathLock:
    lock: threading.Lock
    users: int = 0


class FileLockRegistry:
    """Hands out one lock per resolved path; callers queue behind the holder.

    Locks are process-local and only protect writers that go through the
    same registry.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Path, _PathLock] = {}

    def acquire(self, path: Path | str) -> Callable[[], None]:
        """Block until ``path`` is free; the returned callable releases it (once)."""
        key = Path(path).resolve()
        with self._guard:
            entry = self._locks.setdefault(key, _PathLock(lock=threading.Lock()))
            entry.users += 1
        entry.lock.acquire()

        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    self._locks.pop(key, None)

        return release

    @contextmanager
    def hold(self, path: Path | str) -> Iterator[None]:
        release = self.acquire(path)
        try:
            yield
        finally:
            release()

    def is_locked(self, path: Path | str) -> bool:
        with self._guard:
            entry = self._locks.get(Path(path).resolve())
        return entry is not None and entry.lock.locked()


_REGISTRY = FileLockRegistry()


def acquire_file_lock(path: Path | str) -> Callable[[], None]:
    return _REGISTRY.acquire(path)


def file_lock(path: Path | str):
    """Context manager form of :func:`acquire_file_lock`."""
    return _REGISTRY.hold(path)


__all__ = ["FileLockRegistry", "acquire_file_lock", "file_lock"]
