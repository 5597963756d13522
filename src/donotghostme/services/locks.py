# src/donotghostme/services/locks.py
"""Process-local mutexes keyed by an arbitrary string."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock


@dataclass
class _Slot:
    lock: Lock = field(default_factory=Lock)
    holders: int = 0


class KeyedLockRegistry:
    """Hand out one mutex per key, discarding it once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._slots: dict[str, _Slot] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Block until the mutex for ``key`` is acquired, releasing it on exit."""
        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.holders += 1
        slot.lock.acquire()
        try:
            yield
        finally:
            slot.lock.release()
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    self._slots.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
