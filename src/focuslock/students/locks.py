"""Per-student serialization of state-changing events."""

from __future__ import annotations

import asyncio
import weakref


class StudentLocks:
    """One ``asyncio.Lock`` per student id.

    Locks are held weakly, so an idle student's lock is dropped once no
    request is holding or waiting on it. Events for different students never
    wait on each other.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def for_student(self, student_id: str) -> asyncio.Lock:
        lock = self._locks.get(student_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[student_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
