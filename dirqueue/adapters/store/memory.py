"""
InMemoryStore — asyncio.Lock-based compare-and-swap store for testing.

Keeps every record in a table of name → (state, content, mtime). Each
transition checks the record's current state and swaps it under an
asyncio.Lock, which gives claim the same race outcome as an atomic rename:
one caller wins, every other caller gets JobNotFoundError.

Modification times come from a monotonic counter unless given explicitly,
so enqueue order is preserved without depending on clock resolution.

Zero external dependencies. Safe for multiple concurrent coroutines in a
single event loop. NOT safe across processes or threads.
"""
from __future__ import annotations

import asyncio
import dataclasses
import itertools

from dirqueue.domain.errors import JobNotFoundError
from dirqueue.domain.models import JobFile, JobState


@dataclasses.dataclass
class _Entry:
    state: JobState
    content: bytes
    mtime: float


@dataclasses.dataclass
class InMemoryStore:
    """In-process job store. Responses live in their own table."""

    def __post_init__(self) -> None:
        self._jobs: dict[str, _Entry] = {}
        self._responses: dict[str, bytes] = {}
        self._clock = itertools.count(1)
        self._lock: asyncio.Lock = asyncio.Lock()

    async def ensure_layout(self) -> None:
        return None

    async def list_pending(self) -> list[JobFile]:
        async with self._lock:
            return [
                JobFile(mtime=e.mtime, name=name)
                for name, e in self._jobs.items()
                if e.state is JobState.PENDING
            ]

    async def enqueue(self, name: str, content: bytes, mtime: float | None = None) -> None:
        async with self._lock:
            self._jobs[name] = _Entry(
                JobState.PENDING,
                content,
                float(next(self._clock)) if mtime is None else mtime,
            )

    async def claim(self, name: str) -> None:
        await self._swap(name, JobState.PENDING, JobState.IN_FLIGHT)

    async def read(self, name: str) -> bytes:
        async with self._lock:
            entry = self._jobs.get(name)
            if entry is None or entry.state is not JobState.IN_FLIGHT:
                raise JobNotFoundError(name)
            return entry.content

    async def release(self, name: str) -> None:
        await self._swap(name, JobState.IN_FLIGHT, JobState.PENDING)

    async def complete(self, name: str) -> None:
        async with self._lock:
            entry = self._jobs.get(name)
            if entry is None or entry.state is not JobState.IN_FLIGHT:
                raise JobNotFoundError(name)
            del self._jobs[name]

    async def dead_letter(self, name: str) -> None:
        await self._swap(name, JobState.IN_FLIGHT, JobState.DEAD)

    async def write_response(self, name: str, content: bytes) -> None:
        async with self._lock:
            self._responses[name] = content

    async def take_response(self, name: str) -> bytes | None:
        async with self._lock:
            return self._responses.pop(name, None)

    async def recover_in_flight(self) -> list[str]:
        async with self._lock:
            moved = sorted(
                name for name, e in self._jobs.items() if e.state is JobState.IN_FLIGHT
            )
            for name in moved:
                self._jobs[name].state = JobState.PENDING
            return moved

    async def counts(self) -> dict[JobState, int]:
        async with self._lock:
            counts = {state: 0 for state in JobState}
            for e in self._jobs.values():
                counts[e.state] += 1
            counts[JobState.DONE] = len(self._responses)
            return counts

    # ------------------------------------------------------------------ #
    # Test helpers                                                         #
    # ------------------------------------------------------------------ #

    def state_of(self, name: str) -> JobState | None:
        """Current state of a job, None once completed."""
        entry = self._jobs.get(name)
        return entry.state if entry is not None else None

    def responses(self) -> dict[str, bytes]:
        """Snapshot of the response table."""
        return dict(self._responses)

    async def _swap(self, name: str, expected: JobState, new: JobState) -> None:
        async with self._lock:
            entry = self._jobs.get(name)
            if entry is None or entry.state is not expected:
                raise JobNotFoundError(name)
            entry.state = new
