"""
JobStorePort — the storage port in dirqueue.

Any object satisfying this structural Protocol can act as the job store.
No base class or registration is required — Python's structural subtyping
(duck typing + Protocol) is sufficient.

State contract
--------------
A job's state is the location of its record, never a field inside it:

  pending    ──claim──>  in_flight  ──complete──>  (removed; response in outgoing)
     ^                       │
     └───────release─────────┘──dead_letter──>  dead

Every transition is a single atomic move or delete. Two callers racing to
claim the same name: exactly one succeeds, the other gets JobNotFoundError.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dirqueue.domain.models import JobFile, JobState


@runtime_checkable
class JobStorePort(Protocol):
    """
    Interface required by the dirqueue core.

    Implementing adapters (built-in):
      - DirectoryStore — os.rename between incoming/processing/outgoing dirs
      - InMemoryStore  — asyncio.Lock compare-and-swap on a state table

    Error contract shared by all transitions
    ----------------------------------------
    JobNotFoundError  the source file is gone (claim lost, already moved)
    StorageError      any other I/O failure; the job stays where it was
    """

    async def ensure_layout(self) -> None:
        """Create the state locations if missing. Idempotent."""
        ...

    async def list_pending(self) -> list[JobFile]:
        """All pending job files, annotated with their modification time."""
        ...

    async def enqueue(self, name: str, content: bytes) -> None:
        """Producer write: make `content` visible as a pending job, atomically."""
        ...

    async def claim(self, name: str) -> None:
        """Atomically move a job from pending to in_flight."""
        ...

    async def read(self, name: str) -> bytes:
        """Raw bytes of an in_flight job."""
        ...

    async def release(self, name: str) -> None:
        """Move an in_flight job back to pending for a future retry."""
        ...

    async def complete(self, name: str) -> None:
        """Delete an in_flight job once its response is written."""
        ...

    async def dead_letter(self, name: str) -> None:
        """Move an in_flight job to the dead-letter location."""
        ...

    async def write_response(self, name: str, content: bytes) -> None:
        """Atomically write a response record for delivery."""
        ...

    async def take_response(self, name: str) -> bytes | None:
        """Read and remove a response record. None if absent."""
        ...

    async def recover_in_flight(self) -> list[str]:
        """Move every in_flight job back to pending. Returns the names moved."""
        ...

    async def counts(self) -> dict[JobState, int]:
        """Number of records in each state location."""
        ...
