"""
ResetSignal — a flag file asking the next job to start a fresh conversation.

The flag carries no content: existence means "reset requested". consume()
is a single unlink, so checking and clearing happen in one atomic step and
at most one job ever observes a given reset.
"""
from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path

from dirqueue.domain.errors import StorageError


@dataclasses.dataclass
class ResetSignal:
    path: Path

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def request(self) -> None:
        """Raise the flag. Idempotent."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create reset flag {self.path}", exc) from exc

    def is_requested(self) -> bool:
        return self.path.exists()

    def consume(self) -> bool:
        """Clear the flag. Returns True if it was set."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Cannot clear reset flag {self.path}", exc) from exc
        return True

    async def aconsume(self) -> bool:
        return await asyncio.to_thread(self.consume)
