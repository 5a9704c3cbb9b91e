"""
DirectoryStore — job state as directory membership on a local filesystem.

Layout under the queue directory:

  incoming/    pending jobs, written by producers
  processing/  claimed jobs, at most one being worked on at a time
  outgoing/    response records, read by delivery
  dead/        jobs that exhausted a configured retry ceiling

Atomicity
---------
Every transition is a single os.rename (or os.unlink) within one filesystem,
which POSIX guarantees to be atomic. Two pollers racing to claim the same
file: one rename succeeds, the other fails with FileNotFoundError, surfaced
here as JobNotFoundError. Files are never edited in place.

Writes that create new files (enqueue, write_response) go to a hidden
``.tmp`` name first and are renamed into place, so a reader never observes a
half-written record. The listing filter only picks up ``*.json``.

Single host only. Not suitable for NFS or other filesystems without atomic
rename.
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
import uuid
from pathlib import Path

from dirqueue.domain.errors import JobNotFoundError, StorageError
from dirqueue.domain.models import JobFile, JobState

JOB_SUFFIX = ".json"


@dataclasses.dataclass
class DirectoryStore:
    """
    Filesystem job store.

    Parameters
    ----------
    queue_dir : directory holding incoming/, processing/, outgoing/, dead/
    log_dir   : optional log directory created alongside by ensure_layout()
    """

    queue_dir: Path
    log_dir: Path | None

    def __init__(self, queue_dir: str | Path, log_dir: str | Path | None = None) -> None:
        self.queue_dir = Path(queue_dir)
        self.log_dir = Path(log_dir) if log_dir is not None else None

    @property
    def incoming(self) -> Path:
        return self.queue_dir / "incoming"

    @property
    def processing(self) -> Path:
        return self.queue_dir / "processing"

    @property
    def outgoing(self) -> Path:
        return self.queue_dir / "outgoing"

    @property
    def dead(self) -> Path:
        return self.queue_dir / "dead"

    def _dir_for(self, state: JobState) -> Path:
        match state:
            case JobState.PENDING:
                return self.incoming
            case JobState.IN_FLIGHT:
                return self.processing
            case JobState.DONE:
                return self.outgoing
            case JobState.DEAD:
                return self.dead

    # ------------------------------------------------------------------ #
    # Port implementation                                                  #
    # ------------------------------------------------------------------ #

    async def ensure_layout(self) -> None:
        """Create all queue directories (and the log directory) if missing."""
        await asyncio.to_thread(self._sync_ensure_layout)

    async def list_pending(self) -> list[JobFile]:
        """Pending *.json files with their mtime, in directory order."""
        return await asyncio.to_thread(self._sync_list, self.incoming)

    async def enqueue(self, name: str, content: bytes) -> None:
        await asyncio.to_thread(self._sync_write_atomic, self.incoming, name, content)

    async def claim(self, name: str) -> None:
        """Atomic rename incoming → processing."""
        await asyncio.to_thread(self._sync_move, name, self.incoming, self.processing)

    async def read(self, name: str) -> bytes:
        return await asyncio.to_thread(self._sync_read, self.processing / name)

    async def release(self, name: str) -> None:
        """Atomic rename processing → incoming."""
        await asyncio.to_thread(self._sync_move, name, self.processing, self.incoming)

    async def complete(self, name: str) -> None:
        await asyncio.to_thread(self._sync_unlink, self.processing / name)

    async def dead_letter(self, name: str) -> None:
        """Atomic rename processing → dead."""
        await asyncio.to_thread(self._sync_move, name, self.processing, self.dead)

    async def write_response(self, name: str, content: bytes) -> None:
        await asyncio.to_thread(self._sync_write_atomic, self.outgoing, name, content)

    async def take_response(self, name: str) -> bytes | None:
        return await asyncio.to_thread(self._sync_take, self.outgoing / name)

    async def recover_in_flight(self) -> list[str]:
        """Move every file in processing/ back to incoming/."""
        return await asyncio.to_thread(self._sync_recover)

    async def counts(self) -> dict[JobState, int]:
        return await asyncio.to_thread(self._sync_counts)

    # ------------------------------------------------------------------ #
    # Synchronous implementations (executed in a thread-pool worker)      #
    # ------------------------------------------------------------------ #

    def _sync_ensure_layout(self) -> None:
        dirs = [self._dir_for(state) for state in JobState]
        if self.log_dir is not None:
            dirs.append(self.log_dir)
        for d in dirs:
            try:
                d.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(f"Cannot create {d}", exc) from exc

    def _sync_list(self, directory: Path) -> list[JobFile]:
        try:
            names = os.listdir(directory)
        except OSError as exc:
            raise StorageError(f"Cannot list {directory}", exc) from exc
        entries: list[JobFile] = []
        for name in names:
            if not name.endswith(JOB_SUFFIX) or name.startswith("."):
                continue
            try:
                mtime = os.stat(directory / name).st_mtime
            except FileNotFoundError:
                # Claimed or removed between listdir and stat.
                continue
            except OSError as exc:
                raise StorageError(f"Cannot stat {name}", exc) from exc
            entries.append(JobFile(mtime=mtime, name=name))
        return entries

    def _sync_move(self, name: str, src_dir: Path, dst_dir: Path) -> None:
        try:
            os.rename(src_dir / name, dst_dir / name)
        except FileNotFoundError as exc:
            if not (src_dir / name).exists():
                raise JobNotFoundError(name) from exc
            raise StorageError(f"Cannot move {name} to {dst_dir.name}", exc) from exc
        except OSError as exc:
            raise StorageError(f"Cannot move {name} to {dst_dir.name}", exc) from exc

    def _sync_read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise JobNotFoundError(path.name) from exc
        except OSError as exc:
            raise StorageError(f"Cannot read {path.name}", exc) from exc

    def _sync_unlink(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise JobNotFoundError(path.name) from exc
        except OSError as exc:
            raise StorageError(f"Cannot delete {path.name}", exc) from exc

    def _sync_write_atomic(self, directory: Path, name: str, content: bytes) -> None:
        tmp = directory / f".{name}.{uuid.uuid4().hex}.tmp"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.rename(tmp, directory / name)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {name}", exc) from exc

    def _sync_take(self, path: Path) -> bytes | None:
        try:
            content = path.read_bytes()
            path.unlink()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Cannot take {path.name}", exc) from exc
        return content

    def _sync_recover(self) -> list[str]:
        moved: list[str] = []
        for entry in sorted(self._sync_list(self.processing)):
            try:
                self._sync_move(entry.name, self.processing, self.incoming)
            except JobNotFoundError:
                continue
            moved.append(entry.name)
        return moved

    def _sync_counts(self) -> dict[JobState, int]:
        counts: dict[JobState, int] = {}
        for state in JobState:
            directory = self._dir_for(state)
            counts[state] = len(self._sync_list(directory)) if directory.exists() else 0
        return counts
