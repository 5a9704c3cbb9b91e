"""
QueueCoordinator — the single consumer of the job queue.

Poll cycle
----------
Every `poll_interval` the coordinator lists pending jobs, sorts them oldest
first by modification time, and works through the batch strictly one job at
a time. The generator keeps conversational state between calls, so jobs are
never processed concurrently: a slow generation holds back everything queued
behind it, and bursts are absorbed by FIFO order instead of fan-out.

Per-job state transitions
-------------------------

  pending ──claim──> in_flight ──(response written)──complete──> done
                        │
                        ├── decode error ──────────> left in in_flight
                        ├── unexpected error ──────> release → pending
                        │                      └──> dead_letter (ceiling hit)
                        └── release fails ─────────> stranded in in_flight

A lost claim (file already gone) is skipped silently. A failing generator is
not a job failure: the job completes with a fixed fallback response.

Usage
-----
    coordinator = QueueCoordinator(
        store=DirectoryStore(layout.queue_dir),
        generator=CliGenerator(),
        reset_signal=ResetSignal(layout.reset_flag),
    )
    async with coordinator:
        await coordinator.wait_stopped()
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from datetime import timedelta
from enum import Enum
from types import TracebackType

from dirqueue.config import Settings
from dirqueue.core import codec
from dirqueue.core.reset import ResetSignal
from dirqueue.core.response import FALLBACK_RESPONSE, response_file_name, shape_response
from dirqueue.domain.errors import (
    DirQueueError,
    GeneratorError,
    JobNotFoundError,
    RecordDecodeError,
    StorageError,
)
from dirqueue.domain.models import JobFile, JobRecord, ResponseRecord, now_ms
from dirqueue.ports.generator import GeneratorPort
from dirqueue.ports.store import JobStorePort

logger = logging.getLogger(__name__)


class JobOutcome(str, Enum):
    """What happened to a job during one processing attempt."""

    DONE = "done"
    SKIPPED = "skipped"
    ABANDONED = "abandoned"
    RETRY = "retry"
    DEAD = "dead"
    STRANDED = "stranded"


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """
    max_attempts      — failed attempts before a job is dead-lettered;
                        None retries forever
    dead_letter_malformed — move undecodable records to dead/ instead of
                        leaving them in processing/
    """

    max_attempts: int | None = None
    dead_letter_malformed: bool = False


def _context(job: JobRecord) -> str:
    return f"[{job.channel}] from {job.sender[:20]}: {job.message[:50]}..."


@dataclasses.dataclass
class QueueCoordinator:
    """
    Poll / claim / process / resolve loop.

    Parameters
    ----------
    store            : any JobStorePort implementation
    generator        : any GeneratorPort implementation
    reset_signal     : flag asking the next job to drop conversational context
    settings         : called once per job; the result is never cached
    poll_interval    : pause between the end of one cycle and the next
    retry            : retry ceiling / dead-letter policy
    recover_on_start : move leftover in_flight jobs back to pending on start()
    """

    store: JobStorePort
    generator: GeneratorPort
    reset_signal: ResetSignal
    settings: Callable[[], Settings] = Settings
    poll_interval: timedelta = timedelta(seconds=1)
    retry: RetryPolicy = RetryPolicy()
    recover_on_start: bool = True

    _attempts: dict[str, int] = dataclasses.field(
        default_factory=dict, init=False, repr=False
    )
    _task: asyncio.Task[None] | None = dataclasses.field(
        default=None, init=False, repr=False
    )
    _stopping: asyncio.Event = dataclasses.field(
        default_factory=asyncio.Event, init=False, repr=False
    )

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Prepare the store, recover in-flight leftovers, start polling."""
        if self._task is not None:
            raise RuntimeError("QueueCoordinator is already running")
        await self.store.ensure_layout()
        if self.recover_on_start:
            recovered = await self.store.recover_in_flight()
            for name in recovered:
                logger.info("Recovered in-flight job %s back to queue", name)
        self._stopping.clear()
        self._task = asyncio.create_task(self._poll_loop(), name="dirqueue-poller")

    async def stop(self, *, cancel_in_flight: bool = False) -> None:
        """
        Stop polling.

        By default the job currently being processed runs to completion.
        With cancel_in_flight the generator call is interrupted and the job
        is released back to pending.
        """
        self._stopping.set()
        if self._task is None:
            return
        if cancel_in_flight:
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    def request_stop(self) -> None:
        """Signal-handler friendly: stop after the current job."""
        self._stopping.set()

    async def wait_stopped(self) -> None:
        await self._stopping.wait()

    async def run(self) -> None:
        """Start, block until request_stop() is called, then stop."""
        async with self:
            await self.wait_stopped()

    async def __aenter__(self) -> QueueCoordinator:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def _poll_loop(self) -> None:
        while not self._stopping.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), self.poll_interval.total_seconds()
                )
            except TimeoutError:
                pass

    # ------------------------------------------------------------------ #
    # Poll cycle                                                           #
    # ------------------------------------------------------------------ #

    async def poll_once(self) -> list[JobOutcome]:
        """Process every currently pending job, oldest first, one at a time."""
        try:
            pending = sorted(await self.store.list_pending())
        except DirQueueError as exc:
            logger.error("Queue processing error: %s", exc)
            return []
        # Failed jobs are released before the next listing; anything missing
        # from it was removed by hand and its count is stale.
        names = {entry.name for entry in pending}
        for name in [n for n in self._attempts if n not in names]:
            del self._attempts[name]
        if not pending:
            return []

        logger.debug("Found %d message(s) in queue", len(pending))
        outcomes: list[JobOutcome] = []
        for entry in pending:
            if self._stopping.is_set():
                break
            outcomes.append(await self.process_job(entry))
        return outcomes

    async def process_job(self, entry: JobFile) -> JobOutcome:
        """Claim, generate, respond, and resolve a single pending job."""
        name = entry.name
        try:
            await self.store.claim(name)
        except JobNotFoundError:
            logger.debug("Job %s already claimed, skipping", name)
            return JobOutcome.SKIPPED
        except StorageError as exc:
            logger.error("Cannot claim %s: %s", name, exc)
            return JobOutcome.SKIPPED

        job: JobRecord | None = None
        try:
            job = codec.decode_job(await self.store.read(name), name)
            logger.info("Processing %s", _context(job))

            text = shape_response(await self._generate(job))
            response = ResponseRecord.for_job(job, text, completed_at=now_ms())
            await self.store.write_response(
                response_file_name(response), codec.encode_response(response)
            )
            logger.info(
                "✓ Response ready [%s] %s (%d chars)", job.channel, job.sender, len(text)
            )
            await self.store.complete(name)
        except RecordDecodeError as exc:
            logger.error("Processing error: %s", exc)
            return await self._abandon(name)
        except asyncio.CancelledError:
            logger.info("Processing of %s interrupted, returning it to queue", name)
            await self._resolve_failure(name, job, count_attempt=False)
            raise
        except Exception as exc:
            where = _context(job) if job is not None else name
            logger.error("Processing error %s: %s", where, exc)
            return await self._resolve_failure(name, job)

        self._attempts.pop(name, None)
        return JobOutcome.DONE

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    async def _generate(self, job: JobRecord) -> str:
        fresh = await self.reset_signal.aconsume()
        if fresh:
            logger.info("Resetting conversation (starting fresh)")
        model = (await asyncio.to_thread(self.settings)).model_id()
        try:
            return await self.generator.generate(
                job.message, continue_conversation=not fresh, model=model
            )
        except GeneratorError as exc:
            logger.error("Generator error: %s", exc)
            return FALLBACK_RESPONSE

    async def _abandon(self, name: str) -> JobOutcome:
        if not self.retry.dead_letter_malformed:
            return JobOutcome.ABANDONED
        try:
            await self.store.dead_letter(name)
        except DirQueueError as exc:
            logger.error("Failed to dead-letter malformed %s: %s", name, exc)
            return JobOutcome.ABANDONED
        return JobOutcome.DEAD

    async def _resolve_failure(
        self,
        name: str,
        job: JobRecord | None,
        *,
        count_attempt: bool = True,
    ) -> JobOutcome:
        attempts = self._attempts.get(name, 0) + (1 if count_attempt else 0)
        self._attempts[name] = attempts
        ceiling = self.retry.max_attempts
        try:
            if ceiling is not None and attempts >= ceiling:
                await self.store.dead_letter(name)
                self._attempts.pop(name, None)
                logger.error(
                    "Job %s failed %d time(s), moved to dead letter", name, attempts
                )
                return JobOutcome.DEAD
            await self.store.release(name)
        except DirQueueError as exc:
            channel = job.channel if job is not None else "?"
            logger.error(
                "Failed to move file back [%s] %s, job stranded in processing: %s",
                channel,
                name,
                exc,
            )
            return JobOutcome.STRANDED
        return JobOutcome.RETRY
