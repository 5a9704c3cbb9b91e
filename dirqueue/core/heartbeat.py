"""
HeartbeatTrigger — periodically inject a synthetic job into the queue.

The trigger is just another producer: each tick it writes a Job Record on the
reserved ``heartbeat`` channel into the pending location, exactly as a
channel adapter would. The coordinator has no special handling for it beyond
naming the response ``<messageId>.json``, which lets the trigger pick up and
discard its own reply.

Usage
-----
    async with HeartbeatTrigger(store, interval=timedelta(hours=1)):
        await stop_event.wait()

Queue errors during a tick are logged and the trigger keeps running.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from types import TracebackType

from dirqueue.core import codec
from dirqueue.domain.errors import DirQueueError
from dirqueue.domain.models import HEARTBEAT_CHANNEL, JobRecord, ResponseRecord
from dirqueue.ports.store import JobStorePort

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Quick status check: Any pending tasks? Keep response brief."


def prompt_from_file(path: Path, default: str = DEFAULT_PROMPT) -> Callable[[], str]:
    """Prompt source that re-reads `path` on every tick, falling back to `default`."""

    def _read() -> str:
        try:
            text = path.read_text("utf-8").strip()
        except FileNotFoundError:
            return default
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read heartbeat prompt %s: %s", path, exc)
            return default
        return text or default

    return _read


@dataclasses.dataclass
class HeartbeatTrigger:
    """
    Enqueues a heartbeat job every `interval`.

    Parameters
    ----------
    store         : the job store shared with the coordinator
    interval      : time between ticks (default one hour)
    prompt        : called each tick to obtain the prompt text
    response_wait : how long after enqueueing to look for the reply;
                    None skips collecting it
    """

    store: JobStorePort
    interval: timedelta = timedelta(seconds=3600)
    prompt: Callable[[], str] = lambda: DEFAULT_PROMPT
    response_wait: timedelta | None = timedelta(seconds=10)

    _task: asyncio.Task[None] | None = dataclasses.field(
        default=None, init=False, repr=False
    )

    async def __aenter__(self) -> HeartbeatTrigger:
        logger.info("Heartbeat started (interval: %ss)", int(self.interval.total_seconds()))
        self._task = asyncio.create_task(self._beat(), name="dirqueue-heartbeat")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def tick(self) -> JobRecord:
        """Write one heartbeat job into the queue and return it."""
        prompt = await asyncio.to_thread(self.prompt)
        job = JobRecord.new(
            HEARTBEAT_CHANNEL,
            "System",
            prompt,
            sender_id=HEARTBEAT_CHANNEL,
        )
        await self.store.enqueue(job.file_name(), codec.encode_job(job))
        logger.info("✓ Heartbeat queued: %s", job.message_id)
        return job

    async def collect(self, job: JobRecord) -> ResponseRecord | None:
        """Take the reply for `job` out of the outgoing location, if it is there."""
        raw = await self.store.take_response(job.file_name())
        if raw is None:
            return None
        response = codec.decode_response(raw, job.file_name())
        logger.info("Response: %s...", response.message[:100])
        return response

    async def _beat(self) -> None:
        while True:
            await asyncio.sleep(self.interval.total_seconds())
            logger.info("Heartbeat check...")
            try:
                job = await self.tick()
                if self.response_wait is not None:
                    await asyncio.sleep(self.response_wait.total_seconds())
                    await self.collect(job)
            except DirQueueError as exc:
                logger.error("Heartbeat failed: %s", exc)
