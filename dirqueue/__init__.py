"""
dirqueue — a single-consumer job queue built on a directory structure.

Producers (channel adapters, the heartbeat trigger, ``dirqueue enqueue``)
drop JSON Job Records into ``incoming/``. One coordinator polls that
directory, claims the oldest job with an atomic rename into
``processing/``, hands the message to an external text generator, writes a
Response Record into ``outgoing/`` and deletes the job. Failures move the job
back into ``incoming/`` for the next poll cycle.

A job's state is the directory its file sits in. Every transition is an
atomic rename or delete, never an in-place edit, so an accidental second
poller can race for a claim but never process the same job twice.

Quick start
-----------
    import asyncio
    from dirqueue import CliGenerator, DirectoryStore, QueueCoordinator, ResetSignal

    async def main():
        coordinator = QueueCoordinator(
            store=DirectoryStore(".dirqueue/queue"),
            generator=CliGenerator(),
            reset_signal=ResetSignal(".dirqueue/reset_flag"),
        )
        await coordinator.run()  # until request_stop()

    asyncio.run(main())

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/   — pure value types (JobRecord, ResponseRecord, JobFile, JobState)
  ports/    — Protocol interfaces (JobStorePort, GeneratorPort)
  core/     — business logic (QueueCoordinator, HeartbeatTrigger, ResetSignal)
  adapters/ — concrete store and generator implementations
"""
from __future__ import annotations

from dirqueue.adapters.generator.cli import CliGenerator
from dirqueue.adapters.store.filesystem import DirectoryStore
from dirqueue.adapters.store.memory import InMemoryStore
from dirqueue.config import QueueLayout, Settings, load_settings
from dirqueue.core.coordinator import JobOutcome, QueueCoordinator, RetryPolicy
from dirqueue.core.heartbeat import HeartbeatTrigger
from dirqueue.core.reset import ResetSignal
from dirqueue.domain.errors import (
    DirQueueError,
    GeneratorError,
    JobNotFoundError,
    RecordDecodeError,
    StorageError,
)
from dirqueue.domain.models import (
    HEARTBEAT_CHANNEL,
    JobFile,
    JobRecord,
    JobState,
    ResponseRecord,
)
from dirqueue.ports.generator import GeneratorPort
from dirqueue.ports.store import JobStorePort

__all__ = [
    # Domain models
    "HEARTBEAT_CHANNEL",
    "JobFile",
    "JobRecord",
    "JobState",
    "ResponseRecord",
    # Errors
    "DirQueueError",
    "GeneratorError",
    "JobNotFoundError",
    "RecordDecodeError",
    "StorageError",
    # Ports (for typing custom adapters)
    "GeneratorPort",
    "JobStorePort",
    # Core
    "HeartbeatTrigger",
    "JobOutcome",
    "QueueCoordinator",
    "ResetSignal",
    "RetryPolicy",
    # Configuration
    "QueueLayout",
    "Settings",
    "load_settings",
    # Built-in adapters
    "CliGenerator",
    "DirectoryStore",
    "InMemoryStore",
]
