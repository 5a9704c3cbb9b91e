"""
Domain models for dirqueue — backed by Pydantic v2.

Pydantic handles:
  - JSON serialization / deserialization (via codec.py)
  - camelCase wire names (senderId, messageId, originalMessage)
  - field validation and type coercion

All models are frozen (immutable). A job's state is never a field on the
record: it is the directory the record's file currently sits in.
"""

import dataclasses
import os
import threading
import time
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HEARTBEAT_CHANNEL = "heartbeat"

# Channel and message id end up in queue file names: no path separators, no
# NUL, and no leading dot (hidden files are never listed).
FileSafeName = Annotated[str, Field(pattern=r"^[^./\\\x00][^/\\\x00]*$")]


def now_ms() -> int:
    """Wall-clock milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


_id_lock = threading.Lock()
_last_id_ms = 0


def new_message_id(prefix: str) -> str:
    """
    Unique id built from a millisecond clock reading and the process id.

    The clock part never repeats within a process, even for ids requested in
    the same millisecond.
    """
    global _last_id_ms
    with _id_lock:
        ms = max(now_ms(), _last_id_ms + 1)
        _last_id_ms = ms
    return f"{prefix}_{ms}_{os.getpid()}"


class JobState(str, Enum):
    """Lifecycle states, one per queue directory."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    DEAD = "dead"


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class JobRecord(_Record):
    """
    A single request written by a producer into the incoming directory.

    channel    — origin, e.g. "telegram" or the reserved "heartbeat"
    sender     — origin identity (opaque)
    sender_id  — optional origin identity (opaque)
    message    — the prompt text
    timestamp  — creation time, ms since epoch
    message_id — producer-assigned id correlating request and response
    """

    channel: FileSafeName
    sender: str
    sender_id: str | None = None
    message: str
    timestamp: int = Field(default_factory=now_ms)
    message_id: FileSafeName

    @classmethod
    def new(
        cls,
        channel: str,
        sender: str,
        message: str,
        *,
        sender_id: str | None = None,
        message_id: str | None = None,
    ) -> "JobRecord":
        """Factory — stamps the creation time and assigns a fresh id if none given."""
        return cls(
            channel=channel,
            sender=sender,
            sender_id=sender_id,
            message=message,
            message_id=message_id or new_message_id(channel),
        )

    @property
    def is_heartbeat(self) -> bool:
        return self.channel == HEARTBEAT_CHANNEL

    def file_name(self) -> str:
        """Default incoming file name for this record."""
        return f"{self.message_id}.json"


class ResponseRecord(_Record):
    """The result of processing a JobRecord, paired to it by message_id."""

    channel: FileSafeName
    sender: str
    message: str
    original_message: str
    timestamp: int
    message_id: FileSafeName

    @classmethod
    def for_job(cls, job: JobRecord, text: str, completed_at: int) -> "ResponseRecord":
        return cls(
            channel=job.channel,
            sender=job.sender,
            message=text,
            original_message=job.message,
            timestamp=completed_at,
            message_id=job.message_id,
        )


@dataclasses.dataclass(frozen=True, order=True)
class JobFile:
    """A pending job file as seen by a directory listing (sorts oldest first)."""

    mtime: float
    name: str
