"""
Exception hierarchy for dirqueue.

DirQueueError
├── JobNotFoundError   — job file absent from the expected state directory
├── RecordDecodeError  — a Job Record file could not be decoded
├── StorageError       — underlying I/O failure (wraps original exception)
└── GeneratorError     — the external text generator failed
"""

from __future__ import annotations


class DirQueueError(Exception):
    """Base class for all dirqueue exceptions."""


class JobNotFoundError(DirQueueError):
    """
    Raised when a job file is not where a transition expects it.

    During claim this is the normal concurrency signal: another poller (or an
    earlier cycle) already moved the file. Callers skip the job, they do not
    retry it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Job file {name!r} not found")


class RecordDecodeError(DirQueueError):
    """
    Raised when a Job Record cannot be parsed or validated.

    Attributes
    ----------
    name  : file name of the offending record
    cause : the underlying parse / validation exception
    """

    def __init__(self, name: str, cause: Exception) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"Malformed job record {name!r}: {cause}")


class StorageError(DirQueueError):
    """
    Wraps an underlying I/O failure from a store adapter.

    Attributes
    ----------
    cause : Exception
        The original exception from the filesystem.
    """

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")


class GeneratorError(DirQueueError):
    """
    Raised by a generator adapter when invocation does not produce a response.

    Attributes
    ----------
    exit_code : process exit code, None if the process never ran to completion
    timed_out : True when the configured timeout expired
    stderr    : tail of the process standard error, if captured
    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        timed_out: bool = False,
        stderr: str = "",
    ) -> None:
        self.exit_code = exit_code
        self.timed_out = timed_out
        self.stderr = stderr
        super().__init__(message)
