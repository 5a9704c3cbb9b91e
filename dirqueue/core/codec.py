"""
Codec — serialize and deserialize Job and Response records using Pydantic v2.

Wire format (produced by model_dump_json with camelCase aliases):
-----------------------------------------------------------------
Job Record, written by producers into incoming/:
{
  "channel": "telegram",
  "sender": "Alice",
  "senderId": "12345",
  "message": "What's on my calendar today?",
  "timestamp": 1704067200000,
  "messageId": "telegram_1704067200000_4242"
}

Response Record, written by the coordinator into outgoing/:
{
  "channel": "telegram",
  "sender": "Alice",
  "message": "<generated text>",
  "originalMessage": "What's on my calendar today?",
  "timestamp": 1704067212345,
  "messageId": "telegram_1704067200000_4242"
}
"""
from __future__ import annotations

from pydantic import ValidationError

from dirqueue.domain.errors import RecordDecodeError
from dirqueue.domain.models import JobRecord, ResponseRecord


def encode_job(job: JobRecord) -> bytes:
    """Serialize a JobRecord to UTF-8 JSON bytes."""
    return job.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def decode_job(data: bytes, name: str = "<memory>") -> JobRecord:
    """Deserialize a JobRecord. Raises RecordDecodeError on bad input."""
    try:
        return JobRecord.model_validate_json(data)
    except ValidationError as exc:
        raise RecordDecodeError(name, exc) from exc


def encode_response(response: ResponseRecord) -> bytes:
    """Serialize a ResponseRecord to UTF-8 JSON bytes."""
    return response.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def decode_response(data: bytes, name: str = "<memory>") -> ResponseRecord:
    """Deserialize a ResponseRecord. Raises RecordDecodeError on bad input."""
    try:
        return ResponseRecord.model_validate_json(data)
    except ValidationError as exc:
        raise RecordDecodeError(name, exc) from exc
