import os

import pytest
from pydantic import ValidationError

from dirqueue.domain.models import (
    HEARTBEAT_CHANNEL,
    JobFile,
    JobRecord,
    JobState,
    ResponseRecord,
    new_message_id,
)

# ---------------------------------------------------------------------------
# JobState
# ---------------------------------------------------------------------------


def test_job_state_values():
    assert JobState.PENDING.value == "pending"
    assert JobState.IN_FLIGHT.value == "in_flight"
    assert JobState.DONE.value == "done"
    assert JobState.DEAD.value == "dead"


def test_job_state_is_str_enum():
    assert isinstance(JobState.PENDING, str)


# ---------------------------------------------------------------------------
# JobRecord
# ---------------------------------------------------------------------------


def test_job_new_defaults():
    job = JobRecord.new("telegram", "Alice", "hello")
    assert job.channel == "telegram"
    assert job.sender == "Alice"
    assert job.sender_id is None
    assert job.message == "hello"
    assert job.timestamp > 0
    assert job.message_id.startswith("telegram_")


def test_job_new_keeps_given_message_id():
    job = JobRecord.new("discord", "Bob", "hi", message_id="abc")
    assert job.message_id == "abc"


def test_job_new_assigns_distinct_ids_across_channels():
    a = JobRecord.new("telegram", "A", "x")
    b = JobRecord.new("discord", "A", "x")
    assert a.message_id != b.message_id


def test_new_message_id_embeds_pid():
    mid = new_message_id("heartbeat")
    prefix, ms, pid = mid.split("_")
    assert prefix == "heartbeat"
    assert ms.isdigit()
    assert pid == str(os.getpid())


def test_job_is_frozen():
    job = JobRecord.new("telegram", "Alice", "hello")
    with pytest.raises(Exception):
        job.message = "other"


def test_job_accepts_camel_case_fields():
    job = JobRecord.model_validate(
        {
            "channel": "whatsapp",
            "sender": "Carol",
            "senderId": "555",
            "message": "ping",
            "timestamp": 1700000000000,
            "messageId": "m-1",
        }
    )
    assert job.sender_id == "555"
    assert job.message_id == "m-1"


def test_job_ignores_unknown_fields():
    job = JobRecord.model_validate(
        {
            "channel": "whatsapp",
            "sender": "Carol",
            "message": "ping",
            "timestamp": 1,
            "messageId": "m-1",
            "attachments": [],
        }
    )
    assert job.message_id == "m-1"


def test_job_requires_message_id():
    with pytest.raises(Exception):
        JobRecord.model_validate({"channel": "c", "sender": "s", "message": "m"})


def test_is_heartbeat():
    assert JobRecord.new(HEARTBEAT_CHANNEL, "System", "x").is_heartbeat
    assert not JobRecord.new("telegram", "Alice", "x").is_heartbeat


def test_file_name_uses_message_id():
    job = JobRecord.new("telegram", "Alice", "x", message_id="m-7")
    assert job.file_name() == "m-7.json"


# ---------------------------------------------------------------------------
# ResponseRecord
# ---------------------------------------------------------------------------


def test_response_for_job_copies_identity():
    job = JobRecord.new("telegram", "Alice", "question", message_id="m-1")
    response = ResponseRecord.for_job(job, "answer", completed_at=42)
    assert response.channel == "telegram"
    assert response.sender == "Alice"
    assert response.message == "answer"
    assert response.original_message == "question"
    assert response.timestamp == 42
    assert response.message_id == "m-1"


# ---------------------------------------------------------------------------
# JobFile
# ---------------------------------------------------------------------------


def test_job_files_sort_oldest_first():
    files = [JobFile(3.0, "c.json"), JobFile(1.0, "b.json"), JobFile(2.0, "a.json")]
    assert [f.name for f in sorted(files)] == ["b.json", "a.json", "c.json"]


def test_job_files_with_equal_mtime_sort_by_name():
    files = [JobFile(1.0, "b.json"), JobFile(1.0, "a.json")]
    assert [f.name for f in sorted(files)] == ["a.json", "b.json"]


# ---------------------------------------------------------------------------
# File-name safety
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("message_id", ["../../settings", "a/b", "a\\b", ".hidden", "", "a\x00b"])
def test_job_rejects_unsafe_message_id(message_id):
    with pytest.raises(ValidationError):
        JobRecord.new("telegram", "Alice", "x", message_id=message_id)


@pytest.mark.parametrize("channel", ["tele/gram", "..", ""])
def test_job_rejects_unsafe_channel(channel):
    with pytest.raises(ValidationError):
        JobRecord.new(channel, "Alice", "x", message_id="m-1")


def test_job_accepts_dots_inside_message_id():
    job = JobRecord.new("telegram", "Alice", "x", message_id="m.1.v2")
    assert job.file_name() == "m.1.v2.json"
