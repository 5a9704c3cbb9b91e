import pytest

from dirqueue.domain.errors import (
    DirQueueError,
    GeneratorError,
    JobNotFoundError,
    RecordDecodeError,
    StorageError,
)


def test_dirqueue_error_is_exception():
    err = DirQueueError("test message")
    assert isinstance(err, Exception)
    assert str(err) == "test message"


def test_job_not_found_stores_name():
    err = JobNotFoundError("telegram_1.json")
    assert isinstance(err, DirQueueError)
    assert err.name == "telegram_1.json"
    assert "telegram_1.json" in str(err)


def test_record_decode_error_stores_cause():
    cause = ValueError("bad json")
    err = RecordDecodeError("job.json", cause)
    assert err.name == "job.json"
    assert err.cause is cause
    assert "job.json" in str(err)
    assert "bad json" in str(err)


def test_storage_error_stores_cause_and_message():
    cause = OSError("disk full")
    err = StorageError("write failed", cause)
    assert isinstance(err, DirQueueError)
    assert err.cause is cause
    assert "write failed" in str(err)
    assert "disk full" in str(err)


def test_generator_error_defaults():
    err = GeneratorError("boom")
    assert err.exit_code is None
    assert err.timed_out is False
    assert err.stderr == ""
    assert str(err) == "boom"


def test_generator_error_carries_details():
    err = GeneratorError("exit 2", exit_code=2, stderr="usage")
    assert err.exit_code == 2
    assert err.stderr == "usage"


def test_error_hierarchy():
    assert issubclass(JobNotFoundError, DirQueueError)
    assert issubclass(RecordDecodeError, DirQueueError)
    assert issubclass(StorageError, DirQueueError)
    assert issubclass(GeneratorError, DirQueueError)
    assert issubclass(DirQueueError, Exception)


def test_can_catch_subclass_as_base():
    with pytest.raises(DirQueueError):
        raise JobNotFoundError("x.json")
