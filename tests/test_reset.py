from dirqueue.core.reset import ResetSignal


def test_not_requested_by_default(tmp_path) -> None:
    signal = ResetSignal(tmp_path / "reset_flag")
    assert not signal.is_requested()
    assert signal.consume() is False


def test_request_creates_empty_flag(tmp_path) -> None:
    path = tmp_path / "nested" / "reset_flag"
    ResetSignal(path).request()
    assert path.exists()
    assert path.read_bytes() == b""


def test_request_is_idempotent(tmp_path) -> None:
    signal = ResetSignal(tmp_path / "reset_flag")
    signal.request()
    signal.request()
    assert signal.is_requested()


def test_consume_clears_exactly_once(tmp_path) -> None:
    signal = ResetSignal(tmp_path / "reset_flag")
    signal.request()
    assert signal.consume() is True
    assert not signal.is_requested()
    assert signal.consume() is False


async def test_async_consume(tmp_path) -> None:
    signal = ResetSignal(str(tmp_path / "reset_flag"))
    signal.request()
    assert await signal.aconsume() is True
    assert await signal.aconsume() is False
