import asyncio

import pytest

from dirqueue.adapters.store.memory import InMemoryStore
from dirqueue.domain.errors import JobNotFoundError
from dirqueue.domain.models import JobState
from dirqueue.ports.store import JobStorePort


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


def test_satisfies_port(store: InMemoryStore) -> None:
    assert isinstance(store, JobStorePort)


async def test_list_pending_empty(store: InMemoryStore) -> None:
    assert await store.list_pending() == []


async def test_enqueue_order_is_listing_order(store: InMemoryStore) -> None:
    for name in ("c.json", "a.json", "b.json"):
        await store.enqueue(name, b"{}")
    names = [e.name for e in sorted(await store.list_pending())]
    assert names == ["c.json", "a.json", "b.json"]


async def test_explicit_mtime(store: InMemoryStore) -> None:
    await store.enqueue("late.json", b"{}", mtime=20.0)
    await store.enqueue("early.json", b"{}", mtime=10.0)
    names = [e.name for e in sorted(await store.list_pending())]
    assert names == ["early.json", "late.json"]


async def test_claim_is_compare_and_swap(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    await store.claim("job.json")
    assert store.state_of("job.json") is JobState.IN_FLIGHT
    with pytest.raises(JobNotFoundError):
        await store.claim("job.json")


async def test_concurrent_claims_exactly_one_wins(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    results = await asyncio.gather(
        *[store.claim("job.json") for _ in range(5)], return_exceptions=True
    )
    assert sum(r is None for r in results) == 1
    assert sum(isinstance(r, JobNotFoundError) for r in results) == 4


async def test_read_requires_claim(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"payload")
    with pytest.raises(JobNotFoundError):
        await store.read("job.json")
    await store.claim("job.json")
    assert await store.read("job.json") == b"payload"


async def test_release_then_reclaim(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    await store.claim("job.json")
    await store.release("job.json")
    assert store.state_of("job.json") is JobState.PENDING
    await store.claim("job.json")


async def test_release_pending_job_raises(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    with pytest.raises(JobNotFoundError):
        await store.release("job.json")


async def test_complete_removes(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    await store.claim("job.json")
    await store.complete("job.json")
    assert store.state_of("job.json") is None


async def test_dead_letter(store: InMemoryStore) -> None:
    await store.enqueue("job.json", b"{}")
    await store.claim("job.json")
    await store.dead_letter("job.json")
    assert store.state_of("job.json") is JobState.DEAD
    assert await store.list_pending() == []


async def test_responses_round_trip(store: InMemoryStore) -> None:
    await store.write_response("r.json", b"resp")
    assert store.responses() == {"r.json": b"resp"}
    assert await store.take_response("r.json") == b"resp"
    assert await store.take_response("r.json") is None


async def test_recover_in_flight(store: InMemoryStore) -> None:
    await store.enqueue("a.json", b"{}")
    await store.enqueue("b.json", b"{}")
    await store.claim("b.json")
    assert await store.recover_in_flight() == ["b.json"]
    assert store.state_of("b.json") is JobState.PENDING


async def test_counts(store: InMemoryStore) -> None:
    await store.enqueue("a.json", b"{}")
    await store.enqueue("b.json", b"{}")
    await store.claim("b.json")
    await store.write_response("r.json", b"{}")
    counts = await store.counts()
    assert counts[JobState.PENDING] == 1
    assert counts[JobState.IN_FLIGHT] == 1
    assert counts[JobState.DONE] == 1
    assert counts[JobState.DEAD] == 0
