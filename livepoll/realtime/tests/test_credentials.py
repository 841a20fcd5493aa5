import asyncio

import pytest

from livepoll.realtime.credentials import AnonymousCredentialCache
from livepoll.realtime.exceptions import CredentialResolutionError
from livepoll.realtime.stores import ParticipantRecord

from .fakes import FakeParticipantStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _record(pid: int, session_id: int, *, active: bool = True) -> ParticipantRecord:
    return ParticipantRecord(
        id=pid,
        session_id=session_id,
        display_name=f"Guest {pid}",
        session_is_active=active,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return FakeParticipantStore(
        {
            "tok-a": _record(1, 7),
            "tok-b": _record(2, 7),
            "tok-c": _record(3, 8),
            "tok-closed": _record(4, 9, active=False),
        },
    )


@pytest.fixture
def cache(store, clock):
    return AnonymousCredentialCache(store, ttl_seconds=30, clock=clock)


@pytest.mark.asyncio
async def test_second_lookup_is_served_from_cache(cache, store):
    first, first_cached = await cache.resolve("tok-a")
    second, second_cached = await cache.resolve("tok-a")

    assert first == second
    assert first.session_id == 7
    assert (first_cached, second_cached) == (False, True)
    assert store.lookups == ["tok-a"]


@pytest.mark.asyncio
async def test_entry_expires_at_ttl_boundary(cache, store, clock):
    await cache.resolve("tok-a")

    clock.now += 29.9
    _, cached = await cache.resolve("tok-a")
    assert cached is True

    clock.now += 0.1
    _, cached = await cache.resolve("tok-a")
    assert cached is False
    assert store.lookups == ["tok-a", "tok-a"]


@pytest.mark.asyncio
async def test_unknown_and_inactive_tokens_are_not_cached(cache, store):
    assert await cache.resolve("nope") == (None, False)
    participant, _ = await cache.resolve("tok-closed")

    assert participant.session_is_active is False
    assert "nope" not in cache
    assert "tok-closed" not in cache
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_session_invalidation_spares_other_sessions(cache):
    for token in ("tok-a", "tok-b", "tok-c"):
        await cache.resolve(token)

    assert cache.invalidate_for_session(7) == 2

    assert "tok-a" not in cache
    assert "tok-b" not in cache
    assert "tok-c" in cache


@pytest.mark.asyncio
async def test_session_closed_during_lookup_is_not_cached(cache, store):
    store.release = asyncio.Event()
    lookup = asyncio.create_task(cache.resolve("tok-a"))
    await asyncio.sleep(0)
    assert store.lookups == ["tok-a"]

    cache.invalidate_for_session(7)
    store.release.set()
    participant, cached = await lookup

    assert participant.session_id == 7
    assert cached is False
    assert "tok-a" not in cache


@pytest.mark.asyncio
async def test_other_session_closed_during_lookup_still_caches(cache, store):
    store.release = asyncio.Event()
    lookup = asyncio.create_task(cache.resolve("tok-c"))
    await asyncio.sleep(0)

    cache.invalidate_for_session(7)
    store.release.set()
    await lookup

    assert "tok-c" in cache


@pytest.mark.asyncio
async def test_invalidate_single_token(cache):
    await cache.resolve("tok-a")

    assert cache.invalidate("tok-a") is True
    assert cache.invalidate("tok-a") is False


@pytest.mark.asyncio
async def test_store_failure_raises_resolution_error(cache, store):
    store.error = RuntimeError("db down")

    with pytest.raises(CredentialResolutionError):
        await cache.resolve("tok-a")


@pytest.mark.asyncio
async def test_purge_expired_drops_only_stale_entries(cache, clock):
    await cache.resolve("tok-a")
    clock.now += 20
    await cache.resolve("tok-c")
    clock.now += 15

    assert cache.purge_expired() == 1
    assert "tok-c" in cache


@pytest.mark.asyncio
async def test_sweeper_purges_in_background(store, clock):
    cache = AnonymousCredentialCache(
        store,
        ttl_seconds=30,
        sweep_interval=0.01,
        clock=clock,
    )
    await cache.resolve("tok-a")
    cache.start()
    clock.now += 60

    await asyncio.sleep(0.05)
    assert len(cache) == 0

    await cache.stop()
