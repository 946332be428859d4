"""Tests for the two-tier embedding cache."""

import asyncio
import json
from unittest.mock import patch

import pytest

from pdfrag.embedding.base import FailureReason
from pdfrag.embedding.cache import EmbeddingCache, compute_cache_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_cache_key_is_content_hash():
    """Test that keys depend only on text content."""
    assert compute_cache_key("hello world") == compute_cache_key("hello world")
    assert compute_cache_key("hello world") != compute_cache_key("hello world!")
    assert len(compute_cache_key("anything")) == 64


class TestEmbeddingCache:
    """Tests for EmbeddingCache."""

    @pytest.mark.asyncio
    async def test_repeated_text_calls_provider_once(self, fake_provider, tmp_path):
        """Test that the same text is embedded once and then served from memory."""
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path)

        first = await cache.embed("machine learning basics")
        second = await cache.embed("machine learning basics")

        assert first.ok and second.ok
        assert first.vector == second.vector
        assert fake_provider.calls == ["machine learning basics"]
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_entry_written_to_disk(self, fake_provider, tmp_path):
        """Test that successful results are persisted as JSON arrays."""
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path)

        result = await cache.embed("persist me please")

        key = compute_cache_key("persist me please")
        path = tmp_path / "embeddings" / f"embedding_{key}.json"
        assert path.exists()
        assert json.loads(path.read_text()) == result.vector
        assert not list((tmp_path / "embeddings").glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_disk_tier_survives_restart(self, make_provider, tmp_path):
        """Test that a fresh cache instance reads entries from disk."""
        first_provider = make_provider()
        await EmbeddingCache(first_provider, cache_dir=tmp_path).embed("durable text entry")

        second_provider = make_provider()
        cache = EmbeddingCache(second_provider, cache_dir=tmp_path)
        result = await cache.embed("durable text entry")

        assert result.ok
        assert second_provider.calls == []
        assert cache.disk_hits == 1

    @pytest.mark.asyncio
    async def test_cleared_memory_reloads_from_disk(self, fake_provider, tmp_path):
        """Test that clearing memory falls back to the disk tier."""
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path)
        await cache.embed("reload from disk")

        cache.clear_memory()
        result = await cache.embed("reload from disk")

        assert result.ok
        assert len(fake_provider.calls) == 1
        assert cache.disk_hits == 1

    @pytest.mark.asyncio
    async def test_memory_entries_expire(self, fake_provider):
        """Test that memory entries past their TTL are regenerated."""
        clock = FakeClock()
        cache = EmbeddingCache(fake_provider, ttl_seconds=60, clock=clock)

        await cache.embed("short lived entry")
        clock.now += 59
        await cache.embed("short lived entry")
        assert len(fake_provider.calls) == 1

        clock.now += 2
        await cache.embed("short lived entry")
        assert len(fake_provider.calls) == 2

    @pytest.mark.asyncio
    async def test_read_only_miss_does_not_call_provider(self, fake_provider, tmp_path):
        """Test that read-only mode fails misses without contacting the provider."""
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path, read_only=True)

        result = await cache.embed("never embedded before")

        assert result.failure == FailureReason.READ_ONLY
        assert fake_provider.calls == []
        assert not list(tmp_path.rglob("*.json"))

    @pytest.mark.asyncio
    async def test_read_only_serves_existing_entries(self, make_provider, fake_provider, tmp_path):
        """Test that read-only mode still returns entries already on disk."""
        await EmbeddingCache(fake_provider, cache_dir=tmp_path).embed("already cached text")
        provider = make_provider()
        cache = EmbeddingCache(provider, cache_dir=tmp_path, read_only=True)

        result = await cache.embed("already cached text")

        assert result.ok
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, make_provider, tmp_path):
        """Test that a failed embedding is retried on the next request."""
        provider = make_provider(failures={"flaky text here": FailureReason.TRANSIENT})
        cache = EmbeddingCache(provider, cache_dir=tmp_path)

        first = await cache.embed("flaky text here")
        assert first.failure == FailureReason.TRANSIENT
        assert not list((tmp_path / "embeddings").glob("*.json"))

        del provider.failures["flaky text here"]
        second = await cache.embed("flaky text here")

        assert second.ok
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_disk_write_failure_is_tolerated(self, fake_provider, tmp_path):
        """Test that a failed disk write still returns and memoizes the vector."""
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path)

        with patch("pdfrag.embedding.cache.write_json_atomic", side_effect=OSError("disk full")):
            result = await cache.embed("unwritable entry")
        assert result.ok

        again = await cache.embed("unwritable entry")
        assert again.vector == result.vector
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", "[]", '{"a": 1}', '["x", "y"]'])
    async def test_corrupt_disk_entry_is_a_miss(self, fake_provider, tmp_path, payload):
        """Test that unreadable cache files are ignored and regenerated."""
        directory = tmp_path / "embeddings"
        directory.mkdir()
        key = compute_cache_key("corrupted entry text")
        (directory / f"embedding_{key}.json").write_text(payload)
        cache = EmbeddingCache(fake_provider, cache_dir=tmp_path)

        result = await cache.embed("corrupted entry text")

        assert result.ok
        assert fake_provider.calls == ["corrupted entry text"]
        assert json.loads((directory / f"embedding_{key}.json").read_text()) == result.vector

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_call(self, make_provider, tmp_path):
        """Test that concurrent misses for the same text make a single provider call."""
        provider = make_provider(delay=0.02)
        cache = EmbeddingCache(provider, cache_dir=tmp_path)

        results = await asyncio.gather(*(cache.embed("popular text") for _ in range(5)))

        assert all(result.ok for result in results)
        assert len({tuple(result.vector) for result in results}) == 1
        assert provider.calls == ["popular text"]

    @pytest.mark.asyncio
    async def test_cancelled_owner_hands_call_to_waiter(self, make_provider, tmp_path):
        """Test that a waiter still gets a vector when the owning call is cancelled."""
        provider = make_provider(delay=0.2)
        cache = EmbeddingCache(provider, cache_dir=tmp_path)

        owner = asyncio.create_task(cache.embed("slow text to embed"))
        while not provider.calls:
            await asyncio.sleep(0.001)
        waiter = asyncio.create_task(cache.embed("slow text to embed"))
        await asyncio.sleep(0.05)
        owner.cancel()

        with pytest.raises(asyncio.CancelledError):
            await owner
        # Nothing is written on behalf of the cancelled call
        assert not list((tmp_path / "embeddings").glob("*.json"))

        result = await waiter

        assert result.ok
        assert provider.calls == ["slow text to embed", "slow text to embed"]
        assert len(list((tmp_path / "embeddings").glob("*.json"))) == 1
        assert cache.stats()["memory_size"] == 1

    @pytest.mark.asyncio
    async def test_expired_memory_entries_are_swept(self, fake_provider):
        """Test that expired memory entries are evicted even if never read again."""
        clock = FakeClock()
        cache = EmbeddingCache(fake_provider, ttl_seconds=60, clock=clock, sweep_interval=1)

        await cache.embed("first entry text")
        await cache.embed("second entry text")
        assert cache.stats()["memory_size"] == 2

        clock.now += 61
        await cache.embed("third entry text")

        assert cache.stats()["memory_size"] == 1
        assert len(fake_provider.calls) == 3

    @pytest.mark.asyncio
    async def test_embed_many_omits_failures(self, make_provider, unit_vector):
        """Test that embed_many returns only successful vectors."""
        provider = make_provider(
            vectors={"first text": unit_vector(1), "third text": unit_vector(3)},
            failures={"second text": FailureReason.VALIDATION},
        )
        cache = EmbeddingCache(provider)

        vectors = await cache.embed_many(["first text", "second text", "third text"])

        assert vectors == [unit_vector(1), unit_vector(3)]

    @pytest.mark.asyncio
    async def test_is_healthy_delegates(self, fake_provider):
        assert await EmbeddingCache(fake_provider).is_healthy() is True

    def test_stats_initial(self, fake_provider):
        stats = EmbeddingCache(fake_provider).stats()

        assert stats == {
            "hits": 0,
            "disk_hits": 0,
            "misses": 0,
            "hit_rate": 0.0,
            "memory_size": 0,
        }
