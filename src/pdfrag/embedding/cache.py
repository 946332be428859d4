"""Two-tier embedding cache to avoid repeated calls to the embedding provider."""

import asyncio
import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from pdfrag.constants import (
    EMBEDDINGS_SUBDIR,
    MEMORY_CACHE_SWEEP_INTERVAL,
    MEMORY_CACHE_TTL_SECONDS,
)
from pdfrag.embedding.base import EmbeddingProvider, EmbeddingResult, FailureReason
from pdfrag.utils import write_json_atomic

logger = logging.getLogger(__name__)


def compute_cache_key(text: str) -> str:
    """Content hash used as the cache key for a text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class EmbeddingCache:
    """Content-addressed embedding cache in front of an embedding provider.

    Lookups go memory tier, then disk tier, then the provider. Successful
    provider results are written to both tiers; failures are never cached.
    Memory entries expire after ``ttl_seconds`` and are rebuilt from disk.
    In read-only mode a full miss fails with ``READ_ONLY`` and the provider is
    not called.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache_dir: Path | None = None,
        read_only: bool = False,
        ttl_seconds: float = MEMORY_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = MEMORY_CACHE_SWEEP_INTERVAL,
    ) -> None:
        """Initialize the cache.

        Args:
            provider: Embedding provider used on cache misses
            cache_dir: Root cache directory; entries go to ``<cache_dir>/embeddings``.
                If None, only the memory tier is used.
            read_only: Refuse to create new entries
            ttl_seconds: Lifetime of memory entries
            clock: Time source for expiry (injectable for tests)
            sweep_interval: Number of memory writes between sweeps of expired entries
        """
        self.provider = provider
        self.read_only = read_only
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.sweep_interval = max(1, sweep_interval)
        self.directory = cache_dir / EMBEDDINGS_SUBDIR if cache_dir is not None else None
        if self.directory is not None and not read_only:
            self.directory.mkdir(parents=True, exist_ok=True)

        self._memory: dict[str, tuple[float, list[float]]] = {}
        self._lock = threading.Lock()
        self._in_flight: dict[str, asyncio.Future] = {}
        self._writes_since_sweep = 0

        # Metrics
        self.hits = 0
        self.disk_hits = 0
        self.misses = 0

    def _entry_path(self, key: str) -> Path | None:
        if self.directory is None:
            return None
        return self.directory / f"embedding_{key}.json"

    def _get_memory(self, key: str) -> list[float] | None:
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            expires_at, vector = entry
            if self._clock() >= expires_at:
                del self._memory[key]
                return None
            return vector

    def _set_memory(self, key: str, vector: list[float]) -> None:
        with self._lock:
            now = self._clock()
            self._writes_since_sweep += 1
            if self._writes_since_sweep >= self.sweep_interval:
                self._writes_since_sweep = 0
                expired = [k for k, (expires_at, _) in self._memory.items() if now >= expires_at]
                for k in expired:
                    del self._memory[k]
                if expired:
                    logger.debug(f"Swept {len(expired)} expired memory cache entries")
            self._memory[key] = (now + self.ttl_seconds, vector)

    def _read_disk(self, key: str) -> list[float] | None:
        path = self._entry_path(key)
        if path is None or not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            vector = [float(value) for value in data]
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable cache entry {path.name}: {e}")
            return None
        if not vector:
            logger.warning(f"⚠️ Ignoring empty cache entry {path.name}")
            return None
        return vector

    async def _write_disk(self, key: str, vector: list[float]) -> None:
        path = self._entry_path(key)
        if path is None:
            return
        try:
            await asyncio.to_thread(write_json_atomic, path, vector)
        except OSError as e:
            logger.warning(f"⚠️ Failed to persist cache entry {path.name}, keeping it in memory: {e}")

    async def embed(self, text: str) -> EmbeddingResult:
        """Return the embedding for ``text``, from cache when possible.

        Args:
            text: The text to embed

        Returns:
            EmbeddingResult: The vector, or the failure reported by the provider
            (READ_ONLY on a full miss in read-only mode)
        """
        key = compute_cache_key(text)

        vector = self._get_memory(key)
        if vector is not None:
            self.hits += 1
            return EmbeddingResult.success(vector)

        vector = await asyncio.to_thread(self._read_disk, key)
        if vector is not None:
            self.disk_hits += 1
            self._set_memory(key, vector)
            return EmbeddingResult.success(vector)

        # The disk lookup yielded; a concurrent caller may have filled memory
        vector = self._get_memory(key)
        if vector is not None:
            self.hits += 1
            return EmbeddingResult.success(vector)

        self.misses += 1
        if self.read_only:
            logger.warning("🔒 Cache miss in read-only mode, not generating a new embedding")
            return EmbeddingResult.failed(
                FailureReason.READ_ONLY,
                "Service is in read-only mode. New embeddings cannot be generated.",
            )

        while True:
            pending = self._in_flight.get(key)
            if pending is None:
                break
            # Another caller is already embedding this text
            result = await asyncio.shield(pending)
            if result is not None:
                return result
            # That caller was cancelled; take over the call unless it got as far as memory
            vector = self._get_memory(key)
            if vector is not None:
                return EmbeddingResult.success(vector)

        # The future resolves to None when the owning call is cancelled
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await self.provider.embed(text)
            if result.ok:
                self._set_memory(key, result.vector)
                await self._write_disk(key, result.vector)
            future.set_result(result)
            return result
        except asyncio.CancelledError:
            logger.debug("Embedding call cancelled, waiters will retry")
            if not future.done():
                future.set_result(None)
            raise
        except Exception as e:
            future.set_result(EmbeddingResult.failed(FailureReason.TRANSIENT, str(e)))
            raise
        finally:
            self._in_flight.pop(key, None)

    async def embed_many(self, texts: Iterable[str]) -> list[list[float]]:
        """Embed several texts concurrently, omitting the ones that fail.

        Args:
            texts: Texts to embed

        Returns:
            list[list[float]]: Vectors for the texts that succeeded
        """
        results = await asyncio.gather(*(self.embed(text) for text in texts))
        return [result.vector for result in results if result.ok]

    async def is_healthy(self) -> bool:
        return await self.provider.is_healthy()

    def clear_memory(self) -> None:
        """Drop the memory tier; entries are reloaded from disk on demand."""
        with self._lock:
            self._memory.clear()
        logger.info("Memory cache cleared")

    def stats(self) -> dict:
        """Get cache metrics."""
        total = self.hits + self.disk_hits + self.misses
        with self._lock:
            size = len(self._memory)
        return {
            "hits": self.hits,
            "disk_hits": self.disk_hits,
            "misses": self.misses,
            "hit_rate": (self.hits + self.disk_hits) / max(total, 1),
            "memory_size": size,
        }
