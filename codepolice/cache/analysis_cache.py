"""
Analysis Cache — Two-tier, content-addressed cache of analysis results.

Tier 1: bounded in-process dict (insertion order = age)
Tier 2: optional Redis, shared across instances

Key = SHA-256 of (content, language, sorted custom rules, model version), so
any content change is a new key. Entries expire after a fixed TTL. Redis
errors are logged and the cache keeps working on tier 1 alone.

No locking: concurrent misses may compute the same entry twice; last write wins.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Awaitable, Callable

from redis import asyncio as aioredis

from codepolice.config import settings
from codepolice.models.cache_models import CachedAnalysis, CachedIssue, CacheStats
from codepolice.utils.best_effort import best_effort

logger = logging.getLogger("codepolice.cache")


def generate_cache_key(
    code: str,
    language: str,
    custom_rules: list[str] | None = None,
    model_version: str | None = None,
) -> str:
    """Same content + language + rules + model = same key."""
    payload = json.dumps(
        {
            "code": code,
            "language": language,
            "customRules": sorted(custom_rules or []),
            "modelVersion": model_version or settings.cache_model_version,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class AnalysisCache:
    """
    Injected cache service; construct once per process.

    Usage:
        cache = AnalysisCache.from_settings()
        key = generate_cache_key(code, "python", rules)
        hit = await cache.get(key)
    """

    def __init__(
        self,
        redis_client: aioredis.Redis | None = None,
        max_entries: int | None = None,
        evict_count: int | None = None,
        ttl_seconds: int | None = None,
        key_prefix: str | None = None,
        model_version: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._memory: dict[str, CachedAnalysis] = {}
        self._redis = redis_client
        self._redis_url: str | None = None
        self._redis_checked = redis_client is not None
        self.redis_available = redis_client is not None
        self.max_entries = max_entries or settings.cache_max_entries
        self.evict_count = evict_count or settings.cache_evict_count
        self.ttl_seconds = ttl_seconds or settings.cache_ttl_seconds
        self.key_prefix = key_prefix or settings.cache_key_prefix
        self.model_version = model_version or settings.cache_model_version
        self._clock = clock
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls) -> "AnalysisCache":
        """Tier 2 is connected lazily on first use when REDIS_URL is set."""
        cache = cls()
        cache._redis_url = settings.redis_url
        return cache

    async def _get_redis(self) -> aioredis.Redis | None:
        if self._redis_checked:
            return self._redis
        self._redis_checked = True

        if not self._redis_url:
            logger.info("No REDIS_URL configured, using in-memory cache only")
            return None

        client: aioredis.Redis | None = None
        try:
            client = aioredis.from_url(
                self._redis_url,
                socket_connect_timeout=settings.cache_redis_connect_timeout,
                decode_responses=True,
            )
            await client.ping()
        except Exception as e:
            # Malformed URL (ValueError) or unreachable server: tier 1 only
            logger.warning(f"Redis unavailable, using in-memory cache only: {e}")
            if client is not None:
                await best_effort("redis client close", client.aclose, log=logger)
            self._redis = None
            self.redis_available = False
            return None

        self._redis = client
        self.redis_available = True
        logger.info("Redis connected")
        return client

    def _redis_key(self, cache_key: str) -> str:
        return f"{self.key_prefix}{cache_key}"

    # ── Read path ──

    async def get(self, cache_key: str) -> CachedAnalysis | None:
        """Tier 1 (TTL-checked) → tier 2 (promoted into tier 1) → miss."""
        entry = self._memory.get(cache_key)
        if entry is not None:
            if not entry.is_expired(self.ttl_seconds, now=self._clock()):
                self.hits += 1
                logger.debug(f"L1 hit {cache_key[:12]}")
                return entry
            del self._memory[cache_key]

        redis = await self._get_redis()
        if redis is not None:
            try:
                raw = await redis.get(self._redis_key(cache_key))
            except Exception as e:
                logger.warning(f"Redis read error: {e}")
                raw = None
            if raw:
                try:
                    entry = CachedAnalysis.from_json(raw)
                except ValueError as e:
                    logger.warning(f"Discarding unreadable Redis entry {cache_key[:12]}: {e}")
                    entry = None
                if entry is not None and not entry.is_expired(self.ttl_seconds, now=self._clock()):
                    self._store_memory(cache_key, entry)
                    self.hits += 1
                    logger.debug(f"L2 hit {cache_key[:12]}")
                    return entry

        self.misses += 1
        logger.debug(f"Miss {cache_key[:12]}")
        return None

    # ── Write path ──

    def _store_memory(self, cache_key: str, entry: CachedAnalysis) -> None:
        if cache_key not in self._memory and len(self._memory) >= self.max_entries:
            for key in list(self._memory)[: self.evict_count]:
                del self._memory[key]
        self._memory[cache_key] = entry

    async def set(self, cache_key: str, entry: CachedAnalysis) -> None:
        """Always tier 1; tier 2 best-effort."""
        if not entry.cache_key:
            entry = entry.model_copy(update={"cache_key": cache_key})
        self._store_memory(cache_key, entry)

        redis = await self._get_redis()
        if redis is not None:
            await best_effort(
                "redis cache write",
                lambda: redis.set(
                    self._redis_key(cache_key), entry.to_json(), ex=self.ttl_seconds
                ),
                log=logger,
            )

    async def evict(self, cache_key: str) -> bool:
        """Drop one entry from both tiers. Returns True if tier 1 held it."""
        removed = self._memory.pop(cache_key, None) is not None
        redis = await self._get_redis()
        if redis is not None:
            await best_effort(
                "redis cache evict",
                lambda: redis.delete(self._redis_key(cache_key)),
                log=logger,
            )
        return removed

    async def clear(self) -> None:
        self._memory.clear()
        redis = await self._get_redis()
        if redis is None:
            return

        async def _clear_redis() -> int:
            keys = [key async for key in redis.scan_iter(match=f"{self.key_prefix}*")]
            if keys:
                await redis.delete(*keys)
            return len(keys)

        await best_effort("redis cache clear", _clear_redis, log=logger)

    # ── Convenience ──

    async def get_or_analyze(
        self,
        code: str,
        language: str,
        custom_rules: list[str] | None,
        analyze: Callable[[], Awaitable[list[dict[str, Any]]]],
    ) -> tuple[CachedAnalysis, bool]:
        """
        Return (entry, was_cached). On a miss run ``analyze`` (the oracle
        analysis call) and store its issues. Analysis errors propagate and
        nothing is cached.
        """
        key = generate_cache_key(code, language, custom_rules, self.model_version)
        cached = await self.get(key)
        if cached is not None:
            return cached, True

        issues = await analyze()
        entry = CachedAnalysis(
            cache_key=key,
            issues=[CachedIssue.model_validate(issue) for issue in issues],
            timestamp=self._clock(),
            model_version=self.model_version,
        )
        await self.set(key, entry)
        return entry, False

    @property
    def size(self) -> int:
        return len(self._memory)

    def stats(self) -> CacheStats:
        return CacheStats(
            memory_entries=len(self._memory),
            redis_available=self.redis_available,
            hits=self.hits,
            misses=self.misses,
        )
