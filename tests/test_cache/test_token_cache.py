"""Tests for clerklite.cache.token_cache."""

from __future__ import annotations

import json

import pytest

from clerklite.cache.token_cache import TOKEN_CACHE_KEY, TokenCache
from clerklite.storage import MemoryStorage

MARGIN_MS = 5 * 60 * 1000


class TestGetSave:
    @pytest.mark.asyncio
    async def test_fresh_token_is_served(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock)
        token = jwt_factory(clock.now + 3600)
        await cache.save("sess_1", "", token)
        assert await cache.get("sess_1") == token

    @pytest.mark.asyncio
    async def test_persisted_layout(self, clock, jwt_factory) -> None:
        storage = MemoryStorage()
        token = jwt_factory(clock.now + 3600)
        await TokenCache(storage, clock).save("sess_1", "supabase", token)

        data = json.loads(storage.data[TOKEN_CACHE_KEY])
        assert data == {
            "sess_1": {
                "supabase": {
                    "jwt": token,
                    "expires_at": int(clock.now + 3600) * 1000,
                    "cached_at": int(clock.now * 1000),
                }
            }
        }

    @pytest.mark.asyncio
    async def test_templates_are_separate(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock)
        default = jwt_factory(clock.now + 3600, sub="default")
        templated = jwt_factory(clock.now + 3600, sub="templated")
        await cache.save("sess_1", "", default)
        await cache.save("sess_1", "hasura", templated)
        assert await cache.get("sess_1") == default
        assert await cache.get("sess_1", "hasura") == templated
        assert await cache.get("sess_2") is None

    @pytest.mark.asyncio
    async def test_token_without_exp_is_not_cached(self, clock, jwt_factory) -> None:
        storage = MemoryStorage()
        await TokenCache(storage, clock).save("sess_1", "", jwt_factory(None))
        assert TOKEN_CACHE_KEY not in storage.data


class TestSafetyMargin:
    @pytest.mark.asyncio
    async def test_exactly_at_margin_is_expired(self, clock, jwt_factory) -> None:
        storage = MemoryStorage()
        cache = TokenCache(storage, clock, safety_margin_ms=MARGIN_MS)
        await cache.save("sess_1", "", jwt_factory(clock.now + 300))

        assert await cache.get("sess_1") is None
        assert json.loads(storage.data[TOKEN_CACHE_KEY]) == {}

    @pytest.mark.asyncio
    async def test_one_second_past_margin_is_served(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock, safety_margin_ms=MARGIN_MS)
        token = jwt_factory(clock.now + 301)
        await cache.save("sess_1", "", token)
        assert await cache.get("sess_1") == token

    @pytest.mark.asyncio
    async def test_token_expires_as_clock_advances(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock, safety_margin_ms=MARGIN_MS)
        await cache.save("sess_1", "", jwt_factory(clock.now + 600))
        clock.advance(299)
        assert await cache.get("sess_1") is not None
        clock.advance(1)
        assert await cache.get("sess_1") is None


class TestClearAndCorruption:
    @pytest.mark.asyncio
    async def test_clear_one_session(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock)
        token = jwt_factory(clock.now + 3600)
        await cache.save("sess_1", "", token)
        await cache.save("sess_1", "hasura", token)
        await cache.save("sess_2", "", token)

        await cache.clear("sess_1")
        assert await cache.get("sess_1") is None
        assert await cache.get("sess_1", "hasura") is None
        assert await cache.get("sess_2") == token

    @pytest.mark.asyncio
    async def test_clear_leaves_sessions_sharing_a_prefix(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock)
        token = jwt_factory(clock.now + 3600)
        await cache.save("sess_1", "", token)
        await cache.save("sess_1_x", "", token)

        await cache.clear("sess_1")

        assert await cache.get("sess_1") is None
        assert await cache.get("sess_1_x") == token

    @pytest.mark.asyncio
    async def test_underscores_in_ids_do_not_collide(self, clock, jwt_factory) -> None:
        cache = TokenCache(MemoryStorage(), clock)
        first = jwt_factory(clock.now + 3600, sub="first")
        second = jwt_factory(clock.now + 3600, sub="second")
        await cache.save("a", "b_", first)
        await cache.save("a_b", "", second)

        assert await cache.get("a", "b_") == first
        assert await cache.get("a_b") == second

    @pytest.mark.asyncio
    async def test_clear_all(self, clock, jwt_factory) -> None:
        storage = MemoryStorage()
        cache = TokenCache(storage, clock)
        await cache.save("sess_1", "", jwt_factory(clock.now + 3600))
        await cache.clear()
        await cache.clear()
        assert TOKEN_CACHE_KEY not in storage.data

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "blob",
        [
            "{nope",
            "[1, 2]",
            json.dumps({"sess_1": "x"}),
            json.dumps({"sess_1": {"": {"jwt": "x"}}}),
        ],
    )
    async def test_corrupt_blob_reads_as_empty(self, clock, blob: str) -> None:
        cache = TokenCache(MemoryStorage({TOKEN_CACHE_KEY: blob}), clock)
        assert await cache.get("sess_1") is None
