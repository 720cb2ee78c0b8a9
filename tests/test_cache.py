"""Result cache and key derivation"""
import asyncio

import pytest

from orchestration.cache import CacheConfig, CacheSweeper, ResultCache, canonicalize, make_key


class TestKeys:
    def test_key_ignores_parameter_order(self):
        first = make_key("census_demographics", {"zip_code": "78701", "year": 2022})
        second = make_key("census_demographics", {"year": 2022, "zip_code": "78701"})

        assert first == second

    def test_nested_order_ignored(self):
        assert canonicalize({"a": {"y": 1, "x": 2}}) == canonicalize({"a": {"x": 2, "y": 1}})

    def test_key_depends_on_tool_and_values(self):
        params = {"zip_code": "78701"}

        assert make_key("census_demographics", params) != make_key("hud_vacancy", params)
        assert make_key("census_demographics", params) != make_key(
            "census_demographics", {"zip_code": "78702"}
        )

    def test_none_and_empty_params_match(self):
        assert make_key("t", None) == make_key("t", {})

    def test_mixed_key_types_serialize(self):
        first = canonicalize({"filters": {1: "a", "b": 2}})
        second = canonicalize({"filters": {"b": 2, 1: "a"}})

        assert first == second

    def test_integer_and_string_keys_stay_distinct(self):
        assert make_key("t", {"f": {1: "a"}}) != make_key("t", {"f": {"1": "a"}})


@pytest.fixture
def cache(clock):
    return ResultCache(CacheConfig(default_ttl_seconds=10, max_entries=100), clock=clock)


class TestGetPut:
    def test_miss(self, cache):
        assert cache.get("t", {"a": 1}) == (None, False)
        assert cache.misses == 1

    def test_hit_with_reordered_params(self, cache):
        cache.put("t", {"a": 1, "b": 2}, {"value": 42})

        assert cache.get("t", {"b": 2, "a": 1}) == ({"value": 42}, True)
        assert cache.hits == 1

    def test_expired_entry_is_a_miss_and_removed(self, cache, clock):
        cache.put("t", {"a": 1}, "v", ttl=5)
        clock.advance(4.9)
        assert cache.get("t", {"a": 1}) == ("v", True)

        clock.advance(0.1)
        assert cache.get("t", {"a": 1}) == (None, False)
        assert len(cache) == 0
        assert cache.expirations == 1

    def test_put_overwrites(self, cache):
        cache.put("t", {}, "old")
        cache.put("t", {}, "new")

        assert cache.get("t", {}) == ("new", True)
        assert len(cache) == 1

    def test_cached_value_is_isolated_from_callers(self, cache):
        value = {"comparables": ["12 Oak St"]}
        cache.put("t", {}, value)
        value["comparables"].append("99 Elm St")

        hit, _ = cache.get("t", {})
        hit["comparables"].clear()

        assert cache.get("t", {}) == ({"comparables": ["12 Oak St"]}, True)

    def test_non_positive_ttl_not_stored(self, cache):
        cache.put("t", {}, "v", ttl=0)

        assert len(cache) == 0

    def test_default_ttl(self, cache, clock):
        cache.put("t", {}, "v")
        clock.advance(10)

        assert cache.get("t", {}) == (None, False)

    def test_max_entries_evicts_oldest(self, clock):
        cache = ResultCache(CacheConfig(max_entries=2), clock=clock)
        for i in range(3):
            cache.put("t", {"i": i}, i)
            clock.advance(1)

        assert len(cache) == 2
        assert cache.get("t", {"i": 0}) == (None, False)
        assert cache.evictions == 1


class TestRemoval:
    def test_invalidate_tool(self, cache):
        cache.put("census", {"a": 1}, 1)
        cache.put("census", {"a": 2}, 2)
        cache.put("bls", {"a": 1}, 3)

        assert cache.invalidate("census") == 2
        assert cache.get("bls", {"a": 1}) == (3, True)

    def test_clear_with_pattern(self, cache):
        cache.put("census", {}, 1)
        cache.put("bls", {}, 2)

        assert cache.clear("census:") == 1
        assert len(cache) == 1

    def test_clear_all(self, cache):
        cache.put("census", {}, 1)
        cache.put("bls", {}, 2)

        assert cache.clear() == 2
        assert len(cache) == 0

    def test_sweep_drops_entries_past_stale_horizon(self, cache, clock):
        cache.put("t", {"a": 1}, 1, ttl=10)
        clock.advance(39)
        assert cache.sweep() == 0

        clock.advance(2)
        assert cache.sweep() == 1
        assert len(cache) == 0

    def test_sweep_horizon_follows_largest_ttl(self, cache, clock):
        cache.put("t", {"a": 1}, 1, ttl=10)
        cache.put("t", {"a": 2}, 2, ttl=100)
        clock.advance(41)

        assert cache.sweep() == 0


class TestSweeper:
    @pytest.mark.asyncio
    async def test_background_sweep(self, clock):
        cache = ResultCache(CacheConfig(default_ttl_seconds=1), clock=clock)
        cache.put("t", {}, 1)
        clock.advance(10)

        sweeper = CacheSweeper(cache, interval_seconds=0.01)
        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert len(cache) == 0
        assert not sweeper.running
