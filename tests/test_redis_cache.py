"""Tests for the Redis cache backend against a mocked redis client."""
import fnmatch
from unittest.mock import MagicMock, patch

import pytest
import redis

from backoffice.cache.base import CacheError
from backoffice.cache.memory_cache import InMemoryCache
from backoffice.cache.redis_cache import RedisCache, create_cache
from backoffice.config import CACHE_SETTINGS


@pytest.fixture
def mock_redis():
    """Mock Redis client with dict-backed storage."""
    with patch("redis.from_url") as mock_from_url:
        store: dict[str, bytes] = {}
        mock_client = MagicMock()
        mock_client.ping.return_value = True

        def mock_get(key):
            return store.get(key)

        def mock_set(key, value, ex=None):
            store[key] = value
            return True

        def mock_scan_iter(match=None, count=None):
            return iter([k.encode() for k in list(store) if fnmatch.fnmatchcase(k, match)])

        def mock_delete(*keys):
            removed = 0
            for key in keys:
                key = key.decode() if isinstance(key, bytes) else key
                if store.pop(key, None) is not None:
                    removed += 1
            return removed

        mock_client.get.side_effect = mock_get
        mock_client.set.side_effect = mock_set
        mock_client.scan_iter.side_effect = mock_scan_iter
        mock_client.delete.side_effect = mock_delete
        mock_from_url.return_value = mock_client
        mock_client.store = store
        yield mock_client


def test_set_passes_ttl_and_get_roundtrips(mock_redis):
    cache = RedisCache(redis_url="redis://mock:6379/0")
    cache.set("price_history_1_2", b"[]", 240)

    mock_redis.set.assert_called_once_with("price_history_1_2", b"[]", ex=240)
    assert cache.get("price_history_1_2") == b"[]"
    assert cache.get("missing") is None


def test_delete_by_pattern_scans_prefix_and_deletes_in_batches(mock_redis):
    cache = RedisCache(redis_url="redis://mock:6379/0", delete_batch_size=2)
    for key in ["price_list_page_1_limit_10", "price_list_page_2_limit_10", "price_history_1_1", "harvest_land_commodity_1"]:
        cache.set(key, b"x", 60)

    deleted = cache.delete_by_pattern("price")

    assert deleted == 3
    assert mock_redis.scan_iter.call_args.kwargs["match"] == "price*"
    assert mock_redis.delete.call_count == 2
    assert list(mock_redis.store) == ["harvest_land_commodity_1"]


def test_backend_errors_surface_as_cache_error(mock_redis):
    cache = RedisCache(redis_url="redis://mock:6379/0")
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.scan_iter.side_effect = redis.ConnectionError("down")

    with pytest.raises(CacheError):
        cache.get("price_history_1_1")
    with pytest.raises(CacheError):
        cache.delete_by_pattern("price")


def test_health_check_false_when_ping_fails(mock_redis):
    mock_redis.ping.side_effect = redis.ConnectionError("refused")
    assert RedisCache(redis_url="redis://mock:6379/0").health_check() is False


def test_create_cache_uses_redis_when_enabled_and_reachable(mock_redis):
    with patch.dict(CACHE_SETTINGS, {"use_redis": True}):
        assert isinstance(create_cache(), RedisCache)


def test_create_cache_falls_back_to_memory_when_redis_unreachable(mock_redis):
    mock_redis.ping.side_effect = redis.ConnectionError("refused")
    with patch.dict(CACHE_SETTINGS, {"use_redis": True}):
        assert isinstance(create_cache(), InMemoryCache)


def test_create_cache_defaults_to_memory():
    with patch.dict(CACHE_SETTINGS, {"use_redis": False}):
        assert isinstance(create_cache(), InMemoryCache)
