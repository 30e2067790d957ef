"""Tests for the hybrid rate limiter without Redis."""

from unittest.mock import MagicMock

import pytest
import redis

from dawini import rate_limiter


@pytest.fixture(autouse=True)
def clear_cache():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


class TestCheckRateLimit:
    def test_counts_in_memory_without_redis(self):
        results = [rate_limiter.check_rate_limit("booking:1.2.3.4", 3, 60) for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert results[-1][1] == 3

    def test_keys_are_independent(self):
        rate_limiter.check_rate_limit("booking:a", 1, 60)
        allowed, count, _ = rate_limiter.check_rate_limit("booking:b", 1, 60)
        assert allowed
        assert count == 1

    def test_resumes_window_from_redis(self):
        client = MagicMock()
        client.get.return_value = "5"
        client.ttl.return_value = 30

        allowed, count, ttl = rate_limiter.check_rate_limit("booking:c", 5, 60, client)

        assert not allowed
        assert count == 5
        assert ttl <= 30

    def test_redis_errors_fall_back_to_memory(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")

        allowed, count, _ = rate_limiter.check_rate_limit("booking:d", 2, 60, client)

        assert allowed
        assert count == 1
