"""Unit tests for rate limiter."""

import pytest
import time
from unittest.mock import patch

from fashiongen.utils.rate_limiter import RateLimiter, RateLimitEntry, RateLimitDecision


class TestRateLimitEntry:
    """Tests for RateLimitEntry dataclass."""

    def test_create_entry(self):
        """Test creating a rate limit entry."""
        entry = RateLimitEntry()

        assert entry.request_count == 0
        assert isinstance(entry.window_start, float)
        assert isinstance(entry.last_request, float)


class TestRateLimiter:
    """Tests for RateLimiter class."""

    def test_initialization(self):
        """Test limiter initialization."""
        limiter = RateLimiter(max_requests=10, window_seconds=60)

        assert limiter.max_requests == 10
        assert limiter.window_seconds == 60
        assert limiter.cleanup_interval == 300

    @pytest.mark.parametrize("max_requests,window", [(0, 60), (10, 0), (-1, -1)])
    def test_invalid_parameters(self, max_requests, window):
        """Test non-positive limits are rejected."""
        with pytest.raises(ValueError):
            RateLimiter(max_requests=max_requests, window_seconds=window)

    def test_first_request_allowed(self):
        """Test that first request from client is allowed."""
        limiter = RateLimiter(max_requests=10, window_seconds=60)

        decision = limiter.check("client1")

        assert decision == RateLimitDecision(allowed=True, remaining=9)

    def test_multiple_requests_within_limit(self):
        """Test multiple requests within rate limit."""
        limiter = RateLimiter(max_requests=5, window_seconds=60)

        remaining = [limiter.check("client1").remaining for _ in range(5)]

        assert remaining == [4, 3, 2, 1, 0]

    def test_request_exceeds_limit(self):
        """Test request that exceeds rate limit."""
        limiter = RateLimiter(max_requests=3, window_seconds=60)

        for _ in range(3):
            limiter.check("client1")

        decision = limiter.check("client1")

        assert decision.allowed is False
        assert decision.remaining == 0
        assert 0 < decision.retry_after <= 61

    def test_clients_are_independent(self):
        """Test one client's usage does not affect another."""
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        limiter.check("client1")

        assert limiter.check("client1").allowed is False
        assert limiter.check("client2").allowed is True

    def test_window_reset(self):
        """Test the counter resets once the window has passed."""
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        start = time.time()

        with patch('fashiongen.utils.rate_limiter.time.time', return_value=start):
            limiter.check("client1")
            assert limiter.check("client1").allowed is False

        with patch('fashiongen.utils.rate_limiter.time.time', return_value=start + 61):
            assert limiter.check("client1").allowed is True

    def test_cleanup_old_entries(self):
        """Test idle clients are dropped during cleanup."""
        limiter = RateLimiter(max_requests=5, window_seconds=10, cleanup_interval=1)
        start = time.time()

        with patch('fashiongen.utils.rate_limiter.time.time', return_value=start):
            limiter.check("idle")

        with patch('fashiongen.utils.rate_limiter.time.time', return_value=start + 100):
            limiter.check("active")

        assert limiter.get_stats()["tracked_clients"] == 1

    def test_get_stats(self):
        """Test statistics reporting."""
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        limiter.check("client1")
        limiter.check("client2")

        stats = limiter.get_stats()

        assert stats["max_requests_per_window"] == 5
        assert stats["window_seconds"] == 60
        assert stats["tracked_clients"] == 2
        assert stats["active_clients"] == 2
        assert "last_cleanup" in stats

    def test_repr(self):
        """Test string representation."""
        limiter = RateLimiter(max_requests=5, window_seconds=60)

        assert repr(limiter) == "RateLimiter(max_requests=5, window_seconds=60, clients=0)"
