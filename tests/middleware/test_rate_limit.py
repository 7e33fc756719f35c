"""
Tests for the fixed-window rate limiter
"""

import threading

import pytest
from starlette.requests import Request

from tipchain.config import Settings
from tipchain.middleware.rate_limit import (
    RateLimiter,
    RateLimiterRegistry,
    get_client_identifier,
)


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_request(headers=None, client=("10.0.0.1", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/frame",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests=3, window_ms=1_000, clock=clock)


# =============================================================================
# Window accounting
# =============================================================================

class TestRateLimiter:

    def test_allows_up_to_limit(self, limiter: RateLimiter):
        remaining = [limiter.check("ip").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_rejects_n_plus_one(self, limiter: RateLimiter):
        for _ in range(3):
            assert limiter.check("ip").allowed
        result = limiter.check("ip")
        assert not result.allowed
        assert result.remaining == 0

    def test_new_window_after_expiry(self, limiter: RateLimiter, clock: FakeClock):
        for _ in range(4):
            limiter.check("ip")
        clock.advance(1_000)
        result = limiter.check("ip")
        assert result.allowed
        assert result.remaining == 2
        assert result.reset_at == clock.now + 1_000

    def test_window_boundary(self, limiter: RateLimiter, clock: FakeClock):
        first = limiter.check("ip")
        for _ in range(3):
            limiter.check("ip")
        clock.advance(999)
        assert not limiter.check("ip").allowed
        clock.now = first.reset_at
        assert limiter.check("ip").allowed

    def test_identifiers_are_independent(self, limiter: RateLimiter):
        for _ in range(4):
            limiter.check("a")
        assert limiter.check("b").allowed

    def test_retry_after(self, limiter: RateLimiter, clock: FakeClock):
        for _ in range(3):
            limiter.check("ip")
        clock.advance(250)
        result = limiter.check("ip")
        assert result.retry_after_seconds(clock.now) == 1

    def test_status_reset_clear(self, limiter: RateLimiter):
        assert limiter.status("ip") is None
        limiter.check("ip")
        limiter.check("ip")
        assert limiter.status("ip").count == 2

        limiter.reset("ip")
        assert limiter.status("ip") is None

        limiter.check("x")
        limiter.check("y")
        limiter.clear()
        assert len(limiter) == 0

    def test_expired_records_are_swept(self, limiter: RateLimiter, clock: FakeClock):
        limiter.check("a")
        limiter.check("b")
        clock.advance(1_000)
        limiter.check("c")
        assert limiter.status("a") is None
        assert limiter.status("b") is None
        assert len(limiter) == 1

    def test_fails_open(self):
        def broken_clock() -> int:
            raise RuntimeError("clock unavailable")

        limiter = RateLimiter(max_requests=1, window_ms=1_000, clock=broken_clock)
        for _ in range(5):
            assert limiter.check("ip").allowed

    def test_fail_open_reset_uses_injected_clock(self, clock: FakeClock):
        class BrokenStore(dict):
            def get(self, *args):
                raise RuntimeError("store unavailable")

        limiter = RateLimiter(max_requests=1, window_ms=1_000, clock=clock)
        limiter._records = BrokenStore()
        result = limiter.check("ip")
        assert result.allowed
        assert result.reset_at == clock.now + 1_000

    def test_clear_waits_for_in_flight_checks(self, limiter: RateLimiter):
        limiter.check("ip")
        lock = limiter._lock_for("ip")
        lock.acquire()
        clearer = threading.Thread(target=limiter.clear)
        clearer.start()
        clearer.join(timeout=0.1)
        assert clearer.is_alive()
        assert len(limiter) == 1

        lock.release()
        clearer.join(timeout=1)
        assert not clearer.is_alive()
        assert len(limiter) == 0

    @pytest.mark.parametrize("max_requests,window_ms", [(0, 1_000), (1, 0)])
    def test_rejects_bad_config(self, max_requests: int, window_ms: int):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=max_requests, window_ms=window_ms)

    def test_concurrent_increments_are_atomic(self, clock: FakeClock):
        limiter = RateLimiter(max_requests=50, window_ms=60_000, clock=clock)
        allowed = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            for _ in range(25):
                allowed.append(limiter.check("same-ip").allowed)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert allowed.count(True) == 50
        assert limiter.status("same-ip").count == 200


# =============================================================================
# Registry
# =============================================================================

class TestRateLimiterRegistry:

    @pytest.fixture
    def registry(self, clock: FakeClock) -> RateLimiterRegistry:
        return RateLimiterRegistry(Settings().rate_limit_configs(), clock=clock)

    @pytest.mark.parametrize(
        "path,endpoint_class",
        [
            ("/frame", "frames"),
            ("/frame/leaderboard", "frames"),
            ("/frame/image", "images"),
            ("/frame/prepare-tip", "tips"),
            ("/frame/tx", "tips"),
            ("/tips/prepare", "api"),
            ("/frameworks", "api"),
        ],
    )
    def test_longest_prefix(self, registry: RateLimiterRegistry, path: str, endpoint_class: str):
        assert registry.class_for_path(path) == endpoint_class

    def test_default_limits(self, registry: RateLimiterRegistry):
        limits = {name: limiter.max_requests for name, limiter in registry.limiters.items()}
        assert limits == {"api": 100, "frames": 50, "tips": 10, "images": 200}
        assert all(limiter.window_ms == 60_000 for limiter in registry.limiters.values())

    def test_classes_do_not_share_counts(self, registry: RateLimiterRegistry):
        tips = registry.get("tips")
        for _ in range(10):
            tips.check("ip")
        assert not tips.check("ip").allowed
        assert registry.get("frames").check("ip").allowed


# =============================================================================
# Client identification
# =============================================================================

class TestClientIdentifier:

    PROXY = ("10.0.0.1",)

    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.2"})
        assert get_client_identifier(request, self.PROXY) == "203.0.113.5"

    def test_real_ip(self):
        assert get_client_identifier(make_request({"X-Real-IP": "198.51.100.7"}), self.PROXY) == "198.51.100.7"

    def test_cloudflare(self):
        assert get_client_identifier(make_request({"CF-Connecting-IP": "192.0.2.9"}), self.PROXY) == "192.0.2.9"

    def test_trusted_proxy_without_headers(self):
        assert get_client_identifier(make_request(), self.PROXY) == "10.0.0.1"

    def test_socket_peer(self):
        assert get_client_identifier(make_request()) == "10.0.0.1"

    @pytest.mark.parametrize(
        "header",
        ["X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP"],
    )
    def test_headers_ignored_from_untrusted_peer(self, header: str):
        request = make_request({header: "203.0.113.5"}, client=("198.51.100.20", 4321))
        assert get_client_identifier(request, self.PROXY) == "198.51.100.20"
        assert get_client_identifier(request) == "198.51.100.20"

    def test_anonymous(self):
        assert get_client_identifier(make_request(client=None)) == "anonymous"
        assert get_client_identifier(make_request({"X-Real-IP": "203.0.113.5"}, client=None), self.PROXY) == "anonymous"
