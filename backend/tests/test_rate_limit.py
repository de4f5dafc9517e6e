import pytest

from academy.services.rate_limit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeRedis:
    """The three commands the limiter uses, with expiry driven by a FakeClock."""

    def __init__(self, clock):
        self.clock = clock
        self.values = {}
        self.expires = {}

    def _purge(self, name):
        if name in self.expires and self.expires[name] <= self.clock():
            self.values.pop(name, None)
            self.expires.pop(name, None)

    def incr(self, name):
        self._purge(name)
        self.values[name] = self.values.get(name, 0) + 1
        return self.values[name]

    def expire(self, name, seconds):
        self.expires[name] = self.clock() + seconds
        return True

    def ttl(self, name):
        self._purge(name)
        if name not in self.values:
            return -2
        if name not in self.expires:
            return -1
        return int(self.expires[name] - self.clock())


def test_memory_limiter_blocks_after_max_then_resets():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(sweep_interval=60, clock=clock)

    results = [limiter.check("kiosk:1.2.3.4", 5, 10) for _ in range(6)]
    assert [r.allowed for r in results] == [True] * 5 + [False]
    assert results[0].remaining == 4
    assert results[5].remaining == 0
    assert results[5].reset_in == 10

    clock.now += 10
    assert limiter.check("kiosk:1.2.3.4", 5, 10).allowed is True


def test_memory_limiter_keys_are_independent():
    limiter = InMemoryRateLimiter(clock=FakeClock())
    assert limiter.check("a", 1, 60).allowed is True
    assert limiter.check("a", 1, 60).allowed is False
    assert limiter.check("b", 1, 60).allowed is True


def test_memory_limiter_sweeps_expired_windows():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(sweep_interval=60, clock=clock)
    for i in range(50):
        limiter.check(f"ip-{i}", 10, 5)
    assert len(limiter) == 50

    clock.now += 61
    limiter.check("fresh", 10, 5)
    assert len(limiter) == 1


def test_redis_limiter_fixed_window():
    clock = FakeClock()
    limiter = RedisRateLimiter(FakeRedis(clock))

    results = [limiter.check("kiosk-search:1.2.3.4", 10, 60) for _ in range(11)]
    assert all(r.allowed for r in results[:10])
    assert results[9].remaining == 0
    assert results[10].allowed is False
    assert results[10].reset_in == 60

    clock.now += 60
    assert limiter.check("kiosk-search:1.2.3.4", 10, 60).allowed is True


def test_redis_limiter_repairs_missing_expiry():
    clock = FakeClock()
    fake = FakeRedis(clock)
    fake.values["ratelimit:k"] = 3   # counter left without a TTL
    limiter = RedisRateLimiter(fake)

    result = limiter.check("k", 10, 30)
    assert result.allowed is True
    assert fake.ttl("ratelimit:k") == 30


def test_base_limiter_is_abstract():
    with pytest.raises(TypeError):
        RateLimiter()
