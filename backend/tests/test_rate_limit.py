from academy.utils.rate_limit import AttemptLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_attempts_expire_after_window():
    clock = FakeClock()
    limiter = AttemptLimiter(clock=clock)
    assert limiter.hit("k", 2, 60) == (True, 0)
    assert limiter.hit("k", 2, 60) == (True, 0)
    allowed, retry_after = limiter.hit("k", 2, 60)
    assert not allowed
    assert retry_after == 60
    clock.now += 61
    assert limiter.hit("k", 2, 60) == (True, 0)


def test_keys_are_independent_and_resettable():
    limiter = AttemptLimiter(clock=FakeClock())
    assert limiter.hit("a", 1, 60)[0]
    assert not limiter.hit("a", 1, 60)[0]
    assert limiter.hit("b", 1, 60)[0]
    limiter.reset("a")
    assert limiter.hit("a", 1, 60)[0]


def test_expired_keys_are_evicted():
    clock = FakeClock()
    limiter = AttemptLimiter(clock=clock)
    for i in range(1000):
        limiter.hit(f"client:user{i}", 5, 60)
    assert len(limiter._attempts) == 1000
    clock.now += 3600
    assert limiter.hit("client:latecomer", 5, 60) == (True, 0)
    assert list(limiter._attempts) == ["client:latecomer"]


def test_sweep_keeps_keys_still_inside_window():
    clock = FakeClock()
    limiter = AttemptLimiter(clock=clock)
    limiter.hit("old", 1, 60)
    clock.now += 30
    limiter.hit("recent", 1, 60)
    clock.now += 31
    assert limiter.hit("other", 1, 60)[0]
    assert set(limiter._attempts) == {"recent", "other"}
    assert not limiter.hit("recent", 1, 60)[0]
