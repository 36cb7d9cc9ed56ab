import pytest

from scenario_runner.runner.polling import wait_until


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, ms):
        self.sleeps.append(ms)
        self.now += ms / 1000.0


def test_returns_as_soon_as_predicate_holds():
    clock = FakeClock()
    calls = []

    def predicate():
        calls.append(clock.now)
        return len(calls) == 3, len(calls)

    result = wait_until(predicate, 5000, sleep=clock.sleep, clock=clock)

    assert result.ok
    assert result.value == 3
    assert result.attempts == 3
    assert result.elapsed_ms < 5000
    assert clock.sleeps == [50, 100]


def test_times_out_with_last_observed_value():
    clock = FakeClock()

    result = wait_until(lambda: (False, "still loading"), 2000, sleep=clock.sleep, clock=clock)

    assert not result.ok
    assert result.value == "still loading"
    assert clock.sleeps[:5] == [50, 100, 200, 400, 500]
    assert max(clock.sleeps) <= 500
    assert sum(clock.sleeps) == pytest.approx(2000)


def test_evaluates_at_least_once_with_zero_timeout():
    clock = FakeClock()
    result = wait_until(lambda: (True, "ready"), 0, sleep=clock.sleep, clock=clock)
    assert result.ok
    assert result.attempts == 1
    assert clock.sleeps == []


def test_custom_interval_and_cap():
    clock = FakeClock()
    wait_until(lambda: (False, None), 1000, sleep=clock.sleep, clock=clock,
               interval_ms=100, max_interval_ms=150, backoff=3)
    assert clock.sleeps[:3] == [100, 150, 150]
