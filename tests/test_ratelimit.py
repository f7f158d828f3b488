"""Tests for the daily usage limiter."""

from datetime import datetime, timedelta

import pytest

from llm_switchboard.agent.ratelimit import DailyUsageLimiter


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 21, 30))


class TestDailyUsageLimiter:
    def test_default_limit(self, clock):
        limiter = DailyUsageLimiter(clock=clock)

        assert limiter.daily_limit == 10
        assert limiter.remaining == 10
        assert limiter.can_send()

    def test_try_acquire_until_exhausted(self, clock):
        limiter = DailyUsageLimiter(daily_limit=2, clock=clock)

        assert limiter.try_acquire()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()
        assert limiter.used == 2
        assert limiter.remaining == 0
        assert not limiter.can_send()

    def test_record_usage(self, clock):
        limiter = DailyUsageLimiter(daily_limit=3, clock=clock)

        limiter.record_usage()

        assert limiter.remaining == 2

    def test_resets_on_next_calendar_day(self, clock):
        limiter = DailyUsageLimiter(daily_limit=1, clock=clock)
        assert limiter.try_acquire()
        assert not limiter.can_send()

        clock.advance(hours=2, minutes=29)  # 23:59, same day
        assert not limiter.can_send()

        clock.advance(minutes=2)  # 00:01 next day
        assert limiter.can_send()
        assert limiter.remaining == 1

    def test_reset_description(self, clock):
        limiter = DailyUsageLimiter(clock=clock)

        assert limiter.reset_description() == "in 2 h 30 min"

        clock.now = datetime(2024, 5, 1, 22, 0)
        assert limiter.reset_description() == "in 2 h"

        clock.now = datetime(2024, 5, 1, 23, 59, 30)
        assert limiter.reset_description() == "in 1 min"

    def test_status_text(self, clock):
        limiter = DailyUsageLimiter(daily_limit=1, clock=clock)

        assert limiter.status_text() == "1/1 messages left today"
        limiter.record_usage()
        assert limiter.status_text() == "Daily free quota used up, resets in 2 h 30 min"

    def test_zero_limit(self, clock):
        limiter = DailyUsageLimiter(daily_limit=0, clock=clock)

        assert not limiter.try_acquire()

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            DailyUsageLimiter(daily_limit=-1)
