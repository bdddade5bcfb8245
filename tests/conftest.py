from __future__ import annotations

import pytest

from nextdeed.clock import Clock


class FakeClock:
    """Millisecond clock whose sleeper advances time instead of blocking."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now = start_ms
        self.sleeps: list[int] = []

    def now_ms(self) -> int:
        return self.now

    def sleep_ms(self, millis: int) -> None:
        self.sleeps.append(millis)
        self.now += millis

    def advance(self, millis: int) -> None:
        self.now += millis

    @property
    def clock(self) -> Clock:
        return Clock(now_ms=self.now_ms, sleep_ms=self.sleep_ms)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _clean_nextdeed_env(monkeypatch) -> None:
    for var in (
        "NEXTDEED_TIMEOUT_MS",
        "NEXTDEED_INITIAL_DELAY_MS",
        "NEXTDEED_GRACE_PERIOD_MS",
        "NEXTDEED_DECELERATION_FACTOR",
        "NEXTDEED_TIMEOUT_SCALE",
    ):
        monkeypatch.delenv(var, raising=False)
