from __future__ import annotations

from collections import deque
from datetime import timedelta

import pytest

from nextdeed.clock import Clock
from nextdeed.config import ProbeSettings
from nextdeed.errors import ConfigurationError, UnexpectedInterruptionError, WaitTimeoutError
from nextdeed.functions import described
from nextdeed.matchers import equal_to
from nextdeed.wait_function import WaitFunction, wait_for


class ScriptedService:
    """Returns scripted states; each evaluation costs a scripted amount of fake time."""

    def __init__(self, fake_clock, states: list, costs_ms: list[int] | None = None) -> None:
        self._clock = fake_clock
        self._states = deque(states)
        self._costs = deque(costs_ms or [])
        self.calls = 0

    def __call__(self, _item) -> str:
        self.calls += 1
        if self._costs:
            self._clock.advance(self._costs.popleft())
        if len(self._states) > 1:
            return self._states.popleft()
        return self._states[0]


def test_success_on_first_try_does_not_sleep(fake_clock) -> None:
    wait = wait_for(lambda item: f"{item}-ok").within_ms(1000).using_clock(fake_clock.clock).build()

    assert wait("svc") == "svc-ok"
    assert fake_clock.sleeps == []


def test_default_predicate_accepts_anything(fake_clock) -> None:
    wait = wait_for(lambda _: None).using_clock(fake_clock.clock).build()

    assert wait.apply("x") is None
    assert fake_clock.sleeps == []


def test_immediate_timeout_reports_consumed_time(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED"], costs_ms=[1000])
    events = []

    def on_timeout(event):
        events.append(event)
        return "fallback"

    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .within_ms(0)
        .with_initial_delay_ms(0)
        .on_timeout(on_timeout)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "fallback"
    assert service.calls == 1
    assert fake_clock.sleeps == []
    assert len(events) == 1
    assert events[0].consumed_ms == 1000
    assert events[0].item == "svc"
    assert events[0].last_result == "STOPPED"


def test_passes_on_second_try_with_one_sleep(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED", "RUNNING"])
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .within_ms(1000)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "RUNNING"
    assert len(fake_clock.sleeps) == 1


def test_delay_adopts_slow_evaluations_and_decelerates(fake_clock) -> None:
    service = ScriptedService(
        fake_clock, ["A", "B", "C", "RUNNING"], costs_ms=[3, 5, 200, 7]
    )
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .with_initial_delay_ms(100)
        .decelerate_polling_by(1.5)
        .within_ms(1000)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "RUNNING"
    assert fake_clock.sleeps == [100, 150, 225]


def test_long_evaluation_raises_delay(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED", "RUNNING"], costs_ms=[10, 0])
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .with_initial_delay_ms(1)
        .within_ms(1000)
        .using_clock(fake_clock.clock)
        .build()
    )

    wait("svc")

    assert fake_clock.sleeps == [10]


def test_final_sleep_is_clamped_to_time_left_plus_grace(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED"], costs_ms=[100, 100])
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .with_final_grace_period_ms(50)
        .with_initial_delay_ms(0)
        .decelerate_polling_by(1)
        .within_ms(140)
        .using_clock(fake_clock.clock)
        .build()
    )

    with pytest.raises(WaitTimeoutError) as exc_info:
        wait("svc")

    assert fake_clock.sleeps == [90]
    assert service.calls == 2
    assert exc_info.value.consumed_ms == 290


def test_factor_one_still_grows_delay_by_one_ms(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED"] * 10 + ["RUNNING"])
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .with_initial_delay_ms(1)
        .decelerate_polling_by(1)
        .within_ms(10_000)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "RUNNING"
    assert fake_clock.sleeps == list(range(1, 11))


def test_sleeps_never_shrink_before_the_final_clamp(fake_clock) -> None:
    wait = (
        wait_for(lambda _: "STOPPED")
        .to_fulfill(equal_to("RUNNING"))
        .within_ms(500)
        .on_timeout(lambda event: event.last_result)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "STOPPED"
    # The last two sleeps are clamped by the deadline.
    assert fake_clock.sleeps[-1] == 1
    assert sum(fake_clock.sleeps) == 501
    growing = fake_clock.sleeps[:-2]
    assert growing == sorted(growing)
    assert all(b > a for a, b in zip(growing[1:], growing[2:]))


def test_zero_delay_sleeps_at_least_one_ms(fake_clock) -> None:
    service = ScriptedService(fake_clock, ["STOPPED", "RUNNING"])
    wait = (
        wait_for(service)
        .to_fulfill(equal_to("RUNNING"))
        .within_ms(0)
        .using_clock(fake_clock.clock)
        .build()
    )

    assert wait("svc") == "RUNNING"
    assert fake_clock.sleeps == [1]


def test_engine_is_reusable_and_starts_fresh_each_call(fake_clock) -> None:
    states = deque()

    def delegate(_item) -> str:
        return states.popleft()

    wait = (
        wait_for(delegate)
        .to_fulfill(equal_to("RUNNING"))
        .with_initial_delay_ms(5)
        .within_ms(1000)
        .using_clock(fake_clock.clock)
        .build()
    )

    states.extend(["STOPPED", "STOPPED", "RUNNING"])
    assert wait("svc") == "RUNNING"
    first = list(fake_clock.sleeps)

    fake_clock.sleeps.clear()
    states.extend(["STOPPED", "STOPPED", "RUNNING"])
    assert wait("svc") == "RUNNING"

    assert fake_clock.sleeps == first == [5, 6]


def test_default_timeout_handler_raises_wait_timeout_with_description(fake_clock) -> None:
    wait = (
        wait_for(described(lambda _: "Lorem", "Ipsum"))
        .to_fulfill(equal_to("Dolor"))
        .within_ms(0)
        .using_clock(fake_clock.clock)
        .build()
    )

    with pytest.raises(WaitTimeoutError) as exc_info:
        wait("Sit")

    message = str(exc_info.value)
    assert "Ipsum applied to 'Sit'" in message
    assert "'Dolor'" in message
    assert "but was: 'Lorem'" in message
    assert exc_info.value.event is not None
    assert exc_info.value.event.last_result == "Lorem"


def test_interrupted_sleep_is_fatal(fake_clock) -> None:
    def interrupted_sleep(_millis: int) -> None:
        raise InterruptedError("interrupted")

    clock = Clock(now_ms=fake_clock.now_ms, sleep_ms=interrupted_sleep)
    calls = []
    wait = (
        wait_for(lambda item: calls.append(item) or "STOPPED")
        .to_fulfill(equal_to("RUNNING"))
        .within_ms(1000)
        .using_clock(clock)
        .build()
    )

    with pytest.raises(UnexpectedInterruptionError) as exc_info:
        wait("svc")

    assert isinstance(exc_info.value.__cause__, InterruptedError)
    assert calls == ["svc"]


def test_delegate_exception_propagates_without_retry(fake_clock) -> None:
    calls = []

    def broken(_item):
        calls.append(1)
        raise ValueError("boom")

    wait = wait_for(broken).within_ms(1000).using_clock(fake_clock.clock).build()

    with pytest.raises(ValueError, match="boom"):
        wait("svc")
    assert calls == [1]
    assert fake_clock.sleeps == []


def test_predicate_exception_propagates(fake_clock) -> None:
    def predicate(_value) -> bool:
        raise KeyError("state")

    wait = (
        wait_for(lambda _: "x").to_fulfill(predicate).within_ms(1000).using_clock(fake_clock.clock).build()
    )

    with pytest.raises(KeyError):
        wait("svc")


@pytest.mark.parametrize(
    "configure",
    [
        lambda b: b.within_ms(-1),
        lambda b: b.with_final_grace_period_ms(-1),
        lambda b: b.with_initial_delay_ms(-5),
        lambda b: b.decelerate_polling_by(0.99),
        lambda b: b.decelerate_polling_by(float("inf")),
        lambda b: b.decelerate_polling_by(float("nan")),
        lambda b: b.within(-0.5),
        lambda b: b.within(-0.0004),
        lambda b: b.within(float("inf")),
        lambda b: b.within(float("nan")),
        lambda b: b.within("soon"),
        lambda b: b.to_fulfill(None),
        lambda b: b.on_timeout(None),
    ],
)
def test_invalid_configuration_fails_fast(configure) -> None:
    builder = wait_for(lambda _: None)
    before = builder.configuration

    with pytest.raises(ConfigurationError):
        configure(builder)

    assert builder.configuration == before


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        wait_for(lambda _: None).within_ms(-1)


def test_durations_accept_seconds_and_timedelta() -> None:
    builder = (
        wait_for(lambda _: None)
        .within(timedelta(seconds=2))
        .with_initial_delay(0.25)
        .and_()
        .with_final_grace_period(timedelta(milliseconds=30))
    )

    config = builder.configuration
    assert config.timeout_ms == 2000
    assert config.initial_delay_ms == 250
    assert config.grace_period_ms == 30


def test_defaults() -> None:
    config = wait_for(lambda _: None).build().config

    assert config.timeout_ms == 0
    assert config.initial_delay_ms == 0
    assert config.grace_period_ms == 0
    assert config.deceleration_factor == pytest.approx(1.1)


def test_built_engine_is_not_affected_by_later_builder_changes() -> None:
    builder = wait_for(lambda _: None).within_ms(100)
    wait = builder.build()

    builder.within_ms(5000).decelerate_polling_by(3)

    assert isinstance(wait, WaitFunction)
    assert wait.config.timeout_ms == 100
    assert wait.config.deceleration_factor == pytest.approx(1.1)
    with pytest.raises(Exception):
        wait.config.timeout_ms = 1  # type: ignore[misc]


def test_timeout_scale_stretches_built_timeout() -> None:
    wait = wait_for(lambda _: None, settings=ProbeSettings(timeout_scale=2.5)).within_ms(100).build()

    assert wait.config.timeout_ms == 250


def test_env_settings_provide_defaults(monkeypatch) -> None:
    monkeypatch.setenv("NEXTDEED_TIMEOUT_MS", "1500")
    monkeypatch.setenv("NEXTDEED_DECELERATION_FACTOR", "2")

    config = wait_for(lambda _: None).build().config

    assert config.timeout_ms == 1500
    assert config.deceleration_factor == 2.0
