"""
Decelerating wait: poll a function until its result fulfills a condition.

The engine evaluates a delegate function against an item again and again
until a predicate accepts the result or a deadline passes. Between polls it
sleeps, and the sleep grows after every failed poll:

    delay(0)   = initial_delay_ms
    delay      = max(delay, cost of last evaluation)
    sleep      = max(1, min(delay, time_left + grace_period_ms))
    delay(n+1) = max(delay + 1, int(delay * deceleration_factor))

so a slow system under test is polled less and less often, and never more
often than one evaluation takes. The grace period lets the final sleep
reach past the deadline so the last poll still gets a fair chance.

Example:
    from nextdeed.wait_function import wait_for
    from nextdeed.matchers import equal_to

    wait = (
        wait_for(lambda service: service.state)
        .to_fulfill(equal_to("RUNNING"))
        .within(5.0)
        .and_()
        .decelerate_polling_by(1.5)
        .build()
    )
    wait(service)   # returns "RUNNING" or raises WaitTimeoutError
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .clock import SYSTEM_CLOCK, Clock
from .config import Duration, ProbeSettings, reconfigure, to_millis
from .constants import MINIMUM_SLEEP_TIME_MS
from .errors import ConfigurationError, UnexpectedInterruptionError, WaitTimeoutError
from .matchers import Condition, Matcher, anything, describe_callable
from .models import WaitConfiguration
from .timeout_event import TimeoutEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

TimeoutHandler = Callable[[TimeoutEvent[Any, Any]], Any]


def fail_with_timeout_error(event: TimeoutEvent[Any, Any]) -> Any:
    """Default timeout handler: raise WaitTimeoutError with the event description."""
    raise WaitTimeoutError(
        event.describe(),
        expected=describe_callable(event.source.predicate),
        actual=event.last_result,
        consumed_ms=event.consumed_ms,
        event=event,
    )


@dataclass(frozen=True)
class WaitFunction(Generic[T, R]):
    """
    Immutable polling engine produced by WaitFunctionBuilder.

    All timing state of a run is local to apply(), so one instance can be
    applied repeatedly and from several threads.
    """

    delegate: Callable[[T], R]
    predicate: Matcher | Condition
    on_timeout: TimeoutHandler
    config: WaitConfiguration
    clock: Clock = SYSTEM_CLOCK

    def __call__(self, item: T) -> R:
        return self.apply(item)

    def apply(self, item: T) -> R:
        config = self.config
        now = self.clock.now_ms
        start_ms = now()
        deadline_ms = start_ms + config.timeout_ms
        delay_ms = config.initial_delay_ms
        poll = 0

        while True:
            poll += 1
            before_ms = now()
            result = self.delegate(item)
            after_ms = now()
            if self.predicate(result):
                logger.debug(f"Poll #{poll} fulfilled after {after_ms - start_ms}ms")
                return result
            if after_ms > deadline_ms:
                consumed_ms = after_ms - start_ms
                logger.debug(
                    f"Poll #{poll} timed out (timeout={config.timeout_ms}ms, consumed={consumed_ms}ms)"
                )
                return self.on_timeout(
                    TimeoutEvent(source=self, consumed_ms=consumed_ms, item=item, last_result=result)
                )
            delay_ms = self._sleep_and_recalculate_delay(
                delay_ms, deadline_ms, before_ms, after_ms, poll
            )

    def _sleep_and_recalculate_delay(
        self,
        previous_delay_ms: int,
        deadline_ms: int,
        before_ms: int,
        after_ms: int,
        poll: int,
    ) -> int:
        # Never poll faster than one evaluation takes.
        delay_ms = max(previous_delay_ms, after_ms - before_ms)

        time_left_ms = deadline_ms - after_ms
        sleep_time_ms = max(
            MINIMUM_SLEEP_TIME_MS,
            min(delay_ms, time_left_ms + self.config.grace_period_ms),
        )
        logger.debug(f"Poll #{poll} not fulfilled, sleeping {sleep_time_ms}ms")
        try:
            self.clock.sleep_ms(sleep_time_ms)
        except InterruptedError as e:
            raise UnexpectedInterruptionError("Unexpected interruption.") from e

        # Grow by the factor, but by at least one millisecond.
        return max(delay_ms + 1, int(delay_ms * self.config.deceleration_factor))

    def __repr__(self) -> str:
        return (
            f"WaitFunction(delegate={describe_callable(self.delegate)}, "
            f"predicate={describe_callable(self.predicate)}, "
            f"config={self.config!r})"
        )


class WaitFunctionBuilder(Generic[T, R]):
    """
    Fluent, validated configuration of a WaitFunction.

    Every setter checks its argument immediately and raises
    ConfigurationError on violation. build() snapshots the configuration,
    so later changes to the builder do not affect built engines.
    """

    def __init__(
        self,
        delegate: Callable[[T], R],
        *,
        settings: ProbeSettings | None = None,
    ) -> None:
        if delegate is None or not callable(delegate):
            raise ConfigurationError("delegate must be a callable.")
        self._delegate = delegate
        self._settings = settings if settings is not None else ProbeSettings.from_env()
        self._config = self._settings.wait_configuration()
        self._predicate: Matcher | Condition = anything()
        self._on_timeout: TimeoutHandler | None = None
        self._clock = SYSTEM_CLOCK

    @property
    def configuration(self) -> WaitConfiguration:
        return self._config

    def to_fulfill(self, predicate: Matcher | Condition) -> WaitFunctionBuilder[T, R]:
        if predicate is None or not callable(predicate):
            raise ConfigurationError("predicate must be a callable or Matcher.")
        self._predicate = predicate
        return self

    def on_timeout(self, handler: TimeoutHandler) -> WaitFunctionBuilder[T, R]:
        if handler is None or not callable(handler):
            raise ConfigurationError("timeout handler must be a callable.")
        self._on_timeout = handler
        return self

    def within(self, timeout: Duration) -> WaitFunctionBuilder[T, R]:
        return self.within_ms(to_millis(timeout))

    def within_ms(self, timeout_ms: int) -> WaitFunctionBuilder[T, R]:
        self._config = reconfigure(self._config, timeout_ms=timeout_ms)
        return self

    def with_final_grace_period(self, grace_period: Duration) -> WaitFunctionBuilder[T, R]:
        return self.with_final_grace_period_ms(to_millis(grace_period))

    def with_final_grace_period_ms(self, grace_period_ms: int) -> WaitFunctionBuilder[T, R]:
        self._config = reconfigure(self._config, grace_period_ms=grace_period_ms)
        return self

    def with_initial_delay(self, initial_delay: Duration) -> WaitFunctionBuilder[T, R]:
        return self.with_initial_delay_ms(to_millis(initial_delay))

    def with_initial_delay_ms(self, initial_delay_ms: int) -> WaitFunctionBuilder[T, R]:
        self._config = reconfigure(self._config, initial_delay_ms=initial_delay_ms)
        return self

    def decelerate_polling_by(self, factor: float) -> WaitFunctionBuilder[T, R]:
        self._config = reconfigure(self._config, deceleration_factor=factor)
        return self

    def with_configuration(self, config: WaitConfiguration) -> WaitFunctionBuilder[T, R]:
        """Replace all timing values at once with an already validated configuration."""
        if not isinstance(config, WaitConfiguration):
            raise ConfigurationError(f"Expected a WaitConfiguration, got {config!r}.")
        self._config = config
        return self

    def using_clock(self, clock: Clock) -> WaitFunctionBuilder[T, R]:
        if clock is None:
            raise ConfigurationError("clock must not be None.")
        self._clock = clock
        return self

    def and_(self) -> WaitFunctionBuilder[T, R]:
        return self

    def build(self) -> WaitFunction[T, R]:
        config = self._config
        if self._settings.timeout_scale != 1.0:
            config = reconfigure(
                config, timeout_ms=round(config.timeout_ms * self._settings.timeout_scale)
            )
        return WaitFunction(
            delegate=self._delegate,
            predicate=self._predicate,
            on_timeout=self._on_timeout or fail_with_timeout_error,
            config=config,
            clock=self._clock,
        )

    get = build

    def __repr__(self) -> str:
        return (
            f"WaitFunctionBuilder(delegate={describe_callable(self._delegate)}, "
            f"predicate={describe_callable(self._predicate)}, config={self._config!r})"
        )


def wait_for(
    delegate: Callable[[T], R], *, settings: ProbeSettings | None = None
) -> WaitFunctionBuilder[T, R]:
    """Start configuring a WaitFunction around `delegate`."""
    return WaitFunctionBuilder(delegate, settings=settings)
