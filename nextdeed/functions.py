from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from .clock import SYSTEM_CLOCK, Clock
from .config import Duration, ProbeSettings, to_millis
from .constants import (
    DEFAULT_DECELERATION_FACTOR,
    WAIT_FOR_MATCH_GRACE_PERIOD_MS,
    WAIT_FOR_MATCH_INITIAL_DELAY_MS,
)
from .matchers import Condition, Matcher, as_matcher
from .timeout_event import TimeoutEvent
from .wait_function import wait_for

T = TypeVar("T")
R = TypeVar("R")


class DescribedFunction(Generic[T, R]):
    """A function whose str() is a fixed description, for readable diagnostics."""

    def __init__(self, function: Callable[[T], R], description: str) -> None:
        self._function = function
        self._description = description

    def __call__(self, value: T) -> R:
        return self._function(value)

    def __str__(self) -> str:
        return self._description

    def __repr__(self) -> str:
        return f"DescribedFunction({self._description!r})"


def described(function: Callable[[T], R], description: str) -> DescribedFunction[T, R]:
    return DescribedFunction(function, description)


class ApplyingMatcher(Matcher):
    """
    Matches an item by applying a function to it and matching the result.

    The derived value of the last matches() call on the current thread is
    kept so the mismatch description can report it.
    """

    def __init__(self, function: Callable[[Any], Any], matcher: Matcher | Condition) -> None:
        self._function = function
        self._matcher = as_matcher(matcher)
        self._last = threading.local()

    def matches(self, value: Any) -> bool:
        derived = self._function(value)
        self._last.value = derived
        return self._matcher.matches(derived)

    def describe(self) -> str:
        return self._matcher.describe()

    def describe_mismatch(self, value: Any) -> str:
        # The item is assumed unchanged since the last matches() call.
        return self._matcher.describe_mismatch(getattr(self._last, "value", None))


def applying(function: Callable[[Any], Any], matcher: Matcher | Condition) -> ApplyingMatcher:
    return ApplyingMatcher(function, matcher)


class WaitingMatcher(Matcher):
    """
    Matcher that polls a wrapped matcher until it matches or time runs out.

    matches() never raises on timeout; it answers with the last verdict.
    """

    def __init__(
        self,
        matcher: Matcher | Condition,
        timeout_ms: int,
        *,
        clock: Clock = SYSTEM_CLOCK,
        settings: ProbeSettings | None = None,
    ) -> None:
        self._matcher = as_matcher(matcher)
        self._wait = (
            wait_for(self._matcher.matches, settings=settings)
            .to_fulfill(bool)
            .within_ms(timeout_ms)
            .with_initial_delay_ms(WAIT_FOR_MATCH_INITIAL_DELAY_MS)
            .with_final_grace_period_ms(WAIT_FOR_MATCH_GRACE_PERIOD_MS)
            .decelerate_polling_by(DEFAULT_DECELERATION_FACTOR)
            .on_timeout(_last_verdict)
            .using_clock(clock)
            .build()
        )

    @property
    def timeout_ms(self) -> int:
        return self._wait.config.timeout_ms

    def matches(self, value: Any) -> bool:
        return bool(self._wait(value))

    def describe(self) -> str:
        return self._matcher.describe()

    def describe_mismatch(self, value: Any) -> str:
        return self._matcher.describe_mismatch(value)


def _last_verdict(event: TimeoutEvent[Any, bool]) -> bool:
    return event.last_result


def wait_for_match(
    matcher: Matcher | Condition,
    timeout: Duration,
    *,
    clock: Clock = SYSTEM_CLOCK,
    settings: ProbeSettings | None = None,
) -> WaitingMatcher:
    """Wrap `matcher` so that matching waits up to `timeout` (seconds or timedelta)."""
    return WaitingMatcher(matcher, to_millis(timeout), clock=clock, settings=settings)
