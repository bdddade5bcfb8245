"""
Probes: bounded, decelerating checks against a live system under test.

A probe binds a target, waits until a function of the target fulfills a
condition and, if it never does, fails in one of three ways:

- assert_that():  ProbeAssertionError   (the check failed)
- assume_that():  AssumptionViolatedError (preconditions not met, skip the test)
- require_that(): WaitTimeoutError       (environment or setup problem)

Example:
    from nextdeed import equal_to, probing

    probing(service).within(10.0).with_final_grace_period(0.5).assert_that(
        lambda s: s.state, equal_to("RUNNING"), reason="service should start"
    )

A probe is meant for one probing expression: configure it, then make
exactly one terminal call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .clock import SYSTEM_CLOCK, Clock
from .config import Duration, ProbeSettings, reconfigure, to_millis
from .errors import ConfigurationError, FailureKind, ProbeStateError
from .matchers import Condition, Matcher, as_matcher, describe_callable
from .models import WaitConfiguration
from .strategies import strategy_for
from .timeout_event import TimeoutEvent
from .wait_function import WaitFunction, WaitFunctionBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

TimeoutObserver = Callable[[TimeoutEvent[Any, Any]], None]


@dataclass(frozen=True)
class ProbeRequest(Generic[T, R]):
    """Everything one terminal probe call needs, fixed at call time."""

    target: T
    function: Callable[[T], R]
    matcher: Matcher
    reason: str | None
    kind: FailureKind
    config: WaitConfiguration
    observers: tuple[TimeoutObserver, ...] = ()


class ProbeBuilder(Generic[T, R]):
    """
    Configures timing and timeout observers for a probe of one target.

    Attributes:
        target: Object handed to the probed function on every poll
    """

    def __init__(
        self,
        target: T,
        *,
        settings: ProbeSettings | None = None,
    ) -> None:
        if target is None:
            raise ConfigurationError("target must not be None.")
        self.target = target
        self._settings = settings if settings is not None else ProbeSettings.from_env()
        self._config = self._settings.wait_configuration()
        self._observers: list[TimeoutObserver] = []
        self._clock = SYSTEM_CLOCK
        self._terminal = False

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> WaitConfiguration:
        return self._config

    def within(self, timeout: Duration) -> ProbeBuilder[T, R]:
        return self.within_ms(to_millis(timeout))

    def within_ms(self, timeout_ms: int) -> ProbeBuilder[T, R]:
        self._config = reconfigure(self._config, timeout_ms=timeout_ms)
        return self

    def with_final_grace_period(self, grace_period: Duration) -> ProbeBuilder[T, R]:
        return self.with_final_grace_period_ms(to_millis(grace_period))

    def with_final_grace_period_ms(self, grace_period_ms: int) -> ProbeBuilder[T, R]:
        self._config = reconfigure(self._config, grace_period_ms=grace_period_ms)
        return self

    def with_initial_delay(self, initial_delay: Duration) -> ProbeBuilder[T, R]:
        return self.with_initial_delay_ms(to_millis(initial_delay))

    def with_initial_delay_ms(self, initial_delay_ms: int) -> ProbeBuilder[T, R]:
        self._config = reconfigure(self._config, initial_delay_ms=initial_delay_ms)
        return self

    def decelerate_polling_by(self, factor: float) -> ProbeBuilder[T, R]:
        self._config = reconfigure(self._config, deceleration_factor=factor)
        return self

    def using_clock(self, clock: Clock) -> ProbeBuilder[T, R]:
        if clock is None:
            raise ConfigurationError("clock must not be None.")
        self._clock = clock
        return self

    def and_(self) -> ProbeBuilder[T, R]:
        return self

    def on_timeout(self, observer: TimeoutObserver) -> ProbeBuilder[T, R]:
        """
        Register a side-effect-only callback for the timeout event.

        Observers run in registration order before the failure is raised.
        They cannot change the outcome: an observer that raises is logged
        and the failure is raised anyway.
        """
        if observer is None or not callable(observer):
            raise ConfigurationError("timeout observer must be a callable.")
        self._observers.append(observer)
        return self

    # ------------------------------------------------------------------
    # Terminal calls
    # ------------------------------------------------------------------

    def assert_that(
        self,
        function: Callable[[T], R],
        condition: Matcher | Condition,
        reason: str | None = None,
    ) -> R:
        """Wait for `condition`; raise ProbeAssertionError on timeout."""
        return self._check_that("assertion_failed", function, condition, reason)

    def assume_that(
        self,
        function: Callable[[T], R],
        condition: Matcher | Condition,
        reason: str | None = None,
    ) -> R:
        """Wait for `condition`; raise AssumptionViolatedError (a skip) on timeout."""
        return self._check_that("assumption_violated", function, condition, reason)

    def require_that(
        self,
        function: Callable[[T], R],
        condition: Matcher | Condition,
        reason: str | None = None,
    ) -> R:
        """Wait for `condition`; raise WaitTimeoutError on timeout."""
        return self._check_that("wait_timed_out", function, condition, reason)

    def _check_that(
        self,
        kind: FailureKind,
        function: Callable[[T], R],
        condition: Matcher | Condition,
        reason: str | None,
    ) -> R:
        if self._terminal:
            raise ProbeStateError(
                "Probe already used; create a new probe with probing() for each check."
            )
        if function is None or not callable(function):
            raise ConfigurationError("function must be a callable.")

        request = ProbeRequest(
            target=self.target,
            function=function,
            matcher=as_matcher(condition),
            reason=reason,
            kind=kind,
            config=self._config,
            observers=tuple(self._observers),
        )
        self._terminal = True
        return self._wait_function(request).apply(request.target)

    def _wait_function(self, request: ProbeRequest[T, R]) -> WaitFunction[T, R]:
        # The same matcher decides the loop and renders the failure message.
        strategy = strategy_for(request.kind, request.reason, request.matcher)
        observers = request.observers

        def on_timeout(event: TimeoutEvent[T, R]) -> R:
            for observer in observers:
                try:
                    observer(event)
                except Exception:  # pylint: disable=broad-exception-caught
                    logger.warning(
                        f"Timeout observer {describe_callable(observer)} failed",
                        exc_info=True,
                    )
            return strategy(event)

        return (
            WaitFunctionBuilder(request.function, settings=self._settings)
            .with_configuration(request.config)
            .to_fulfill(request.matcher)
            .on_timeout(on_timeout)
            .using_clock(self._clock)
            .build()
        )

    def __repr__(self) -> str:
        state = "terminal" if self._terminal else "configuring"
        return f"ProbeBuilder(target={self.target!r}, config={self._config!r}, state={state})"


def probing(target: T, *, settings: ProbeSettings | None = None) -> ProbeBuilder[T, Any]:
    """Start a probe of `target`."""
    return ProbeBuilder(target, settings=settings)
