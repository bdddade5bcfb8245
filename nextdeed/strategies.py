from __future__ import annotations

import logging
from typing import Any

from .errors import (
    AssumptionViolatedError,
    FailureKind,
    ProbeAssertionError,
    ProbeFailure,
    WaitTimeoutError,
)
from .matchers import Condition, Matcher, as_matcher
from .timeout_event import TimeoutEvent

logger = logging.getLogger(__name__)


class FailureMessage:
    """Reason, expectation and mismatch in the layout of a failed assertion."""

    def __init__(self, last_result: Any, reason: str | None, matcher: Matcher | Condition) -> None:
        self.last_result = last_result
        self.reason = reason
        self.matcher = as_matcher(matcher)

    @property
    def message(self) -> str:
        return (
            f"{self.reason or ''}"
            f"\nExpected: {self.matcher.describe()}"
            f"\n     but: {self.matcher.describe_mismatch(self.last_result)}"
        )

    def __str__(self) -> str:
        return self.message


class _ThrowStrategy:
    error_type: type[ProbeFailure]

    def __init__(self, reason: str | None, matcher: Matcher | Condition) -> None:
        self.reason = reason
        self.matcher = as_matcher(matcher)

    @property
    def kind(self) -> FailureKind:
        return self.error_type.kind

    def __call__(self, event: TimeoutEvent[Any, Any]) -> Any:
        last_result = event.last_result
        if not self.matcher.matches(last_result):
            raise self.error_type(
                FailureMessage(last_result, self.reason, self.matcher).message,
                reason=self.reason,
                expected=self.matcher.describe(),
                actual=last_result,
                consumed_ms=event.consumed_ms,
                event=event,
            )
        # Only reachable when the matcher answers differently for the same value.
        logger.warning(
            f"Condition {self.matcher.describe()!r} matched {last_result!r} after the wait "
            f"timed out; returning the value instead of raising {self.error_type.__name__}"
        )
        return last_result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reason={self.reason!r}, matcher={self.matcher!r})"


class ThrowAssertionError(_ThrowStrategy):
    error_type = ProbeAssertionError


class ThrowAssumptionViolated(_ThrowStrategy):
    error_type = AssumptionViolatedError


class ThrowWaitTimeout(_ThrowStrategy):
    error_type = WaitTimeoutError


STRATEGIES: dict[FailureKind, type[_ThrowStrategy]] = {
    "assertion_failed": ThrowAssertionError,
    "assumption_violated": ThrowAssumptionViolated,
    "wait_timed_out": ThrowWaitTimeout,
}


def strategy_for(kind: FailureKind, reason: str | None, matcher: Matcher | Condition) -> _ThrowStrategy:
    try:
        strategy_cls = STRATEGIES[kind]
    except KeyError:
        raise ValueError(f"Unknown failure kind: {kind!r}") from None
    return strategy_cls(reason, matcher)
