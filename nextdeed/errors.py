from __future__ import annotations

import unittest
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .timeout_event import TimeoutEvent

FailureKind = Literal["assertion_failed", "assumption_violated", "wait_timed_out"]


class ConfigurationError(ValueError):
    """Invalid timing parameter or probe option."""


class UnexpectedInterruptionError(RuntimeError):
    """Raised when the sleep between two polls was interrupted."""


class ProbeStateError(RuntimeError):
    """Raised when a probe is used after its terminal call."""


class ProbeFailure(Exception):
    """
    Common base of the three timeout signals.

    Concrete classes also derive from the exception type the test runner
    knows how to report (AssertionError, SkipTest, TimeoutError).
    """

    kind: FailureKind

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        expected: str | None = None,
        actual: Any = None,
        consumed_ms: int | None = None,
        event: TimeoutEvent | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.expected = expected
        self.actual = actual
        self.consumed_ms = consumed_ms
        self.event = event

    def __str__(self) -> str:
        return self.message


class ProbeAssertionError(ProbeFailure, AssertionError):
    """The checked condition was not met in time."""

    kind: FailureKind = "assertion_failed"


class AssumptionViolatedError(ProbeFailure, unittest.SkipTest):
    """Preconditions of the test were not met in time; the test is skipped."""

    kind: FailureKind = "assumption_violated"


class WaitTimeoutError(ProbeFailure, TimeoutError):
    """The environment did not reach the required state in time."""

    kind: FailureKind = "wait_timed_out"
