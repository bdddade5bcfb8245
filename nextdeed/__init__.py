"""
nextdeed: wait for a system under test instead of sleeping.

This package provides deadline-bounded, decelerating polling for tests:
- wait_for(): a validated builder for WaitFunction, the polling engine
- probing(): a probe of one target with assert/assume/require failure modes
- matchers: described success conditions used in failure messages
"""

from .clock import SYSTEM_CLOCK, Clock
from .config import ProbeSettings
from .errors import (
    AssumptionViolatedError,
    ConfigurationError,
    FailureKind,
    ProbeAssertionError,
    ProbeFailure,
    ProbeStateError,
    UnexpectedInterruptionError,
    WaitTimeoutError,
)
from .failure_artifacts import TimeoutArtifactRecorder, TimeoutArtifactsOptions
from .functions import applying, described, wait_for_match
from .matchers import (
    Matcher,
    all_of,
    any_of,
    anything,
    as_matcher,
    contains_string,
    described_as,
    equal_to,
    greater_than,
    instance_of,
    is_in,
    is_not,
    less_than,
)
from .models import MatchOutcome, WaitConfiguration
from .probe import ProbeBuilder, ProbeRequest, probing
from .strategies import FailureMessage
from .timeout_event import TimeoutEvent
from .wait_function import WaitFunction, WaitFunctionBuilder, fail_with_timeout_error, wait_for

__version__ = "1.0.0"

__all__ = [
    "AssumptionViolatedError",
    "Clock",
    "ConfigurationError",
    "FailureKind",
    "FailureMessage",
    "MatchOutcome",
    "Matcher",
    "ProbeAssertionError",
    "ProbeBuilder",
    "ProbeFailure",
    "ProbeRequest",
    "ProbeSettings",
    "ProbeStateError",
    "SYSTEM_CLOCK",
    "TimeoutArtifactRecorder",
    "TimeoutArtifactsOptions",
    "TimeoutEvent",
    "UnexpectedInterruptionError",
    "WaitConfiguration",
    "WaitFunction",
    "WaitFunctionBuilder",
    "WaitTimeoutError",
    "all_of",
    "any_of",
    "anything",
    "applying",
    "as_matcher",
    "contains_string",
    "described",
    "described_as",
    "equal_to",
    "fail_with_timeout_error",
    "greater_than",
    "instance_of",
    "is_in",
    "is_not",
    "less_than",
    "probing",
    "wait_for",
    "wait_for_match",
]
