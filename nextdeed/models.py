"""
Pydantic models for nextdeed - timing configuration and match outcomes
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_DECELERATION_FACTOR,
    DEFAULT_GRACE_PERIOD_MS,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
)


class WaitConfiguration(BaseModel):
    """Timing of one polling engine. All durations in milliseconds."""

    model_config = ConfigDict(frozen=True)

    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, ge=0)
    grace_period_ms: int = Field(DEFAULT_GRACE_PERIOD_MS, ge=0)
    initial_delay_ms: int = Field(DEFAULT_INITIAL_DELAY_MS, ge=0)
    deceleration_factor: float = Field(DEFAULT_DECELERATION_FACTOR, ge=1.0, allow_inf_nan=False)


class MatchOutcome(BaseModel):
    """Result of evaluating a matcher against one value"""

    passed: bool
    expected: str
    actual: Any = None
    reason: Optional[str] = None
