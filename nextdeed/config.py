from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    DEFAULT_DECELERATION_FACTOR,
    DEFAULT_GRACE_PERIOD_MS,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    ENV_DECELERATION_FACTOR,
    ENV_GRACE_PERIOD_MS,
    ENV_INITIAL_DELAY_MS,
    ENV_TIMEOUT_MS,
    ENV_TIMEOUT_SCALE,
)
from .errors import ConfigurationError
from .models import WaitConfiguration

logger = logging.getLogger(__name__)

Duration = float | int | timedelta


class ProbeSettings(BaseModel):
    """
    Defaults for newly created wait functions and probes.

    Explicit builder calls always win over these values. `timeout_scale`
    multiplies every timeout when the engine is built, which lets slow CI
    machines stretch all probes without touching the tests.
    """

    model_config = ConfigDict(frozen=True)

    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, ge=0)
    initial_delay_ms: int = Field(DEFAULT_INITIAL_DELAY_MS, ge=0)
    grace_period_ms: int = Field(DEFAULT_GRACE_PERIOD_MS, ge=0)
    deceleration_factor: float = Field(DEFAULT_DECELERATION_FACTOR, ge=1.0, allow_inf_nan=False)
    timeout_scale: float = Field(1.0, gt=0.0, allow_inf_nan=False)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProbeSettings:
        """
        Read settings from NEXTDEED_* environment variables.

        Unset or blank variables keep their defaults. Malformed values raise
        ConfigurationError naming the offending variable.
        """
        env = os.environ if environ is None else environ
        mapping = {
            "timeout_ms": ENV_TIMEOUT_MS,
            "initial_delay_ms": ENV_INITIAL_DELAY_MS,
            "grace_period_ms": ENV_GRACE_PERIOD_MS,
            "deceleration_factor": ENV_DECELERATION_FACTOR,
            "timeout_scale": ENV_TIMEOUT_SCALE,
        }
        values: dict[str, str] = {}
        for field_name, var in mapping.items():
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            values[field_name] = raw.strip()

        try:
            settings = cls(**values)
        except ValidationError as e:
            bad = [mapping[str(err["loc"][0])] for err in e.errors() if err.get("loc")]
            raise ConfigurationError(
                f"Invalid probe settings in environment ({', '.join(bad) or 'unknown'}): {e}"
            ) from e

        if values:
            logger.debug(f"Probe settings from environment: {settings.model_dump()}")
        return settings

    def wait_configuration(self) -> WaitConfiguration:
        return WaitConfiguration(
            timeout_ms=self.timeout_ms,
            grace_period_ms=self.grace_period_ms,
            initial_delay_ms=self.initial_delay_ms,
            deceleration_factor=self.deceleration_factor,
        )


def to_millis(duration: Duration) -> int:
    """Convert seconds (int/float) or a timedelta into whole milliseconds."""
    if isinstance(duration, bool):
        raise ConfigurationError(f"Duration must be a number or timedelta, got {duration!r}.")
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    elif isinstance(duration, (int, float)):
        seconds = float(duration)
    else:
        raise ConfigurationError(f"Duration must be a number or timedelta, got {duration!r}.")
    if not math.isfinite(seconds):
        raise ConfigurationError(f"Duration must be finite, got {duration!r}.")
    # Checked before rounding so tiny negatives cannot round to zero.
    if seconds < 0:
        raise ConfigurationError(f"Duration must not be negative, got {duration!r}.")
    return round(seconds * 1000)


def reconfigure(config: WaitConfiguration, **changes: object) -> WaitConfiguration:
    """
    Return a copy of `config` with `changes` applied and validated.

    Raises:
        ConfigurationError: if a changed value violates its constraint
    """
    try:
        return WaitConfiguration(**{**config.model_dump(), **changes})
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid wait configuration: {messages}") from e
