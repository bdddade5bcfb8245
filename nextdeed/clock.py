from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def sleep_ms(millis: int) -> None:
    time.sleep(millis / 1000.0)


@dataclass(frozen=True)
class Clock:
    """
    Time source and sleeper used by the polling engine.

    Both are plain callables working in milliseconds, so tests can pass a
    fake clock whose sleeper advances the fake time instead of blocking.
    """

    now_ms: Callable[[], int] = monotonic_ms
    sleep_ms: Callable[[int], None] = sleep_ms


SYSTEM_CLOCK = Clock()
