from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .matchers import describe_callable

if TYPE_CHECKING:
    from .wait_function import WaitFunction

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class TimeoutEvent(Generic[T, R]):
    """
    Snapshot of a wait function that ran past its deadline.

    Created only on the timeout branch and handed to the timeout handler
    (and to probe observers) before it is discarded.
    """

    source: WaitFunction[T, R]
    consumed_ms: int
    item: T
    last_result: R

    def describe(self) -> str:
        source = self.source
        return (
            f"{describe_callable(source.delegate)} applied to {self.item!r} "
            f"did not fulfill {describe_callable(source.predicate)} "
            f"within {source.config.timeout_ms} ms "
            f"(consumed {self.consumed_ms} ms) "
            f"but was: {self.last_result!r}"
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view used by artifact recorders."""
        return {
            "description": self.describe(),
            "function": describe_callable(self.source.delegate),
            "condition": describe_callable(self.source.predicate),
            "timeout_ms": self.source.config.timeout_ms,
            "consumed_ms": self.consumed_ms,
            "item": repr(self.item),
            "last_result": repr(self.last_result),
        }
