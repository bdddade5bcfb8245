"""
Matchers: described success conditions.

A probe needs more than a yes/no answer once it gives up: the failure
message reports what was expected and why the last value did not qualify.
A Matcher carries both. Plain callables returning bool are accepted
anywhere a matcher is, via as_matcher().

Example:
    from nextdeed.matchers import all_of, greater_than, less_than

    in_range = all_of(greater_than(0), less_than(10))
    in_range(5)                 # True
    in_range.describe()         # "(a value greater than 0 and a value less than 10)"
    in_range.evaluate(12)       # MatchOutcome(passed=False, ...)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from .models import MatchOutcome

Condition = Callable[[Any], bool]


class Matcher:
    """Base class for described conditions."""

    def matches(self, value: Any) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def describe_mismatch(self, value: Any) -> str:
        return f"was {value!r}"

    def evaluate(self, value: Any) -> MatchOutcome:
        passed = bool(self.matches(value))
        return MatchOutcome(
            passed=passed,
            expected=self.describe(),
            actual=value,
            reason=None if passed else self.describe_mismatch(value),
        )

    def __call__(self, value: Any) -> bool:
        return self.matches(value)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.describe()}>"


class _FunctionMatcher(Matcher):
    def __init__(self, condition: Condition, description: str) -> None:
        self._condition = condition
        self._description = description

    def matches(self, value: Any) -> bool:
        return bool(self._condition(value))

    def describe(self) -> str:
        return self._description


def describe_callable(obj: Any) -> str:
    """
    Human readable name of a function or condition for diagnostics.

    Matchers describe themselves; objects with their own __str__ (such as
    described() functions) use it; plain functions use their qualified name.
    """
    if isinstance(obj, Matcher):
        return obj.describe()
    if type(obj).__str__ is not object.__str__:
        return str(obj)
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if name:
        return str(name)
    return repr(obj)


def as_matcher(condition: Matcher | Condition) -> Matcher:
    if condition is None:
        raise TypeError("condition must not be None")
    if isinstance(condition, Matcher):
        return condition
    if not callable(condition):
        raise TypeError(f"condition must be callable, got {condition!r}")
    return _FunctionMatcher(condition, describe_callable(condition))


def described_as(description: str, condition: Matcher | Condition) -> Matcher:
    inner = as_matcher(condition)

    class _Described(Matcher):
        def matches(self, value: Any) -> bool:
            return inner.matches(value)

        def describe(self) -> str:
            return description

        def describe_mismatch(self, value: Any) -> str:
            return inner.describe_mismatch(value)

    return _Described()


def anything() -> Matcher:
    return _FunctionMatcher(lambda _: True, "anything")


def equal_to(expected: Any) -> Matcher:
    return _FunctionMatcher(lambda v: v == expected, repr(expected))


def is_in(options: Iterable[Any]) -> Matcher:
    items = list(options)
    return _FunctionMatcher(lambda v: v in items, f"one of {items!r}")


def instance_of(cls: type) -> Matcher:
    class _InstanceOf(Matcher):
        def matches(self, value: Any) -> bool:
            return isinstance(value, cls)

        def describe(self) -> str:
            return f"an instance of {cls.__name__}"

        def describe_mismatch(self, value: Any) -> str:
            return f"{value!r} is a {type(value).__name__}"

    return _InstanceOf()


def greater_than(bound: Any) -> Matcher:
    return _FunctionMatcher(lambda v: v is not None and v > bound, f"a value greater than {bound!r}")


def less_than(bound: Any) -> Matcher:
    return _FunctionMatcher(lambda v: v is not None and v < bound, f"a value less than {bound!r}")


def contains_string(substring: str) -> Matcher:
    return _FunctionMatcher(
        lambda v: isinstance(v, str) and substring in v,
        f"a string containing {substring!r}",
    )


def is_not(condition: Matcher | Condition) -> Matcher:
    inner = as_matcher(condition)
    return _FunctionMatcher(lambda v: not inner.matches(v), f"not {inner.describe()}")


class _AllOf(Matcher):
    def __init__(self, matchers: list[Matcher]) -> None:
        self._matchers = matchers

    def matches(self, value: Any) -> bool:
        return all(m.matches(value) for m in self._matchers)

    def describe(self) -> str:
        return "(" + " and ".join(m.describe() for m in self._matchers) + ")"

    def describe_mismatch(self, value: Any) -> str:
        for m in self._matchers:
            if not m.matches(value):
                return f"{m.describe()} {m.describe_mismatch(value)}"
        return super().describe_mismatch(value)


class _AnyOf(Matcher):
    def __init__(self, matchers: list[Matcher]) -> None:
        self._matchers = matchers

    def matches(self, value: Any) -> bool:
        return any(m.matches(value) for m in self._matchers)

    def describe(self) -> str:
        return "(" + " or ".join(m.describe() for m in self._matchers) + ")"


def all_of(*conditions: Matcher | Condition) -> Matcher:
    if not conditions:
        raise TypeError("all_of() requires at least one condition")
    return _AllOf([as_matcher(c) for c in conditions])


def any_of(*conditions: Matcher | Condition) -> Matcher:
    if not conditions:
        raise TypeError("any_of() requires at least one condition")
    return _AnyOf([as_matcher(c) for c in conditions])
