"""Lightweight call recording for handlers passed into components."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SpyCall:
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    returned: Any = None
    threw: BaseException | None = None


class Spy:
    """Callable that records every call, then defers to an optional implementation.

    Exceptions raised by the implementation are recorded on the call and
    re-raised.
    """

    def __init__(self, impl: Callable[..., Any] | None = None):
        self.impl = impl
        self.calls: list[SpyCall] = []

    def __call__(self, *args, **kwargs):
        try:
            result = self.impl(*args, **kwargs) if self.impl is not None else None
        except Exception as e:
            self.calls.append(SpyCall(args, kwargs, threw=e))
            raise
        self.calls.append(SpyCall(args, kwargs, returned=result))
        return result

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    def __repr__(self):
        name = getattr(self.impl, "__name__", None)
        return f"Spy({name or 'noop'}, calls={len(self.calls)})"


def create_spy(impl: Callable[..., Any] | None = None) -> Spy:
    return Spy(impl)


def is_spy(fn: Any) -> bool:
    return isinstance(fn, Spy)


def get_calls(spy: Spy) -> tuple[SpyCall, ...]:
    """Recorded calls, oldest first. The tuple is a snapshot."""
    return tuple(spy.calls)


def reset_calls(spy: Spy) -> None:
    spy.calls.clear()
