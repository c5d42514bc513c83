"""Minimal dependency tracking for the bundled runtime.

A render function runs inside an :class:`Effect`; every :class:`Ref` or
:class:`ReactiveProps` read during that run subscribes the effect, and every
write calls the subscribed effects' schedulers. The runtime's scheduler is the
only scheduler used in practice, so writes never re-render synchronously.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from vdom_testing.runtime.views import WidgetInstance

T = TypeVar("T")

_effect_stack: list[Effect] = []
_instance_stack: list[WidgetInstance] = []


class Effect:
    def __init__(self, fn: Callable[[], Any], scheduler: Callable[[], None]):
        self.fn = fn
        self.scheduler = scheduler
        self.deps: list[set[Effect]] = []
        self.active = True

    def run(self) -> Any:
        self.cleanup()
        _effect_stack.append(self)
        try:
            return self.fn()
        finally:
            _effect_stack.pop()

    def cleanup(self) -> None:
        for dep in self.deps:
            dep.discard(self)
        self.deps.clear()

    def stop(self) -> None:
        self.cleanup()
        self.active = False


def track(subscribers: set[Effect]) -> None:
    if not _effect_stack:
        return
    effect = _effect_stack[-1]
    if effect not in subscribers:
        subscribers.add(effect)
        effect.deps.append(subscribers)


def trigger(subscribers: set[Effect]) -> None:
    for effect in list(subscribers):
        if effect.active:
            effect.scheduler()


class Ref(Generic[T]):
    """A reactive cell. Read and write through ``.value``."""

    def __init__(self, value: T):
        self._value = value
        self._subscribers: set[Effect] = set()

    @property
    def value(self) -> T:
        track(self._subscribers)
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        if value is self._value or value == self._value:
            return
        self._value = value
        trigger(self._subscribers)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __repr__(self):
        return f"Ref({self._value!r})"


def ref(value: T = None) -> Ref[T]:
    return Ref(value)


class ReactiveProps(Mapping[str, Any]):
    """Read-only, tracked view of a component's props.

    The runtime swaps the underlying mapping with :meth:`replace` when a parent
    patches props; components only read.
    """

    def __init__(self, props: Mapping[str, Any] | None = None):
        self._props = dict(props or {})
        self._subscribers: set[Effect] = set()

    def __getitem__(self, key: str) -> Any:
        track(self._subscribers)
        return self._props[key]

    def __iter__(self) -> Iterator[str]:
        track(self._subscribers)
        return iter(self._props)

    def __len__(self) -> int:
        track(self._subscribers)
        return len(self._props)

    def replace(self, props: Mapping[str, Any]) -> None:
        props = dict(props)
        if props == self._props:
            return
        self._props = props
        trigger(self._subscribers)

    def __repr__(self):
        return f"ReactiveProps({self._props!r})"


@contextmanager
def setup_instance(instance: WidgetInstance):
    """Make *instance* the target of setup hooks for the duration of the block."""
    _instance_stack.append(instance)
    try:
        yield instance
    finally:
        _instance_stack.pop()


def current_instance() -> WidgetInstance:
    if not _instance_stack:
        raise RuntimeError("Lifecycle hooks can only be registered during component setup")
    return _instance_stack[-1]


def on_mounted(hook: Callable[[], Any]) -> None:
    current_instance().mounted_hooks.append(hook)


def on_unmounted(hook: Callable[[], Any]) -> None:
    current_instance().unmounted_hooks.append(hook)


def expose(**values: Any) -> None:
    """Publish setup-time values on the component instance for tests to reach."""
    current_instance().exposed.update(values)
