from vdom_testing.runtime.contract import Runtime
from vdom_testing.runtime.reactive import (
    Ref,
    ReactiveProps,
    expose,
    on_mounted,
    on_unmounted,
    ref,
)
from vdom_testing.runtime.scheduler import RecursiveUpdateError, Scheduler
from vdom_testing.runtime.service import ReactiveRuntime
from vdom_testing.runtime.views import (
    COMMENT,
    FRAGMENT,
    TEXT,
    ContainerNode,
    ElementNode,
    NodeKind,
    NodeState,
    NonElementNode,
    VNode,
    WidgetInstance,
    WidgetNode,
    clone_node,
    comment,
    fragment,
    h,
    text,
)

_default_runtime: ReactiveRuntime | None = None


def get_default_runtime() -> ReactiveRuntime:
    """Shared runtime for callers that do not supply their own."""
    global _default_runtime
    if _default_runtime is None:
        _default_runtime = ReactiveRuntime()
    return _default_runtime


__all__ = [
    "COMMENT",
    "FRAGMENT",
    "TEXT",
    "ContainerNode",
    "ElementNode",
    "NodeKind",
    "NodeState",
    "NonElementNode",
    "ReactiveProps",
    "ReactiveRuntime",
    "RecursiveUpdateError",
    "Ref",
    "Runtime",
    "Scheduler",
    "VNode",
    "WidgetInstance",
    "WidgetNode",
    "clone_node",
    "comment",
    "expose",
    "fragment",
    "get_default_runtime",
    "h",
    "on_mounted",
    "on_unmounted",
    "ref",
    "text",
]
