"""Virtual node model.

Nodes form a tagged union discriminated by ``kind``:

- ``WidgetNode``     a component instance, no DOM of its own, one rendered ``child``
- ``ContainerNode``  a fragment, ``children`` rendered as siblings
- ``ElementNode``    a concrete tag bound to one element
- ``NonElementNode`` a text or comment leaf carrying a string ``value``
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from vdom_testing.runtime.reactive import Ref

if TYPE_CHECKING:
    from bs4 import BeautifulSoup
    from bs4.element import PageElement

    from vdom_testing.runtime.reactive import Effect, ReactiveProps

FRAGMENT = "#fragment"
TEXT = "#text"
COMMENT = "#comment"


class NodeKind(Enum):
    WIDGET = "widget"
    CONTAINER = "container"
    ELEMENT = "element"
    NON_ELEMENT = "non-element"

    def __str__(self):
        return self.value


class NodeState(Enum):
    CREATED = "created"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    UNMOUNTED = "unmounted"

    def __str__(self):
        return self.value


@dataclass(eq=False)
class WidgetInstance:
    component: Callable[..., Any]
    props: ReactiveProps
    render: Callable[[], Any] | None = None
    effect: Effect | None = None
    exposed: dict[str, Any] = field(default_factory=dict)
    mounted_hooks: list[Callable[[], Any]] = field(default_factory=list)
    unmounted_hooks: list[Callable[[], Any]] = field(default_factory=list)
    is_setup: bool = False
    is_mounted: bool = False

    @property
    def name(self) -> str:
        return getattr(self.component, "__name__", type(self.component).__name__)


@dataclass(eq=False)
class VNode:
    type: Any
    props: dict[str, Any] = field(default_factory=dict)
    state: NodeState = NodeState.CREATED

    kind: ClassVar[NodeKind]

    @property
    def is_active(self) -> bool:
        return self.state is NodeState.ACTIVATED


@dataclass(eq=False)
class WidgetNode(VNode):
    kind: ClassVar[NodeKind] = NodeKind.WIDGET

    child: VNode | None = None
    instance: WidgetInstance | None = None
    depth: int = 0

    @property
    def el(self) -> PageElement | None:
        """Binding of the resolved leaf; a widget has no element of its own."""
        return self.child.el if self.child is not None else None


@dataclass(eq=False)
class ContainerNode(VNode):
    kind: ClassVar[NodeKind] = NodeKind.CONTAINER

    children: list[VNode] = field(default_factory=list)
    # Transient fragment; empty once its children are inserted into a parent.
    el: BeautifulSoup | None = None
    # Placeholder text node that keeps an empty fragment's position in the DOM.
    anchor: PageElement | None = None


@dataclass(eq=False)
class ElementNode(VNode):
    kind: ClassVar[NodeKind] = NodeKind.ELEMENT

    children: list[VNode] = field(default_factory=list)
    el: PageElement | None = None
    invokers: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class NonElementNode(VNode):
    kind: ClassVar[NodeKind] = NodeKind.NON_ELEMENT

    value: str = ""
    el: PageElement | None = None


def normalize_children(children: Any) -> list[VNode]:
    """Flatten nested child lists, turning scalars into text leaves.

    ``None`` and booleans are skipped so ``cond and h(...)`` works inline.
    """
    nodes: list[VNode] = []
    for child in children:
        match child:
            case None | bool():
                continue
            case VNode():
                nodes.append(child)
            case list() | tuple():
                nodes.extend(normalize_children(child))
            case Ref():
                nodes.append(text(child.value))
            case _:
                nodes.append(text(child))
    return nodes


def h(type: Any, props: dict[str, Any] | None = None, *children: Any) -> VNode:
    """Create a node description.

    Args:
        type: A tag name, ``FRAGMENT`` or a component callable.
        props: Attributes, ``on_<event>`` listeners, or component props.
        *children: Child nodes, strings, numbers or nested lists of them.
            For components they are passed as ``props["children"]``.
    """
    props = dict(props or {})
    nodes = normalize_children(children)
    if type == FRAGMENT:
        return ContainerNode(FRAGMENT, props, children=nodes)
    if isinstance(type, str):
        return ElementNode(type.lower(), props, children=nodes)
    if callable(type):
        if nodes:
            props["children"] = nodes
        return WidgetNode(type, props)
    raise TypeError(f"Unsupported node type: {type!r}")


def fragment(*children: Any) -> ContainerNode:
    return ContainerNode(FRAGMENT, {}, children=normalize_children(children))


def text(value: Any) -> NonElementNode:
    return NonElementNode(TEXT, value=str(value))


def comment(value: str = "") -> NonElementNode:
    return NonElementNode(COMMENT, value=value)


def clone_node(node: VNode) -> VNode:
    """Fresh, unmounted copy of a node description."""
    match node.kind:
        case NodeKind.WIDGET:
            return WidgetNode(node.type, dict(node.props))
        case NodeKind.CONTAINER:
            return ContainerNode(node.type, dict(node.props), children=[clone_node(c) for c in node.children])
        case NodeKind.ELEMENT:
            return ElementNode(node.type, dict(node.props), children=[clone_node(c) for c in node.children])
        case _:
            return NonElementNode(node.type, dict(node.props), value=node.value)


def to_vnode(result: Any) -> VNode:
    """Coerce a render result into a single node."""
    match result:
        case VNode():
            return result
        case None | bool():
            return comment()
        case list() | tuple():
            return fragment(*result)
        case _:
            return text(result)
