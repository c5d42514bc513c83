import logging
from collections.abc import Iterator

from vdom_testing.dom import is_element, iter_selector, matches
from vdom_testing.runtime import NodeKind, NodeState, VNode

logger = logging.getLogger(__name__)


def resolve(node: VNode | None) -> VNode | None:
    """Follow widget children down to the first container, element or non-element node."""
    while node is not None and node.kind is NodeKind.WIDGET:
        node = node.child
    return node


def iter_bound_nodes(node: VNode | None) -> Iterator[VNode]:
    """Element and non-element nodes of a subtree in document order, widgets unwrapped."""
    node = resolve(node)
    if node is None:
        return
    match node.kind:
        case NodeKind.CONTAINER:
            for child in node.children:
                yield from iter_bound_nodes(child)
        case NodeKind.ELEMENT:
            yield node
            for child in node.children:
                yield from iter_bound_nodes(child)
        case NodeKind.NON_ELEMENT:
            yield node


def owner_map(node: VNode | None) -> dict[int, VNode]:
    """Map ``id(dom_node)`` to the vnode bound to it, for every node in the subtree."""
    owners: dict[int, VNode] = {}
    for bound in iter_bound_nodes(node):
        if bound.el is not None:
            owners.setdefault(id(bound.el), bound)
    return owners


def is_attached(node: VNode | None) -> bool:
    """Whether the node is live and its DOM currently hangs off a parent.

    Tearing down a subtree only detaches its top-level DOM nodes, so inner
    nodes of an unmounted tree are recognised by their state. A container's
    fragment is only a hint, so a container is attached when any child is
    (or, with no children, when its placeholder is).
    """
    node = resolve(node)
    if node is None or node.state is not NodeState.ACTIVATED:
        return False
    if node.kind is NodeKind.CONTAINER:
        if node.children:
            return any(is_attached(child) for child in node.children)
        return node.anchor is not None and node.anchor.parent is not None
    return node.el is not None and node.el.parent is not None


def iter_matches(node: VNode, selector: str) -> Iterator[VNode]:
    """Yield the vnodes bound to elements matching *selector*, in document order.

    Results may repeat; callers deduplicate by element identity.
    """
    resolved = resolve(node)
    if resolved is None:
        return

    if resolved.kind is NodeKind.CONTAINER:
        for child in resolved.children:
            leaf = resolve(child)
            if leaf is not None and matches(leaf.el, selector):
                yield leaf
            yield from iter_matches(child, selector)
        return

    if not is_element(resolved.el):
        return

    owners = owner_map(resolved)
    found = False
    for element in iter_selector(resolved.el, selector):
        owner = owners.get(id(element))
        if owner is None:
            logger.warning("Element <%s> matching %r has no owning node; skipped", element.name, selector)
            continue
        found = True
        yield owner

    # A component's own root is not a descendant of itself.
    if not found and node.kind is NodeKind.WIDGET and matches(resolved.el, selector):
        yield resolved
