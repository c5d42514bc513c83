"""Query and interaction lens over one mounted node."""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from bs4.element import PageElement

from vdom_testing.dom import HTMLElement
from vdom_testing.dom.config import HIDDEN_DISPLAY_VALUES, HIDDEN_VISIBILITY_VALUES
from vdom_testing.interaction import InteractionService
from vdom_testing.runtime import (
    NodeKind,
    NodeState,
    NonElementNode,
    Runtime,
    VNode,
    WidgetInstance,
    get_default_runtime,
)
from vdom_testing.wrapper.utils import is_attached, iter_matches, resolve

logger = logging.getLogger(__name__)


class Wrapper:
    """Stateless view of a mounted node.

    Reads go straight to the node and its DOM binding; writes go through the
    runtime. A wrapper never mounts anything and should not be used after its
    node has been unmounted.

    Example:
        >>> wrapper = mount(Counter)
        >>> await wrapper.find("button").trigger("click")
        >>> wrapper.find(".count").text()
        '1'
    """

    def __init__(self, node: VNode, runtime: Runtime | None = None):
        self._node = node
        self.runtime = runtime or get_default_runtime()
        self._interaction = InteractionService(self.runtime)

    def __repr__(self):
        return f"Wrapper({self._node.kind} {self._node.type!r}, state={self._node.state})"

    # -- accessors -------------------------------------------------------------

    @property
    def node(self) -> VNode:
        return self._node

    @property
    def props(self) -> Mapping[str, Any]:
        """Read-only snapshot of the node's props; use ``set_props`` to change them."""
        return MappingProxyType(dict(self._node.props))

    @property
    def element(self) -> PageElement | None:
        resolved = resolve(self._node)
        return resolved.el if resolved is not None else None

    def get_widget_instance(self) -> WidgetInstance | None:
        if self._node.kind is NodeKind.WIDGET:
            return self._node.instance
        return None

    def exists(self) -> bool:
        return is_attached(self._node)

    def is_visible(self) -> bool:
        """Whether the bound DOM would be rendered.

        An element is hidden when it is detached, when it or any ancestor
        resolves to ``display: none`` (inline style or ``hidden`` attribute),
        or when its inherited ``visibility`` is ``hidden``/``collapse``.
        Text and comment nodes are visible when attached; fragments when any
        child is visible.
        """
        resolved = resolve(self._node)
        if resolved is None:
            return False
        match resolved.kind:
            case NodeKind.CONTAINER:
                return any(self._child(child).is_visible() for child in self._live_children(resolved))
            case NodeKind.NON_ELEMENT:
                return is_attached(resolved)
        el = resolved.el
        if not is_attached(resolved):
            return False
        if not isinstance(el, HTMLElement):
            return True
        document = self.runtime.document
        for node in (el, *el.parents):
            if isinstance(node, HTMLElement) and document.get_computed_style(node).display in HIDDEN_DISPLAY_VALUES:
                return False
        return document.get_computed_style(el).visibility not in HIDDEN_VISIBILITY_VALUES

    # -- content ---------------------------------------------------------------

    def html(self) -> str:
        resolved = resolve(self._node)
        if resolved is None:
            return ""
        match resolved.kind:
            case NodeKind.CONTAINER:
                return "".join(self._child(child).html() for child in self._live_children(resolved))
            case NodeKind.NON_ELEMENT:
                return resolved.value
            case _:
                return str(resolved.el) if resolved.el is not None else ""

    def text(self) -> str:
        resolved = resolve(self._node)
        if resolved is None:
            return ""
        match resolved.kind:
            case NodeKind.CONTAINER:
                return "".join(self._child(child).text() for child in self._live_children(resolved))
            case NodeKind.NON_ELEMENT:
                return resolved.value
            case _:
                return resolved.el.get_text() if resolved.el is not None else ""

    # -- queries ---------------------------------------------------------------

    def find(self, selector: str) -> "Wrapper | None":
        """First node under this one whose element matches *selector*, or None."""
        for node in iter_matches(self._node, selector):
            return self._child(node)
        return None

    def find_all(self, selector: str) -> list["Wrapper"]:
        """Every node under this one whose element matches *selector*, in document order."""
        seen: set[int] = set()
        wrappers = []
        for node in iter_matches(self._node, selector):
            if id(node.el) in seen:
                continue
            seen.add(id(node.el))
            wrappers.append(self._child(node))
        return wrappers

    # -- mutation and interaction ------------------------------------------------

    def set_props(self, props: Mapping[str, Any]) -> None:
        """Merge *props* into the node's props and patch the node in place.

        Re-renders are scheduled, not awaited: call ``await next_tick()``
        before asserting on the DOM.
        """
        merged = {**self._node.props, **props}
        replacement = self.runtime.create_node(self._node.type, merged)
        logger.debug("Patching props %s on %s node", sorted(props), self._node.kind)
        self.runtime.patch_props(self._node, replacement)

    async def trigger(self, event_name: str, payload: Any = None) -> None:
        await self._interaction.trigger(self.element, event_name, payload)

    async def set_value(self, value: Any) -> None:
        """Set a form control's value as a user would, or overwrite a text node's payload.

        Text and comment nodes are rewritten directly and no events fire.
        """
        resolved = resolve(self._node)
        if resolved is not None and resolved.kind is NodeKind.NON_ELEMENT:
            replacement = NonElementNode(
                resolved.type, dict(resolved.props), value="" if value is None else str(value)
            )
            self.runtime.patch_props(resolved, replacement)
            return
        await self._interaction.set_dom_value(self.element, value)

    def unmount(self) -> None:
        self.runtime.unmount(self._node)

    # -- helpers ---------------------------------------------------------------

    def _child(self, node: VNode) -> "Wrapper":
        return Wrapper(node, self.runtime)

    @staticmethod
    def _live_children(node: VNode) -> list[VNode]:
        return [child for child in node.children if child.state is not NodeState.UNMOUNTED]
