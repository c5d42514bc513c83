"""Bundled reactive runtime.

Renders the node model into a :class:`~vdom_testing.dom.Document`, keeps
widgets subscribed to the state they read and re-renders them through the
:class:`Scheduler`. Re-rendering patches a widget's subtree in place,
matching children by position; there is no keyed diffing.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from bs4 import Tag
from bs4.element import PageElement

from vdom_testing.dom import Document, HTMLElement, detach, insert_before, serialize_style
from vdom_testing.dom.config import FORM_CONTROL_TAGS
from vdom_testing.dom.views import Event
from vdom_testing.runtime.config import EVENT_PROP_PREFIX, PROP_ALIASES, RESERVED_PROPS
from vdom_testing.runtime.reactive import Effect, ReactiveProps, setup_instance
from vdom_testing.runtime.scheduler import Scheduler
from vdom_testing.runtime.views import (
    COMMENT,
    ContainerNode,
    ElementNode,
    NodeKind,
    NodeState,
    NonElementNode,
    VNode,
    WidgetInstance,
    WidgetNode,
    clone_node,
    h,
    to_vnode,
)

logger = logging.getLogger(__name__)


def _accepts_event(handler: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        return True
    for param in signature.parameters.values():
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


class EventInvoker:
    """Stable listener registered once per event type; patching swaps ``handler``.

    Handlers may take the event or no arguments at all.
    """

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler

    def __call__(self, event: Event) -> Any:
        if _accepts_event(self.handler):
            return self.handler(event)
        return self.handler()


def _event_type(prop: str) -> str:
    return prop[len(EVENT_PROP_PREFIX) :].replace("_", "").lower()


def _class_value(value: Any) -> str:
    match value:
        case str():
            return value.strip()
        case Mapping():
            return " ".join(name for name, enabled in value.items() if enabled)
        case list() | tuple() | set():
            return " ".join(str(name) for name in value if name)
        case _:
            return str(value)


class ReactiveRuntime:
    def __init__(self, document: Document | None = None):
        self.document = document or Document()
        self.scheduler = Scheduler(self._update_widget)

    # -- contract ---------------------------------------------------------------

    def create_node(self, component: Any, props: Mapping[str, Any] | None = None) -> VNode:
        return h(component, dict(props or {}))

    def is_widget_node(self, node: VNode) -> bool:
        return node.kind is NodeKind.WIDGET

    def is_container_node(self, node: VNode) -> bool:
        return node.kind is NodeKind.CONTAINER

    def is_non_element_node(self, node: VNode) -> bool:
        return node.kind is NodeKind.NON_ELEMENT

    async def next_tick(self) -> None:
        await self.scheduler.next_tick()

    def mount(self, node: VNode, container: Tag) -> None:
        if node.state is not NodeState.CREATED:
            raise ValueError(f"Cannot mount a node in state {node.state}")
        mounted: list[WidgetInstance] = []
        self._mount(node, container, None, 0, mounted)
        self._run_mounted_hooks(mounted)
        logger.debug("Mounted %s node %r", node.kind, node.type)

    def unmount(self, node: VNode) -> None:
        if node.state in (NodeState.UNMOUNTED, NodeState.CREATED):
            return
        self._remove(node)
        logger.debug("Unmounted %s node %r", node.kind, node.type)

    def patch_props(self, old_node: VNode, new_node: VNode) -> None:
        if old_node.kind is not new_node.kind or old_node.type != new_node.type:
            raise ValueError(
                f"Cannot patch {old_node.kind} {old_node.type!r} from {new_node.kind} {new_node.type!r}"
            )
        match old_node.kind:
            case NodeKind.WIDGET:
                old_node.props = dict(new_node.props)
                if old_node.instance is not None:
                    # Queues a re-render through the widget's effect.
                    old_node.instance.props.replace(old_node.props)
            case NodeKind.ELEMENT:
                if old_node.el is not None:
                    self._patch_element(old_node, old_node.props, new_node.props)
                old_node.props = dict(new_node.props)
            case NodeKind.NON_ELEMENT:
                old_node.props = dict(new_node.props)
                if new_node.value != old_node.value:
                    self._replace_text(old_node, new_node.value)
            case NodeKind.CONTAINER:
                old_node.props = dict(new_node.props)

    # -- helpers ----------------------------------------------------------------

    def dom_nodes(self, node: VNode) -> list[PageElement]:
        """Top-level DOM nodes a vnode currently occupies, in document order."""
        match node.kind:
            case NodeKind.WIDGET:
                return self.dom_nodes(node.child) if node.child is not None else []
            case NodeKind.CONTAINER:
                if node.children:
                    return [dom for child in node.children for dom in self.dom_nodes(child)]
                return [node.anchor] if node.anchor is not None else []
            case _:
                return [node.el] if node.el is not None else []

    def _mount(
        self,
        node: VNode,
        parent: Tag,
        anchor: PageElement | None,
        depth: int,
        mounted: list[WidgetInstance],
    ) -> None:
        match node.kind:
            case NodeKind.WIDGET:
                self._mount_widget(node, parent, anchor, depth, mounted)
            case NodeKind.CONTAINER:
                fragment = self.document.create_fragment()
                node.children = self._mount_children(node.children, fragment, None, depth + 1, mounted)
                if not node.children:
                    node.anchor = self.document.create_text_node("")
                    fragment.append(node.anchor)
                node.el = fragment
                insert_before(parent, fragment, anchor)
            case NodeKind.ELEMENT:
                el = self.document.create_element(node.type)
                node.el = el
                node.children = self._mount_children(node.children, el, None, depth + 1, mounted)
                # Children first so a <select> value can pick among its options.
                self._patch_element(node, {}, node.props)
                insert_before(parent, el, anchor)
            case NodeKind.NON_ELEMENT:
                if node.type == COMMENT:
                    node.el = self.document.create_comment(node.value)
                else:
                    node.el = self.document.create_text_node(node.value)
                insert_before(parent, node.el, anchor)
        node.state = NodeState.ACTIVATED

    def _mount_children(
        self,
        children: list[VNode],
        parent: Tag,
        anchor: PageElement | None,
        depth: int,
        mounted: list[WidgetInstance],
    ) -> list[VNode]:
        live = []
        for child in children:
            child = self._fresh(child)
            self._mount(child, parent, anchor, depth, mounted)
            live.append(child)
        return live

    @staticmethod
    def _fresh(node: VNode) -> VNode:
        """*node* itself if it was never mounted, else a copy that can be bound anew.

        Slot children handed down through props, or one node rendered twice,
        must not be re-bound while their first binding is live.
        """
        return node if node.state is NodeState.CREATED else clone_node(node)

    def _mount_widget(
        self,
        node: WidgetNode,
        parent: Tag,
        anchor: PageElement | None,
        depth: int,
        mounted: list[WidgetInstance],
    ) -> None:
        instance = WidgetInstance(component=node.type, props=ReactiveProps(node.props))
        node.instance = instance
        node.depth = depth
        instance.effect = Effect(lambda: self._render(node), lambda: self.scheduler.queue(node))
        node.child = self._fresh(instance.effect.run())
        self._mount(node.child, parent, anchor, depth + 1, mounted)
        mounted.append(instance)

    def _render(self, node: WidgetNode) -> VNode:
        """Produce the widget's next child.

        A component is called once for setup. If it returns a callable, that
        callable is its render function; otherwise the component itself is
        called again on every re-render (setup hooks are only available on
        the first call).
        """
        instance = node.instance
        if instance.render is not None:
            return to_vnode(instance.render())
        if instance.is_setup:
            return to_vnode(node.type(instance.props))
        instance.is_setup = True
        with setup_instance(instance):
            result = node.type(instance.props)
        if callable(result) and not isinstance(result, VNode):
            instance.render = result
            result = result()
        return to_vnode(result)

    def _run_mounted_hooks(self, instances: list[WidgetInstance]) -> None:
        for instance in instances:
            instance.is_mounted = True
            for hook in instance.mounted_hooks:
                hook()

    def _update_widget(self, node: WidgetNode) -> None:
        if node.state is not NodeState.ACTIVATED or node.instance is None:
            return
        new_child = node.instance.effect.run()
        mounted: list[WidgetInstance] = []
        node.child = self._patch(node.child, new_child, node.depth + 1, mounted)
        self._run_mounted_hooks(mounted)
        logger.debug("Re-rendered widget %s", node.instance.name)

    # -- reconciliation ---------------------------------------------------------

    def _patch(self, old: VNode, new: VNode, depth: int, mounted: list[WidgetInstance]) -> VNode:
        """Bring the live node *old* in line with the description *new*.

        Nodes of the same kind and type keep their DOM binding, listeners and
        component instance; anything else is replaced. Returns the live node.
        """
        if old is new:
            return old
        if old.kind is not new.kind or old.type != new.type:
            return self._replace(old, new, depth, mounted)
        match old.kind:
            case NodeKind.WIDGET:
                old.props = dict(new.props)
                if old.instance is not None:
                    old.instance.props.replace(old.props)
            case NodeKind.ELEMENT:
                old_props = old.props
                old.children = self._patch_children(old.children, new.children, old.el, None, depth + 1, mounted)
                self._patch_element(old, old_props, new.props)
                old.props = dict(new.props)
            case NodeKind.NON_ELEMENT:
                old.props = dict(new.props)
                if new.value != old.value:
                    self._replace_text(old, new.value)
            case NodeKind.CONTAINER:
                self._patch_container(old, new, depth, mounted)
        return old

    def _patch_container(
        self, old: ContainerNode, new: ContainerNode, depth: int, mounted: list[WidgetInstance]
    ) -> None:
        dom = self.dom_nodes(old)
        parent = dom[0].parent if dom else None
        if parent is None:
            parent, after = self.document.create_fragment(), None
        else:
            after = dom[-1].next_sibling
        old.props = dict(new.props)
        old.children = self._patch_children(old.children, new.children, parent, after, depth + 1, mounted)
        if old.children and old.anchor is not None:
            detach(old.anchor)
            old.anchor = None
        elif not old.children and old.anchor is None:
            old.anchor = self.document.create_text_node("")
            insert_before(parent, old.anchor, after)

    def _patch_children(
        self,
        old_children: list[VNode],
        new_children: list[VNode],
        parent: Tag,
        after: PageElement | None,
        depth: int,
        mounted: list[WidgetInstance],
    ) -> list[VNode]:
        """Patch children pairwise by position, then mount or remove the surplus.

        New children are inserted before *after*, or appended when it is None.
        """
        children = [
            self._patch(old_child, new_child, depth, mounted)
            for old_child, new_child in zip(old_children, new_children)
        ]
        children += self._mount_children(new_children[len(old_children) :], parent, after, depth, mounted)
        for old_child in old_children[len(new_children) :]:
            self._remove(old_child)
        return children

    def _replace(self, old: VNode, new: VNode, depth: int, mounted: list[WidgetInstance]) -> VNode:
        new = self._fresh(new)
        dom = self.dom_nodes(old)
        parent = dom[0].parent if dom else None
        if parent is None:
            logger.warning(
                "Replacing %s node %r while detached from the document; output is not attached",
                old.kind,
                old.type,
            )
            parent, after = self.document.create_fragment(), None
        else:
            after = dom[-1].next_sibling
        self._remove(old)
        self._mount(new, parent, after, depth, mounted)
        return new

    def _remove(self, node: VNode) -> None:
        dom_nodes = self.dom_nodes(node)
        self._teardown(node)
        for dom_node in dom_nodes:
            detach(dom_node)

    def _teardown(self, node: VNode) -> None:
        if node.state is NodeState.UNMOUNTED:
            return
        node.state = NodeState.DEACTIVATED
        match node.kind:
            case NodeKind.WIDGET:
                instance = node.instance
                if instance is not None and instance.effect is not None:
                    instance.effect.stop()
                if node.child is not None:
                    self._teardown(node.child)
                if instance is not None:
                    instance.is_mounted = False
                    for hook in instance.unmounted_hooks:
                        hook()
            case NodeKind.CONTAINER:
                for child in node.children:
                    self._teardown(child)
            case NodeKind.ELEMENT:
                for child in node.children:
                    self._teardown(child)
                if isinstance(node.el, HTMLElement):
                    node.el.remove_all_event_listeners()
                node.invokers.clear()
        node.state = NodeState.UNMOUNTED

    def _replace_text(self, node: NonElementNode, value: str) -> None:
        node.value = value
        old = node.el
        if node.type == COMMENT:
            node.el = self.document.create_comment(value)
        else:
            node.el = self.document.create_text_node(value)
        if old is not None and old.parent is not None:
            old.replace_with(node.el)

    # -- element props ----------------------------------------------------------

    def _patch_element(
        self, node: ElementNode, old_props: Mapping[str, Any], new_props: Mapping[str, Any]
    ) -> None:
        el = node.el
        for key, old_value in old_props.items():
            if key not in new_props:
                self._set_prop(node, el, key, old_value, None)
        for key, value in new_props.items():
            if key in old_props and old_props[key] is value:
                continue
            self._set_prop(node, el, key, old_props.get(key), value)

    def _set_prop(self, node: ElementNode, el: HTMLElement, key: str, old: Any, value: Any) -> None:
        if key in RESERVED_PROPS:
            return
        key = PROP_ALIASES.get(key, key)

        if key.startswith(EVENT_PROP_PREFIX):
            event_type = _event_type(key)
            invoker = node.invokers.get(event_type)
            if value is None:
                if invoker is not None:
                    el.remove_event_listener(event_type, invoker)
                    del node.invokers[event_type]
            elif invoker is not None:
                invoker.handler = value
            else:
                invoker = EventInvoker(value)
                node.invokers[event_type] = invoker
                el.add_event_listener(event_type, invoker)
            return

        match key:
            case "class":
                value = _class_value(value) if value is not None else None
            case "style":
                if isinstance(value, Mapping):
                    value = serialize_style(dict(value))
            case "value" if el.name in FORM_CONTROL_TAGS:
                el.value = "" if value is None else str(value)
                return
            case "checked" | "selected":
                setattr(el, key, bool(value))
                return

        if value is None or value is False or (value == "" and key in ("class", "style")):
            if el.has_attr(key):
                del el[key]
        elif value is True:
            el[key] = ""
        else:
            el[key] = str(value)
