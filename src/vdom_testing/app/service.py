"""Mount lifecycle for a single component under test.

A :class:`TestingApp` owns at most one mounted root node. It creates the node
through the runtime, attaches it to a container, applies DOM stubs once and
tears everything down again on ``unmount()``.
"""

import logging
from collections.abc import Mapping
from typing import Any

from bs4 import Tag

from vdom_testing.app.config import CONTAINER_ATTRIBUTE, STUB_ATTRIBUTE, STUB_TAG
from vdom_testing.dom import Document, HTMLElement, query_selector_all
from vdom_testing.errors import AlreadyMountedError
from vdom_testing.runtime import NodeState, Runtime, VNode, get_default_runtime

logger = logging.getLogger(__name__)


def create_container(document: Document, attach_to: Tag | None = None) -> Tag:
    """Return *attach_to*, or a fresh marked ``<div>`` appended to the document body."""
    if attach_to is not None:
        return attach_to
    container = document.create_element("div", {CONTAINER_ATTRIBUTE: "true"})
    document.body.append(container)
    return container


class TestingApp:
    """Mount one component at a time and undo the mount on request."""

    __test__ = False

    def __init__(self, runtime: Runtime | None = None):
        self.runtime = runtime or get_default_runtime()
        self.node: VNode | None = None

    @property
    def is_mounted(self) -> bool:
        return self.node is not None and self.node.state is NodeState.ACTIVATED

    def mount(
        self,
        component: Any,
        props: Mapping[str, Any] | None = None,
        container: Tag | None = None,
        dom_stubs: Mapping[str, str] | None = None,
    ) -> VNode:
        """Create and mount the root node for *component*.

        Args:
            component: Component callable (or tag name) to render.
            props: Props for the root node.
            container: Element to mount under; a new body-level container when omitted.
            dom_stubs: Selector -> markup replacements applied once after mounting.

        Returns:
            The mounted root node.

        Raises:
            AlreadyMountedError: If a node from a previous ``mount()`` is still active.
        """
        if self.is_mounted:
            raise AlreadyMountedError()
        container = create_container(self.runtime.document, container)
        node = self.runtime.create_node(component, props)
        self.runtime.mount(node, container)
        self.node = node
        if dom_stubs:
            self._apply_dom_stubs(container, dom_stubs)
        return node

    def unmount(self) -> None:
        node, self.node = self.node, None
        if node is None or node.state in (NodeState.DEACTIVATED, NodeState.UNMOUNTED):
            return
        self.runtime.unmount(node)

    async def next_tick(self) -> None:
        await self.runtime.next_tick()

    def _apply_dom_stubs(self, container: Tag, dom_stubs: Mapping[str, str]) -> None:
        for selector, markup in dom_stubs.items():
            targets = query_selector_all(container, selector)
            replaced = 0
            for target in targets:
                # An earlier replacement may have taken this match out of the container.
                if not any(parent is container for parent in target.parents):
                    continue
                target.replace_with(self._build_stub(markup))
                replaced += 1
            logger.debug("Stubbed %d element(s) matching %r", replaced, selector)

    def _build_stub(self, markup: str) -> HTMLElement:
        document = self.runtime.document
        replacement = document.parse_fragment(markup).find(True)
        if replacement is not None:
            return replacement.extract()
        placeholder = document.create_element(STUB_TAG, {STUB_ATTRIBUTE: "true"})
        placeholder.append(document.create_text_node(markup))
        return placeholder

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.unmount()
        return False


def create_testing_app(runtime: Runtime | None = None) -> TestingApp:
    """Return a new, independent :class:`TestingApp`."""
    return TestingApp(runtime)
