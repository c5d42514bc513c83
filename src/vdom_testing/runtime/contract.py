"""The runtime surface the testing layer depends on.

``TestingApp`` and ``Wrapper`` only talk to a runtime through this protocol, so
any renderer that produces the node model in ``runtime.views`` can be driven.
"""

from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, runtime_checkable

from bs4 import Tag

from vdom_testing.dom import Document
from vdom_testing.runtime.views import VNode


@runtime_checkable
class Runtime(Protocol):
    document: Document

    def create_node(self, component: Any, props: Mapping[str, Any] | None = None) -> VNode: ...

    def mount(self, node: VNode, container: Tag) -> None: ...

    def unmount(self, node: VNode) -> None: ...

    def patch_props(self, old_node: VNode, new_node: VNode) -> None: ...

    def is_widget_node(self, node: VNode) -> bool: ...

    def is_container_node(self, node: VNode) -> bool: ...

    def is_non_element_node(self, node: VNode) -> bool: ...

    def next_tick(self) -> Awaitable[None]: ...
