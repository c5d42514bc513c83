from collections.abc import Mapping
from typing import Any

from bs4 import Tag

from vdom_testing.app import create_testing_app
from vdom_testing.runtime import Runtime, get_default_runtime
from vdom_testing.wrapper import Wrapper


def mount(
    component: Any,
    props: Mapping[str, Any] | None = None,
    *,
    attach_to: Tag | None = None,
    dom_stubs: Mapping[str, str] | None = None,
    runtime: Runtime | None = None,
) -> Wrapper:
    """Mount *component* into a fresh container and return a wrapper on its root node.

    Args:
        component: Component callable (or tag name) to render.
        props: Props for the root node.
        attach_to: Existing element to mount into instead of a new body-level ``<div>``.
        dom_stubs: Selector -> markup replacements applied once after mounting.
        runtime: Runtime to render with; the shared default runtime when omitted.

    Returns:
        Wrapper: Lens over the mounted root node. Tear down with ``wrapper.unmount()``.
    """
    runtime = runtime or get_default_runtime()
    app = create_testing_app(runtime)
    node = app.mount(component, props or {}, attach_to, dom_stubs)
    return Wrapper(node, runtime)
