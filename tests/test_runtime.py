"""Tests for the bundled runtime: node construction, mounting, patching,
re-rendering and the update scheduler.

Synchronous tests run without an event loop, so state writes flush
immediately; async tests exercise the deferred flush and ``next_tick``.
"""

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from tests.components import Counter, Empty, Greeting, Layout, Lifecycle, Parent, Pair
from vdom_testing.dom import Event
from vdom_testing.runtime import (
    ContainerNode,
    ElementNode,
    NodeKind,
    NodeState,
    NonElementNode,
    ReactiveRuntime,
    RecursiveUpdateError,
    Runtime,
    Scheduler,
    WidgetNode,
    fragment,
    h,
    on_mounted,
    ref,
    text,
)
from vdom_testing.runtime.service import EventInvoker, _event_type


def _mount(runtime, node):
    container = runtime.document.create_element("div")
    runtime.document.body.append(container)
    runtime.mount(node, container)
    return container


# ===========================================================================
# Node construction
# ===========================================================================


class TestNodeConstruction:
    def test_h_element(self):
        node = h("DIV", {"id": "a"}, "text", 3)
        assert isinstance(node, ElementNode)
        assert node.kind is NodeKind.ELEMENT
        assert node.type == "div"
        assert [c.value for c in node.children] == ["text", "3"]

    def test_h_skips_none_and_bools_and_flattens(self):
        node = h("ul", None, [h("li"), [h("li"), None]], False, True)
        assert [c.type for c in node.children] == ["li", "li"]

    def test_h_widget_receives_children_prop(self):
        node = h(Greeting, {"name": "x"}, h("b"))
        assert isinstance(node, WidgetNode)
        assert node.props["name"] == "x"
        assert node.props["children"][0].type == "b"

    def test_fragment(self):
        node = fragment("a", h("b"))
        assert isinstance(node, ContainerNode)
        assert node.kind is NodeKind.CONTAINER
        assert len(node.children) == 2

    def test_ref_child_becomes_text(self):
        node = h("span", None, ref(7))
        assert node.children[0].value == "7"

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            h(42)

    def test_new_nodes_are_created(self):
        assert h("p").state is NodeState.CREATED
        assert str(NodeState.ACTIVATED) == "activated"
        assert str(NodeKind.NON_ELEMENT) == "non-element"


class TestContract:
    def test_runtime_satisfies_protocol(self, runtime):
        assert isinstance(runtime, Runtime)

    def test_discriminators(self, runtime):
        assert runtime.is_widget_node(h(Greeting))
        assert runtime.is_container_node(fragment())
        assert runtime.is_non_element_node(text("x"))
        assert not runtime.is_widget_node(h("p"))

    def test_create_node_copies_props(self, runtime):
        props = {"name": "a"}
        node = runtime.create_node(Greeting, props)
        node.props["name"] = "b"
        assert props == {"name": "a"}


# ===========================================================================
# Mounting
# ===========================================================================


class TestMount:
    def test_mount_element_tree(self, runtime):
        node = h("div", {"class": "box", "id": "main"}, h("span", None, "hi"))
        container = _mount(runtime, node)
        assert str(container) == '<div><div class="box" id="main"><span>hi</span></div></div>'
        assert node.state is NodeState.ACTIVATED
        assert node.el.parent is container

    def test_mount_widget_binds_leaf_element(self, runtime):
        node = h(Greeting, {"name": "Ada"})
        container = _mount(runtime, node)
        assert container.get_text() == "Hello Ada"
        assert node.el is node.child.el
        assert node.instance.name == "Greeting"

    def test_mount_fragment_inserts_children(self, runtime):
        node = h(Pair)
        container = _mount(runtime, node)
        assert [c.name for c in container.contents] == ["span", "span"]
        assert node.child.el.contents == []

    def test_empty_fragment_keeps_anchor(self, runtime):
        node = fragment()
        container = _mount(runtime, node)
        assert node.anchor is not None
        assert node.anchor.parent is container

    def test_none_render_is_comment(self, runtime):
        node = h(Empty)
        _mount(runtime, node)
        assert isinstance(node.child, NonElementNode)
        assert node.child.type == "#comment"

    def test_mount_twice_rejected(self, runtime):
        node = h("p")
        _mount(runtime, node)
        with pytest.raises(ValueError):
            _mount(runtime, node)

    def test_mounted_hooks_run_children_first(self, runtime):
        order = []

        def Inner(props):
            on_mounted(lambda: order.append("inner"))
            return h("i")

        def Outer(props):
            on_mounted(lambda: order.append("outer"))
            return h("div", None, h(Inner))

        _mount(runtime, h(Outer))
        assert order == ["inner", "outer"]


# ===========================================================================
# Element props
# ===========================================================================


class TestElementProps:
    def test_class_forms(self, runtime):
        node = h(
            "div",
            None,
            h("p", {"class": ["a", None, "b"]}),
            h("p", {"class": {"on": True, "off": False}}),
            h("p", {"class_": "alias"}),
        )
        _mount(runtime, node)
        assert [p["class"] for p in node.el.find_all("p")] == ["a b", "on", "alias"]

    def test_style_mapping(self, runtime):
        node = h("p", {"style": {"display": "none", "color": None}})
        _mount(runtime, node)
        assert node.el["style"] == "display: none"

    def test_boolean_attributes(self, runtime):
        node = h("button", {"disabled": True, "hidden": False, "title": None})
        _mount(runtime, node)
        assert node.el["disabled"] == ""
        assert not node.el.has_attr("hidden")
        assert not node.el.has_attr("title")

    def test_reserved_props_not_rendered(self, runtime):
        node = h("p", {"key": 1, "ref": "x"})
        _mount(runtime, node)
        assert node.el.attrs == {}

    def test_value_sets_property(self, runtime):
        node = h("input", {"value": 5})
        _mount(runtime, node)
        assert node.el.value == "5"
        assert not node.el.has_attr("value")

    def test_select_value_picks_option(self, runtime):
        node = h("select", {"value": "b"}, h("option", {"value": "a"}), h("option", {"value": "b"}))
        _mount(runtime, node)
        assert node.el.value == "b"

    def test_event_prop_registers_listener(self, runtime):
        handler = MagicMock()
        node = h("button", {"on_mouse_down": handler})
        _mount(runtime, node)
        assert node.el.has_event_listener("mousedown")
        assert not node.el.has_attr("on_mouse_down")

    def test_patch_swaps_handler_without_reregistering(self, runtime):
        first, second = MagicMock(), MagicMock()
        node = h("button", {"on_click": first})
        _mount(runtime, node)
        invoker = node.invokers["click"]
        runtime.patch_props(node, h("button", {"on_click": second}))
        assert node.invokers["click"] is invoker
        assert invoker.handler is second

    def test_patch_removes_dropped_props(self, runtime):
        node = h("a", {"href": "/x", "on_click": MagicMock()})
        _mount(runtime, node)
        runtime.patch_props(node, h("a", {"title": "t"}))
        assert node.el.attrs == {"title": "t"}
        assert not node.el.has_event_listener("click")
        assert node.props == {"title": "t"}

    def test_patch_kind_mismatch(self, runtime):
        node = h("a")
        _mount(runtime, node)
        with pytest.raises(ValueError):
            runtime.patch_props(node, h("b"))

    def test_patch_text(self, runtime):
        node = h("p", None, "old")
        _mount(runtime, node)
        runtime.patch_props(node.children[0], text("new"))
        assert node.el.get_text() == "new"


class TestEventInvoker:
    def test_passes_event_when_accepted(self):
        handler = MagicMock()
        EventInvoker(handler)("evt")
        handler.assert_called_once_with("evt")

    def test_zero_arg_handler(self):
        calls = []
        EventInvoker(lambda: calls.append(1))("evt")
        assert calls == [1]

    @pytest.mark.parametrize(
        "prop,expected",
        [("on_click", "click"), ("on_mouse_down", "mousedown"), ("on_Change", "change")],
    )
    def test_event_type(self, prop, expected):
        assert _event_type(prop) == expected


# ===========================================================================
# Re-rendering and teardown
# ===========================================================================


class TestUpdates:
    def test_ref_write_rerenders_synchronously_without_loop(self, runtime):
        node = h(Counter)
        container = _mount(runtime, node)
        node.instance.exposed["increment"]()
        assert container.find(class_="count").get_text() == "1"

    def test_rerender_keeps_position(self, runtime):
        counter = h(Counter)
        node = h("div", None, h("header"), counter, h("footer"))
        _mount(runtime, node)
        counter.instance.exposed["increment"]()
        assert [c.name for c in node.el.contents] == ["header", "div", "footer"]

    def test_rerender_patches_elements_in_place(self, runtime):
        node = h(Counter)
        container = _mount(runtime, node)
        button = container.find("button")
        count_node = node.child.children[0]
        node.instance.exposed["increment"]()
        assert container.find("button") is button
        assert button.has_event_listener("click")
        assert count_node.state is NodeState.ACTIVATED
        assert count_node.el.get_text() == "1"

    def test_changed_tag_is_replaced_in_position(self, runtime):
        as_link = ref(False)

        def Label(props):
            return lambda: h("a" if as_link.value else "span", {"class": "label"}, "x")

        node = h("div", None, h("header"), h(Label), h("footer"))
        _mount(runtime, node)
        old = node.children[1].child
        as_link.value = True
        assert [c.name for c in node.el.contents] == ["header", "a", "footer"]
        assert old.state is NodeState.UNMOUNTED
        assert node.children[1].child.state is NodeState.ACTIVATED

    def test_fragment_grows_and_shrinks_in_place(self, runtime):
        n = ref(0)

        def Items(props):
            return lambda: fragment(*[h("li", None, str(i)) for i in range(n.value)])

        node = h("ul", None, h("li", None, "first"), h(Items), h("li", None, "last"))
        _mount(runtime, node)

        def items():
            return [li.get_text() for li in node.el.find_all("li")]

        n.value = 2
        assert items() == ["first", "0", "1", "last"]
        n.value = 0
        assert items() == ["first", "last"]
        n.value = 1
        assert items() == ["first", "0", "last"]

    def test_surplus_children_are_torn_down(self, runtime):
        node = h(Parent, {"count": 3})
        container = _mount(runtime, node)
        dropped = node.child.children[2]
        runtime.patch_props(node, h(Parent, {"count": 1}))
        assert len(container.find_all("li")) == 1
        assert dropped.state is NodeState.UNMOUNTED

    def test_slot_children_follow_outer_rerender(self, runtime):
        label = ref("a")
        clicks = []

        def Shell(props):
            return lambda: h(
                Layout,
                None,
                h("button", {"class": "slot", "on_click": lambda: clicks.append(label.value)}, label.value),
            )

        container = _mount(runtime, h(Shell))
        slot = container.find(class_="slot")
        label.value = "b"
        assert container.find(class_="slot") is slot
        assert slot.get_text() == "b"
        slot.dispatch_event(Event("click"))
        assert clicks == ["b"]

    def test_node_rendered_twice_is_copied(self, runtime):
        shared = h("i", None, "x")
        node = h("p", None, shared, shared)
        _mount(runtime, node)
        assert len(node.el.find_all("i")) == 2
        assert node.children[0] is shared
        assert node.children[1] is not shared

    def test_patch_widget_props_rerenders(self, runtime):
        node = h(Greeting, {"name": "a"})
        container = _mount(runtime, node)
        runtime.patch_props(node, h(Greeting, {"name": "b"}))
        assert container.get_text() == "Hello b"
        assert node.props == {"name": "b"}

    async def test_updates_are_batched_until_tick(self, runtime):
        renders = []
        count = ref(0)

        def Watcher(props):
            def render():
                renders.append(count.value)
                return h("p", None, count.value)

            return render

        node = h(Watcher)
        container = _mount(runtime, node)
        count.value = 1
        count.value = 2
        assert container.get_text() == "0"
        await runtime.next_tick()
        assert container.get_text() == "2"
        assert renders == [0, 2]

    async def test_next_tick_without_pending_work(self, runtime):
        await runtime.next_tick()
        assert runtime.scheduler.pending is False

    async def test_recursive_update_is_reported(self):
        runtime = ReactiveRuntime()
        runtime.scheduler.max_passes = 3
        n = ref(0)

        def Runaway(props):
            def render():
                value = n.value
                n.value = value + 1
                return h("p", None, value)

            return render

        _mount(runtime, h(Runaway))
        with pytest.raises(RecursiveUpdateError):
            await runtime.next_tick()


class TestUnmount:
    def test_unmount_removes_dom_and_runs_hooks(self, runtime):
        log = []
        node = h(Lifecycle, {"log": log})
        container = _mount(runtime, node)
        assert log == ["mounted"]
        runtime.unmount(node)
        assert log == ["mounted", "unmounted"]
        assert container.contents == []
        assert node.state is NodeState.UNMOUNTED
        assert node.child.state is NodeState.UNMOUNTED

    def test_unmount_is_idempotent(self, runtime):
        log = []
        node = h(Lifecycle, {"log": log})
        _mount(runtime, node)
        runtime.unmount(node)
        runtime.unmount(node)
        assert log == ["mounted", "unmounted"]

    def test_unmount_unmounted_node_is_noop(self, runtime):
        runtime.unmount(h("p"))

    def test_unmount_fragment_removes_all_children(self, runtime):
        node = h(Parent, {"count": 2})
        container = _mount(runtime, node)
        runtime.unmount(node)
        assert container.contents == []

    def test_unmount_stops_updates(self, runtime):
        node = h(Counter)
        _mount(runtime, node)
        increment = node.instance.exposed["increment"]
        runtime.unmount(node)
        increment()
        assert node.instance.exposed["count"].subscriber_count == 0

    def test_unmount_clears_listeners(self, runtime):
        node = h("button", {"on_click": MagicMock()})
        _mount(runtime, node)
        el = node.el
        runtime.unmount(node)
        assert not el.has_event_listener("click")
        assert node.invokers == {}


# ===========================================================================
# Scheduler
# ===========================================================================


class TestScheduler:
    def test_sync_queue_flushes_immediately(self):
        run = MagicMock()
        scheduler = Scheduler(run, max_passes=5)
        widget = WidgetNode(Greeting)
        scheduler.queue(widget)
        run.assert_called_once_with(widget)
        assert scheduler.pending is False

    async def test_parents_flush_before_children(self):
        order = []
        scheduler = Scheduler(lambda widget: order.append(widget.depth), max_passes=5)
        deep, shallow = WidgetNode(Greeting, depth=4), WidgetNode(Greeting, depth=1)
        scheduler.queue(deep)
        scheduler.queue(shallow)
        await scheduler.next_tick()
        assert order == [1, 4]

    async def test_same_widget_queued_once(self):
        run = MagicMock()
        scheduler = Scheduler(run, max_passes=5)
        widget = WidgetNode(Greeting)
        scheduler.queue(widget)
        scheduler.queue(widget)
        await scheduler.next_tick()
        run.assert_called_once_with(widget)

    async def test_run_error_surfaces_in_next_tick(self):
        scheduler = Scheduler(MagicMock(side_effect=KeyError("bad")), max_passes=5)
        scheduler.queue(WidgetNode(Greeting))
        with pytest.raises(KeyError):
            await scheduler.next_tick()

    async def test_unawaited_run_error_is_logged(self, caplog):
        scheduler = Scheduler(MagicMock(side_effect=KeyError("bad")), max_passes=5)
        scheduler.queue(WidgetNode(Greeting))
        with caplog.at_level(logging.ERROR, logger="vdom_testing.runtime.scheduler"):
            await asyncio.sleep(0)
        assert "Flushing queued updates failed" in caplog.text

    async def test_flush_happens_on_later_iteration(self):
        run = MagicMock()
        scheduler = Scheduler(run, max_passes=5)
        scheduler.queue(WidgetNode(Greeting))
        run.assert_not_called()
        await asyncio.sleep(0)
        run.assert_called_once()

    def test_max_passes_from_environment(self, monkeypatch):
        monkeypatch.setenv("VDOM_TESTING_MAX_FLUSH_PASSES", "7")
        assert Scheduler(MagicMock()).max_passes == 7

    def test_invalid_environment_value_falls_back(self, monkeypatch):
        monkeypatch.setenv("VDOM_TESTING_MAX_FLUSH_PASSES", "lots")
        assert Scheduler(MagicMock()).max_passes == 100
