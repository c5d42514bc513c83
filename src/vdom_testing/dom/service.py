"""Simulated host document.

A BeautifulSoup tree stands in for the browser document. Tags are created as
:class:`HTMLElement`, which adds the scripting surface tests rely on: event
listeners and dispatch, form-control properties and inline style access.
Selector matching is delegated to soupsieve (see ``dom.utils``).
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from vdom_testing.dom.config import (
    BLOCK_TAGS,
    DEFAULT_VISIBILITY,
    DOCUMENT_TEMPLATE,
    HTML_PARSER,
)
from vdom_testing.dom.utils import parse_inline_style, serialize_style
from vdom_testing.dom.views import ComputedStyle, Event

logger = logging.getLogger(__name__)

EventListener = Callable[[Event], Any]

# Strong references to listener tasks so they are not collected mid-flight.
_listener_tasks: set[asyncio.Future] = set()


def _report_listener_failure(task: asyncio.Future) -> None:
    _listener_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Unhandled error in async event listener", exc_info=exc)


def _schedule_listener_result(result: Any, event: Event) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(
            "Async listener for %r dispatched without a running event loop; result dropped",
            event.type,
        )
        if inspect.iscoroutine(result):
            result.close()
        return
    task = asyncio.ensure_future(result, loop=loop)
    _listener_tasks.add(task)
    task.add_done_callback(_report_listener_failure)


class HTMLElement(Tag):
    """A bs4 tag with the parts of the DOM element API a test harness needs.

    Runtime state (listeners, control values) lives on the instance and is
    looked up through class-level defaults so bs4's ``__getattr__`` child
    lookup is never involved.
    """

    _listeners: dict[str, list[EventListener]] | None = None
    _value: str | None = None
    _selected: bool | None = None
    _checked: bool | None = None

    @property
    def tag_name(self) -> str:
        return self.name.upper()

    # -- events ---------------------------------------------------------------

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        if self._listeners is None:
            self._listeners = {}
        bucket = self._listeners.setdefault(event_type, [])
        if listener not in bucket:
            bucket.append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        if not self._listeners:
            return
        bucket = self._listeners.get(event_type, [])
        if listener in bucket:
            bucket.remove(listener)

    def remove_all_event_listeners(self) -> None:
        self._listeners = None

    def has_event_listener(self, event_type: str) -> bool:
        return bool(self._listeners and self._listeners.get(event_type))

    def dispatch_event(self, event: Event) -> bool:
        """Dispatch *event* at this element, bubbling through ancestor elements.

        Listener exceptions propagate to the caller. Awaitables returned by
        listeners are scheduled on the running loop and not awaited.

        Returns:
            bool: False if a listener called ``prevent_default`` on a cancelable event.
        """
        event.target = self
        path = [self, *(p for p in self.parents if isinstance(p, HTMLElement))]
        try:
            for node in path:
                listeners = (node._listeners or {}).get(event.type)
                if listeners:
                    event.current_target = node
                    for listener in list(listeners):
                        result = listener(event)
                        if inspect.isawaitable(result):
                            _schedule_listener_result(result, event)
                if event.propagation_stopped or not event.bubbles:
                    break
        finally:
            event.current_target = None
        return not event.default_prevented

    # -- form controls --------------------------------------------------------

    @property
    def options(self) -> list["HTMLElement"]:
        return list(self.find_all("option"))

    @property
    def value(self) -> str:
        if self.name == "select":
            options = self.options
            for option in options:
                if option.selected:
                    return option.value
            return options[0].value if options else ""
        if self._value is not None:
            return self._value
        if self.name == "textarea":
            return self.get_text()
        if self.name == "option" and not self.has_attr("value"):
            return self.get_text()
        return str(self.get("value", ""))

    @value.setter
    def value(self, value: str) -> None:
        if self.name == "select":
            for option in self.options:
                option.selected = option.value == value
            return
        self._value = value

    @property
    def selected(self) -> bool:
        if self._selected is not None:
            return self._selected
        return self.has_attr("selected")

    @selected.setter
    def selected(self, flag: bool) -> None:
        self._selected = bool(flag)

    @property
    def checked(self) -> bool:
        if self._checked is not None:
            return self._checked
        return self.has_attr("checked")

    @checked.setter
    def checked(self, flag: bool) -> None:
        self._checked = bool(flag)

    # -- inline style ---------------------------------------------------------

    @property
    def style(self) -> dict[str, str]:
        """Parsed inline ``style`` declarations (a copy)."""
        return parse_inline_style(self.get("style"))

    def set_style(self, prop: str, value: str | None) -> None:
        declarations = self.style
        if value is None or value == "":
            declarations.pop(prop.lower(), None)
        else:
            declarations[prop.lower()] = value
        if declarations:
            self["style"] = serialize_style(declarations)
        elif self.has_attr("style"):
            del self["style"]


class Document:
    """The simulated document a runtime renders into.

    Each instance owns an independent tree, so two documents never share
    nodes or listeners.
    """

    def __init__(self, markup: str = DOCUMENT_TEMPLATE):
        self.soup = BeautifulSoup(markup, HTML_PARSER, element_classes={Tag: HTMLElement})
        if self.soup.find("body") is None:
            raise ValueError("Document markup must contain a <body> element")

    @property
    def body(self) -> HTMLElement:
        return self.soup.find("body")

    def create_element(self, tag_name: str, attrs: dict[str, str] | None = None) -> HTMLElement:
        return self.soup.new_tag(tag_name.lower(), attrs=attrs or {})

    def create_text_node(self, data: str) -> NavigableString:
        return self.soup.new_string(data)

    def create_comment(self, data: str) -> Comment:
        return self.soup.new_string(data, Comment)

    def create_fragment(self) -> BeautifulSoup:
        return BeautifulSoup("", HTML_PARSER, element_classes={Tag: HTMLElement})

    def parse_fragment(self, markup: str) -> BeautifulSoup:
        return BeautifulSoup(markup, HTML_PARSER, element_classes={Tag: HTMLElement})

    def contains(self, node: Any) -> bool:
        """Whether *node* is connected to this document's tree."""
        if node is None:
            return False
        return any(parent is self.soup for parent in node.parents)

    def get_computed_style(self, element: HTMLElement) -> ComputedStyle:
        """Resolve display, visibility and opacity from inline declarations.

        ``display`` comes from the element's own style (``hidden`` attribute
        counts as ``none``), ``visibility`` is inherited from the nearest
        ancestor-or-self that declares it.
        """
        style = element.style
        display = style.get("display")
        if display is None:
            if element.has_attr("hidden"):
                display = "none"
            else:
                display = "block" if element.name in BLOCK_TAGS else "inline"

        visibility = DEFAULT_VISIBILITY
        for node in (element, *element.parents):
            if not isinstance(node, HTMLElement):
                continue
            declared = node.style.get("visibility")
            if declared and declared != "inherit":
                visibility = declared
                break

        try:
            opacity = float(style.get("opacity", "1"))
        except ValueError:
            opacity = 1.0
        return ComputedStyle(display=display, visibility=visibility, opacity=opacity)
