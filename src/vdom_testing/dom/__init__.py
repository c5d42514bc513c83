from vdom_testing.dom.service import Document, HTMLElement
from vdom_testing.dom.utils import (
    detach,
    insert_before,
    is_element,
    iter_selector,
    matches,
    parse_inline_style,
    query_selector,
    query_selector_all,
    serialize_style,
)
from vdom_testing.dom.views import ComputedStyle, Event

__all__ = [
    "ComputedStyle",
    "Document",
    "Event",
    "HTMLElement",
    "detach",
    "insert_before",
    "is_element",
    "iter_selector",
    "matches",
    "parse_inline_style",
    "query_selector",
    "query_selector_all",
    "serialize_style",
]
