from collections.abc import Iterator
from typing import Any

import soupsieve as sv
from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement


def is_element(node: Any) -> bool:
    """True for tags, False for text, comments, fragments and None."""
    return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)


def query_selector(root: Tag, selector: str) -> Tag | None:
    """First descendant of *root* matching *selector*, in document order."""
    return sv.select_one(selector, root)


def query_selector_all(root: Tag, selector: str) -> list[Tag]:
    """Every descendant of *root* matching *selector*, in document order."""
    return sv.select(selector, root)


def iter_selector(root: Tag, selector: str) -> Iterator[Tag]:
    return sv.iselect(selector, root)


def matches(node: Any, selector: str) -> bool:
    """Whether *node* itself matches *selector* (descendants are not considered)."""
    return is_element(node) and sv.match(selector, node)


def parse_inline_style(style: str | None) -> dict[str, str]:
    """
    Parse a ``style`` attribute into a property -> value mapping.

    Property names are lower-cased, ``!important`` is dropped and malformed
    declarations are skipped. Later declarations win.

    Args:
        style (str | None): Raw attribute value, e.g. ``"display: none; color:red"``.

    Returns:
        dict: Parsed declarations in source order.
    """
    declarations: dict[str, str] = {}
    if not style:
        return declarations
    for chunk in style.split(";"):
        prop, sep, value = chunk.partition(":")
        prop = prop.strip().lower()
        if not sep or not prop:
            continue
        value = value.replace("!important", "").strip()
        if value:
            declarations[prop] = value
    return declarations


def serialize_style(declarations: dict[str, Any]) -> str:
    return "; ".join(
        f"{prop}: {value}" for prop, value in declarations.items() if value not in (None, "")
    )


def insert_before(parent: Tag, node: PageElement, anchor: PageElement | None = None) -> None:
    """Insert *node* under *parent* before *anchor*, or append when anchor is None.

    A fragment (``BeautifulSoup``) is inserted by moving its children, which
    leaves the fragment itself empty.
    """
    if isinstance(node, BeautifulSoup):
        for child in list(node.contents):
            insert_before(parent, child, anchor)
        return
    if anchor is None:
        parent.append(node)
        return
    parent.insert(parent.index(anchor), node)


def detach(node: PageElement) -> None:
    if node.parent is not None:
        node.extract()
