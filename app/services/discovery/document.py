"""Queryable HTML document abstraction backed by BeautifulSoup."""

from __future__ import annotations

import logging
from typing import Protocol

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)


class Node(Protocol):
    """Minimal tree-node contract the extractor relies on."""

    def select(self, selector: str) -> list["Node"]:
        ...

    def select_one(self, selector: str) -> "Node | None":
        ...

    def text(self) -> str:
        ...

    def attr(self, name: str) -> str | None:
        ...

    def contains(self, other: "Node") -> bool:
        ...


class SoupNode(Node):
    """Node implementation wrapping a bs4 ``Tag``."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def tag(self) -> Tag:
        return self._tag

    def select(self, selector: str) -> list[Node]:
        try:
            return [SoupNode(tag) for tag in self._tag.select(selector)]
        except SelectorSyntaxError:
            logger.debug("document.invalid_selector", extra={"selector": selector})
            return []

    def select_one(self, selector: str) -> Node | None:
        matches = self.select(selector)
        return matches[0] if matches else None

    def text(self) -> str:
        """Visible text with one stripped line per text fragment."""
        return self._tag.get_text("\n", strip=True)

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def contains(self, other: Node) -> bool:
        if not isinstance(other, SoupNode) or other.tag is self._tag:
            return False
        return any(parent is self._tag for parent in other.tag.parents)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SoupNode) and other.tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)


class HtmlDocument:
    """Parsed page exposing a root node plus page-level helpers."""

    def __init__(self, html: str) -> None:
        self._soup = BeautifulSoup(html or "", "html.parser")
        for tag in self._soup(["script", "style", "noscript", "template"]):
            tag.decompose()
        self.root: Node = SoupNode(self._soup)

    def title(self) -> str | None:
        if self._soup.title and self._soup.title.string:
            title = " ".join(self._soup.title.string.split())
            return title or None
        return None

    def body_text(self) -> str:
        body = self._soup.body or self._soup
        return body.get_text("\n", strip=True)


def parse_document(html: str) -> HtmlDocument:
    return HtmlDocument(html)
