from __future__ import annotations

from typing import List, Optional, Protocol
from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup
from bs4.element import Tag


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


class Element(Protocol):
    """One DOM node of a rendered page."""

    def text(self) -> str:
        ...

    def inner_html(self) -> str:
        ...

    def outer_html(self) -> str:
        ...

    def attr(self, name: str) -> Optional[str]:
        ...

    def href(self) -> Optional[str]:
        """Absolute href, resolved against the page URL."""
        ...

    def select(self, selector: str) -> List["Element"]:
        ...

    def select_one(self, selector: str) -> Optional["Element"]:
        ...


class RenderedPage(Protocol):
    """
    Read-only view of a page after rendering.
    Extractors only ever see this interface, never the browser.
    """

    url: str

    def select(self, selector: str) -> List[Element]:
        ...

    def select_one(self, selector: str) -> Optional[Element]:
        ...


class SoupElement:
    def __init__(self, tag: Tag, base_url: str) -> None:
        self._tag = tag
        self._base_url = base_url

    def text(self) -> str:
        # Collapse whitespace the way innerText does for inline content.
        return " ".join(self._tag.get_text(" ", strip=True).split())

    def inner_html(self) -> str:
        return self._tag.decode_contents().strip()

    def outer_html(self) -> str:
        return str(self._tag)

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if isinstance(value, list):  # class and other multi-valued attributes
            return " ".join(value)
        return value

    def href(self) -> Optional[str]:
        raw = self.attr("href")
        if not raw:
            return None
        return normalize_url(urljoin(self._base_url, raw))

    def select(self, selector: str) -> List[SoupElement]:
        return [SoupElement(t, self._base_url) for t in self._tag.select(selector)]

    def select_one(self, selector: str) -> Optional[SoupElement]:
        tag = self._tag.select_one(selector)
        return SoupElement(tag, self._base_url) if tag is not None else None

    def __repr__(self) -> str:
        return f"<SoupElement {self._tag.name}>"


class SoupPage:
    """
    RenderedPage over a DOM snapshot, parsed with BeautifulSoup.
    Renderers take the snapshot once navigation settles, so querying never touches the browser.
    """

    def __init__(self, html: str, url: str, status: int | None = None) -> None:
        self.url = url
        self.status = status
        self._soup = BeautifulSoup(html, "html.parser")

    def select(self, selector: str) -> List[SoupElement]:
        return [SoupElement(t, self.url) for t in self._soup.select(selector)]

    def select_one(self, selector: str) -> Optional[SoupElement]:
        tag = self._soup.select_one(selector)
        return SoupElement(tag, self.url) if tag is not None else None

    def __repr__(self) -> str:
        return f"<SoupPage {self.url}>"


def text_or_none(node: Optional[Element]) -> Optional[str]:
    if node is None:
        return None
    text = node.text()
    return text or None
