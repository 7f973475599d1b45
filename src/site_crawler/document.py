from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from .links import TAG_ATTRIBUTES
from .urls import resolve_uri

LINK_TAGS = tuple(TAG_ATTRIBUTES)

_HTML_CONTENT_TYPE = re.compile(r"^text/html", re.IGNORECASE)


def is_html(content_type: str) -> bool:
    return _HTML_CONTENT_TYPE.match(content_type.strip()) is not None


@dataclass(frozen=True)
class HtmlDocument:
    """A parsed HTML page and the URI it was fetched from."""

    uri: str
    soup: BeautifulSoup

    @classmethod
    def parse(cls, body: bytes | str, *, uri: str) -> HtmlDocument:
        try:
            soup = BeautifulSoup(body, "html.parser")
        except ParserRejectedMarkup:
            soup = BeautifulSoup("", "html.parser")
        return cls(uri=uri, soup=soup)

    @property
    def node_count(self) -> int:
        return len(self.soup.find_all(True))

    @property
    def base_href(self) -> str:
        base = self.soup.find("base", href=True)
        if isinstance(base, Tag):
            href = str(base.get("href") or "").strip()
            if href:
                return resolve_uri(href, self.uri)
        return self.uri

    def links(self) -> Iterator[Tag]:
        """Yield the a, link and script elements in document order."""

        for element in self.soup.find_all(list(LINK_TAGS)):
            if isinstance(element, Tag):
                yield element
