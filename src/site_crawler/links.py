from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from .urls import is_hyperlink, resolve_uri, site_path, strip_fragment

# Attribute holding the referenced URI, per supported tag.
TAG_ATTRIBUTES = {"a": "href", "link": "href", "script": "src"}


class UnsupportedTagError(ValueError):
    """A link was built from a tag other than a, link or script."""


class LinkElement(Protocol):
    name: str

    def get(self, key: str, default: Any = None) -> Any: ...


@dataclass
class Link:
    """One reference found inside a crawled page.

    ``pages`` gets one entry per occurrence, so a page that links to the
    same URL twice appears twice. At most one of ``http_code`` and
    ``exception`` is set, and only once the link has been probed.
    """

    tag: str
    abs_url: str
    abs_path: str | None
    internal: bool
    hyperlink: bool
    http_code: int | None = None
    exception: str | None = None
    pages: list[str] = field(default_factory=list)

    @property
    def external(self) -> bool:
        return not self.internal

    @property
    def probed(self) -> bool:
        return self.http_code is not None or self.exception is not None

    @property
    def broken(self) -> bool:
        if self.exception is not None:
            return True
        return self.http_code is not None and self.http_code >= 400

    @property
    def outcome(self) -> str:
        if self.exception is not None:
            return f"exception: {self.exception}"
        if self.http_code is None:
            return "not probed"
        return str(self.http_code)

    @property
    def display(self) -> str:
        if self.internal:
            return self.abs_path or "/"
        return self.abs_url

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "abs_url": self.abs_url,
            "abs_path": self.abs_path,
            "internal": self.internal,
            "hyperlink": self.hyperlink,
            "http_code": self.http_code,
            "exception": self.exception,
            "pages": list(self.pages),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Link:
        return cls(
            tag=str(data["tag"]),
            abs_url=str(data["abs_url"]),
            abs_path=data.get("abs_path"),
            internal=bool(data.get("internal")),
            hyperlink=bool(data.get("hyperlink")),
            http_code=data.get("http_code"),
            exception=data.get("exception"),
            pages=[str(p) for p in data.get("pages") or []],
        )


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        if not val:
            return ""
        return str(val[0])
    return str(val or "")


def raw_link_value(element: LinkElement) -> str:
    attr = TAG_ATTRIBUTES.get(element.name)
    if attr is None:
        raise UnsupportedTagError(
            f"Link used for tag other than a, link or script: {element.name!r}"
        )
    return _attr_text(element.get(attr))


def resolve_link(tag: str, raw_value: str, base_uri: str, site_url: str) -> Link:
    if tag not in TAG_ATTRIBUTES:
        raise UnsupportedTagError(
            f"Link used for tag other than a, link or script: {tag!r}"
        )

    # Fragments never change what gets fetched.
    if tag == "a":
        raw_value = strip_fragment(raw_value)

    try:
        abs_url = resolve_uri(raw_value, base_uri)
    except ValueError:
        # e.g. "http://[oops/"; nothing to fetch, so treat it like mailto:.
        return Link(
            tag=tag,
            abs_url=raw_value,
            abs_path=None,
            internal=False,
            hyperlink=False,
        )

    abs_path = site_path(abs_url, site_url)
    return Link(
        tag=tag,
        abs_url=abs_url,
        abs_path=abs_path,
        internal=abs_path is not None,
        hyperlink=is_hyperlink(abs_url),
    )


def link_from_element(element: LinkElement, base_uri: str, site_url: str) -> Link:
    return resolve_link(element.name, raw_link_value(element), base_uri, site_url)
