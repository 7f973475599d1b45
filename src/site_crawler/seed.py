from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable

import requests

from .capture import CapturedFile
from .links import Link
from .session import FormLogin

if TYPE_CHECKING:
    from .crawl import CrawlContext

Hook = Callable[["CrawlContext"], None]
# A truthy return means "ignore"; a string return is logged as the reason.
IgnorePredicate = Callable[["CrawlContext"], object]


class SeedStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(eq=False)
class Seed:
    """One independently crawled section of a site, and what was found in it.

    Sometimes two seeds share a path, e.g. the same section crawled as two
    users with different roles. Give each a ``name`` to tell them apart.

    ``setup`` runs after the session is open and before the entry page is
    fetched; ``teardown`` runs after the traversal. Both get the current
    ``CrawlContext``, so they can drive ``context.session`` (log in, log
    out). ``ignore`` is asked about every new link before it is probed.
    """

    path: str
    name: str | None = None
    ignore: IgnorePredicate | None = None
    setup: Hook | None = None
    teardown: Hook | None = None
    auth_basic: tuple[str, str] | None = None
    auth_login: FormLogin | None = None
    client: requests.Session | None = None

    links: dict[str, Link] = field(default_factory=dict, init=False)
    files: list[CapturedFile] = field(default_factory=list, init=False)
    status: SeedStatus = field(default=SeedStatus.NOT_STARTED, init=False)
    pages_parsed: int = field(default=0, init=False)
    error: str | None = field(default=None, init=False)

    @property
    def label(self) -> str:
        return self.name or self.path

    def link(self, abs_url: str) -> Link | None:
        return self.links.get(abs_url)

    def file(self, abs_path: str) -> CapturedFile | None:
        for captured in self.files:
            if captured.abs_path == abs_path:
                return captured
        return None

    def broken_links(self) -> list[Link]:
        return [link for link in self.links.values() if link.broken]
