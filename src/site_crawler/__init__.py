"""site-crawler core library.

Crawls a website over HTTP from one or more seeds, probes every a, link and
script reference it finds once per seed, and captures internal pages so two
runs (e.g. before and after an upgrade) can be compared.
"""

from __future__ import annotations

from .capture import CapturedFile
from .crawl import CrawlConfig, CrawlContext, SiteCrawler
from .http_client import TransportError
from .links import Link, UnsupportedTagError
from .probe import ExternalProbe
from .seed import Seed, SeedStatus
from .session import FormLogin, LoginError, SeedSession, SessionConfig

__all__ = [
    "__version__",
    "CapturedFile",
    "CrawlConfig",
    "CrawlContext",
    "ExternalProbe",
    "FormLogin",
    "Link",
    "LoginError",
    "Seed",
    "SeedSession",
    "SeedStatus",
    "SessionConfig",
    "SiteCrawler",
    "TransportError",
    "UnsupportedTagError",
]

__version__ = "0.1.0"
