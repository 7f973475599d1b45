from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog
from bs4 import Tag

from .capture import CapturedFile
from .document import HtmlDocument, is_html
from .http_client import TransportError
from .links import Link, UnsupportedTagError, link_from_element
from .probe import ExternalProbe
from .seed import IgnorePredicate, Seed, SeedStatus
from .session import LoginError, SeedSession, SessionConfig


# Verbosity needed before each kind of event is emitted.
LOG_SITE = 1
LOG_PAGE = 2
LOG_LINK = 3
LOG_DETAIL = 4


@dataclass
class CrawlConfig:
    """Run-wide settings.

    ``limit`` caps the pages parsed per seed; anything but a positive int
    means no cap. ``log`` is a verbosity from 0 (silent) to 4.
    """

    ignore: IgnorePredicate | None = None
    limit: int | None = None
    log: int = 0

    def __post_init__(self) -> None:
        if (
            not isinstance(self.limit, int)
            or isinstance(self.limit, bool)
            or self.limit <= 0
        ):
            self.limit = None
        if self.log not in (0, 1, 2, 3, 4):
            self.log = 0


@dataclass(frozen=True)
class CrawlContext:
    """What hooks and ignore predicates see of the crawl in progress."""

    site_url: str
    seed: Seed
    session: SeedSession
    link: Link | None = None
    page_path: str | None = None


@dataclass
class _Worklist:
    """Fetched-but-unparsed pages of one seed, oldest first."""

    pending: dict[str, HtmlDocument] = field(default_factory=dict)
    parsed: set[str] = field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.pending)

    def __len__(self) -> int:
        return len(self.pending)

    def add(self, abs_path: str, document: HtmlDocument) -> bool:
        if abs_path in self.pending or abs_path in self.parsed:
            return False
        self.pending[abs_path] = document
        return True

    def pop(self) -> tuple[str, HtmlDocument]:
        abs_path = next(iter(self.pending))
        return abs_path, self.pending.pop(abs_path)

    def mark_parsed(self, abs_path: str) -> None:
        self.parsed.add(abs_path)

    def clear(self) -> None:
        self.pending.clear()


class SiteCrawler:
    """Crawls a site over HTTP, one seed after another.

    Every a, link and script reference found is probed once per seed: links
    leaving the site through ``ExternalProbe``, links inside it through the
    seed's own session. Internal 200 responses are captured as files and,
    when they are HTML, parsed in turn. Results accumulate on each seed's
    ``links`` and ``files``.

    Example:
        >>> crawler = SiteCrawler("http://www.example.com", [Seed("/")])
        >>> seeds = crawler.crawl(CrawlConfig(limit=50, log=1))
        >>> broken = seeds[0].broken_links()
    """

    def __init__(
        self,
        site_url: str,
        seeds: Iterable[Seed],
        *,
        session_config: SessionConfig | None = None,
        probe: ExternalProbe | None = None,
    ) -> None:
        self.site_url = site_url
        self.seeds = list(seeds)
        self.session_config = session_config or SessionConfig()
        self._probe = probe
        self.logger = structlog.get_logger(__name__)

    def crawl(self, config: CrawlConfig | None = None) -> list[Seed]:
        config = config or CrawlConfig()
        probe = self._probe or ExternalProbe.from_config(self.session_config)
        log = _Log(self.logger.bind(site_url=self.site_url), config.log)

        log.emit(LOG_SITE, "site_started", seeds=len(self.seeds))
        try:
            for seed in self.seeds:
                self._crawl_seed(seed, config, probe, log)
        finally:
            if self._probe is None:
                probe.close()
        log.emit(LOG_SITE, "site_finished", seeds=len(self.seeds))
        return self.seeds

    def _crawl_seed(
        self, seed: Seed, config: CrawlConfig, probe: ExternalProbe, log: _Log
    ) -> None:
        log = log.bind(seed=seed.label)
        seed.status = SeedStatus.RUNNING
        log.emit(LOG_SITE, "seed_started", path=seed.path)

        session = SeedSession.for_seed(self.site_url, seed, self.session_config)
        try:
            session.open()
            context = CrawlContext(self.site_url, seed, session)
            if seed.setup is not None:
                seed.setup(context)
            try:
                _SeedRun(self, seed, session, config, probe, log).traverse()
            finally:
                if seed.teardown is not None:
                    seed.teardown(context)
        except UnsupportedTagError:
            raise
        except (TransportError, LoginError) as e:
            seed.error = str(e)
            log.emit(
                LOG_SITE, "seed_failed", error=seed.error, level_name="error"
            )
        except Exception as e:
            # A failing hook or predicate ends this seed only.
            seed.error = f"{type(e).__name__}: {e}"
            log.emit(
                LOG_SITE,
                "seed_failed",
                error=seed.error,
                level_name="error",
                exc_info=True,
            )
        finally:
            session.close()
            seed.status = SeedStatus.FINISHED

        log.emit(
            LOG_SITE,
            "seed_finished",
            pages_parsed=seed.pages_parsed,
            links=len(seed.links),
            files=len(seed.files),
        )


class _SeedRun:
    """Traversal state for one seed's crawl."""

    def __init__(
        self,
        crawler: SiteCrawler,
        seed: Seed,
        session: SeedSession,
        config: CrawlConfig,
        probe: ExternalProbe,
        log: _Log,
    ) -> None:
        self.site_url = crawler.site_url
        self.seed = seed
        self.session = session
        self.config = config
        self.probe = probe
        self.log = log
        self.worklist = _Worklist()

    def traverse(self) -> None:
        seed = self.seed

        # The entry page is trusted to be HTML; if it isn't, it just yields
        # no links.
        entry = self.session.fetch(seed.path)
        seed.files.append(CapturedFile(seed.path, entry.content_type, entry.body))
        document = entry.document or HtmlDocument.parse(entry.body, uri=entry.url)
        self.worklist.add(seed.path, document)

        while self.worklist:
            page_path, document = self.worklist.pop()

            limit = self.config.limit
            if limit is not None and seed.pages_parsed >= limit:
                self.log.emit(
                    LOG_SITE,
                    "seed_limit_reached",
                    limit=limit,
                    discarded=len(self.worklist) + 1,
                )
                self.worklist.clear()
                break

            seed.pages_parsed += 1
            self.worklist.mark_parsed(page_path)
            self.log.emit(LOG_PAGE, "page_started", page=page_path)

            for element in document.links():
                self._visit(element, page_path, document)

            self.log.emit(
                LOG_PAGE,
                "page_finished",
                page=page_path,
                remaining=len(self.worklist),
            )

    def _visit(self, element: Tag, page_path: str, document: HtmlDocument) -> None:
        seed = self.seed
        link = link_from_element(element, document.base_href, self.site_url)
        log = self.log.bind(page=page_path, link=link.display)

        if not link.hyperlink:
            log.emit(LOG_DETAIL, "link_skipped", reason="not_hyperlink")
            return
        if link.abs_url == document.uri:
            log.emit(LOG_DETAIL, "link_skipped", reason="self_reference")
            return
        if link.internal and link.abs_path == seed.path:
            log.emit(LOG_DETAIL, "link_skipped", reason="seed")
            return

        prior = seed.links.get(link.abs_url)
        if prior is not None:
            prior.pages.append(page_path)
            log.emit(LOG_DETAIL, "link_skipped", reason="already_processed")
            return

        context = CrawlContext(self.site_url, seed, self.session, link, page_path)
        ignored = self._ignored(context)
        if ignored:
            log.emit(LOG_DETAIL, "link_skipped", reason="ignored", detail=ignored)
            return

        seed.links[link.abs_url] = link
        link.pages.append(page_path)
        log.emit(LOG_LINK, "link_found", internal=link.internal, tag=link.tag)

        if link.external:
            link.http_code = self.probe.probe(link.abs_url)
            log.emit(LOG_LINK, "link_probed", http_code=link.http_code)
            return

        try:
            page = self.session.fetch(link.abs_url)
        except TransportError as e:
            link.exception = str(e)
            log.emit(LOG_LINK, "link_probed", exception=link.exception)
            return

        link.http_code = page.status_code
        log.emit(
            LOG_LINK,
            "link_probed",
            http_code=link.http_code,
            content_type=page.content_type,
        )
        if page.status_code != 200:
            return

        abs_path = link.abs_path or ""
        seed.files.append(CapturedFile(abs_path, page.content_type, page.body))

        if not is_html(page.content_type):
            return
        # A text/html label on binary content parses to nothing.
        if page.document is None or page.document.node_count == 0:
            log.emit(LOG_DETAIL, "page_not_parseable")
            return
        if self.worklist.add(abs_path, page.document):
            log.emit(LOG_DETAIL, "page_enqueued", remaining=len(self.worklist))

    def _ignored(self, context: CrawlContext) -> str | None:
        for predicate in (self.seed.ignore, self.config.ignore):
            if predicate is None:
                continue
            verdict = predicate(context)
            if verdict:
                return verdict if isinstance(verdict, str) else "predicate"
        return None


class _Log:
    """structlog logger gated by the crawl's verbosity."""

    def __init__(self, logger: Any, verbosity: int) -> None:
        self._logger = logger
        self._verbosity = verbosity

    def bind(self, **kw: Any) -> _Log:
        return _Log(self._logger.bind(**kw), self._verbosity)

    def emit(
        self, level: int, event: str, *, level_name: str = "info", **kw: Any
    ) -> None:
        if self._verbosity < level:
            return
        getattr(self._logger, level_name)(event, **kw)
