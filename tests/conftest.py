from __future__ import annotations

import pytest
import structlog
from fakes import FakeResolver, FakeSite

from site_crawler.probe import ExternalProbe
from site_crawler.session import SessionConfig

SITE = "http://x.test"


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({"good.test": "10.0.0.7"})


@pytest.fixture
def session_config(site: FakeSite) -> SessionConfig:
    return SessionConfig(adapter=site)


@pytest.fixture
def probe(session_config: SessionConfig, resolver: FakeResolver) -> ExternalProbe:
    return ExternalProbe.from_config(session_config, resolve_host=resolver)
