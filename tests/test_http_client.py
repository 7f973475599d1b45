"""Tests for site_crawler.http_client."""

import itertools

import pytest
import requests

from site_crawler import http_client
from site_crawler.http_client import HttpClient, TransportError
from site_crawler.session import SessionConfig


def _client(site, **kwargs) -> HttpClient:
    config = SessionConfig(adapter=site)
    return HttpClient(config.new_session(), **kwargs)


class TestHttpClient:
    def test_get_returns_status_headers_and_body(self, site):
        site.add("http://x.test/a", b"<p>a</p>", headers={"X-Test": "1"})

        res = _client(site).get("http://x.test/a")

        assert res.status_code == 200
        assert res.body == b"<p>a</p>"
        assert res.headers["x-test"] == "1"
        assert res.content_type == "text/html; charset=utf-8"
        assert res.final_url == "http://x.test/a"

    def test_error_status_is_a_result(self, site):
        res = _client(site).get("http://x.test/nowhere")
        assert res.status_code == 404

    def test_transport_failure_raises(self, site):
        site.fail("http://x.test/down", requests.ConnectionError("refused"))

        with pytest.raises(TransportError) as exc_info:
            _client(site).get("http://x.test/down")

        assert "http://x.test/down" in str(exc_info.value)
        assert "refused" in str(exc_info.value)

    def test_redirects_are_followed(self, site):
        site.redirect("http://x.test/old", "/new")
        site.add("http://x.test/new", b"moved here")

        res = _client(site).get("http://x.test/old")

        assert res.status_code == 200
        assert res.final_url == "http://x.test/new"
        assert res.body == b"moved here"

    def test_redirect_loop_is_a_transport_failure(self, site):
        site.redirect("http://x.test/loop", "/loop")

        with pytest.raises(TransportError):
            _client(site).get("http://x.test/loop")

        # One request plus the five allowed redirects.
        assert site.requested()["http://x.test/loop"] == 6

    def test_retries_transport_failures(self, site):
        site.fail("http://x.test/flaky", requests.Timeout("slow"))

        with pytest.raises(TransportError):
            _client(site, max_retries=2, backoff_base_s=0).get("http://x.test/flaky")

        assert site.requested()["http://x.test/flaky"] == 3

    def test_body_can_be_skipped(self, site):
        site.add("http://x.test/big", b"x" * 10_000)
        res = _client(site).get("http://x.test/big", read_body=False)
        assert res.status_code == 200
        assert res.body == b""

    def test_max_duration_is_enforced(self, site, monkeypatch):
        site.add("http://x.test/slow", b"x" * 10)
        clock = itertools.count(0, 10)
        monkeypatch.setattr(http_client.time, "monotonic", lambda: next(clock))

        with pytest.raises(TransportError) as exc_info:
            _client(site, max_duration_s=5).get("http://x.test/slow")

        assert "Max duration" in str(exc_info.value)

    def test_post_sends_form_data(self, site):
        site.add("http://x.test/form", b"ok")

        _client(site).post("http://x.test/form", data={"a": "1"})

        sent = site.requests_to("http://x.test/form")[0]
        assert sent.method == "POST"
        assert sent.body == "a=1"
