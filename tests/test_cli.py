"""Tests for the site-crawler command line."""

import json
from dataclasses import replace

import pytest
import requests

from site_crawler import cli
from site_crawler.crawl import SiteCrawler
from site_crawler.manifest import MANIFEST_NAME

SITE = "http://x.test"


@pytest.fixture
def fake_network(monkeypatch, site, probe):
    """Route every crawl started by the CLI through the fake site."""

    built = []

    def crawler(site_url, seeds, *, session_config):
        instance = SiteCrawler(
            site_url,
            seeds,
            session_config=replace(session_config, adapter=site),
            probe=probe,
        )
        built.append(instance)
        return instance

    monkeypatch.setattr(cli, "SiteCrawler", crawler)
    return built


class TestCrawlCommand:
    def test_summary_and_exit_code(self, site, fake_network, capsys):
        site.page("http://x.test/", '<a href="/a">a</a><a href="/gone">g</a>')
        site.page("http://x.test/a", "<p>a</p>")

        code = cli.main(["crawl", "--site", SITE, "--seed", "/", "--log", "0"])

        out = capsys.readouterr().out
        assert code == 0
        assert "crawl: seed=/ pages=2 links=2 files=2 broken=1" in out
        assert "- /gone 404 (found on /)" in out

    def test_fail_on_broken(self, site, fake_network):
        site.page("http://x.test/", '<a href="/gone">g</a>')

        code = cli.main(
            ["crawl", "--site", SITE, "--seed", "/", "--log", "0", "--fail-on-broken"]
        )

        assert code == 4

    def test_failed_seed_exits_3(self, site, fake_network, capsys):
        site.fail("http://x.test/", requests.ConnectionError("refused"))

        code = cli.main(["crawl", "--site", SITE, "--seed", "/", "--log", "0"])

        assert code == 3
        assert "refused" in capsys.readouterr().err

    def test_seed_options_are_passed_through(self, site, fake_network):
        site.page("http://x.test/", "<p>home</p>")
        site.page("http://x.test/admin", "<p>admin</p>")

        cli.main(
            [
                "crawl",
                "--site",
                SITE,
                "--seed",
                "/",
                "--seed",
                "/admin=editor",
                "--limit",
                "3",
                "--log",
                "0",
                "--auth-basic",
                "user:pass",
                "--timeout",
                "4",
            ]
        )

        (crawler,) = fake_network
        assert [(s.path, s.name) for s in crawler.seeds] == [
            ("/", None),
            ("/admin", "editor"),
        ]
        assert crawler.seeds[1].auth_basic == ("user", "pass")
        assert crawler.session_config.timeout_s == 4.0

    def test_out_writes_export(self, tmp_path, site, fake_network, capsys):
        site.page("http://x.test/", "<p>home</p>")

        args = ["crawl", "--site", SITE, "--seed", "/", "--log", "0"]
        code = cli.main(args + ["--out", str(tmp_path)])

        assert code == 0
        assert (tmp_path / MANIFEST_NAME).exists()
        assert "crawl: wrote" in capsys.readouterr().out

    def test_login_path_needs_button(self, fake_network, capsys):
        code = cli.main(
            ["crawl", "--site", SITE, "--seed", "/", "--login-path", "/login"]
        )

        assert code == 2
        assert "--login-button" in capsys.readouterr().err
        assert fake_network == []

    def test_seed_must_be_a_path(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["crawl", "--site", SITE, "--seed", "admin"])
        assert exc_info.value.code == 2


class TestCompareCommand:
    def _export(self, tmp_path, site, name, body):
        site.page("http://x.test/", body)
        cli.main(
            [
                "crawl",
                "--site",
                SITE,
                "--seed",
                "/",
                "--log",
                "0",
                "--out",
                str(tmp_path / name),
            ]
        )
        return str(tmp_path / name)

    def test_identical_exports(self, tmp_path, site, fake_network, capsys):
        old = self._export(tmp_path, site, "old", "<p>home</p>")
        new = self._export(tmp_path, site, "new", "<p>home</p>")
        capsys.readouterr()

        assert cli.main(["compare", old, new]) == 0
        assert "compare: no differences" in capsys.readouterr().out

    def test_differences_exit_4(self, tmp_path, site, fake_network, capsys):
        old = self._export(tmp_path, site, "old", "<p>home</p>")
        new = self._export(tmp_path, site, "new", '<a href="/gone">g</a>')
        capsys.readouterr()

        assert cli.main(["compare", old, new]) == 4
        out = capsys.readouterr().out
        assert "+ link /gone" in out
        assert "~ file /" in out

    def test_json_output(self, tmp_path, site, fake_network, capsys):
        old = self._export(tmp_path, site, "old", "<p>home</p>")
        new = self._export(tmp_path, site, "new", '<a href="/gone">g</a>')
        capsys.readouterr()

        cli.main(["compare", old, new, "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["seeds"][0]["links_added"] == ["/gone"]

    def test_missing_export(self, tmp_path, capsys):
        code = cli.main(["compare", str(tmp_path / "a"), str(tmp_path / "b")])

        assert code == 2
        assert MANIFEST_NAME in capsys.readouterr().err
