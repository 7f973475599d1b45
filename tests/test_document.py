"""Tests for site_crawler.document."""

from site_crawler.document import HtmlDocument

URI = "http://x.test/a/b.html"


class TestHtmlDocument:
    def test_links_in_document_order(self):
        doc = HtmlDocument.parse(
            b"""<html><head>
            <link rel="stylesheet" href="/s.css">
            <script src="/app.js"></script>
            </head><body>
            <a href="/one">1</a><img src="/x.png"><a href="/two">2</a>
            <script>inline()</script>
            </body></html>""",
            uri=URI,
        )
        found = [(el.name, el.get("href") or el.get("src")) for el in doc.links()]
        assert found == [
            ("link", "/s.css"),
            ("script", "/app.js"),
            ("a", "/one"),
            ("a", "/two"),
            ("script", None),
        ]

    def test_base_href_defaults_to_uri(self):
        doc = HtmlDocument.parse(b"<html><body></body></html>", uri=URI)
        assert doc.base_href == URI

    def test_base_href_is_resolved_against_uri(self):
        doc = HtmlDocument.parse(
            b'<html><head><base href="../root/"></head></html>', uri=URI
        )
        assert doc.base_href == "http://x.test/root/"

    def test_empty_base_href_is_ignored(self):
        doc = HtmlDocument.parse(b'<html><head><base href=""></head></html>', uri=URI)
        assert doc.base_href == URI

    def test_node_count(self):
        doc = HtmlDocument.parse(b"<html><body><p>hi</p></body></html>", uri=URI)
        assert doc.node_count == 3

    def test_binary_body_has_no_nodes(self):
        doc = HtmlDocument.parse(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", uri=URI)
        assert doc.node_count == 0
        assert list(doc.links()) == []

    def test_empty_body_has_no_nodes(self):
        assert HtmlDocument.parse(b"", uri=URI).node_count == 0
