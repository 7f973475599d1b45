from __future__ import annotations

import hashlib
import re
from urllib.parse import urljoin, urlparse

HYPERLINK_SCHEMES = {"http", "https"}


def strip_fragment(raw_uri: str) -> str:
    return raw_uri.split("#", 1)[0]


def resolve_uri(raw_uri: str, base_uri: str) -> str:
    """Resolve a possibly-relative URI against ``base_uri``.

    Standard RFC 3986 merging, including ``.`` and ``..`` segment removal.
    An empty ``raw_uri`` resolves to the base itself.
    """

    return urljoin(base_uri, raw_uri.strip())


def site_path(abs_url: str, site_url: str) -> str | None:
    """Return the part of ``abs_url`` after the site prefix, or None."""

    if abs_url.startswith(site_url):
        return abs_url[len(site_url) :]
    return None


def is_hyperlink(abs_url: str) -> bool:
    return urlparse(abs_url).scheme.lower() in HYPERLINK_SCHEMES


def hostname(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def absolute_url(site_url: str, path_or_url: str) -> str:
    if is_hyperlink(path_or_url):
        return path_or_url
    return site_url + path_or_url


def safe_filename_piece(text: str, *, max_len: int = 80) -> str:
    text = text.strip()
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"[^A-Za-z0-9._-]+", "-", text)
    text = re.sub(r"-+", "-", text).strip("-")
    if not text:
        return "root"
    return text[:max_len]


def path_key(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
