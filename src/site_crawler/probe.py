from __future__ import annotations

import ipaddress
import socket
from typing import Callable

from .http_client import HttpClient, TransportError
from .session import SessionConfig
from .urls import hostname

# Stand-in status for an external link that could not be reached at all.
# Not a real answer from the remote host.
UNREACHABLE_STATUS = 404


class ExternalProbe:
    """Reachability check for links that leave the site.

    Uses its own session, separate from every seed's, so it never carries
    a seed's credentials. The cookie jar is emptied before each request;
    one external site's cookies never reach the next probe.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        resolve_host: Callable[[str], str] = socket.gethostbyname,
    ) -> None:
        self._http = http
        self._resolve_host = resolve_host

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        *,
        resolve_host: Callable[[str], str] = socket.gethostbyname,
    ) -> ExternalProbe:
        return cls(
            config.http_client(config.new_session()), resolve_host=resolve_host
        )

    def probe(self, abs_url: str) -> int:
        host = hostname(abs_url)
        if not host or not self._resolves(host):
            return UNREACHABLE_STATUS

        self._http.session.cookies.clear()
        try:
            result = self._http.get(abs_url, read_body=False)
        except TransportError:
            return UNREACHABLE_STATUS
        return result.status_code

    def _resolves(self, host: str) -> bool:
        try:
            ipaddress.ip_address(host)
        except ValueError:
            pass
        else:
            return True

        try:
            return self._resolve_host(host) != host
        except (OSError, UnicodeError):
            return False

    def close(self) -> None:
        self._http.session.close()
