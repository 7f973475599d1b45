from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping

import requests
from requests import exceptions as req_exc
from requests.structures import CaseInsensitiveDict

_CHUNK_SIZE = 64 * 1024


class TransportError(RuntimeError):
    """No HTTP response could be obtained (timeout, refused, bad response)."""


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    headers: Mapping[str, str]
    fetched_at: float
    body: bytes

    @property
    def content_type(self) -> str:
        return str(self.headers.get("Content-Type") or "")


class HttpClient:
    """Thin wrapper over a ``requests.Session``.

    Every request is bounded by ``timeout_s`` (connect/read) and by
    ``max_duration_s`` (wall time for the whole exchange, body included).
    Transport failures surface as ``TransportError``; HTTP error statuses
    are returned as ordinary results.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 1.0,
        max_duration_s: float = 2.0,
        max_retries: int = 0,
        backoff_base_s: float = 1.0,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._max_duration_s = max_duration_s
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s

    @property
    def session(self) -> requests.Session:
        return self._session

    def get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        read_body: bool = True,
    ) -> FetchResult:
        return self.request("GET", url, headers=headers, read_body=read_body)

    def post(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        return self.request("POST", url, data=data, headers=headers)

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        read_body: bool = True,
    ) -> FetchResult:
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                return self._request_once(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=headers,
                    read_body=read_body,
                )
            except (req_exc.RequestException, TransportError) as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))

        raise TransportError(f"Failed to fetch {url}: {last_error}") from last_error

    def _request_once(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None,
        data: Mapping[str, Any] | None,
        headers: dict[str, str] | None,
        read_body: bool,
    ) -> FetchResult:
        started = time.monotonic()
        resp = self._session.request(
            method,
            url,
            params=params,
            data=data,
            headers=headers,
            timeout=self._timeout_s,
            stream=True,
        )
        try:
            body = self._read_body(resp, url, started) if read_body else b""
        finally:
            resp.close()

        return FetchResult(
            url=url,
            final_url=str(resp.url),
            status_code=int(resp.status_code),
            headers=CaseInsensitiveDict({k: str(v) for k, v in resp.headers.items()}),
            fetched_at=time.time(),
            body=body,
        )

    def _read_body(self, resp: requests.Response, url: str, started: float) -> bytes:
        chunks: list[bytes] = []
        for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
            chunks.append(chunk)
            if time.monotonic() - started > self._max_duration_s:
                raise TransportError(
                    f"Max duration of {self._max_duration_s}s reached for {url}"
                )
        return b"".join(chunks)
