from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

import requests
from bs4 import Tag
from requests.adapters import BaseAdapter
from requests.auth import HTTPBasicAuth

from .document import HtmlDocument, is_html
from .http_client import FetchResult, HttpClient
from .urls import absolute_url, resolve_uri

if TYPE_CHECKING:
    from .seed import Seed

_SUBMIT_INPUT_TYPES = {"submit", "image", "button"}
_UNSENT_INPUT_TYPES = _SUBMIT_INPUT_TYPES | {"reset", "file"}


class LoginError(RuntimeError):
    """The form login for a seed could not be completed."""


@dataclass
class SessionConfig:
    """Transport ceilings shared by every seed session and the probe.

    ``adapter`` replaces the network transport for both, which is how tests
    serve a fake site.
    """

    timeout_s: float = 1.0
    max_duration_s: float = 2.0
    max_redirects: int = 5
    max_retries: int = 0
    user_agent: str | None = None
    adapter: BaseAdapter | None = None

    def new_session(self) -> requests.Session:
        session = requests.Session()
        self.configure(session)
        return session

    def configure(self, session: requests.Session) -> None:
        session.max_redirects = self.max_redirects
        if self.user_agent:
            session.headers["User-Agent"] = self.user_agent
        if self.adapter is not None:
            session.mount("http://", self.adapter)
            session.mount("https://", self.adapter)

    def http_client(self, session: requests.Session) -> HttpClient:
        return HttpClient(
            session,
            timeout_s=self.timeout_s,
            max_duration_s=self.max_duration_s,
            max_retries=self.max_retries,
        )


@dataclass(frozen=True)
class FormLogin:
    """Log in by submitting the form holding the ``button`` control.

    ``button`` matches a submit control's text, value, id, name or alt.
    ``fields`` override whatever the form already carries.
    """

    path: str
    button: str
    fields: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    url: str
    status_code: int
    headers: Mapping[str, str]
    body: bytes
    document: HtmlDocument | None

    @property
    def content_type(self) -> str:
        return str(self.headers.get("Content-Type") or "")

    @classmethod
    def from_result(cls, result: FetchResult) -> Page:
        document = None
        if is_html(result.content_type):
            parsed = HtmlDocument.parse(result.body, uri=result.final_url)
            if parsed.node_count > 0:
                document = parsed
        return cls(
            url=result.final_url,
            status_code=result.status_code,
            headers=result.headers,
            body=result.body,
            document=document,
        )


class SeedSession:
    """The browsing context of one seed: cookies, credentials, ceilings."""

    def __init__(
        self,
        site_url: str,
        *,
        config: SessionConfig | None = None,
        session: requests.Session | None = None,
        auth_basic: tuple[str, str] | None = None,
        auth_login: FormLogin | None = None,
    ) -> None:
        self.site_url = site_url
        self.config = config or SessionConfig()
        self._owns_session = session is None
        if session is None:
            session = self.config.new_session()
        self._http = self.config.http_client(session)
        self.auth_basic = auth_basic
        self.auth_login = auth_login

    @classmethod
    def for_seed(
        cls, site_url: str, seed: Seed, config: SessionConfig | None = None
    ) -> SeedSession:
        return cls(
            site_url,
            config=config,
            session=seed.client,
            auth_basic=seed.auth_basic,
            auth_login=seed.auth_login,
        )

    @property
    def http(self) -> requests.Session:
        return self._http.session

    def open(self) -> None:
        if self.auth_basic is not None:
            username, password = self.auth_basic
            self.http.auth = HTTPBasicAuth(username, password)
        if self.auth_login is not None:
            self.login(self.auth_login)

    def close(self) -> None:
        if self._owns_session:
            self.http.close()

    def __enter__(self) -> SeedSession:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch(self, path_or_url: str) -> Page:
        url = absolute_url(self.site_url, path_or_url)
        return Page.from_result(self._http.get(url))

    def login(self, login: FormLogin) -> Page:
        page = self.submit_form(login.path, login.button, login.fields)
        if page.status_code >= 400:
            raise LoginError(
                f"Login at {login.path} answered HTTP {page.status_code}"
            )
        return page

    def submit_form(
        self, path_or_url: str, button: str, fields: Mapping[str, str]
    ) -> Page:
        form_page = self.fetch(path_or_url)
        if form_page.document is None:
            raise LoginError(f"No HTML form page at {path_or_url}")

        form, control = _find_form(form_page.document, button)
        data = _form_values(form)
        control_name = str(control.get("name") or "")
        if control_name:
            data[control_name] = str(control.get("value") or "")
        data.update(fields)

        action = resolve_uri(
            str(form.get("action") or ""), form_page.document.base_href
        )
        method = str(form.get("method") or "get").upper()
        if method == "POST":
            result = self._http.post(action, data=data)
        else:
            result = self._http.request("GET", action, params=data)
        return Page.from_result(result)


def _control_labels(control: Tag) -> set[str]:
    labels = {
        str(control.get(attr) or "").strip()
        for attr in ("value", "id", "name", "alt")
    }
    if control.name == "button":
        labels.add(control.get_text(strip=True))
    labels.discard("")
    return labels


def _find_form(document: HtmlDocument, button: str) -> tuple[Tag, Tag]:
    for control in document.soup.find_all(["button", "input"]):
        if not isinstance(control, Tag):
            continue
        if control.name == "input":
            kind = str(control.get("type") or "text").lower()
            if kind not in _SUBMIT_INPUT_TYPES:
                continue
        if button not in _control_labels(control):
            continue
        form = control.find_parent("form")
        if isinstance(form, Tag):
            return form, control
    raise LoginError(f"No form with a {button!r} button at {document.uri}")


def _form_values(form: Tag) -> dict[str, str]:
    values: dict[str, str] = {}

    for control in form.find_all("input"):
        if not isinstance(control, Tag):
            continue
        name = str(control.get("name") or "")
        kind = str(control.get("type") or "text").lower()
        if not name or kind in _UNSENT_INPUT_TYPES:
            continue
        if kind in {"checkbox", "radio"} and not control.has_attr("checked"):
            continue
        default = "on" if kind == "checkbox" else ""
        values[name] = str(control.get("value") or default)

    for control in form.find_all("textarea"):
        if isinstance(control, Tag) and control.get("name"):
            values[str(control.get("name"))] = control.get_text()

    for control in form.find_all("select"):
        if not isinstance(control, Tag) or not control.get("name"):
            continue
        option = control.find("option", selected=True) or control.find("option")
        if isinstance(option, Tag):
            value = option.get("value")
            values[str(control.get("name"))] = str(
                value if value is not None else option.get_text(strip=True)
            )

    return values
