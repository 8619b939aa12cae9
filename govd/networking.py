"""HTTP client with proxy, edge-proxy and browser-like TLS options."""

from __future__ import annotations

import http
import ssl
from dataclasses import dataclass, field
from http.cookies import SimpleCookie
from typing import Any, Optional, Protocol, Union
from urllib.parse import quote_plus, urlsplit

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from govd.logs import logger

DEFAULT_TIMEOUT = 30.0

_CHROME_UA = (
    "Mozilla/5.0 (Linux; Android 10; SM-G960U) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/88.0.4324.181 Mobile Safari/537.36"
)

_CHROME_CIPHERS = ":".join(
    [
        "ECDHE-ECDSA-AES128-GCM-SHA256",
        "ECDHE-RSA-AES128-GCM-SHA256",
        "ECDHE-ECDSA-AES256-GCM-SHA384",
        "ECDHE-RSA-AES256-GCM-SHA384",
        "ECDHE-ECDSA-CHACHA20-POLY1305",
        "ECDHE-RSA-CHACHA20-POLY1305",
    ]
)


class _Transport(Protocol):
    def do(self, request: requests.PreparedRequest) -> requests.Response: ...


@dataclass
class RequestParams:
    """Per-request body, headers and cookies."""

    body: Union[bytes, str, None] = None
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)


@dataclass
class ClientOptions:
    """How a new HTTP client should route its requests."""

    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    proxy: str = ""
    edge_proxy: str = ""
    download_proxy: str = ""
    impersonate: bool = False
    disable_proxy: bool = False


@dataclass
class EdgeProxyResponse:
    """Reply of an edge proxy describing the upstream response."""

    url: str = ""
    status_code: int = 0
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    cookies: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EdgeProxyResponse":
        return cls(
            url=data.get("url") or "",
            status_code=int(data.get("status_code") or 0),
            text=data.get("text") or "",
            headers=dict(data.get("headers") or {}),
            cookies=list(data.get("cookies") or []),
        )


@dataclass
class _SessionTransport:
    """Sends prepared requests through a requests session."""

    session: requests.Session

    def do(self, request: requests.PreparedRequest) -> requests.Response:
        return self.session.send(request, timeout=DEFAULT_TIMEOUT)


class _ChromeTLSAdapter(HTTPAdapter):
    """Adapter whose TLS settings follow a desktop browser's preferences."""

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = _chrome_ssl_context()
        super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy: str, **kwargs: Any) -> Any:
        kwargs["ssl_context"] = _chrome_ssl_context()
        return super().proxy_manager_for(proxy, **kwargs)


def _chrome_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.maximum_version = ssl.TLSVersion.TLSv1_3
    context.set_ciphers(_CHROME_CIPHERS)
    return context


def _new_session(proxy: str = "", trust_env: bool = True) -> requests.Session:
    session = requests.Session()
    session.trust_env = trust_env
    if proxy:
        session.proxies = {"http": proxy, "https": proxy}
    adapter = HTTPAdapter(pool_connections=100, pool_maxsize=100)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def chrome_session() -> requests.Session:
    """Session whose TLS handshake resembles a Chrome browser's."""
    session = requests.Session()
    adapter = _ChromeTLSAdapter(pool_connections=100, pool_maxsize=100)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _valid_proxy(url: str) -> bool:
    try:
        parts = urlsplit(url)
        _ = parts.port
    except ValueError:
        return False
    return True


def generate_chrome_ua() -> str:
    """User agent used when a request sets none."""
    return _CHROME_UA


@dataclass
class HTTPClient:
    """Sends requests with client-wide headers and cookies."""

    transport: _Transport
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    proxy: str = ""
    edge_proxy: str = ""
    download_proxy: str = ""
    disable_proxy: bool = False

    def fetch(
        self, method: str, url: str, params: Optional[RequestParams] = None
    ) -> requests.Response:
        """Send a request; request headers and cookies override the client's."""
        params = params or RequestParams()
        headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
        headers.update(self.headers)
        headers.update(params.headers)
        if not headers.get("User-Agent"):
            headers["User-Agent"] = generate_chrome_ua()
        cookies = {**self.cookies, **params.cookies}
        prepared = requests.Request(
            method,
            url,
            headers=dict(headers),
            data=params.body,
            cookies=cookies or None,
        ).prepare()
        return self.transport.do(prepared)

    def as_download_client(self) -> "HTTPClient":
        """Client for media downloads, using the download proxy if any."""
        client = default_http_client(
            ClientOptions(headers=self.headers, cookies=self.cookies)
        )
        if self.download_proxy:
            if not _valid_proxy(self.download_proxy):
                logger.warning("invalid download proxy URL: %s", self.download_proxy)
                return self
            client.transport = _SessionTransport(_new_session(proxy=self.download_proxy))
            client.download_proxy = self.download_proxy
        elif self.disable_proxy:
            client.transport = _SessionTransport(_new_session(trust_env=False))
            client.disable_proxy = True
        return client


@dataclass
class EdgeProxyClient:
    """Transport that relays every request through an edge proxy."""

    proxy_url: str
    client: HTTPClient = field(
        default_factory=lambda: HTTPClient(transport=_SessionTransport(requests.Session()))
    )

    def do(self, request: requests.PreparedRequest) -> requests.Response:
        if not self.proxy_url:
            raise ValueError("proxy URL is not set")
        logger.debug("routing request via edge proxy")
        target = request.url or ""
        relay_url = self.proxy_url + "?url=" + quote_plus(target)
        headers = {k: v for k, v in request.headers.items() if k.lower() != "content-length"}
        response = self.client.fetch(
            request.method or "GET",
            relay_url,
            RequestParams(body=request.body, headers=headers),
        )
        with response:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ValueError(f"error parsing proxy response: {exc}") from exc
        return parse_edge_proxy_response(payload, request)


def parse_edge_proxy_response(
    payload: dict[str, Any], request: requests.PreparedRequest
) -> requests.Response:
    """Build a response from an edge proxy's JSON reply."""
    if not isinstance(payload, dict):
        raise ValueError("error parsing proxy response: expected an object")
    data = EdgeProxyResponse.from_dict(payload)
    if not _valid_proxy(data.url):
        raise ValueError(f"error parsing response URL: {data.url}")

    response = requests.Response()
    response.status_code = data.status_code
    try:
        response.reason = http.HTTPStatus(data.status_code).phrase
    except ValueError:
        response.reason = ""
    response._content = data.text.encode("utf-8")
    response.encoding = "utf-8"
    response.url = data.url
    final_request = request.copy()
    final_request.url = data.url
    response.request = final_request

    for name, value in data.headers.items():
        response.headers[name] = value
    if data.cookies:
        response.headers["Set-Cookie"] = ", ".join(data.cookies)
        for raw in data.cookies:
            parsed: SimpleCookie = SimpleCookie()
            parsed.load(raw)
            for morsel in parsed.values():
                response.cookies.set(morsel.key, morsel.value)
    return response


def default_http_client(options: Optional[ClientOptions] = None) -> HTTPClient:
    """Plain client honouring proxies from the environment."""
    options = options or ClientOptions()
    return HTTPClient(
        transport=_SessionTransport(_new_session()),
        headers=dict(options.headers),
        cookies=dict(options.cookies),
    )


def new_http_client(options: Optional[ClientOptions] = None) -> HTTPClient:
    """Client routed by the options: proxy, then edge proxy, then no proxy."""
    options = options or ClientOptions()
    client = default_http_client(options)

    if options.proxy:
        if not _valid_proxy(options.proxy):
            logger.warning("invalid proxy URL: %s", options.proxy)
        else:
            client.transport = _SessionTransport(_new_session(proxy=options.proxy))
            client.proxy = options.proxy
    elif options.edge_proxy:
        client.transport = EdgeProxyClient(options.edge_proxy)
        client.edge_proxy = options.edge_proxy
    elif options.disable_proxy:
        client.transport = _SessionTransport(_new_session(trust_env=False))
        client.disable_proxy = True

    if options.impersonate:
        client.transport = _SessionTransport(chrome_session())

    client.download_proxy = options.download_proxy
    return client