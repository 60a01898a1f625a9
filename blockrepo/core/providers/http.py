"""通用 HTTP Provider

任何 http(s):// 基础地址，文件地址为 <base>/<path>。
令牌按来源（scheme://host）存储: http-<origin>。
"""

from __future__ import annotations

import threading
from urllib.parse import quote, urljoin, urlparse

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.base import Provider
from blockrepo.utils.urls import ensure_trailing_slash, origin


class HttpProvider(Provider):
    name = "http"
    url_formats = ("https://<host>/<path>",)

    def matches(self, url: str) -> bool:
        return url.startswith(("http://", "https://"))

    def normalize(self, url: str) -> str:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise self.invalid(url)
        return url.rstrip("/")

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        return ProviderState.create(self.name, locator, base_url=ensure_trailing_slash(locator))

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        return urljoin(state.get("base_url"), quote(path))

    def token_key(self, locator: str) -> str:
        return f"http-{origin(locator)}"

    def auth_header(self, token: str | None) -> dict[str, str]:
        return {"Authorization": f"token {token}"} if token else {}
