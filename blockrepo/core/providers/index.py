"""托管索引 Provider

地址格式: @<scope>/<name>[@<version>]，version 缺省为 latest。
文件地址: {index_url}/api/scopes/@<scope>/<name>/v/<version>/files/<path>
"""

from __future__ import annotations

import re
import threading
from urllib.parse import quote

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.base import Provider
from blockrepo.utils.urls import ensure_trailing_slash

DEFAULT_INDEX_URL = "https://blockrepo.dev"
DEFAULT_VERSION = "latest"

# 作用域与注册表名: 小写字母数字，- 分隔，不以数字或 - 开头，不含 --
NAME_REGEX = re.compile(r"^(?![-0-9])(?!.*--)[a-z0-9]*(?:-[a-z0-9]+)*$")


class IndexProvider(Provider):
    name = "index"
    cacheable = True
    url_formats = ("@<scope>/<name>[@<version>]",)

    def __init__(self, index_url: str = DEFAULT_INDEX_URL, **kwargs) -> None:
        super().__init__(**kwargs)
        self.index_url = index_url.rstrip("/")

    def matches(self, url: str) -> bool:
        return url.startswith("@")

    def _parts(self, url: str) -> tuple[str, str, str]:
        parts = url.split("/")
        if len(parts) != 2 or not parts[1]:
            raise self.invalid(url)
        scope, rest = parts
        name, _, version = rest.partition("@")
        if not NAME_REGEX.match(scope[1:]) or not scope[1:] or not name or not NAME_REGEX.match(name):
            raise self.invalid(url)
        return scope, name, version or DEFAULT_VERSION

    def normalize(self, url: str) -> str:
        scope, name, version = self._parts(url)
        return f"{scope}/{name}@{version}"

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        scope, name, version = self._parts(locator)
        return ProviderState.create(
            self.name, locator,
            base_url=self.index_url, scope=scope, registry=name, version=version,
        )

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        return (
            f"{ensure_trailing_slash(state.get('base_url'))}api/scopes/{state.get('scope')}/"
            f"{state.get('registry')}/v/{quote(state.get('version'), safe='')}/files/{quote(path)}"
        )

    def auth_header(self, token: str | None) -> dict[str, str]:
        return {"x-api-key": token} if token else {}

    def auth_hint(self) -> str:
        return "请检查索引服务的 API Key（BLOCKREPO_TOKEN）"

    def not_found_hint(self) -> str:
        return "请检查作用域、注册表名和版本是否已发布"
