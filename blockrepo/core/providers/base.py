"""Provider 基类

把各类远程主机统一为三个阶段:
    parse(url) -> locator
    resolve_state(locator) -> ProviderState   （最多一次网络探测，失败回退默认值）
    fetch(state, path) -> 文本内容

HTTP 传输通过构造参数注入，测试中可替换为假实现。
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from blockrepo.core.exceptions import ParseError, ProviderFetchError
from blockrepo.core.models import ProviderState
from blockrepo.utils.net import HttpResponse, Transport, http_get

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """locator 为规范化的注册表标识，specifier 为附带的 category/item"""

    locator: str
    specifier: str | None = None


def split_specifier(url: str) -> tuple[str, str]:
    """把完整条目地址拆成 (注册表部分, category/item)"""
    trimmed = url.rstrip("/")
    parts = trimmed.rsplit("/", 2)
    if len(parts) < 3 or not parts[1] or not parts[2]:
        raise ParseError(f"条目地址缺少 <category>/<item>: {url}")
    return parts[0], f"{parts[1]}/{parts[2]}"


class Provider(ABC):
    """远程主机适配器基类"""

    name: str = ""
    # 解析结果是否值得缓存（需要网络探测的才缓存）
    cacheable: bool = False
    # 各 provider 的地址格式说明，用于错误提示
    url_formats: tuple[str, ...] = ()

    def __init__(self, transport: Transport | None = None, timeout: float = 30) -> None:
        self.transport: Transport = transport or http_get
        self.timeout = timeout

    # ---- 解析 ----

    @abstractmethod
    def matches(self, url: str) -> bool:
        """是否能处理该地址（按注册顺序第一个匹配者生效）"""

    @abstractmethod
    def normalize(self, url: str) -> str:
        """把用户输入规范化为 locator

        Raises:
            ParseError: 地址格式非法
        """

    def parse(self, url: str, fully_qualified: bool = False) -> ParseResult:
        """解析注册表地址；fully_qualified 时末尾两段为 category/item"""
        url = url.strip()
        if fully_qualified:
            registry, specifier = split_specifier(url)
            return ParseResult(locator=self.normalize(registry), specifier=specifier)
        return ParseResult(locator=self.normalize(url))

    def invalid(self, url: str) -> ParseError:
        formats = "\n  ".join(self.url_formats)
        return ParseError(f"无法解析 {self.name} 注册表地址: {url}\n支持的格式:\n  {formats}")

    # ---- 状态 ----

    @abstractmethod
    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        """解析寻址信息；探测失败时回退到默认值，不抛异常（取消除外）"""

    def token_key(self, locator: str) -> str:
        return self.name

    def auth_header(self, token: str | None) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    # ---- 拉取 ----

    @abstractmethod
    def resolve_raw(self, state: ProviderState, path: str) -> str:
        """返回文件的原始内容地址"""

    def fetch_headers(self, token: str | None) -> dict[str, str]:
        return self.auth_header(token)

    def fetch(
        self, state: ProviderState, path: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> str:
        """拉取单个文件内容

        Raises:
            ProviderFetchError: 非 2xx 或传输失败，kind 区分 auth / not_found / http / transport
            OperationCancelledError: 取消信号被置位
        """
        url = self.resolve_raw(state, path)
        logger.debug("[%s] 拉取 %s", self.name, url)
        try:
            resp = self.transport(url, self.fetch_headers(token), self.timeout, cancel)
        except OSError as e:
            raise ProviderFetchError(
                f"{url}: 网络请求失败 ({e})，请检查网络连接或注册表地址",
                url=url, kind="transport",
            ) from e
        if not resp.ok:
            raise self.fetch_error(url, resp, token)
        return resp.text()

    def get_json(
        self, url: str, token: str | None, cancel: threading.Event | None,
    ) -> Any | None:
        """探测请求: 成功返回解析后的 JSON，任何非取消失败返回 None"""
        try:
            resp = self.transport(url, self.auth_header(token), self.timeout, cancel)
        except OSError as e:
            logger.debug("[%s] 探测失败 %s: %s", self.name, url, e)
            return None
        if not resp.ok:
            logger.debug("[%s] 探测失败 %s: HTTP %d", self.name, url, resp.status)
            return None
        try:
            return json.loads(resp.text())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    # ---- 错误提示 ----

    def auth_hint(self) -> str:
        return "请检查访问令牌是否有效且具有读取权限"

    def not_found_hint(self) -> str:
        return "请检查注册表地址、分支名和文件路径是否正确"

    def fetch_error(
        self, url: str, resp: HttpResponse, token: str | None,
    ) -> ProviderFetchError:
        detail = _response_message(resp)
        status = resp.status
        if status in (401, 403):
            hint = self.auth_hint() if token else f"该注册表可能需要认证，{self.auth_hint()}"
            kind = "auth"
        elif status == 404:
            hint = self.not_found_hint()
            if not token:
                hint += "；若为私有仓库，需要配置访问令牌"
            kind = "not_found"
        else:
            hint = "远程服务返回错误"
            kind = "http"
        return ProviderFetchError(f"{url}: {status} {detail}，{hint}", url=url, status=status, kind=kind)


def _response_message(resp: HttpResponse) -> str:
    """从 JSON 错误响应中提取 message"""
    content_type = resp.headers.get("Content-Type") or resp.headers.get("content-type") or ""
    if "json" in content_type:
        try:
            data = json.loads(resp.text())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ""
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or "")
    return ""
