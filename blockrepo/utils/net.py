"""网络工具: URL 安全校验与可取消的 HTTP GET"""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlparse

from blockrepo.core.exceptions import OperationCancelledError, ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

# 分块读取，便于在下载过程中响应取消
_CHUNK_SIZE = 64 * 1024


@dataclass
class HttpResponse:
    """HTTP 响应（非 2xx 也以此返回，由调用方按状态码区分）"""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8")


# 传输层签名: (url, headers, timeout, cancel) -> HttpResponse
# 网络不可达等传输错误抛出 OSError
Transport = Callable[
    [str, "dict[str, str]", float, "threading.Event | None"], HttpResponse,
]


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def check_cancelled(cancel: threading.Event | None) -> None:
    """取消信号已置位时抛出 OperationCancelledError"""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("操作已取消")


def http_get(
    url: str,
    headers: dict[str, str] | None = None,
    timeout: float = 30,
    cancel: threading.Event | None = None,
) -> HttpResponse:
    """发起 GET 请求

    HTTP 错误状态码不抛异常，返回带 status 的 HttpResponse；
    连接失败、超时等传输错误抛出 OSError（urllib.error.URLError 是其子类）。

    Raises:
        OperationCancelledError: 请求前或读取过程中取消信号被置位
    """
    validate_url_scheme(url, context="http get")
    check_cancelled(cancel)

    req = urllib.request.Request(url, headers=headers or {}, method="GET")
    logger.debug("GET %s", url)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            chunks: list[bytes] = []
            while True:
                check_cancelled(cancel)
                chunk = resp.read(_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
            return HttpResponse(
                status=resp.status,
                body=b"".join(chunks),
                headers=dict(resp.headers.items()),
            )
    except urllib.error.HTTPError as e:
        body = e.read() if e.fp is not None else b""
        return HttpResponse(
            status=e.code,
            body=body,
            headers=dict(e.headers.items()) if e.headers else {},
        )
