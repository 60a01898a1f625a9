"""领域协议定义

集中定义解析层依赖的外部协作者接口（Protocol），
解析器只依赖抽象，测试中可以用内存实现替换。

使用 typing.Protocol 而非 ABC，使得现有类无需修改继承关系即可满足协议。
"""

from __future__ import annotations

from typing import Protocol

from blockrepo.core.models import ProviderState


class StateCache(Protocol):
    """ProviderState 缓存，按 locator 索引

    并发首次解析时允许后写覆盖（同一 locator 的结果值相等）。
    """

    def get(self, locator: str) -> ProviderState | None:
        ...

    def set(self, locator: str, state: ProviderState) -> None:
        ...

    def delete(self, locator: str) -> None:
        ...


class TokenStore(Protocol):
    """访问令牌存储，key 为 provider 名称或 http-<origin>"""

    def get(self, key: str) -> str | None:
        ...
