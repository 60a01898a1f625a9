"""注册表解析

为每个注册表地址选择 Provider，解析 ProviderState（可走缓存），
拉取并解析清单。多个注册表之间互不依赖，使用线程池并发。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from blockrepo.core.exceptions import (
    ManifestFetchError,
    NoProviderFoundError,
    ProviderFetchError,
    ValidationError,
)
from blockrepo.core.models import Item, Manifest, ProviderState
from blockrepo.core.protocols import StateCache, TokenStore
from blockrepo.core.providers.base import ParseResult, Provider
from blockrepo.utils.net import check_cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class LoadedRegistry:
    """已解析状态并拉取了清单的注册表"""

    state: ProviderState
    provider: Provider
    manifest: Manifest
    items: dict[str, Item] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.items:
            self.items = {i.identity: i for i in self.manifest.iter_items()}

    @property
    def locator(self) -> str:
        return self.state.locator

    def get(self, identity: str) -> Item | None:
        return self.items.get(identity)

    def find(self, name: str) -> list[Item]:
        """按 "category/name" 精确查找，或按 "name" 在所有分类中查找"""
        if "/" in name:
            item = self.items.get(name)
            return [item] if item else []
        return self.manifest.find_by_name(name)


def run_concurrently(
    func: Callable[[T], R],
    inputs: list[T],
    max_workers: int,
    cancel: threading.Event | None = None,
) -> list[R]:
    """并发执行并按输入顺序返回结果

    任一任务失败时置位 cancel（通知其余任务尽快退出），取消未开始的任务，
    并抛出第一个失败的异常。
    """
    if not inputs:
        return []
    if len(inputs) == 1 or max_workers <= 1:
        return [func(x) for x in inputs]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(inputs))) as pool:
        futures = [pool.submit(func, x) for x in inputs]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = next(
            (f for f in futures if f in done and f.exception() is not None), None,
        )
        if failed is not None:
            if cancel is not None:
                cancel.set()
            for f in pending:
                f.cancel()
            raise failed.exception()  # type: ignore[misc]
    return [f.result() for f in futures]


class RegistryResolver:
    """注册表地址 -> ProviderState -> Manifest"""

    def __init__(
        self,
        providers: list[Provider],
        *,
        cache: StateCache | None = None,
        tokens: TokenStore | None = None,
        manifest_file: str = "blockrepo-manifest.json",
        max_workers: int = 8,
    ) -> None:
        self.providers = providers
        self.cache = cache
        self.tokens = tokens
        self.manifest_file = manifest_file
        self.max_workers = max(1, max_workers)

    # ---- Provider 选择 ----

    def select_provider(self, url: str) -> Provider:
        """按顺序返回第一个匹配的 Provider

        Raises:
            NoProviderFoundError: 没有 Provider 能处理该地址
        """
        for provider in self.providers:
            if provider.matches(url):
                return provider
        raise NoProviderFoundError(url, [p.name for p in self.providers])

    def provider_named(self, name: str) -> Provider:
        for provider in self.providers:
            if provider.name == name:
                return provider
        raise NoProviderFoundError(name, [p.name for p in self.providers])

    def parse(self, url: str, fully_qualified: bool = False) -> tuple[Provider, ParseResult]:
        provider = self.select_provider(url)
        return provider, provider.parse(url, fully_qualified)

    def token_for(self, provider: Provider, locator: str) -> str | None:
        if self.tokens is None:
            return None
        return self.tokens.get(provider.token_key(locator))

    # ---- 状态解析 ----

    def resolve_state(
        self, url: str, *, no_cache: bool = False,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        """解析单个注册表的 ProviderState

        no_cache=True 时先删除缓存条目再重新探测。
        """
        provider, parsed = self.parse(url)
        locator = parsed.locator
        use_cache = self.cache is not None and provider.cacheable

        if use_cache and no_cache:
            self.cache.delete(locator)  # type: ignore[union-attr]
        elif use_cache:
            cached = self.cache.get(locator)  # type: ignore[union-attr]
            if cached is not None:
                logger.debug("注册表状态缓存命中: %s", locator)
                return cached

        check_cancelled(cancel)
        state = provider.resolve_state(locator, self.token_for(provider, locator), cancel)
        if use_cache:
            self.cache.set(locator, state)  # type: ignore[union-attr]
        logger.debug("注册表状态已解析: %s %s", locator, dict(state.params))
        return state

    # ---- 清单 ----

    def fetch(
        self, state: ProviderState, path: str,
        cancel: threading.Event | None = None,
    ) -> str:
        provider = self.provider_named(state.provider)
        return provider.fetch(state, path, self.token_for(provider, state.locator), cancel)

    def fetch_manifest(
        self, state: ProviderState, cancel: threading.Event | None = None,
    ) -> LoadedRegistry:
        """拉取并解析清单

        Raises:
            ManifestFetchError: 拉取失败或清单内容非法
        """
        provider = self.provider_named(state.provider)
        try:
            text = self.fetch(state, self.manifest_file, cancel)
        except ProviderFetchError as e:
            raise ManifestFetchError(
                f"拉取 {state.locator} 的清单失败: {e}",
                url=e.url, status=e.status, kind=e.kind,
            ) from e
        try:
            manifest = Manifest.from_json(text)
        except ValidationError as e:
            raise ManifestFetchError(
                f"{state.locator} 的清单无效: {e}", url=state.locator, kind="http",
            ) from e
        logger.info(
            "已加载注册表 %s: %d 个条目", state.locator,
            sum(len(c.items) for c in manifest.categories),
        )
        return LoadedRegistry(state=state, provider=provider, manifest=manifest)

    def load(
        self, urls: list[str], *, no_cache: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[LoadedRegistry]:
        """解析状态并拉取清单（每个注册表独立并发）"""
        def _one(url: str) -> LoadedRegistry:
            return self.fetch_manifest(
                self.resolve_state(url, no_cache=no_cache, cancel=cancel), cancel,
            )

        return run_concurrently(_one, list(urls), self.max_workers, cancel)
