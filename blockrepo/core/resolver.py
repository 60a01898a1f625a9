"""依赖图解析

给定请求的条目，计算同注册表本地依赖的传递闭包:
- seen 集合保证每个条目最多访问一次（环形、菱形依赖均可终止）
- 显式栈实现后序遍历，依赖总是排在依赖它的条目之前
- 本地依赖始终在条目的来源注册表中解析
- 已安装集合中的条目跳过，不再拉取也不再展开
- 软角色（test/doc/example）只追加文件，不触发递归

解析失败时整体失败（不返回部分结果）。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from blockrepo.core import roles
from blockrepo.core.exceptions import (
    AmbiguousRegistryError,
    ItemNotFoundError,
    ParseError,
    RegistryNotProvidedError,
)
from blockrepo.core.models import File, Item, ResolvedItem
from blockrepo.core.providers.base import ParseResult
from blockrepo.core.registry import LoadedRegistry, RegistryResolver, run_concurrently

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    registry: LoadedRegistry
    item: Item
    expanded: bool = False


def _join_path(directory: str, path: str) -> str:
    directory = directory.strip("/")
    if not directory or directory == ".":
        return path
    return f"{directory}/{path}"


class DependencyResolver:
    """条目请求 -> 有序的 ResolvedItem 列表"""

    def __init__(self, registry: RegistryResolver) -> None:
        self.registry = registry

    # ---- 请求定位 ----

    def is_qualified(self, request: str) -> bool:
        """请求是否带注册表前缀（能被某个 Provider 识别）"""
        return any(p.matches(request) for p in self.registry.providers)

    def candidates(self, name: str, registries: list[LoadedRegistry]) -> list[str]:
        """包含该条目的注册表 locator 列表（供交互式选择使用）"""
        return [r.locator for r in registries if r.find(name)]

    def _load_missing(
        self, locators: list[str], registries: dict[str, LoadedRegistry],
        cancel: threading.Event | None,
    ) -> None:
        """一次并发加载完全限定请求引用、但尚未加载的注册表"""
        missing = list(dict.fromkeys(loc for loc in locators if loc not in registries))
        if not missing:
            return
        logger.info("加载请求中引用的注册表: %s", ", ".join(missing))
        for locator, loaded in zip(missing, self.registry.load(missing, cancel=cancel)):
            registries[locator] = loaded

    @staticmethod
    def _locate_qualified(
        parsed: ParseResult, registries: dict[str, LoadedRegistry],
    ) -> tuple[LoadedRegistry, Item]:
        loaded = registries[parsed.locator]
        specifier = parsed.specifier or ""
        item = loaded.get(specifier)
        if item is None:
            raise ItemNotFoundError(specifier, loaded.locator)
        return loaded, item

    def _locate_unqualified(
        self, request: str, registries: dict[str, LoadedRegistry],
    ) -> tuple[LoadedRegistry, Item]:
        if not registries:
            raise RegistryNotProvidedError(request)
        hits: list[tuple[LoadedRegistry, Item]] = []
        for loaded in registries.values():
            found = loaded.find(request)
            if len(found) > 1:
                raise ParseError(
                    f"条目名 '{request}' 在 {loaded.locator} 的多个分类中存在: "
                    f"{', '.join(i.identity for i in found)}，请写成 <category>/<name>"
                )
            if found:
                hits.append((loaded, found[0]))
        if not hits:
            raise ItemNotFoundError(request)
        if len(hits) > 1:
            raise AmbiguousRegistryError(request, [r.locator for r, _ in hits])
        return hits[0]

    def locate(
        self, requests: list[str], registries: list[LoadedRegistry],
        cancel: threading.Event | None = None,
    ) -> list[tuple[LoadedRegistry, Item]]:
        """把请求字符串定位到 (注册表, 条目)；空请求表示全部可见条目

        Raises:
            ItemNotFoundError / AmbiguousRegistryError / RegistryNotProvidedError
        """
        by_locator = {r.locator: r for r in registries}
        if not requests:
            return [(r, item) for r in registries for item in r.manifest.listed_items()]

        requests = [r.strip() for r in requests]
        qualified = {
            i: self.registry.parse(request, fully_qualified=True)[1]
            for i, request in enumerate(requests)
            if self.is_qualified(request)
        }
        # 未限定的请求只在已配置的注册表中查找
        configured = dict(by_locator)
        self._load_missing([p.locator for p in qualified.values()], by_locator, cancel)

        located = []
        for i, request in enumerate(requests):
            if i in qualified:
                located.append(self._locate_qualified(qualified[i], by_locator))
            else:
                located.append(self._locate_unqualified(request, configured))
        return located

    # ---- 依赖闭包 ----

    @staticmethod
    def _is_installed(installed: frozenset[str], registry: LoadedRegistry, item: Item) -> bool:
        return item.identity in installed or f"{registry.locator}/{item.identity}" in installed

    def resolve(
        self,
        requests: list[str],
        registries: list[LoadedRegistry],
        *,
        soft_roles: frozenset[str] | set[str] = frozenset(),
        installed: frozenset[str] | set[str] = frozenset(),
        cancel: threading.Event | None = None,
    ) -> list[ResolvedItem]:
        """计算请求条目及其本地依赖的有序闭包

        installed 元素可写 "category/name"（任意注册表）或 "<locator>/category/name"。
        """
        wanted_roles = roles.normalize_roles(tuple(soft_roles))
        installed = frozenset(installed)
        roots = self.locate(requests, registries, cancel)

        result: list[ResolvedItem] = []
        seen: set[tuple[str, str]] = set()
        for registry, item in roots:
            stack = [_Frame(registry, item)]
            while stack:
                frame = stack.pop()
                key = (frame.registry.locator, frame.item.identity)
                if frame.expanded:
                    result.append(self._bind(frame.registry, frame.item, wanted_roles))
                    continue
                if key in seen or self._is_installed(installed, frame.registry, frame.item):
                    continue
                seen.add(key)
                stack.append(_Frame(frame.registry, frame.item, expanded=True))
                for dep in reversed(frame.item.local_dependencies):
                    dep_item = frame.registry.get(dep)
                    if dep_item is None:
                        raise ItemNotFoundError(dep, frame.registry.locator)
                    stack.append(_Frame(frame.registry, dep_item))

        logger.info("依赖解析完成: %d 个条目", len(result))
        return result

    @staticmethod
    def _bind(registry: LoadedRegistry, item: Item, wanted_roles: frozenset[str]) -> ResolvedItem:
        return ResolvedItem(
            item=item,
            state=registry.state,
            manifest=registry.manifest,
            files=item.files_for(wanted_roles),
        )

    # ---- 文件内容 ----

    def fetch_files(
        self, resolved: list[ResolvedItem], cancel: threading.Event | None = None,
    ) -> None:
        """并发拉取所有条目的文件内容；任一失败则整体失败且不写入任何内容"""
        jobs: list[tuple[ResolvedItem, File]] = [
            (r, f) for r in resolved for f in r.files
        ]

        def _fetch(job: tuple[ResolvedItem, File]) -> str:
            r, f = job
            return self.registry.fetch(r.state, _join_path(r.item.directory, f.path), cancel)

        contents = run_concurrently(_fetch, jobs, self.registry.max_workers, cancel)
        for (r, f), text in zip(jobs, contents):
            r.contents[f.path] = text
        logger.info("已拉取 %d 个文件", len(jobs))
