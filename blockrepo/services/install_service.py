"""安装服务: 注册表加载 -> 依赖解析 -> 文件拉取 -> 路径改写 -> 安装计划

核心层不写文件；plan() 返回完整计划，write() 是唯一的落盘步骤，
只在整个解析和拉取成功后调用，不会留下半套安装。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from blockrepo import __version__
from blockrepo.core import roles
from blockrepo.core.config import Config, ProjectConfig, get_config
from blockrepo.core.langs import Language, find_language
from blockrepo.core.models import RemoteDependency, ResolvedItem, merge_dependencies
from blockrepo.core.protocols import StateCache, TokenStore
from blockrepo.core.providers import Provider, default_providers
from blockrepo.core.registry import LoadedRegistry, RegistryResolver
from blockrepo.core.resolver import DependencyResolver
from blockrepo.core.rewriter import ImportRewriter
from blockrepo.core.tokens import EnvTokenStore
from blockrepo.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class PlannedFile:
    """待写入的文件，exists 表示目标位置已有文件（由调用方决定是否覆盖）"""

    path: str
    content: str
    role: str
    item: str
    exists: bool = False


@dataclass
class InstallPlan:
    items: list[ResolvedItem] = field(default_factory=list)
    files: list[PlannedFile] = field(default_factory=list)
    dependencies: list[RemoteDependency] = field(default_factory=list)
    dev_dependencies: list[RemoteDependency] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.items]


def watermark_text(locator: str) -> str:
    return f"blockrepo {__version__}\nInstalled from {locator}"


class InstallService:
    """消费者侧入口"""

    def __init__(
        self,
        project: ProjectConfig,
        cwd: str | Path = ".",
        *,
        config: Config | None = None,
        providers: list[Provider] | None = None,
        cache: StateCache | None = None,
        tokens: TokenStore | None = None,
        languages: list[Language] | None = None,
        formatter: str | None = None,
    ) -> None:
        config = config or get_config()
        self.project = project
        self.cwd = Path(cwd)
        self.languages = languages
        self.formatter = formatter
        if providers is None:
            providers = default_providers(
                timeout=config.http_timeout, index_url=config.index_url, cwd=self.cwd,
            )
        self.registry = RegistryResolver(
            providers,
            cache=cache,
            tokens=tokens if tokens is not None else EnvTokenStore(),
            manifest_file=config.manifest_file,
            max_workers=config.max_workers,
        )
        self.resolver = DependencyResolver(self.registry)
        self.rewriter = ImportRewriter(project.paths, self.cwd)

    # ---- 解析 ----

    def load_registries(
        self, registries: list[str] | None = None, *,
        no_cache: bool = False, cancel: threading.Event | None = None,
    ) -> list[LoadedRegistry]:
        urls = self.project.registries if registries is None else registries
        return self.registry.load(list(urls), no_cache=no_cache, cancel=cancel)

    def resolve(
        self,
        requests: list[str],
        *,
        registries: list[str] | None = None,
        with_roles: list[str] | None = None,
        installed: set[str] | frozenset[str] = frozenset(),
        no_cache: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[ResolvedItem]:
        """解析请求条目的有序依赖闭包（不拉取文件）"""
        loaded = self.load_registries(registries, no_cache=no_cache, cancel=cancel)
        soft = with_roles if with_roles is not None else self.project.with_roles
        return self.resolver.resolve(
            requests, loaded,
            soft_roles=roles.normalize_roles(tuple(soft)),
            installed=frozenset(installed),
            cancel=cancel,
        )

    # ---- 计划 ----

    def plan(
        self,
        requests: list[str],
        *,
        registries: list[str] | None = None,
        with_roles: list[str] | None = None,
        installed: set[str] | frozenset[str] = frozenset(),
        no_cache: bool = False,
        cancel: threading.Event | None = None,
    ) -> InstallPlan:
        """生成安装计划

        Raises:
            ItemNotFoundError / AmbiguousRegistryError / ProviderFetchError:
                解析或拉取失败（不返回部分计划）
            NoPathConfiguredError: 某个分类没有安装路径
        """
        resolved = self.resolve(
            requests, registries=registries, with_roles=with_roles,
            installed=installed, no_cache=no_cache, cancel=cancel,
        )
        self.resolver.fetch_files(resolved, cancel)

        plan = InstallPlan(items=resolved)
        for r in resolved:
            for rewritten in self.rewriter.rewrite(r):
                plan.files.append(PlannedFile(
                    path=rewritten.path,
                    content=self._finish(rewritten.path, rewritten.content, r.locator),
                    role=rewritten.role,
                    item=rewritten.item,
                    exists=(self.cwd / rewritten.path).exists(),
                ))
            plan.dependencies = merge_dependencies(plan.dependencies, r.item.dependencies)
            plan.dev_dependencies = merge_dependencies(
                plan.dev_dependencies, r.item.dev_dependencies,
            )
        logger.info(
            "安装计划: %d 个条目, %d 个文件, %d 个外部依赖",
            len(plan.items), len(plan.files), len(plan.dependencies),
        )
        return plan

    def _finish(self, path: str, content: str, locator: str) -> str:
        lang = find_language(Path(path).name, self.languages)
        if lang is None:
            return content
        if self.project.watermark:
            mark = lang.comment(watermark_text(locator))
            if mark and not content.startswith(mark):
                content = f"{mark}\n\n{content}"
        return lang.format(content, self.formatter)

    # ---- 写入 ----

    def write(self, plan: InstallPlan, *, overwrite: bool = True) -> list[Path]:
        """原子写入计划中的文件，返回实际写入的路径"""
        written: list[Path] = []
        for f in plan.files:
            target = self.cwd / f.path
            if f.exists and not overwrite:
                logger.info("跳过已存在的文件: %s", f.path)
                continue
            atomic_write(target, f.content)
            written.append(target)
        logger.info("已写入 %d 个文件", len(written))
        return written
