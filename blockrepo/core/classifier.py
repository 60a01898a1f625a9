"""导入分类器

把语言解析器提取出的模块说明符分为三类:
- 内置模块: 忽略
- 本地引用: 指向注册表目录内的其他条目，记录依赖 category/name 与占位模板
- 外部包: 解析包名，从最近的 package.json 锁定版本

占位模板形如 {{types/result}}.ts，安装时由 rewriter 还原为实际路径。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from blockrepo.core import packages, tsconfig
from blockrepo.core.exceptions import (
    InvalidPackageNameWarning,
    LocalDependencyUnresolvedError,
)
from blockrepo.core.models import RemoteDependency, merge_dependencies, merge_strings

logger = logging.getLogger(__name__)

_ALIAS_EXTENSIONS = (".js", ".ts")


@dataclass
class LocalReference:
    """本地引用: dependency 为 category/name，template 为占位模板"""

    dependency: str
    template: str


@dataclass
class ClassifyOptions:
    """单个文件的分类上下文

    roots: 注册表根目录（绝对路径）
    containing_dir: 目录型条目所在目录，非空时表示按子目录模式扫描
    exclude_deps: 不记录的外部包名
    """

    roots: list[str]
    containing_dir: str | None = None
    exclude_deps: frozenset[str] = frozenset()

    @property
    def is_sub_dir(self) -> bool:
        return self.containing_dir is not None


@dataclass
class ClassifiedImports:
    """单个文件（或合并后的整个条目）的分类结果"""

    local: list[str] = field(default_factory=list)
    dependencies: list[RemoteDependency] = field(default_factory=list)
    dev_dependencies: list[RemoteDependency] = field(default_factory=list)
    imports: dict[str, str] = field(default_factory=dict)
    warnings: list[InvalidPackageNameWarning] = field(default_factory=list)

    def merge(self, other: ClassifiedImports) -> None:
        """合并另一文件的结果: 依赖按身份去重，模板后写覆盖"""
        self.local = merge_strings(self.local, other.local)
        self.dependencies = merge_dependencies(self.dependencies, other.dependencies)
        self.dev_dependencies = merge_dependencies(self.dev_dependencies, other.dev_dependencies)
        self.imports.update(other.imports)
        self.warnings.extend(other.warnings)


# =========================================================================
# 路径工具
# =========================================================================


def _is_under(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


def parse_local_path(local_path: str, drop_extension: bool = True) -> LocalReference:
    """把根目录下的相对路径 category/item[/rest] 转为依赖与模板

    item 缺省时指向 index；drop_extension 时去掉 item 的扩展名并追加到模板末尾。
    """
    parts = local_path.replace(os.sep, "/").split("/")
    category = parts[0]
    block = parts[1] if len(parts) > 1 and parts[1] else "index"
    rest = parts[2:]

    trimmed = block
    ext = ""
    if drop_extension and "." in block.lstrip("."):
        stem, ext = os.path.splitext(block)
        trimmed = stem

    dependency = f"{category}/{trimmed}"
    template = f"{{{{{dependency}}}}}"
    if rest:
        template += "/" + "/".join(rest)
    elif trimmed != block:
        template += ext
    return LocalReference(dependency=dependency, template=template)


def resolution_equal(path_a: str, path_b: str, extensions: tuple[str, ...]) -> bool:
    """去掉扩展名后相同且两者扩展名都在 extensions 中即视为同一文件"""
    if path_a == path_b:
        return True
    stem_a, ext_a = os.path.splitext(path_a)
    stem_b, ext_b = os.path.splitext(path_b)
    return stem_a == stem_b and ext_a in extensions and ext_b in extensions


@dataclass
class FoundModule:
    path: str
    pretty_path: str
    is_dir: bool


def search_for_module(mod_path: str) -> FoundModule | None:
    """在磁盘上查找别名指向的模块

    依次尝试: 路径本身存在；.js 换成 .ts；父目录中同名（忽略扩展名）的文件或目录。
    pretty_path 保留用户书写的形式（省略的扩展名不补上）。
    """
    p = Path(mod_path)
    if p.exists():
        return FoundModule(path=mod_path, pretty_path=mod_path, is_dir=p.is_dir())

    parent = p.parent
    if not parent.is_dir():
        return None

    if p.suffix == ".js":
        ts_path = p.with_suffix(".ts")
        if ts_path.exists():
            return FoundModule(path=str(ts_path), pretty_path=mod_path, is_dir=False)

    for entry in sorted(parent.iterdir()):
        stem = entry.name[: -len(entry.suffix)] if entry.suffix else entry.name
        if stem == p.name:
            return FoundModule(
                path=str(entry),
                pretty_path=str(parent / stem),
                is_dir=entry.is_dir(),
            )
    return None


# =========================================================================
# 分类
# =========================================================================


class ImportClassifier:
    """对一个文件的全部说明符进行分类"""

    def __init__(self, options: ClassifyOptions) -> None:
        self.options = options
        self.roots = sorted(
            (os.path.normpath(os.path.abspath(r)) for r in options.roots),
            key=len, reverse=True,
        )

    def resolve_relative(
        self, specifier: str, file_path: str,
        *, drop_extension: bool = True, alias: str = "",
    ) -> LocalReference | None:
        """解析相对导入；指向自身目录内部时返回 None

        Raises:
            LocalDependencyUnresolvedError: 解析结果不在任何注册表根目录下
        """
        opts = self.options
        if opts.is_sub_dir and (specifier.startswith("./") or specifier == "."):
            return None

        mod_path = os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(file_path)), specifier))

        if opts.containing_dir and _is_under(mod_path, os.path.abspath(opts.containing_dir)):
            return None

        # 根目录存在嵌套时取最长前缀
        for root in self.roots:
            if _is_under(mod_path, root) and mod_path != root:
                return parse_local_path(os.path.relpath(mod_path, root), drop_extension)

        raise LocalDependencyUnresolvedError(
            file_path, alias or specifier, [os.path.relpath(r) for r in self.roots],
        )

    def resolve_alias(self, specifier: str, file_path: str) -> LocalReference | None:
        """尝试把说明符当作 tsconfig/jsconfig 路径别名解析

        没有别名配置或别名不命中时返回 None（交给外部包处理）。
        """
        aliases = tsconfig.get_path_aliases(file_path)
        if aliases is None or aliases.empty:
            return None

        file_dir = os.path.dirname(os.path.abspath(file_path))
        for candidate in aliases.match(specifier):
            found = search_for_module(candidate)
            if found is None:
                continue
            rel = os.path.relpath(found.pretty_path, file_dir)
            if not rel.startswith("."):
                rel = f"./{rel}"
            drop = resolution_equal(found.pretty_path, found.path, _ALIAS_EXTENSIONS)
            return self.resolve_relative(rel, file_path, drop_extension=drop, alias=specifier)
        return None

    def classify(
        self, specifiers: list[str], file_path: str,
        implicit_packages: frozenset[str] = frozenset(),
    ) -> ClassifiedImports:
        """分类一个文件的全部说明符

        Raises:
            LocalDependencyUnresolvedError: 本地引用越出注册表
        """
        result = ClassifiedImports()
        external: list[packages.PackageName] = []

        for spec in specifiers:
            if packages.is_builtin(spec):
                continue

            if spec.startswith("."):
                ref = self.resolve_relative(spec, file_path)
                if ref is not None:
                    result.local = merge_strings(result.local, [ref.dependency])
                    result.imports[spec] = ref.template
                continue

            ref = self.resolve_alias(spec, file_path)
            if ref is not None:
                result.local = merge_strings(result.local, [ref.dependency])
                result.imports[spec] = ref.template
                continue

            parsed = packages.parse_package_name(spec)
            if parsed is None or not packages.validate_package_name(parsed.name):
                msg = f"{file_path}: 跳过导入 '{spec}'，既不是合法包名也不是路径别名"
                logger.warning(msg)
                result.warnings.append(InvalidPackageNameWarning(msg, path=file_path))
                continue
            external.append(parsed)

        self._pin_versions(external, file_path, implicit_packages, result)
        return result

    def _pin_versions(
        self, external: list[packages.PackageName], file_path: str,
        implicit_packages: frozenset[str], result: ClassifiedImports,
    ) -> None:
        skip = self.options.exclude_deps | implicit_packages
        wanted = [p for p in external if p.name not in skip]
        if not wanted:
            return
        versions = packages.read_package_versions(
            packages.find_nearest_package_json(os.path.dirname(os.path.abspath(file_path)))
        )
        for pkg in wanted:
            version, is_dev = versions.pin(pkg.name)
            if version is None:
                version = pkg.version
            dep = RemoteDependency(name=pkg.name, version=version)
            if is_dev:
                result.dev_dependencies = merge_dependencies(result.dev_dependencies, [dep])
            else:
                result.dependencies = merge_dependencies(result.dependencies, [dep])
