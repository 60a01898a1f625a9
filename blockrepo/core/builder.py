"""清单构建器

遍历配置的根目录:
- 根目录下每个子目录是一个分类
- 分类下每个文件或子目录是一个条目
- 对每个代码文件运行语言解析器 + 导入分类器，合并得到条目的依赖

单文件错误（本地引用越界、语法严重错误）先累积，遍历结束后统一抛出 BuildError；
不支持的文件类型等只产生告警。
"""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from blockrepo.core import roles, tsconfig
from blockrepo.core.classifier import ClassifiedImports, ClassifyOptions, ImportClassifier
from blockrepo.core.config import BuildConfig, ConfigFileSpec
from blockrepo.core.exceptions import (
    BuildError,
    BuildWarning,
    FileSyntaxError,
    InvalidLocalDependencyError,
    LocalDependencyUnresolvedError,
    SkippedPathWarning,
    UnsupportedFileTypeWarning,
)
from blockrepo.core.langs import Language, find_language
from blockrepo.core.models import Category, ConfigFile, File, Item, Manifest

logger = logging.getLogger(__name__)

_IGNORED_DIRS = frozenset(("node_modules",))


@dataclass
class BuildResult:
    """构建结果: 清单 + 告警 + 被裁剪的私有条目"""

    manifest: Manifest
    warnings: list[BuildWarning] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)


def _allowed(category: str, name: str, include: list[str], exclude: list[str]) -> bool:
    """include 非空时必须命中，exclude 命中即排除；条目可写 name 或 category/name"""
    keys = {name, f"{category}/{name}"} if category else {name}
    if exclude and keys & set(exclude):
        return False
    if include:
        return bool(keys & set(include))
    return True


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _posix(path: str) -> str:
    return path.replace(os.sep, "/")


class ManifestBuilder:
    """从源码目录构建清单"""

    def __init__(
        self,
        config: BuildConfig,
        cwd: str | Path = ".",
        languages: list[Language] | None = None,
    ) -> None:
        self.config = config
        self.cwd = Path(cwd).resolve()
        self.languages = languages
        self.output_dir = (self.cwd / config.output_dir).resolve()
        self.roots = [str((self.cwd / d).resolve()) for d in config.dirs]
        self.warnings: list[BuildWarning] = []
        self.errors: list[str] = []

    # ---- 对外入口 ----

    def build(self) -> BuildResult:
        """构建清单

        Raises:
            BuildError: 根目录不可读，或存在单文件致命错误（details 列出全部）
            InvalidLocalDependencyError: 条目依赖的本地条目不在清单中
        """
        self.warnings = []
        self.errors = []
        tsconfig.clear_cache()

        for root in self.roots:
            if not os.path.isdir(root):
                raise BuildError(f"无法读取注册表目录: {os.path.relpath(root, self.cwd)}")

        categories: list[Category] = []
        seen: dict[str, str] = {}
        for root in self.roots:
            for category in self._build_root(root):
                if category.name in seen:
                    self.errors.append(
                        f"分类名重复: '{category.name}' 同时出现在 {seen[category.name]} 和 {root}"
                    )
                    continue
                seen[category.name] = root
                categories.append(category)

        config_files = self._build_config_files()

        if self.errors:
            raise BuildError(f"构建失败，共 {len(self.errors)} 个错误", details=list(self.errors))

        manifest = Manifest(
            name=self.config.name,
            version=self.config.version,
            homepage=self.config.homepage,
            meta=dict(self.config.meta),
            default_paths=dict(self.config.default_paths),
            config_files=config_files,
            categories=categories,
        )
        validate_local_dependencies(manifest)

        pruned: list[str] = []
        if self.config.prune_unused:
            pruned = prune_unused(manifest)
            for identity in pruned:
                logger.info("裁剪未被依赖的私有条目: %s", identity)

        item_count = sum(len(c.items) for c in manifest.categories)
        logger.info(
            "清单构建完成: %d 个分类, %d 个条目, %d 条告警",
            len(manifest.categories), item_count, len(self.warnings),
        )
        return BuildResult(manifest=manifest, warnings=list(self.warnings), pruned=pruned)

    # ---- 内部 ----

    def _warn(self, warning: BuildWarning) -> None:
        logger.warning("%s", warning.message)
        self.warnings.append(warning)

    def _rel(self, path: str | Path) -> str:
        return _posix(os.path.relpath(str(path), str(self.output_dir)))

    def _included_verbatim(self, path: Path) -> bool:
        if not self.config.include_files:
            return False
        rel = _posix(os.path.relpath(str(path), str(self.cwd)))
        return any(
            fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(path.name, pattern)
            for pattern in self.config.include_files
        )

    def _language_for(self, path: Path) -> Language | None:
        return find_language(path.name, self.languages)

    def _build_root(self, root: str) -> list[Category]:
        cfg = self.config
        categories = []
        for entry in sorted(Path(root).iterdir()):
            if not entry.is_dir() or _is_hidden(entry.name) or entry.name in _IGNORED_DIRS:
                continue
            name = entry.name
            if not _allowed("", name, cfg.include_categories, cfg.exclude_categories):
                continue
            listed = _allowed("", name, cfg.list_categories, cfg.do_not_list_categories)
            categories.append(self._build_category(entry, listed))
        return categories

    def _build_category(self, category_dir: Path, category_listed: bool) -> Category:
        cfg = self.config
        category = Category(name=category_dir.name)
        entries = sorted(p for p in category_dir.iterdir() if not _is_hidden(p.name))
        seen: dict[str, Path] = {}

        for entry in entries:
            if entry.is_file():
                if roles.is_auxiliary_file(entry.name):
                    continue
                # 与主文件同名的文档由主文件挂载
                if roles.is_doc_file(entry.name) and self._has_primary_sibling(entries, entry):
                    continue
                name = os.path.splitext(entry.name)[0]
            else:
                if entry.name in _IGNORED_DIRS:
                    continue
                name = entry.name

            if not _allowed(category.name, name, cfg.include_blocks, cfg.exclude_blocks):
                continue
            listed = category_listed and _allowed(
                category.name, name, cfg.list_blocks, cfg.do_not_list_blocks,
            )

            if entry.is_file():
                item = self._build_file_item(category.name, entry, entries, name)
            else:
                item = self._build_dir_item(category.name, entry)
            if item is None:
                continue
            # 条目身份是 (分类, 名称)，同名不同扩展名的文件不能共存
            if name in seen:
                self.errors.append(
                    f"{self._rel(entry)}: 条目名重复 '{category.name}/{name}'，"
                    f"已由 {self._rel(seen[name])} 定义"
                )
                continue
            seen[name] = entry
            item.listed = listed
            category.items.append(item)
        return category

    @staticmethod
    def _has_primary_sibling(entries: list[Path], doc: Path) -> bool:
        stem = os.path.splitext(doc.name)[0]
        return any(
            p.is_file() and p != doc and not roles.is_doc_file(p.name)
            and os.path.splitext(p.name)[0] == stem
            for p in entries
        )

    def _classify(
        self, path: Path, lang: Language, containing_dir: Path | None,
    ) -> ClassifiedImports | None:
        """读取并分类单个文件；致命错误记录到 self.errors 并返回 None"""
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.errors.append(f"{self._rel(path)}: 读取失败 - {e}")
            return None

        classifier = ImportClassifier(ClassifyOptions(
            roots=self.roots,
            containing_dir=str(containing_dir) if containing_dir else None,
            exclude_deps=frozenset(self.config.exclude_deps),
        ))
        try:
            specifiers = lang.extract_imports(str(path), content)
            result = classifier.classify(specifiers, str(path), lang.implicit_packages)
        except (LocalDependencyUnresolvedError, FileSyntaxError) as e:
            logger.error("%s", e)
            self.errors.append(str(e))
            return None
        self.warnings.extend(result.warnings)
        return result

    def _build_file_item(
        self, category: str, path: Path, siblings: list[Path], name: str,
    ) -> Item | None:
        lang = self._language_for(path)
        merged = ClassifiedImports()
        if lang is None:
            if not self._included_verbatim(path):
                self._warn(UnsupportedFileTypeWarning(
                    f"跳过 {self._rel(path)}: 不支持 *{path.suffix} 文件", path=str(path),
                ))
                return None
        else:
            classified = self._classify(path, lang, None)
            if classified is None:
                return None
            merged = classified

        files = [File(path=path.name)]
        for sibling in siblings:
            if sibling == path or not sibling.is_file():
                continue
            role = roles.auxiliary_role_for(name, sibling.name)
            if role is None:
                continue
            if role == roles.DOC and not self.config.include_docs:
                self._warn(SkippedPathWarning(
                    f"跳过文档 {self._rel(sibling)}: 未启用 include_docs", path=str(sibling),
                ))
                continue
            files.append(File(path=sibling.name, role=role))

        identity = f"{category}/{name}"
        return Item(
            name=name,
            category=category,
            directory=self._rel(path.parent),
            files=files,
            subdirectory=False,
            local_dependencies=[d for d in merged.local if d != identity],
            dependencies=merged.dependencies,
            dev_dependencies=merged.dev_dependencies,
            imports=merged.imports,
        )

    def _walk_item_dir(self, item_dir: Path) -> list[Path]:
        """列出目录型条目的全部文件；未开启 allow_subdirectories 时跳过嵌套目录"""
        files: list[Path] = []
        stack = [item_dir]
        while stack:
            current = stack.pop()
            for entry in sorted(current.iterdir(), reverse=True):
                if _is_hidden(entry.name):
                    continue
                if entry.is_dir():
                    if entry.name in _IGNORED_DIRS:
                        continue
                    if self.config.allow_subdirectories:
                        stack.append(entry)
                    else:
                        self._warn(SkippedPathWarning(
                            f"跳过 {self._rel(entry)}: 未启用 allow_subdirectories",
                            path=str(entry),
                        ))
                    continue
                files.append(entry)
        return sorted(files)

    def _build_dir_item(self, category: str, item_dir: Path) -> Item | None:
        identity = f"{category}/{item_dir.name}"
        merged = ClassifiedImports()
        files: list[File] = []
        failed = False

        for path in self._walk_item_dir(item_dir):
            rel = _posix(os.path.relpath(str(path), str(item_dir)))
            role = roles.detect_role(path.name)
            if roles.is_doc_file(path.name):
                if not self.config.include_docs:
                    self._warn(SkippedPathWarning(
                        f"跳过文档 {self._rel(path)}: 未启用 include_docs", path=str(path),
                    ))
                    continue
                role = roles.DOC
            if role != roles.PRIMARY:
                files.append(File(path=rel, role=role))
                continue

            lang = self._language_for(path)
            if lang is None:
                if self._included_verbatim(path):
                    files.append(File(path=rel))
                else:
                    self._warn(UnsupportedFileTypeWarning(
                        f"跳过 {self._rel(path)}: 不支持 *{path.suffix} 文件", path=str(path),
                    ))
                continue

            classified = self._classify(path, lang, item_dir)
            if classified is None:
                failed = True
                continue
            merged.merge(classified)
            files.append(File(path=rel))

        if failed:
            return None
        if not files:
            logger.debug("目录条目 %s 没有可用文件，跳过", identity)
            return None

        return Item(
            name=item_dir.name,
            category=category,
            directory=self._rel(item_dir),
            files=files,
            subdirectory=True,
            local_dependencies=[d for d in merged.local if d != identity],
            dependencies=merged.dependencies,
            dev_dependencies=merged.dev_dependencies,
            imports=merged.imports,
        )

    def _build_config_files(self) -> list[ConfigFile]:
        """扫描独立配置文件，只允许外部依赖"""
        result: list[ConfigFile] = []
        for spec in self.config.config_files:
            built = self._build_config_file(spec)
            if built is not None:
                result.append(built)
        return result

    def _build_config_file(self, spec: ConfigFileSpec) -> ConfigFile | None:
        path = (self.cwd / spec.path).resolve()
        if not path.is_file():
            if spec.optional:
                self._warn(SkippedPathWarning(
                    f"可选配置文件不存在，跳过: {spec.path}", path=str(path),
                ))
            else:
                self.errors.append(f"配置文件 '{spec.name}' 不存在: {spec.path}")
            return None

        lang = self._language_for(path)
        classified = ClassifiedImports()
        if lang is not None:
            found = self._classify(path, lang, None)
            if found is None:
                return None
            classified = found
        if classified.local:
            self.errors.append(
                f"配置文件 '{spec.name}' 不允许引用本地条目: {', '.join(classified.local)}"
            )
            return None
        return ConfigFile(
            name=spec.name,
            path=self._rel(path),
            expected_path=spec.expected_path or spec.path,
            optional=spec.optional,
            dependencies=classified.dependencies,
            dev_dependencies=classified.dev_dependencies,
        )


# =========================================================================
# 清单后处理
# =========================================================================


def validate_local_dependencies(manifest: Manifest) -> None:
    """每个本地依赖都必须存在于同一清单中

    Raises:
        InvalidLocalDependencyError: details 列出所有缺失的依赖
    """
    known = {item.identity for item in manifest.iter_items()}
    missing = [
        f"{item.identity} -> {dep}"
        for item in manifest.iter_items()
        for dep in item.local_dependencies
        if dep not in known
    ]
    if missing:
        raise InvalidLocalDependencyError(
            f"{len(missing)} 个本地依赖在清单中不存在（可能被 exclude 规则排除）",
            details=missing,
        )


def prune_unused(manifest: Manifest) -> list[str]:
    """移除不可见且没有被任何条目依赖的条目，直到稳定；空分类一并移除

    返回被移除的条目身份列表（按移除顺序）。
    """
    removed: list[str] = []
    while True:
        depended = {
            dep for item in manifest.iter_items() for dep in item.local_dependencies
        }
        round_removed = [
            item.identity for item in manifest.iter_items()
            if not item.listed and item.identity not in depended
        ]
        if not round_removed:
            break
        drop = set(round_removed)
        for category in manifest.categories:
            category.items = [i for i in category.items if i.identity not in drop]
        removed.extend(round_removed)
    manifest.categories = [c for c in manifest.categories if c.items]
    return removed
