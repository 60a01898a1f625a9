"""导入路径改写

安装时把条目源码中的本地导入字面量替换为适合消费者项目布局的路径:
- 分类路径以 . 开头: 计算从目标文件目录到依赖安装目录的相对路径
- 否则视为路径别名（如 $lib/ui）: 直接拼接别名路径

只替换引号包围的完整字面量；对同一配置重复改写是无操作。
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from blockrepo.core import tsconfig
from blockrepo.core.exceptions import ConfigError, NoPathConfiguredError, ValidationError
from blockrepo.core.models import File, Manifest, ResolvedItem
from blockrepo.utils.urls import join_posix

logger = logging.getLogger(__name__)

WILDCARD = "*"
TEMPLATE_RE = re.compile(r"\{\{([^/]+)/([^}]+)\}\}")


@dataclass
class RewrittenFile:
    """改写后的文件: path 为相对项目根目录的最终路径"""

    path: str
    content: str
    role: str
    item: str


def is_relative_path(path: str) -> bool:
    return path.startswith(".")


def _posix(path: str) -> str:
    return path.replace(os.sep, "/")


class ImportRewriter:
    """按消费者的分类路径配置改写条目文件"""

    def __init__(self, paths: dict[str, str], cwd: str | Path = ".") -> None:
        self.paths = dict(paths)
        self.cwd = Path(cwd).resolve()

    # ---- 路径计算 ----

    def base_dir(self, category: str, manifest: Manifest | None = None, item: str = "") -> str:
        """分类的安装目录（配置形式，可能是相对路径或别名）

        优先级: paths[category] > paths["*"]/category > 清单声明的默认路径

        Raises:
            NoPathConfiguredError: 三者都没有
        """
        if category in self.paths:
            return self.paths[category]
        if WILDCARD in self.paths:
            return join_posix(self.paths[WILDCARD], category)
        if manifest is not None and category in manifest.default_paths:
            return manifest.default_paths[category]
        raise NoPathConfiguredError(category, item)

    def _on_disk(self, configured: str) -> Path:
        """把配置的目录（相对路径或别名）转成磁盘绝对路径"""
        if is_relative_path(configured) or os.path.isabs(configured):
            return (self.cwd / configured).resolve()
        aliases = tsconfig.get_path_aliases(self.cwd / "index.ts")
        if aliases is not None:
            for candidate in aliases.match(configured):
                return Path(candidate)
        raise ConfigError(
            f"无法解析路径别名 '{configured}'，请在 tsconfig.json / jsconfig.json 中配置 paths，"
            "或改用 ./ 开头的相对路径"
        )

    def item_dir(self, resolved: ResolvedItem) -> Path:
        item = resolved.item
        base = self._on_disk(self.base_dir(item.category, resolved.manifest, item.name))
        return base / item.name if item.subdirectory else base

    def destination(self, resolved: ResolvedItem, file: File) -> str:
        """文件最终路径（相对项目根目录，posix 形式）

        Raises:
            ValidationError: 清单中的 path / target 指向项目目录之外
        """
        if file.target:
            dest = (self.cwd / file.target).resolve()
        else:
            dest = (self.item_dir(resolved) / file.path).resolve()
        if not dest.is_relative_to(self.cwd):
            raise ValidationError(
                f"{resolved.label}: 文件 {file.target or file.path} 的安装位置 {dest} 超出项目目录",
            )
        return _posix(os.path.relpath(dest, self.cwd))

    # ---- 模板 ----

    def resolve_template(self, template: str, dest_path: str, manifest: Manifest | None) -> str:
        """把 {{category/name}} 替换为从 dest_path 出发可用的导入路径"""
        dest_dir = (self.cwd / dest_path).parent

        def _sub(m: re.Match) -> str:
            category, name = m.group(1), m.group(2)
            base = self.base_dir(category, manifest, name)
            if not is_relative_path(base):
                return join_posix(base, name)
            target = (self.cwd / base / name).resolve()
            rel = _posix(os.path.relpath(target, dest_dir))
            return rel if rel.startswith(".") else f"./{rel}"

        return TEMPLATE_RE.sub(_sub, template)

    def rewrite_content(
        self, content: str, imports: dict[str, str], dest_path: str,
        manifest: Manifest | None = None,
    ) -> str:
        """单次扫描替换全部引号包围的导入字面量"""
        if not imports:
            return content
        replacements = {
            literal: self.resolve_template(template, dest_path, manifest)
            for literal, template in imports.items()
        }
        # 单次扫描，替换结果不会被再次匹配
        targets = {k: v for k, v in replacements.items() if k != v}
        if not targets:
            return content
        alternatives = "|".join(re.escape(k) for k in sorted(targets, key=len, reverse=True))
        pattern = re.compile(rf"""(['"])({alternatives})\1""")
        return pattern.sub(lambda m: f"{m.group(1)}{targets[m.group(2)]}{m.group(1)}", content)

    def rewrite(self, resolved: ResolvedItem) -> list[RewrittenFile]:
        """改写一个条目的全部已拉取文件

        Raises:
            NoPathConfiguredError: 条目或其依赖的分类没有配置安装路径
        """
        out: list[RewrittenFile] = []
        for file in resolved.files:
            content = resolved.contents.get(file.path)
            if content is None:
                raise ValueError(f"{resolved.label}: 文件 {file.path} 尚未拉取")
            dest = self.destination(resolved, file)
            out.append(RewrittenFile(
                path=dest,
                content=self.rewrite_content(
                    content, resolved.item.imports, dest, resolved.manifest,
                ),
                role=file.role,
                item=resolved.label,
            ))
        logger.debug("已改写 %s: %d 个文件", resolved.label, len(out))
        return out
