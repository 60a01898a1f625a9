"""路径别名解析

读取离源文件最近的 tsconfig.json（找不到再找 jsconfig.json），
按 compilerOptions.baseUrl / paths 把别名导入映射到磁盘路径。
配置文件允许注释与尾随逗号，extends 只跟随相对路径。
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from blockrepo.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_NAMES = ("tsconfig.json", "jsconfig.json")
_MAX_EXTENDS_DEPTH = 16


def strip_json_comments(text: str) -> str:
    """去除 // 与 /* */ 注释及尾随逗号，字符串内容原样保留"""
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return _strip_trailing_commas("".join(out))


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_string = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j >= n or text[j] not in "}]":
                out.append(ch)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def load_jsonc(path: Path) -> dict:
    try:
        data = json.loads(strip_json_comments(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"无法解析 {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} 顶层必须是对象")
    return data


@dataclass
class PathAliases:
    """合并 extends 之后的别名配置

    base_url: baseUrl 的绝对路径（未配置为 None）
    paths_base: paths 中目标路径的基准目录
    """

    config_path: Path
    base_url: Path | None = None
    paths_base: Path | None = None
    paths: dict[str, list[str]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return self.base_url is None and not self.paths

    def match(self, specifier: str) -> list[str]:
        """返回别名可能指向的候选绝对路径（按优先级排序）

        exact 模式优先，其次按 * 之前前缀长度从长到短匹配通配模式；
        配置了 baseUrl 时最后追加 baseUrl/specifier。
        """
        if specifier.startswith("."):
            return []
        candidates: list[str] = []
        base = self.paths_base or self.config_path.parent

        if specifier in self.paths:
            candidates.extend(
                os.path.normpath(os.path.join(base, t)) for t in self.paths[specifier]
            )

        wildcards = sorted(
            (p for p in self.paths if p.count("*") == 1),
            key=lambda p: len(p.split("*", 1)[0]),
            reverse=True,
        )
        for pattern in wildcards:
            prefix, suffix = pattern.split("*", 1)
            if not (
                specifier.startswith(prefix)
                and specifier.endswith(suffix)
                and len(specifier) >= len(prefix) + len(suffix)
            ):
                continue
            star = specifier[len(prefix):len(specifier) - len(suffix)]
            candidates.extend(
                os.path.normpath(os.path.join(base, t.replace("*", star)))
                for t in self.paths[pattern]
            )
            break

        if self.base_url is not None:
            candidates.append(os.path.normpath(os.path.join(self.base_url, specifier)))
        return candidates


def find_config(start_dir: str | Path, name: str) -> Path | None:
    current = Path(start_dir).resolve()
    for candidate in (current, *current.parents):
        p = candidate / name
        if p.is_file():
            return p
    return None


def _read_compiler_options(path: Path, depth: int = 0) -> tuple[dict, Path, Path | None]:
    """读取 compilerOptions，跟随 extends 合并

    返回 (compilerOptions, baseUrl 所在配置目录, paths 所在配置目录)
    """
    if depth > _MAX_EXTENDS_DEPTH:
        raise ConfigError(f"{path}: extends 层级过深")
    data = load_jsonc(path)
    options: dict = {}
    base_dir = path.parent
    paths_dir: Path | None = None

    extends = data.get("extends")
    parents = extends if isinstance(extends, list) else [extends] if extends else []
    for parent in parents:
        if not isinstance(parent, str) or not parent.startswith("."):
            # 包形式的 extends（如 @tsconfig/node20）不影响路径别名
            logger.debug("%s: 跳过非相对 extends %s", path, parent)
            continue
        parent_path = (path.parent / parent).resolve()
        if parent_path.suffix != ".json":
            parent_path = parent_path.with_suffix(".json")
        if not parent_path.is_file():
            logger.warning("%s: extends 指向的配置不存在 %s", path, parent_path)
            continue
        parent_opts, parent_base, parent_paths_dir = _read_compiler_options(parent_path, depth + 1)
        options.update(parent_opts)
        if "baseUrl" in parent_opts:
            base_dir = parent_base
        if "paths" in parent_opts:
            paths_dir = parent_paths_dir

    own = data.get("compilerOptions") or {}
    if isinstance(own, dict):
        options.update(own)
        if "baseUrl" in own:
            base_dir = path.parent
        if "paths" in own:
            paths_dir = path.parent
    return options, base_dir, paths_dir


@lru_cache(maxsize=128)
def _load_aliases(config_path: Path) -> PathAliases:
    options, base_dir, paths_dir = _read_compiler_options(config_path)
    base_url = None
    if isinstance(options.get("baseUrl"), str):
        base_url = (base_dir / options["baseUrl"]).resolve()
    raw_paths = options.get("paths") or {}
    paths = {
        str(k): [str(t) for t in v]
        for k, v in raw_paths.items()
        if isinstance(v, list)
    } if isinstance(raw_paths, dict) else {}
    return PathAliases(
        config_path=config_path,
        base_url=base_url,
        paths_base=base_url or paths_dir,
        paths=paths,
    )


def get_path_aliases(file_path: str | Path) -> PathAliases | None:
    """返回离 file_path 最近的别名配置，均不存在时返回 None"""
    start = Path(file_path).parent
    for name in CONFIG_NAMES:
        config_path = find_config(start, name)
        if config_path is not None:
            return _load_aliases(config_path)
    return None


def clear_cache() -> None:
    _load_aliases.cache_clear()
