"""外部包工具: 内置模块识别、包名解析与校验、版本锁定"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)

# Node 内置模块（含 node: 前缀的一律视为内置）
NODE_BUILTINS = frozenset((
    "_http_agent", "_http_client", "_http_common", "_http_incoming",
    "_http_outgoing", "_http_server", "_stream_duplex", "_stream_passthrough",
    "_stream_readable", "_stream_transform", "_stream_wrap", "_stream_writable",
    "_tls_common", "_tls_wrap", "assert", "assert/strict", "async_hooks",
    "buffer", "child_process", "cluster", "console", "constants", "crypto",
    "dgram", "diagnostics_channel", "dns", "dns/promises", "domain", "events",
    "fs", "fs/promises", "http", "http2", "https", "inspector",
    "inspector/promises", "module", "net", "os", "path", "path/posix",
    "path/win32", "perf_hooks", "process", "punycode", "querystring",
    "readline", "readline/promises", "repl", "stream", "stream/consumers",
    "stream/promises", "stream/web", "string_decoder", "sys", "timers",
    "timers/promises", "tls", "trace_events", "tty", "url", "util",
    "util/types", "v8", "vm", "wasi", "worker_threads", "zlib",
))

_RE_SCOPED = re.compile(r"^(@[^/]+/[^@/]+)(?:@([^/]+))?(/.*)?$")
_RE_NON_SCOPED = re.compile(r"^([^@/]+)(?:@([^/]+))?(/.*)?$")
_RE_SCOPED_NAME = re.compile(r"^(?:@([^/]+?)/)?([^/]+?)$")

_EXCLUDED_NAMES = ("node_modules", "favicon.ico")
_SPECIAL_CHARS = re.compile(r"[~'!()*]")
_MAX_NAME_LENGTH = 214


def is_builtin(specifier: str) -> bool:
    return specifier.startswith("node:") or specifier in NODE_BUILTINS


@dataclass
class PackageName:
    """解析后的包引用: name + 可选 version + 子路径"""

    name: str
    version: str | None = None
    path: str = ""


def parse_package_name(specifier: str) -> PackageName | None:
    """拆分 "@scope/name@1.0/sub/path" 或 "name/sub"，无法解析返回 None"""
    m = _RE_SCOPED.match(specifier) or _RE_NON_SCOPED.match(specifier)
    if not m:
        return None
    return PackageName(name=m.group(1), version=m.group(2) or None, path=m.group(3) or "")


def _url_safe(value: str) -> bool:
    return quote(value, safe="-_.!~*'()") == value


def package_name_problems(name: str) -> tuple[list[str], list[str]]:
    """按 npm 命名规则检查包名，返回 (errors, warnings)"""
    errors: list[str] = []
    warnings: list[str] = []

    if not name:
        errors.append("名称不能为空")
    if name.startswith("."):
        errors.append("名称不能以 . 开头")
    if name.startswith("_"):
        errors.append("名称不能以 _ 开头")
    if name.strip() != name:
        errors.append("名称不能包含首尾空白")
    if name.lower() in _EXCLUDED_NAMES:
        errors.append(f"{name} 不是合法的包名")

    if name.lower() in NODE_BUILTINS:
        warnings.append(f"{name} 是内置模块名")
    if len(name) > _MAX_NAME_LENGTH:
        warnings.append(f"名称长度超过 {_MAX_NAME_LENGTH}")
    if name.lower() != name:
        warnings.append("名称不能包含大写字母")
    last_segment = name.split("/")[-1]
    if last_segment and _SPECIAL_CHARS.search(last_segment):
        warnings.append("名称不能包含特殊字符 ~'!()*")

    if not _url_safe(name):
        m = _RE_SCOPED_NAME.match(name)
        if m and m.group(2).startswith("."):
            errors.append("名称不能以 . 开头")
        if not (m and m.group(1) and _url_safe(m.group(1)) and _url_safe(m.group(2))):
            errors.append("名称只能包含 URL 安全字符")
    return errors, warnings


def validate_package_name(name: str) -> bool:
    """新发布包名是否合法（无错误且无告警）"""
    errors, warnings = package_name_problems(name)
    return not errors and not warnings


# =========================================================================
# package.json 查找与版本锁定
# =========================================================================


def find_nearest_package_json(start_dir: str | Path) -> Path | None:
    """从 start_dir 向上查找最近的 package.json"""
    current = Path(start_dir).resolve()
    for candidate in (current, *current.parents):
        pkg = candidate / "package.json"
        if pkg.is_file():
            return pkg
    return None


@dataclass
class PackageVersions:
    dependencies: dict[str, str]
    dev_dependencies: dict[str, str]

    def pin(self, name: str) -> tuple[str | None, bool]:
        """返回 (version, is_dev)；dependencies 优先，找不到返回 (None, False)"""
        if name in self.dependencies:
            return self.dependencies[name], False
        if name in self.dev_dependencies:
            return self.dev_dependencies[name], True
        return None, False


_EMPTY_VERSIONS = PackageVersions({}, {})


def read_package_versions(pkg_path: Path | None) -> PackageVersions:
    """读取 package.json 的依赖映射，文件缺失或非法时返回空映射"""
    if pkg_path is None:
        return _EMPTY_VERSIONS
    try:
        data = json.loads(pkg_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("读取 %s 失败，依赖将不锁定版本: %s", pkg_path, e)
        return _EMPTY_VERSIONS
    if not isinstance(data, dict):
        return _EMPTY_VERSIONS
    deps = data.get("dependencies") or {}
    dev = data.get("devDependencies") or {}
    return PackageVersions(
        dependencies={str(k): str(v) for k, v in deps.items()} if isinstance(deps, dict) else {},
        dev_dependencies={str(k): str(v) for k, v in dev.items()} if isinstance(dev, dict) else {},
    )
