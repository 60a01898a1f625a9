"""核心数据模型

清单（Manifest）及其分类、条目、文件，
以及安装期的 ProviderState / ResolvedItem。

清单以 JSON 发布，字段名使用 camelCase；from_dict 同时兼容上一版结构:
- 依赖写成 "name@version" 字符串
- files 为纯字符串列表
- 分类下的条目键为 blocks，可见性键为 list，导入模板键为 _imports_
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator

from blockrepo.core import roles
from blockrepo.core.exceptions import ValidationError

# =========================================================================
# 清单模型
# =========================================================================


@dataclass
class File:
    """条目中的单个文件

    path 为相对条目目录的路径；target 非空时安装到固定位置，不随分类路径移动。
    """

    path: str
    role: str = roles.PRIMARY
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"path": self.path, "role": self.role}
        if self.target:
            d["target"] = self.target
        return d

    @classmethod
    def from_dict(cls, data: Any) -> File:
        if isinstance(data, str):
            return cls(path=data, role=roles.detect_role(data))
        if not isinstance(data, dict) or not data.get("path"):
            raise ValidationError(f"文件描述缺少 path: {data!r}")
        return cls(
            path=str(data["path"]),
            role=roles.normalize_role(str(data.get("role", roles.PRIMARY))),
            target=data.get("target") or None,
        )


@dataclass(frozen=True)
class RemoteDependency:
    """外部包依赖，version 为 None 表示未锁定版本"""

    name: str
    version: str | None = None
    ecosystem: str = "js"

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name

    @classmethod
    def parse(cls, text: str, ecosystem: str = "js") -> RemoteDependency:
        """解析 "name@version" / "@scope/name@version" / "name" """
        at = text.rfind("@")
        if at > 0:
            return cls(name=text[:at], version=text[at + 1:] or None, ecosystem=ecosystem)
        return cls(name=text, ecosystem=ecosystem)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"ecosystem": self.ecosystem, "name": self.name}
        if self.version:
            d["version"] = self.version
        return d

    @classmethod
    def from_dict(cls, data: Any) -> RemoteDependency:
        if isinstance(data, str):
            return cls.parse(data)
        if not isinstance(data, dict) or not data.get("name"):
            raise ValidationError(f"依赖描述缺少 name: {data!r}")
        return cls(
            name=str(data["name"]),
            version=data.get("version") or None,
            ecosystem=str(data.get("ecosystem", "js")),
        )


def _dedup(values: list) -> list:
    """保持顺序去重"""
    seen: set = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


@dataclass
class Item:
    """可分发的代码条目，身份为 (category, name)"""

    name: str
    category: str
    directory: str = ""
    files: list[File] = field(default_factory=list)
    listed: bool = True
    subdirectory: bool = False
    local_dependencies: list[str] = field(default_factory=list)
    dependencies: list[RemoteDependency] = field(default_factory=list)
    dev_dependencies: list[RemoteDependency] = field(default_factory=list)
    # 源码中的导入字面量 -> 占位模板，如 "../types/result.ts" -> "{{types/result}}.ts"
    imports: dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        return f"{self.category}/{self.name}"

    def files_for(self, wanted_roles: frozenset[str] | set[str]) -> list[File]:
        """主文件始终保留，辅助文件仅保留 wanted_roles 中的角色"""
        return [
            f for f in self.files
            if f.role == roles.PRIMARY or f.role in wanted_roles
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "directory": self.directory,
            "listed": self.listed,
            "subdirectory": self.subdirectory,
            "files": [f.to_dict() for f in self.files],
            "localDependencies": list(self.local_dependencies),
            "dependencies": [d.to_dict() for d in self.dependencies],
            "devDependencies": [d.to_dict() for d in self.dev_dependencies],
            "imports": dict(self.imports),
        }

    @classmethod
    def from_dict(cls, data: Any, category: str = "") -> Item:
        if not isinstance(data, dict) or not data.get("name"):
            raise ValidationError(f"条目描述缺少 name: {data!r}")
        listed = data.get("listed", data.get("list", True))
        imports = data.get("imports", data.get("_imports_")) or {}
        if not isinstance(imports, dict):
            raise ValidationError(f"条目 {data['name']} 的 imports 必须是映射")
        return cls(
            name=str(data["name"]),
            category=str(data.get("category") or category),
            directory=str(data.get("directory", "")),
            files=[File.from_dict(f) for f in data.get("files") or []],
            listed=bool(listed),
            subdirectory=bool(data.get("subdirectory", False)),
            local_dependencies=[str(d) for d in data.get("localDependencies") or []],
            dependencies=[RemoteDependency.from_dict(d) for d in data.get("dependencies") or []],
            dev_dependencies=[
                RemoteDependency.from_dict(d) for d in data.get("devDependencies") or []
            ],
            imports={str(k): str(v) for k, v in imports.items()},
        )


@dataclass
class Category:
    """分类: 共享安装路径约定的一组条目"""

    name: str
    items: list[Item] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "items": [i.to_dict() for i in self.items]}

    @classmethod
    def from_dict(cls, data: Any) -> Category:
        if not isinstance(data, dict) or not data.get("name"):
            raise ValidationError(f"分类描述缺少 name: {data!r}")
        name = str(data["name"])
        raw_items = data.get("items", data.get("blocks")) or []
        return cls(name=name, items=[Item.from_dict(i, category=name) for i in raw_items])


@dataclass
class ConfigFile:
    """独立配置文件，只允许外部依赖"""

    name: str
    path: str
    expected_path: str = ""
    optional: bool = False
    dependencies: list[RemoteDependency] = field(default_factory=list)
    dev_dependencies: list[RemoteDependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "expectedPath": self.expected_path or self.path,
            "optional": self.optional,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "devDependencies": [d.to_dict() for d in self.dev_dependencies],
        }

    @classmethod
    def from_dict(cls, data: Any) -> ConfigFile:
        if not isinstance(data, dict) or not data.get("name") or not data.get("path"):
            raise ValidationError(f"配置文件描述缺少 name 或 path: {data!r}")
        return cls(
            name=str(data["name"]),
            path=str(data["path"]),
            expected_path=str(data.get("expectedPath") or data["path"]),
            optional=bool(data.get("optional", False)),
            dependencies=[RemoteDependency.from_dict(d) for d in data.get("dependencies") or []],
            dev_dependencies=[
                RemoteDependency.from_dict(d) for d in data.get("devDependencies") or []
            ],
        )


@dataclass
class Manifest:
    """注册表清单（发布后不可变）"""

    name: str = ""
    version: str = ""
    homepage: str = ""
    meta: dict[str, Any] = field(default_factory=dict)
    default_paths: dict[str, str] = field(default_factory=dict)
    config_files: list[ConfigFile] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)

    def iter_items(self) -> Iterator[Item]:
        for category in self.categories:
            yield from category.items

    def get_item(self, identity: str) -> Item | None:
        """按 "category/name" 查找条目"""
        category, _, name = identity.partition("/")
        for cat in self.categories:
            if cat.name != category:
                continue
            for item in cat.items:
                if item.name == name:
                    return item
        return None

    def find_by_name(self, name: str) -> list[Item]:
        """按条目名在全部分类中查找（用于未写分类的请求）"""
        return [i for i in self.iter_items() if i.name == name]

    def listed_items(self) -> list[Item]:
        return [i for i in self.iter_items() if i.listed]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for key in ("name", "version", "homepage"):
            value = getattr(self, key)
            if value:
                d[key] = value
        if self.meta:
            d["meta"] = dict(self.meta)
        if self.default_paths:
            d["defaultPaths"] = dict(self.default_paths)
        if self.config_files:
            d["configFiles"] = [c.to_dict() for c in self.config_files]
        d["categories"] = [c.to_dict() for c in self.categories]
        return d

    @classmethod
    def from_dict(cls, data: Any) -> Manifest:
        """解析清单，结构错误时抛出 ValidationError（未知字段忽略）

        上一版清单是分类数组本身，同样接受。
        """
        if isinstance(data, list):
            data = {"categories": data}
        if not isinstance(data, dict):
            raise ValidationError(f"清单顶层必须是对象，实际为 {type(data).__name__}")
        raw_categories = data.get("categories")
        if not isinstance(raw_categories, list):
            raise ValidationError("清单缺少 categories 列表")

        details: list[str] = []
        categories: list[Category] = []
        seen: set[str] = set()
        for raw in raw_categories:
            try:
                cat = Category.from_dict(raw)
            except ValidationError as e:
                details.append(str(e))
                continue
            if cat.name in seen:
                details.append(f"分类名重复: {cat.name}")
                continue
            seen.add(cat.name)
            categories.append(cat)

        config_files: list[ConfigFile] = []
        for raw in data.get("configFiles") or []:
            try:
                config_files.append(ConfigFile.from_dict(raw))
            except ValidationError as e:
                details.append(str(e))
        if details:
            raise ValidationError("清单结构校验失败", details=details)

        meta = data.get("meta") or {}
        default_paths = data.get("defaultPaths") or {}
        return cls(
            name=str(data.get("name", "")),
            version=str(data.get("version", "")),
            homepage=str(data.get("homepage", "") or meta.get("homepage", "") or ""),
            meta=dict(meta) if isinstance(meta, dict) else {},
            default_paths={str(k): str(v) for k, v in default_paths.items()}
            if isinstance(default_paths, dict) else {},
            config_files=config_files,
            categories=categories,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_json(cls, text: str) -> Manifest:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"清单不是合法的 JSON: {e}") from e
        return cls.from_dict(data)


def merge_dependencies(
    target: list[RemoteDependency], new: list[RemoteDependency],
) -> list[RemoteDependency]:
    """按身份（名称+版本）保持顺序合并"""
    return _dedup([*target, *new])


def merge_strings(target: list[str], new: list[str]) -> list[str]:
    return _dedup([*target, *new])


# =========================================================================
# 安装期模型
# =========================================================================


@dataclass(frozen=True)
class ProviderState:
    """已解析的注册表地址

    locator 为规范化后的注册表标识；params 为需要网络往返才能确定的寻址信息
    （如默认分支）。创建后不可变，可按 locator 缓存。
    """

    provider: str
    locator: str
    params: tuple[tuple[str, str], ...] = ()

    def get(self, key: str, default: str = "") -> str:
        for k, v in self.params:
            if k == key:
                return v
        return default

    @classmethod
    def create(cls, provider: str, locator: str, **params: str) -> ProviderState:
        return cls(provider=provider, locator=locator, params=tuple(sorted(params.items())))

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "locator": self.locator, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderState:
        if not data.get("provider") or not data.get("locator"):
            raise ValidationError(f"ProviderState 缺少 provider 或 locator: {data!r}")
        params = {str(k): str(v) for k, v in (data.get("params") or {}).items()}
        return cls.create(str(data["provider"]), str(data["locator"]), **params)


@dataclass
class ResolvedItem:
    """绑定到来源注册表的条目，仅存在于一次安装过程中

    files 为本次安装需要的文件（已按角色筛选），contents 在拉取后填充。
    """

    item: Item
    state: ProviderState
    manifest: Manifest
    files: list[File] = field(default_factory=list)
    contents: dict[str, str] = field(default_factory=dict)

    @property
    def locator(self) -> str:
        return self.state.locator

    @property
    def key(self) -> tuple[str, str]:
        return (self.state.locator, self.item.identity)

    @property
    def label(self) -> str:
        return f"{self.state.locator}/{self.item.identity}"
