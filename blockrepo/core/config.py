"""集中配置管理

三类配置:
- Config: 运行时全局设置（并发、超时、清单文件名等）
- BuildConfig: 生产者构建配置，对应 blockrepo-build.yml
- ProjectConfig: 消费者项目配置，对应 blockrepo.yml

均支持从 YAML 文件加载 + 编程式覆盖，未知字段保留在 extra 中。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from blockrepo.core.exceptions import ConfigError
from blockrepo.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_FILE = "blockrepo-manifest.json"
DEFAULT_BUILD_CONFIG = "blockrepo-build.yml"
DEFAULT_PROJECT_CONFIG = "blockrepo.yml"


def _split_known(cls: type, data: dict[str, Any]) -> tuple[dict, dict]:
    known = {f for f in cls.__dataclass_fields__}  # type: ignore[attr-defined]
    matched = {k: v for k, v in data.items() if k in known and k != "extra"}
    extra = {k: v for k, v in data.items() if k not in known}
    return matched, extra


def _str_list(data: dict[str, Any], key: str) -> None:
    """校验列表字段: 允许缺省，单个字符串自动包装为列表"""
    value = data.get(key)
    if value is None:
        return
    if isinstance(value, str):
        data[key] = [value]
        return
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"配置项 '{key}' 必须是字符串列表")


@dataclass
class Config:
    """全局运行时配置"""

    manifest_file: str = DEFAULT_MANIFEST_FILE
    state_cache_file: str = ".blockrepo/state-cache.yml"

    # 执行
    max_workers: int = 8
    http_timeout: int = 30

    # 托管索引服务地址
    index_url: str = "https://blockrepo.dev"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "configs/blockrepo.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        matched, extra = _split_known(cls, data)
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/blockrepo.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current


# =========================================================================
# 构建配置（生产者）
# =========================================================================


@dataclass
class ConfigFileSpec:
    """独立配置文件声明（如 tailwind.config.ts），安装到固定位置"""

    name: str
    path: str
    expected_path: str = ""
    optional: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigFileSpec:
        if not data.get("name") or not data.get("path"):
            raise ConfigError(f"config_files 条目缺少 name 或 path: {data}")
        return cls(
            name=str(data["name"]),
            path=str(data["path"]),
            expected_path=str(data.get("expected_path", "") or data["path"]),
            optional=bool(data.get("optional", False)),
        )


_BUILD_LIST_FIELDS = (
    "dirs", "include_categories", "exclude_categories",
    "include_blocks", "exclude_blocks",
    "list_categories", "do_not_list_categories",
    "list_blocks", "do_not_list_blocks",
    "exclude_deps", "include_files",
)


@dataclass
class BuildConfig:
    """清单构建配置

    过滤规则:
    - include_* 非空时只保留列出的分类/条目，exclude_* 始终排除
    - list_* 非空时只有列出的才可见，do_not_list_* 中的标记为不可见
    - include_blocks / exclude_blocks 等可写成 "category/name" 或仅 "name"
    """

    dirs: list[str] = field(default_factory=list)
    output_dir: str = "."

    include_categories: list[str] = field(default_factory=list)
    exclude_categories: list[str] = field(default_factory=list)
    include_blocks: list[str] = field(default_factory=list)
    exclude_blocks: list[str] = field(default_factory=list)

    list_categories: list[str] = field(default_factory=list)
    do_not_list_categories: list[str] = field(default_factory=list)
    list_blocks: list[str] = field(default_factory=list)
    do_not_list_blocks: list[str] = field(default_factory=list)

    exclude_deps: list[str] = field(default_factory=list)
    allow_subdirectories: bool = False
    include_docs: bool = False
    include_files: list[str] = field(default_factory=list)
    prune_unused: bool = True

    config_files: list[ConfigFileSpec] = field(default_factory=list)

    # 清单元数据
    name: str = ""
    version: str = ""
    homepage: str = ""
    meta: dict[str, str] = field(default_factory=dict)
    default_paths: dict[str, str] = field(default_factory=dict)

    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildConfig:
        """从字典构造，列表字段做类型校验"""
        data = dict(data)
        for key in _BUILD_LIST_FIELDS:
            _str_list(data, key)
        for key in ("meta", "default_paths"):
            if key in data and not isinstance(data[key] or {}, dict):
                raise ConfigError(f"配置项 '{key}' 必须是映射")
            if key in data:
                data[key] = {str(k): str(v) for k, v in (data[key] or {}).items()}
        raw_files = data.get("config_files") or []
        if not isinstance(raw_files, list):
            raise ConfigError("配置项 'config_files' 必须是列表")
        data["config_files"] = [ConfigFileSpec.from_dict(f) for f in raw_files]

        matched, extra = _split_known(cls, data)
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    @classmethod
    def from_file(cls, path: str = DEFAULT_BUILD_CONFIG) -> BuildConfig:
        """从 YAML 文件加载，文件不存在时报错（构建必须显式配置目录）"""
        data = load_yaml(path)
        if not data:
            raise ConfigError(f"构建配置不存在或为空: {path}")
        cfg = cls.from_dict(data)
        if not cfg.dirs:
            raise ConfigError(f"构建配置 {path} 未指定 dirs")
        logger.info("构建配置已加载: %s (%d 个目录)", path, len(cfg.dirs))
        return cfg


# =========================================================================
# 项目配置（消费者）
# =========================================================================


@dataclass
class ProjectConfig:
    """消费者项目配置

    paths: 分类 -> 安装目录，"*" 为通配默认；
           以 . 开头为相对路径，否则视为路径别名（如 "$lib/components"）
    """

    registries: list[str] = field(default_factory=list)
    paths: dict[str, str] = field(default_factory=dict)
    with_roles: list[str] = field(default_factory=list)
    watermark: bool = True

    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        data = dict(data)
        for key in ("registries", "with_roles"):
            _str_list(data, key)
        paths = data.get("paths") or {}
        if not isinstance(paths, dict):
            raise ConfigError("配置项 'paths' 必须是映射")
        data["paths"] = {str(k): str(v) for k, v in paths.items()}
        matched, extra = _split_known(cls, data)
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    @classmethod
    def from_file(cls, path: str = DEFAULT_PROJECT_CONFIG) -> ProjectConfig:
        """从 YAML 文件加载，不存在则返回空配置"""
        data = load_yaml(path)
        if not data:
            return cls()
        return cls.from_dict(data)
