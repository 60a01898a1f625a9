"""构建服务: 读取构建配置 -> 构建清单 -> 写入清单文件"""

from __future__ import annotations

import logging
from pathlib import Path

from blockrepo.core.builder import BuildResult, ManifestBuilder
from blockrepo.core.config import DEFAULT_BUILD_CONFIG, BuildConfig, get_config
from blockrepo.core.langs import Language
from blockrepo.utils.yaml_io import save_json

logger = logging.getLogger(__name__)


class BuildService:
    """生产者侧入口"""

    def __init__(
        self,
        cwd: str | Path = ".",
        manifest_file: str = "",
        languages: list[Language] | None = None,
    ) -> None:
        self.cwd = Path(cwd)
        self.manifest_file = manifest_file or get_config().manifest_file
        self.languages = languages

    def load_config(self, path: str = "") -> BuildConfig:
        config_path = Path(path) if path else self.cwd / DEFAULT_BUILD_CONFIG
        return BuildConfig.from_file(str(config_path))

    def manifest_path(self, config: BuildConfig) -> Path:
        return self.cwd / config.output_dir / self.manifest_file

    def build(self, config: BuildConfig, *, write: bool = True) -> BuildResult:
        """构建清单，write=True 时写到 output_dir 下

        Raises:
            BuildError / InvalidLocalDependencyError: 见 ManifestBuilder.build
        """
        result = ManifestBuilder(config, cwd=self.cwd, languages=self.languages).build()
        if write:
            path = self.manifest_path(config)
            save_json(path, result.manifest.to_dict())
            logger.info("清单已写入: %s", path)
        return result

    def build_from_file(self, path: str = "", *, write: bool = True) -> BuildResult:
        return self.build(self.load_config(path), write=write)
