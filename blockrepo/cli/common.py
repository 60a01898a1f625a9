"""CLI 公共工具"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import click

from blockrepo.core.cache import YamlStateCache
from blockrepo.core.config import DEFAULT_PROJECT_CONFIG, ProjectConfig, get_config
from blockrepo.core.exceptions import BlockRepoError
from blockrepo.services.install_service import InstallService

logger = logging.getLogger(__name__)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 BlockRepoError 转成 click 错误（退出码 1，输出到 stderr）"""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except BlockRepoError as e:
            logger.debug("命令 %s 失败", func.__name__, exc_info=True)
            lines = [f"[{e.code}] {e}"]
            lines.extend(f"  - {d}" for d in e.details)
            raise click.ClickException("\n".join(lines)) from e

    return wrapper


def registry_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """resolve / add 共用的注册表选项"""
    options = [
        click.option("--cwd", default=".", type=click.Path(file_okay=False),
                     help="项目根目录"),
        click.option("--project", "project_file", default="",
                     help=f"项目配置文件（默认 <cwd>/{DEFAULT_PROJECT_CONFIG}）"),
        click.option("-r", "--registry", "registries", multiple=True,
                     help="注册表地址，可多次指定（覆盖项目配置）"),
        click.option("--with", "with_roles", multiple=True,
                     help="附带的文件角色: test / doc / example"),
        click.option("--skip", "installed", multiple=True,
                     help="视为已安装的条目（category/name），不拉取也不展开"),
        click.option("--no-cache", is_flag=True, help="忽略注册表状态缓存"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_project(cwd: str, project_file: str) -> ProjectConfig:
    path = Path(project_file) if project_file else Path(cwd) / DEFAULT_PROJECT_CONFIG
    return ProjectConfig.from_file(str(path))


def make_install_service(
    project: ProjectConfig, cwd: str, formatter: str | None = None,
) -> InstallService:
    config = get_config()
    cache = YamlStateCache(Path(cwd) / config.state_cache_file)
    return InstallService(project, cwd, config=config, cache=cache, formatter=formatter)
