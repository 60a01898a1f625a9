"""blockrepo 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from blockrepo import __version__
from blockrepo.core.config import init_config
from blockrepo.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """blockrepo - 源码级代码块注册表"""
    setup_logging(
        level=os.getenv("BLOCKREPO_LOG_LEVEL", "INFO"),
        json_output=os.getenv("BLOCKREPO_LOG_JSON", "") == "1",
    )
    config_path = os.getenv("BLOCKREPO_CONFIG", "")
    if config_path:
        init_config(config_path)


# 注册各领域子命令
from blockrepo.cli.cmd_build import register as _reg_build  # noqa: E402
from blockrepo.cli.cmd_install import register as _reg_install  # noqa: E402

_reg_build(main)
_reg_install(main)
