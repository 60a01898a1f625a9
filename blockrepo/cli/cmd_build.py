"""CLI: 清单构建"""

from __future__ import annotations

import click

from blockrepo.cli.common import handle_errors
from blockrepo.services.build_service import BuildService


def register(group: click.Group) -> None:
    group.add_command(build)


@click.command()
@click.option("--cwd", default=".", type=click.Path(file_okay=False), help="注册表项目根目录")
@click.option("--config", "config_file", default="", help="构建配置文件（默认 <cwd>/blockrepo-build.yml）")
@click.option("--dry-run", is_flag=True, help="只构建并输出摘要，不写清单文件")
@handle_errors
def build(cwd: str, config_file: str, dry_run: bool) -> None:
    """扫描源码目录并生成注册表清单"""
    svc = BuildService(cwd=cwd)
    config = svc.load_config(config_file)
    result = svc.build(config, write=not dry_run)

    for w in result.warnings:
        click.echo(f"警告: {w.message}", err=True)
    for identity in result.pruned:
        click.echo(f"已裁剪: {identity}")

    manifest = result.manifest
    for category in manifest.categories:
        click.echo(f"{category.name}:")
        for item in category.items:
            mark = "" if item.listed else " (不可见)"
            click.echo(f"  {item.name}{mark}")
    if dry_run:
        click.echo("dry-run: 未写入清单")
    else:
        click.echo(f"清单已写入: {svc.manifest_path(config)}")
