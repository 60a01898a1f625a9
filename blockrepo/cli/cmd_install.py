"""CLI: 解析与安装条目"""

from __future__ import annotations

import click

from blockrepo.cli.common import (
    handle_errors,
    load_project,
    make_install_service,
    registry_options,
)
from blockrepo.core.langs import BUILTIN_FORMATTER


def register(group: click.Group) -> None:
    group.add_command(resolve)
    group.add_command(add)


@click.command()
@click.argument("items", nargs=-1)
@registry_options
@handle_errors
def resolve(
    items: tuple[str, ...], cwd: str, project_file: str, registries: tuple[str, ...],
    with_roles: tuple[str, ...], installed: tuple[str, ...], no_cache: bool,
) -> None:
    """按安装顺序列出条目及其本地依赖（不拉取文件）"""
    project = load_project(cwd, project_file)
    svc = make_install_service(project, cwd)
    resolved = svc.resolve(
        list(items),
        registries=list(registries) or None,
        with_roles=list(with_roles) or None,
        installed=set(installed),
        no_cache=no_cache,
    )
    for r in resolved:
        click.echo(f"{r.label}  ({len(r.files)} 个文件)")


@click.command()
@click.argument("items", nargs=-1)
@registry_options
@click.option("--dry-run", is_flag=True, help="只输出安装计划，不写文件")
@click.option("--keep-existing", is_flag=True, help="不覆盖已存在的文件")
@click.option("--format", "formatter", is_flag=True, flag_value=BUILTIN_FORMATTER, default=None,
              help="使用内置格式化器")
@handle_errors
def add(
    items: tuple[str, ...], cwd: str, project_file: str, registries: tuple[str, ...],
    with_roles: tuple[str, ...], installed: tuple[str, ...], no_cache: bool,
    dry_run: bool, keep_existing: bool, formatter: str | None,
) -> None:
    """拉取条目（含本地依赖）并改写导入路径后写入项目"""
    project = load_project(cwd, project_file)
    svc = make_install_service(project, cwd, formatter=formatter)
    plan = svc.plan(
        list(items),
        registries=list(registries) or None,
        with_roles=list(with_roles) or None,
        installed=set(installed),
        no_cache=no_cache,
    )

    for f in plan.files:
        status = "已存在" if f.exists else "新建"
        click.echo(f"{f.path}  [{status}]  <- {f.item}")
    if not dry_run:
        written = svc.write(plan, overwrite=not keep_existing)
        click.echo(f"已写入 {len(written)} 个文件")

    if plan.dependencies:
        click.echo("需要安装的依赖: " + " ".join(str(d) for d in plan.dependencies))
    if plan.dev_dependencies:
        click.echo("需要安装的开发依赖: " + " ".join(str(d) for d in plan.dev_dependencies))
