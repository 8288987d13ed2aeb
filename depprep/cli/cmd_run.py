"""CLI - 依赖解析命令"""

from __future__ import annotations

import sys

import click

from depprep.core.config import Config, get_config, init_config
from depprep.core.exceptions import ConfigError
from depprep.core.manifest import load_manifest
from depprep.core.models import Manifest
from depprep.core.orchestrator import Orchestrator


def register(group: click.Group) -> None:
    group.add_command(run)
    group.add_command(check)


def _load(manifest: str, config: str | None) -> tuple[Manifest, Config]:
    cfg = init_config(config) if config else get_config()
    try:
        return load_manifest(manifest), cfg
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


@click.command()
@click.option("--manifest", "-f", default=".dep.yaml", help="依赖清单路径")
@click.option("--config", "-c", default=None, help="配置文件路径")
def run(manifest: str, config: str | None) -> None:
    """检查并构建全部依赖，最后执行 finalize 步骤"""
    m, cfg = _load(manifest, config)
    code = Orchestrator(config=cfg).run(m)
    sys.exit(int(code))


@click.command()
@click.option("--manifest", "-f", default=".dep.yaml", help="依赖清单路径")
@click.option("--config", "-c", default=None, help="配置文件路径")
def check(manifest: str, config: str | None) -> None:
    """仅检查依赖（不构建，不执行 finalize）"""
    m, cfg = _load(manifest, config)
    code = Orchestrator(config=cfg).check_only(m)
    sys.exit(int(code))
