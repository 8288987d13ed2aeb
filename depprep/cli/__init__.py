"""depprep 命令行接口

子命令按模块拆分，每个模块注册自己的命令到 main group。
"""

import os

import click

from depprep import __version__
from depprep.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="日志级别（默认取 DEPPREP_LOG_LEVEL 或 INFO）")
@click.option("--json-log", is_flag=True, default=False, help="输出 JSON 格式日志")
def main(log_level: str | None, json_log: bool) -> None:
    """depprep - 构建前依赖准备工具"""
    setup_logging(
        level=log_level or os.getenv("DEPPREP_LOG_LEVEL", "INFO"),
        json_output=json_log or os.getenv("DEPPREP_LOG_JSON", "") == "1",
    )


from depprep.cli.cmd_run import register as _reg_run  # noqa: E402

_reg_run(main)
