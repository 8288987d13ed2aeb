"""构建步骤执行器

按顺序执行步骤，任一步失败立即停止（后续步骤不再执行）。
命令以 argv 形式执行，stdout/stderr 分别捕获:
  - 失败时两路输出都会上报，无论 echo 配置
  - 成功时仅上报开启了 echo 的输出
启动进程本身出错（找不到可执行文件、无权限、参数含 NUL）以 exception 通道上报并视为失败。
"""

from __future__ import annotations

import logging
from pathlib import Path

from depprep.core.events import LogReporter, ProgressReporter
from depprep.core.models import BuildStep
from depprep.utils.shell import SPAWN_ERRORS, CommandExecutor, get_executor

logger = logging.getLogger(__name__)


class StepRunner:
    """构建步骤执行器"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.executor = executor or get_executor()
        self.reporter = reporter or LogReporter()

    def run(self, steps: list[BuildStep], cwd: Path) -> bool:
        """执行全部步骤，全部成功返回 True"""
        for step in steps:
            if not self.run_step(step, cwd):
                return False
        return True

    def run_step(self, step: BuildStep, cwd: Path) -> bool:
        self.reporter.step(step.name)
        if step.command is None:
            return True

        cmd = step.command
        try:
            r = self.executor.execute(cmd.argv, cwd=cwd)
        except SPAWN_ERRORS as e:
            self.reporter.step(step.name, exception=f"{cmd.cmd}: {e}")
            return False

        if not r.success:
            logger.error("步骤失败 %s (rc=%d)", step.name, r.returncode)
            if r.stdout or r.stderr:
                self.reporter.step(step.name, stdout=r.stdout, stderr=r.stderr)
            return False

        stdout = r.stdout if cmd.echo_stdout else ""
        stderr = r.stderr if cmd.echo_stderr else ""
        if stdout or stderr:
            self.reporter.step(step.name, stdout=stdout, stderr=stderr)
        return True
