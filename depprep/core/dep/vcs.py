"""Git 检出

职责:
- 判断目标目录是否已从同一 URI 克隆（幂等，已克隆则不清空）
- 未克隆时清空目录并重新 clone
- 按引用执行 ``git reset --hard`` 固定版本（丢弃本地修改）

任一子步骤失败时返回 False，命令输出经 ProgressReporter 的 step 事件上报；
不清理残留的克隆目录。
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from depprep.core.config import Config, get_config
from depprep.core.events import LogReporter, ProgressReporter
from depprep.core.exceptions import DepPrepError, ExecutionError
from depprep.core.uri import parse_vcs_ref
from depprep.utils.shell import SPAWN_ERRORS, CommandExecutor, find_in_path, get_executor

logger = logging.getLogger(__name__)


class GitCheckout:
    """Git 仓库检出器"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        config: Config | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.executor = executor or get_executor()
        self.config = config or get_config()
        self.reporter = reporter or LogReporter()

    def find_git(self) -> Path | None:
        return find_in_path(self.config.git_cmd)

    def checkout(self, uri: str, clone_dir: Path, ref: str = "") -> bool:
        """克隆（或复用）仓库并固定到引用，成功返回 True"""
        git = self.find_git()
        if git is None:
            logger.error("未找到 %s，无法检出 %s", self.config.git_cmd, uri)
            self.reporter.step(self.config.git_cmd, exception=f"未在 PATH 中找到 {self.config.git_cmd}")
            return False

        try:
            if self.is_cloned(git, uri, clone_dir):
                logger.info("已克隆，跳过: %s -> %s", uri, clone_dir)
            else:
                self._prepare(clone_dir)
                self._run([str(git), "clone", uri, str(clone_dir)], clone_dir.parent, "git clone")
            if ref:
                target = parse_vcs_ref(ref)
                self._run([str(git), "reset", "--hard", target], clone_dir, "git reset")
        except DepPrepError as e:
            logger.error("Git 检出失败 %s -> %s: %s", uri, clone_dir, e)
            return False
        except SPAWN_ERRORS as e:
            logger.error("Git 检出失败 %s -> %s: %s", uri, clone_dir, e)
            self.reporter.step(self.config.git_cmd, exception=str(e))
            return False

        logger.info("Git 就绪: %s@%s -> %s", uri, ref or "HEAD", clone_dir)
        return True

    def is_cloned(self, git: Path, uri: str, clone_dir: Path) -> bool:
        """目录含 .git 且 origin 地址与 URI 完全一致"""
        if not (clone_dir / ".git").exists():
            return False
        try:
            r = self.executor.execute(
                [str(git), "config", "--get", "remote.origin.url"], cwd=clone_dir,
            )
        except SPAWN_ERRORS as e:
            logger.debug("读取 remote 失败 %s: %s", clone_dir, e)
            return False
        return r.success and r.stdout.strip() == uri

    def _prepare(self, clone_dir: Path) -> None:
        """清空并重建克隆目录"""
        if clone_dir.exists():
            logger.info("清空目录: %s", clone_dir)
            shutil.rmtree(clone_dir)
        self.reporter.create_directory(clone_dir)
        clone_dir.mkdir(parents=True)

    def _run(self, argv: list[str], cwd: Path, label: str) -> None:
        r = self.executor.execute(argv, cwd=cwd)
        if not r.success:
            self.reporter.step(label, stdout=r.stdout, stderr=r.stderr)
            raise ExecutionError(
                f"{label}失败 (rc={r.returncode}):\n{r.stdout}{r.stderr}".rstrip()
            )
