"""子进程执行工具 - 统一外部命令调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
所有命令均以 argv 列表形式传入，不经过 shell 解释，避免清单参数注入。
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# 进程无法启动时执行器可能抛出的异常
SPAWN_ERRORS = (OSError, ValueError, subprocess.SubprocessError)


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 - 抽象子进程调用

    测试时可注入 mock 实现，无需 patch subprocess。
    启动失败（找不到可执行文件、无权限）以 OSError 抛出；
    argv 含 NUL 字节等非法参数以 ValueError 抛出。
    """

    def execute(
        self,
        argv: list[str],
        *,
        cwd: str | Path = ".",
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现）

    stdout/stderr 分别捕获，不合并；按 UTF-8 解码，无法解码的字节替换为 U+FFFD。
    不设置超时，挂起的子进程会阻塞整个运行。
    """

    def execute(
        self,
        argv: list[str],
        *,
        cwd: str | Path = ".",
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        logger.debug("执行: %s (cwd=%s)", argv, cwd)
        r = subprocess.run(
            argv, capture_output=True, text=True,
            encoding="utf-8", errors="replace",
            cwd=str(cwd), env=env, check=False,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


# =========================================================================
# PATH 查找
# =========================================================================

def find_in_path(name: str, search_path: str | None = None) -> Path | None:
    """按 PATH 目录顺序查找可执行文件，返回第一个命中的路径

    Args:
        name: 可执行文件名
        search_path: 自定义搜索路径（默认取 PATH 环境变量）
    """
    raw = os.environ.get("PATH", "") if search_path is None else search_path
    for directory in raw.split(os.pathsep):
        if not directory:
            continue
        candidate = Path(directory) / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
    return None
