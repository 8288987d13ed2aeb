"""进度事件上报

核心组件只产出进度事件，输出格式由 ProgressReporter 决定。
默认实现 LogReporter 通过 logging 输出，每条记录附带 ``event`` 字段；
测试可注入记录型实现以确定性地断言事件顺序。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol


class ProgressReporter(Protocol):
    """进度事件协议"""

    def run_start(self, manifest_name: str, base_dir: Path) -> None: ...

    def check(self, name: str) -> None: ...

    def build(self, name: str) -> None: ...

    def step(
        self, name: str, *, stdout: str = "", stderr: str = "",
        exception: str = "",
    ) -> None: ...

    def pull(self, source: str, destination: Path, error: str = "") -> None: ...

    def cached(self, source: str, destination: Path) -> None: ...

    def create_directory(self, path: Path) -> None: ...

    def recurse(self, path: Path) -> None: ...

    def finalize(self) -> None: ...

    def failure(self, name: str) -> None: ...


class LogReporter:
    """默认实现：写入 logging（默认 logger 为 depprep.progress）"""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("depprep.progress")

    def _emit(self, event: str, msg: str, *args: object, level: int = logging.INFO) -> None:
        self.logger.log(level, msg, *args, extra={"event": event})

    def run_start(self, manifest_name: str, base_dir: Path) -> None:
        self._emit("run", "开始处理清单: %s (%s)", manifest_name, base_dir)

    def check(self, name: str) -> None:
        self._emit("check", "检查依赖: %s", name)

    def build(self, name: str) -> None:
        self._emit("build", "构建依赖: %s", name)

    def step(
        self, name: str, *, stdout: str = "", stderr: str = "",
        exception: str = "",
    ) -> None:
        if not (stdout or stderr or exception):
            self._emit("step", "  步骤: %s", name)
            return
        for channel, text in (("stdout", stdout), ("stderr", stderr), ("exception", exception)):
            if text:
                level = logging.ERROR if channel == "exception" else logging.INFO
                self._emit("step", "  步骤 %s [%s]:\n%s", name, channel, text.rstrip("\n"), level=level)

    def pull(self, source: str, destination: Path, error: str = "") -> None:
        if error:
            self._emit("pull", "拉取失败: %s -> %s: %s", source, destination, error, level=logging.ERROR)
        else:
            self._emit("pull", "拉取: %s -> %s", source, destination)

    def cached(self, source: str, destination: Path) -> None:
        self._emit("cached", "复用缓存: %s -> %s", source, destination)

    def create_directory(self, path: Path) -> None:
        self._emit("mkdir", "创建目录: %s", path)

    def recurse(self, path: Path) -> None:
        self._emit("recurse", "递归解析: %s", path)

    def finalize(self) -> None:
        self._emit("finalize", "执行收尾步骤")

    def failure(self, name: str) -> None:
        self._emit("failure", "失败: %s", name, level=logging.ERROR)
