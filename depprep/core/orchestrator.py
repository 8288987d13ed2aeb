"""编排器 - check → build → finalize

职责：
- 按清单顺序检查全部依赖，遇到第一个失败即停止
- 全部检查通过后按顺序构建，遇到第一个失败即停止
- finalize 在 finally 中执行，无论前面结果如何都只执行一次
- 递归解析子清单（仅 check），同步深度优先

退出码: 0 成功 / 1 检查失败 / 2 构建失败 / 3 finalize 失败（优先级最高）
"""

from __future__ import annotations

import logging
from pathlib import Path

from depprep.core.config import Config, get_config
from depprep.core.dep import (
    ArchiveExtractor,
    DepContext,
    Dependency,
    FetchCache,
    GitCheckout,
    StepRunner,
    make_dependency,
)
from depprep.core.events import LogReporter, ProgressReporter
from depprep.core.exceptions import RecursionCycleError
from depprep.core.manifest import load_manifest
from depprep.core.models import ExitCode, Manifest, ResolvedState
from depprep.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)


class Orchestrator:
    """依赖编排器（单线程，严格按清单顺序）"""

    def __init__(
        self,
        config: Config | None = None,
        reporter: ProgressReporter | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config or get_config()
        self.reporter = reporter or LogReporter()
        self.executor = executor or get_executor()
        self._stack: list[Path] = []

    def context_for(self, manifest: Manifest) -> DepContext:
        """构造清单范围内的组件（缓存目录按清单目录隔离）"""
        return DepContext(
            base_dir=manifest.base_dir,
            config=self.config,
            reporter=self.reporter,
            executor=self.executor,
            cache=FetchCache(manifest.base_dir, self.config, self.reporter),
            extractor=ArchiveExtractor(self.reporter),
            git=GitCheckout(self.executor, self.config, self.reporter),
            runner=StepRunner(self.executor, self.reporter),
            recurse=self.recurse,
        )

    # ------------------------------------------------------------------
    # 入口
    # ------------------------------------------------------------------

    def run(self, manifest: Manifest) -> ExitCode:
        """执行完整流程，返回退出码"""
        self.reporter.run_start(manifest.meta.name, manifest.base_dir)
        ctx = self.context_for(manifest)
        self._stack = [manifest.base_dir.resolve()]
        outcome = ExitCode.SUCCESS
        try:
            resolved = self._check_phase(manifest, ctx)
            if resolved is None:
                outcome = ExitCode.CHECK_FAILED
            elif not self._build_phase(resolved, ctx):
                outcome = ExitCode.BUILD_FAILED
        finally:
            finalized = self.finalize(manifest, ctx)
            self._stack = []

        if not finalized:
            return ExitCode.FINALIZE_FAILED
        return outcome

    def check_only(self, manifest: Manifest) -> ExitCode:
        """仅执行检查阶段，不构建、不执行 finalize"""
        self.reporter.run_start(manifest.meta.name, manifest.base_dir)
        self._stack = [manifest.base_dir.resolve()]
        try:
            ok = self.check_all(manifest)
        finally:
            self._stack = []
        return ExitCode.SUCCESS if ok else ExitCode.CHECK_FAILED

    def check_all(self, manifest: Manifest) -> bool:
        return self._check_phase(manifest, self.context_for(manifest)) is not None

    def finalize(self, manifest: Manifest, ctx: DepContext) -> bool:
        self.reporter.finalize()
        ok = ctx.runner.run(manifest.finalize, manifest.base_dir)
        if not ok:
            self.reporter.failure("finalize")
        return ok

    # ------------------------------------------------------------------
    # 阶段
    # ------------------------------------------------------------------

    def _check_phase(
        self, manifest: Manifest, ctx: DepContext,
    ) -> list[tuple[Dependency, ResolvedState]] | None:
        resolved: list[tuple[Dependency, ResolvedState]] = []
        for spec in manifest.deps:
            dep = make_dependency(spec)
            self.reporter.check(spec.name)
            result = dep.check(ctx)
            if not result.ok:
                self.reporter.failure(spec.name)
                return None
            resolved.append((dep, result.state))
        return resolved

    def _build_phase(
        self, resolved: list[tuple[Dependency, ResolvedState]], ctx: DepContext,
    ) -> bool:
        for dep, state in resolved:
            self.reporter.build(dep.spec.name)
            if not dep.build(state, ctx):
                self.reporter.failure(dep.spec.name)
                return False
        return True

    # ------------------------------------------------------------------
    # 递归
    # ------------------------------------------------------------------

    def recurse(self, directory: Path) -> bool:
        """加载 directory 下的子清单并检查全部依赖

        Raises:
            RecursionCycleError: 子清单目录已在当前递归链上
            ConfigError: 子清单结构错误
        """
        manifest_path = directory / self.config.manifest_name
        self.reporter.recurse(manifest_path)
        key = directory.resolve()
        if key in self._stack:
            raise RecursionCycleError(f"递归清单形成环: {key}")
        if not manifest_path.is_file():
            logger.error("子清单不存在: %s", manifest_path)
            return False

        nested = load_manifest(manifest_path)
        self._stack.append(key)
        try:
            return self.check_all(nested)
        finally:
            self._stack.pop()
