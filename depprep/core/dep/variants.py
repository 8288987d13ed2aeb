"""依赖变体

按清单 ``type`` 字段分派:

| type    | 类                  | check 行为 |
|---------|---------------------|-----------|
| bin     | BinaryDependency    | PATH 查找 (path://) 或文件存在 (file://) |
| git     | GitDependency       | 克隆 / 复用 + reset 到引用，可递归 |
| gitpack | GitPackDependency   | 同 bin 查找，找不到时调用外部打包工具拉取 |
| zip     | ArchiveDependency   | 拉取到缓存 + 校验 + 解压，可递归 |
| tgz     | ArchiveDependency   | 同上（tar.gz） |
| 其他    | GenericDependency   | 永远失败 |

check 产出 ResolvedState，由编排器原样传给 build。
build 在解析出的目录（无目录形式时为清单目录）下执行依赖自己的构建步骤。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from depprep.core.config import Config
from depprep.core.dep.cache import FetchCache
from depprep.core.dep.extract import FORMAT_TGZ, FORMAT_ZIP, ArchiveExtractor
from depprep.core.dep.integrity import verify
from depprep.core.dep.steps import StepRunner
from depprep.core.dep.vcs import GitCheckout
from depprep.core.events import ProgressReporter
from depprep.core.exceptions import DepPrepError, UnsupportedSchemeError
from depprep.core.models import CheckResult, DepSpec, ResolvedState
from depprep.core.uri import (
    parse_integrity,
    parse_vcs_ref,
    resolve_destination,
    resolve_local_path,
    split_scheme,
)
from depprep.utils.shell import SPAWN_ERRORS, CommandExecutor, find_in_path

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = {
    FORMAT_ZIP: ".zip",
    FORMAT_TGZ: ".tar.gz",
}


@dataclass
class DepContext:
    """单个清单范围内共享的组件"""

    base_dir: Path
    config: Config
    reporter: ProgressReporter
    executor: CommandExecutor
    cache: FetchCache
    extractor: ArchiveExtractor
    git: GitCheckout
    runner: StepRunner
    recurse: Callable[[Path], bool]


class Dependency(Protocol):
    """依赖协议"""

    spec: DepSpec

    def check(self, ctx: DepContext) -> CheckResult: ...

    def build(self, state: ResolvedState, ctx: DepContext) -> bool: ...


# =========================================================================
# 公共辅助
# =========================================================================

def probe_binary(spec: DepSpec, ctx: DepContext) -> Path | None:
    """按 uri 查找可执行文件: path://NAME 查 PATH，file://PATH 查文件"""
    scheme, target = split_scheme(spec.uri)
    if scheme == "path":
        return find_in_path(target)
    if scheme == "file":
        p = resolve_local_path(target, ctx.base_dir)
        return p if p.exists() else None
    raise UnsupportedSchemeError(f"依赖 '{spec.name}' 的 uri 不支持: {spec.uri}")


def recurse_into(spec: DepSpec, directory: Path, ctx: DepContext) -> bool:
    if not spec.recurse:
        return True
    return ctx.recurse(directory)


class _DependencyBase:
    """变体公共部分: 异常转失败 + 构建步骤执行"""

    def __init__(self, spec: DepSpec) -> None:
        self.spec = spec

    def check(self, ctx: DepContext) -> CheckResult:
        try:
            return self._check(ctx)
        except (DepPrepError, OSError) as e:
            logger.error("依赖检查失败 %s: %s", self.spec.name, e)
            return CheckResult.failed()

    def _check(self, ctx: DepContext) -> CheckResult:
        raise NotImplementedError

    def build(self, state: ResolvedState, ctx: DepContext) -> bool:
        cwd = state.directory or ctx.base_dir
        return ctx.runner.run(self.spec.build, cwd)


# =========================================================================
# 变体实现
# =========================================================================

class GenericDependency(_DependencyBase):
    """未知类型，永远无法满足"""

    def _check(self, ctx: DepContext) -> CheckResult:
        logger.error("未知依赖类型 '%s': %s", self.spec.type, self.spec.name)
        return CheckResult.failed()


class BinaryDependency(_DependencyBase):
    """可执行文件存在性检查（不递归）"""

    def _check(self, ctx: DepContext) -> CheckResult:
        found = probe_binary(self.spec, ctx)
        if found is None:
            logger.error("未找到可执行文件: %s", self.spec.uri)
            return CheckResult.failed()
        ref = parse_integrity(self.spec.ref)
        if not ref.is_none and not verify(found, ref, ctx.config.chunk_size):
            logger.error("校验和不匹配 %s: 期望 %s", found, ref)
            return CheckResult.failed()
        logger.info("已找到: %s -> %s", self.spec.name, found)
        return CheckResult(ok=True, state=ResolvedState(executable=found))


class GitDependency(_DependencyBase):
    """Git 仓库"""

    def _check(self, ctx: DepContext) -> CheckResult:
        if not self.spec.uri:
            raise UnsupportedSchemeError(f"依赖 '{self.spec.name}' 缺少 uri")
        clone_dir = resolve_destination(self.spec.dst, self.spec.name, ctx.base_dir)
        if not ctx.git.checkout(self.spec.uri, clone_dir, self.spec.ref):
            return CheckResult.failed()
        if not recurse_into(self.spec, clone_dir, ctx):
            return CheckResult.failed()
        return CheckResult(ok=True, state=ResolvedState(directory=clone_dir))


class GitPackDependency(_DependencyBase):
    """通过外部打包工具获取的仓库；本地已存在时不调用打包工具"""

    def _check(self, ctx: DepContext) -> CheckResult:
        found = probe_binary(self.spec, ctx)
        if found is not None:
            logger.info("已找到: %s -> %s", self.spec.name, found)
            return CheckResult(ok=True, state=ResolvedState(executable=found))

        packager = find_in_path(ctx.config.packager_cmd)
        if packager is None:
            logger.error("未找到打包工具 %s，无法获取 %s", ctx.config.packager_cmd, self.spec.name)
            ctx.reporter.step(ctx.config.packager_cmd, exception=f"未在 PATH 中找到 {ctx.config.packager_cmd}")
            return CheckResult.failed()

        target = parse_vcs_ref(self.spec.ref) if self.spec.ref else split_scheme(self.spec.uri)[1]
        argv = [str(packager), ctx.config.packager_subcmd, target]
        logger.info("调用打包工具: %s", " ".join(argv))
        try:
            r = ctx.executor.execute(argv, cwd=ctx.base_dir)
        except SPAWN_ERRORS as e:
            ctx.reporter.step(ctx.config.packager_cmd, exception=str(e))
            return CheckResult.failed()
        if not r.success:
            logger.error("打包工具执行失败 (rc=%d): %s", r.returncode, self.spec.name)
            ctx.reporter.step(ctx.config.packager_cmd, stdout=r.stdout, stderr=r.stderr)
            return CheckResult.failed()
        return CheckResult(ok=True, state=ResolvedState(executable=probe_binary(self.spec, ctx)))


class ArchiveDependency(_DependencyBase):
    """zip / tar.gz 压缩包，目标必须是 dir://"""

    def __init__(self, spec: DepSpec, fmt: str) -> None:
        super().__init__(spec)
        self.fmt = fmt

    def _check(self, ctx: DepContext) -> CheckResult:
        dest = resolve_destination(
            self.spec.dst, self.spec.name, ctx.base_dir, explicit=True,
        )
        ref = parse_integrity(self.spec.ref)
        cached = ctx.cache.fetch(self.spec.uri, ref, ARCHIVE_SUFFIXES[self.fmt])
        if not ctx.extractor.extract(cached, dest, self.fmt):
            return CheckResult.failed()
        if not recurse_into(self.spec, dest, ctx):
            return CheckResult.failed()
        return CheckResult(ok=True, state=ResolvedState(directory=dest))


_VARIANTS: dict[str, Callable[[DepSpec], Dependency]] = {
    "bin": BinaryDependency,
    "git": GitDependency,
    "gitpack": GitPackDependency,
    "zip": lambda spec: ArchiveDependency(spec, FORMAT_ZIP),
    "tgz": lambda spec: ArchiveDependency(spec, FORMAT_TGZ),
}


def make_dependency(spec: DepSpec) -> Dependency:
    """按 type 构造依赖变体，未识别的类型回退到 GenericDependency"""
    factory = _VARIANTS.get(spec.type.lower(), GenericDependency)
    return factory(spec)
