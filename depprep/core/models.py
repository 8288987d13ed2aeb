"""数据模型

清单（Manifest）在运行开始时一次性构造，之后只读；
每个依赖在 check 阶段产出的解析状态（ResolvedState）作为显式值传递给 build。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

INTEGRITY_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")


class ExitCode(IntEnum):
    """进程退出码（finalize 失败优先级最高）"""

    SUCCESS = 0
    CHECK_FAILED = 1
    BUILD_FAILED = 2
    FINALIZE_FAILED = 3


# =========================================================================
# 引用与命令
# =========================================================================

@dataclass(frozen=True)
class IntegrityReference:
    """内容摘要引用；algorithm 为 none 时仅要求文件存在"""

    algorithm: str = "none"
    digest: str = ""

    @property
    def is_none(self) -> bool:
        return self.algorithm == "none"

    def __str__(self) -> str:
        if self.is_none:
            return "none"
        return f"{self.algorithm}://{self.digest}"


@dataclass
class Command:
    """外部命令（argv 形式，不经过 shell）"""

    cmd: str
    args: list[str] = field(default_factory=list)
    echo_stdout: bool = False
    echo_stderr: bool = False

    @property
    def argv(self) -> list[str]:
        return [self.cmd, *self.args]


@dataclass
class BuildStep:
    """构建步骤；command 为空时仅报告步骤名"""

    name: str
    descr: str = ""
    command: Command | None = None


# =========================================================================
# 清单
# =========================================================================

@dataclass
class Meta:
    """清单描述信息（仅描述，不影响行为）"""

    name: str
    descr: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class DepSpec:
    """单个依赖的声明"""

    name: str
    descr: str = ""
    type: str = ""
    uri: str = ""
    ref: str = ""
    dst: str = ""
    recurse: bool = False
    build: list[BuildStep] = field(default_factory=list)


@dataclass
class Manifest:
    """依赖清单根对象"""

    meta: Meta
    base_dir: Path
    deps: list[DepSpec] = field(default_factory=list)
    finalize: list[BuildStep] = field(default_factory=list)


# =========================================================================
# 解析状态
# =========================================================================

@dataclass
class ResolvedState:
    """check 阶段解析出的状态，交给 build 使用"""

    directory: Path | None = None
    executable: Path | None = None


@dataclass
class CheckResult:
    """依赖 check 结果"""

    ok: bool
    state: ResolvedState = field(default_factory=ResolvedState)

    @classmethod
    def failed(cls) -> CheckResult:
        return cls(ok=False)
