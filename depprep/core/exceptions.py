"""统一异常体系

所有业务异常继承 DepPrepError。
单个依赖内部的异常由依赖变体捕获并转为失败结果，不会越过编排器；
只有 ConfigError（清单结构错误）会在编排开始前终止进程。
"""

from __future__ import annotations


class DepPrepError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DepPrepError):
    """清单或配置文件缺失必需字段、结构无效"""

    code = "CONFIG_ERROR"


class UnsupportedSchemeError(DepPrepError):
    """来源 / 目标 / 引用的 URI 前缀无法识别"""

    code = "UNSUPPORTED_SCHEME"


class FetchError(DepPrepError):
    """拉取失败（HTTP 状态码异常、网络错误、本地文件缺失）"""

    code = "FETCH_ERROR"


class IntegrityError(DepPrepError):
    """摘要不匹配"""

    code = "INTEGRITY_MISMATCH"

    def __init__(self, message: str, expected: str = "", actual: str = "") -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ExtractError(DepPrepError):
    """压缩包条目非法或解压失败"""

    code = "EXTRACT_ERROR"


class ExecutionError(DepPrepError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"


class RecursionCycleError(DepPrepError):
    """递归清单指向了正在解析的祖先目录"""

    code = "RECURSION_CYCLE"
