"""依赖解析引擎

- integrity.py: 摘要校验
- cache.py: 内容寻址拉取缓存
- extract.py: 压缩包解压（公共前缀归一化）
- vcs.py: Git 检出与版本固定
- steps.py: 构建步骤执行
- variants.py: 依赖变体与分派
"""

from depprep.core.dep.cache import FetchCache
from depprep.core.dep.extract import ArchiveExtractor
from depprep.core.dep.steps import StepRunner
from depprep.core.dep.variants import DepContext, Dependency, make_dependency
from depprep.core.dep.vcs import GitCheckout

__all__ = [
    "ArchiveExtractor",
    "DepContext",
    "Dependency",
    "FetchCache",
    "GitCheckout",
    "StepRunner",
    "make_dependency",
]
