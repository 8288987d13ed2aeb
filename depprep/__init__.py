"""depprep - 构建前依赖准备工具"""

__version__ = "0.3.0"
