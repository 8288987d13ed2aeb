"""完整性校验

分块流式计算文件摘要，内存占用与文件大小无关。
读文件出错时返回空摘要（永不匹配），调用方视为"尚未满足"而非致命错误。
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from depprep.core.models import IntegrityReference

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def file_digest(path: Path, algorithm: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """计算文件摘要（小写十六进制），I/O 失败返回空字符串"""
    h = hashlib.new(algorithm)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                h.update(chunk)
    except OSError as e:
        logger.debug("摘要计算失败 %s: %s", path, e)
        return ""
    return h.hexdigest()


def verify(
    path: Path, ref: IntegrityReference, chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> bool:
    """文件是否满足完整性引用；none 引用只要求文件存在"""
    if ref.is_none:
        return path.is_file()
    actual = file_digest(path, ref.algorithm, chunk_size)
    return bool(actual) and actual == ref.digest.lower()
