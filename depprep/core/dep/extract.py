"""压缩包解压

支持 zip 与 tar.gz。两遍扫描:
  1. 计算所有条目共享的顶层目录前缀（如 GitHub 归档的 ``repo-main/``），
     任一条目不以该前缀开头则前缀为空
  2. 去掉前缀后写入目标目录，按需创建父目录

``pax_global_header`` 条目不参与前缀计算，也不会被解压。
tar 中的符号链接、硬链接等非普通文件条目按其存储的数据（空）写成普通文件。
解压出错时整体失败，已写出的文件不回滚。
"""

from __future__ import annotations

import io
import logging
import shutil
import tarfile
import zipfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from depprep.core.events import LogReporter, ProgressReporter
from depprep.core.exceptions import ExtractError

logger = logging.getLogger(__name__)

PAX_GLOBAL_HEADER = "pax_global_header"

FORMAT_ZIP = "zip"
FORMAT_TGZ = "tgz"


@dataclass
class _Entry:
    """归档条目（与具体容器格式解耦）"""

    name: str
    is_dir: bool
    open: Callable[[], IO[bytes] | None]


def common_prefix(names: list[str]) -> str:
    """计算所有条目共享的顶层目录前缀（含结尾的 ``/``），没有则返回空字符串"""
    prefix: str | None = None
    for name in names:
        if prefix is None:
            head, sep, _ = name.partition("/")
            prefix = head + sep if sep else ""
        if not prefix or not name.startswith(prefix):
            return ""
    return prefix or ""


def _is_pax_header(name: str) -> bool:
    return name.rstrip("/").rsplit("/", 1)[-1] == PAX_GLOBAL_HEADER


@contextmanager
def _zip_entries(path: Path) -> Iterator[list[_Entry]]:
    with zipfile.ZipFile(path) as zf:
        yield [
            _Entry(name=info.filename, is_dir=info.is_dir(),
                   open=lambda info=info: zf.open(info))
            for info in zf.infolist()
        ]


@contextmanager
def _tgz_entries(path: Path) -> Iterator[list[_Entry]]:
    with tarfile.open(path, "r:gz") as tf:
        yield [
            _Entry(name=m.name + "/" if m.isdir() else m.name, is_dir=m.isdir(),
                   open=lambda m=m: _tar_reader(tf, m))
            for m in tf.getmembers()
        ]


def _tar_reader(tf: tarfile.TarFile, member: tarfile.TarInfo) -> IO[bytes] | None:
    if member.isfile():
        return tf.extractfile(member)
    # 链接与设备条目没有数据块，按空的普通文件写出
    return io.BytesIO(b"")


_OPENERS = {
    FORMAT_ZIP: _zip_entries,
    FORMAT_TGZ: _tgz_entries,
}


class ArchiveExtractor:
    """压缩包解压器"""

    def __init__(self, reporter: ProgressReporter | None = None) -> None:
        self.reporter = reporter or LogReporter()

    def extract(self, archive: Path, destination: Path, fmt: str) -> bool:
        """解压到目标目录，成功返回 True"""
        opener = _OPENERS.get(fmt)
        if opener is None:
            logger.error("不支持的压缩格式: %s", fmt)
            return False
        try:
            with opener(archive) as entries:
                self._write_entries(entries, destination)
        except (
            OSError, EOFError, zlib.error, ExtractError,
            zipfile.BadZipFile, tarfile.TarError,
        ) as e:
            logger.error("解压失败 %s -> %s: %s", archive, destination, e)
            return False
        logger.info("解压完成: %s -> %s", archive.name, destination)
        return True

    def _write_entries(self, entries: list[_Entry], destination: Path) -> None:
        entries = [e for e in entries if not _is_pax_header(e.name)]
        prefix = common_prefix([e.name for e in entries])
        if prefix:
            logger.debug("去除公共前缀: %s", prefix)

        if not destination.is_dir():
            self.reporter.create_directory(destination)
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()

        for entry in entries:
            rel = entry.name[len(prefix):]
            if not rel.strip("/"):
                continue
            target = (root / rel).resolve()
            if not target.is_relative_to(root):
                raise ExtractError(f"条目越出目标目录: {entry.name}")
            if entry.is_dir:
                target.mkdir(parents=True, exist_ok=True)
                continue
            try:
                src = entry.open()
            except (KeyError, RuntimeError, NotImplementedError) as e:
                raise ExtractError(f"无法读取条目 {entry.name}: {e}") from e
            if src is None:
                logger.warning("跳过无法读取的条目: %s", entry.name)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
