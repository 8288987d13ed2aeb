"""内容寻址拉取缓存

职责:
- 按来源 URI 的哈希计算确定的缓存槽路径
- 缓存槽已满足完整性引用时直接复用（幂等），上报 cached 事件
- file:// 本地复制，http(s):// 流式下载（仅跟随一次 302 跳转）
- 写入后重新校验；不匹配时保留错误文件供排查

缓存目录在同一清单的所有依赖、多次运行之间共享，不加锁；
对同一清单目录并发运行本工具是不安全的。
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import shutil
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urljoin

from depprep.core.config import Config, get_config
from depprep.core.dep.integrity import file_digest, verify
from depprep.core.events import LogReporter, ProgressReporter
from depprep.core.exceptions import FetchError, IntegrityError
from depprep.core.models import IntegrityReference
from depprep.core.uri import resolve_local_path, split_scheme
from depprep.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 1


class _NoRedirectHandler(urllib.request.HTTPRedirectHandler):
    """禁止 urllib 自动跳转，302 以 HTTPError 形式交给调用方处理"""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # noqa: ANN001, ANN201
        return None


class FetchCache:
    """拉取缓存，目录位于清单目录下"""

    def __init__(
        self,
        base_dir: Path,
        config: Config | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.base_dir = base_dir
        self.config = config or get_config()
        self.reporter = reporter or LogReporter()
        self.cache_dir = base_dir / self.config.cache_dir_name
        self._opener = urllib.request.build_opener(_NoRedirectHandler)

    def slot_path(self, uri: str, suffix: str = "") -> Path:
        """同一 URI 在同一清单目录下始终映射到同一路径"""
        key = hashlib.sha256(uri.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{key}{suffix}"

    def fetch(
        self, uri: str, ref: IntegrityReference | None = None, suffix: str = "",
    ) -> Path:
        """拉取来源到缓存槽，返回缓存路径

        Raises:
            UnsupportedSchemeError: 来源协议不是 http/https/file
            FetchError: 传输失败
            IntegrityError: 写入后摘要不匹配（文件保留在缓存中）
        """
        ref = ref or IntegrityReference()
        scheme = validate_url_scheme(uri, context="fetch")
        dest = self.slot_path(uri, suffix)

        if verify(dest, ref, self.config.chunk_size):
            self.reporter.cached(uri, dest)
            return dest

        if not self.cache_dir.is_dir():
            self.reporter.create_directory(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.reporter.pull(uri, dest)
        try:
            if scheme == "file":
                self._copy_local(uri, dest)
            else:
                self._download(uri, dest, MAX_REDIRECTS)
        except (FetchError, OSError) as e:
            self.reporter.pull(uri, dest, error=str(e))
            if isinstance(e, FetchError):
                raise
            raise FetchError(f"拉取失败: {uri} - {e}") from e

        if not ref.is_none:
            actual = file_digest(dest, ref.algorithm, self.config.chunk_size)
            if actual != ref.digest.lower():
                msg = f"校验和不匹配 {dest}: 期望 {ref}, 实际 {ref.algorithm}://{actual}"
                self.reporter.pull(uri, dest, error=msg)
                raise IntegrityError(msg, expected=ref.digest, actual=actual)
            logger.info("校验和通过: %s", dest.name)
        return dest

    def _copy_local(self, uri: str, dest: Path) -> None:
        _, raw = split_scheme(uri)
        src = resolve_local_path(raw, self.base_dir)
        if not src.is_file():
            raise FetchError(f"源文件不存在: {src}")
        shutil.copyfile(src, dest)

    def _download(self, url: str, dest: Path, redirects_left: int) -> None:
        try:
            resp = self._opener.open(url)  # nosec B310
        except urllib.error.HTTPError as e:
            location = e.headers.get("Location") if e.headers else None
            e.close()
            if e.code == 302 and redirects_left > 0 and location:
                target = urljoin(url, location)
                if validate_url_scheme(target, context="redirect") == "file":
                    raise FetchError(f"不允许跳转到本地文件: {target}") from e
                logger.info("  跳转: %s -> %s", url, target)
                self._download(target, dest, redirects_left - 1)
                return
            raise FetchError(f"下载失败: {url} - HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise FetchError(f"下载失败: {url} - {e.reason}") from e
        except (http.client.HTTPException, ValueError) as e:
            # 非法端口等 URL 错误、协议层异常
            raise FetchError(f"下载失败: {url} - {type(e).__name__}: {e}") from e

        with resp:
            if resp.status != 200:
                raise FetchError(f"下载失败: {url} - HTTP {resp.status}")
            declared = resp.headers.get("Content-Length", "")
            try:
                with open(dest, "wb") as f:
                    shutil.copyfileobj(resp, f, self.config.chunk_size)
                    written = f.tell()
            except http.client.HTTPException as e:
                raise FetchError(f"下载中断: {url} - {type(e).__name__}: {e}") from e
            # 连接提前关闭时 read() 不一定抛异常
            if declared.isdigit() and written != int(declared):
                raise FetchError(f"下载中断: {url} - 期望 {declared} 字节，实际 {written} 字节")
