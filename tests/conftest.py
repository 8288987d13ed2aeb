"""共享 fixture - 记录型上报器、本地 HTTP 服务、归档构造工具"""

from __future__ import annotations

import io
import sys
import tarfile
import threading
import zipfile
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Iterator

import pytest
import yaml

from depprep.core.config import Config

PY = sys.executable


class RecordingReporter:
    """按顺序记录进度事件: (event, *args)"""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def run_start(self, manifest_name: str, base_dir: Path) -> None:
        self.events.append(("run", manifest_name))

    def check(self, name: str) -> None:
        self.events.append(("check", name))

    def build(self, name: str) -> None:
        self.events.append(("build", name))

    def step(self, name: str, *, stdout: str = "", stderr: str = "", exception: str = "") -> None:
        self.events.append(("step", name, stdout, stderr, exception))

    def pull(self, source: str, destination: Path, error: str = "") -> None:
        self.events.append(("pull", source, error))

    def cached(self, source: str, destination: Path) -> None:
        self.events.append(("cached", source))

    def create_directory(self, path: Path) -> None:
        self.events.append(("mkdir", path))

    def recurse(self, path: Path) -> None:
        self.events.append(("recurse", path))

    def finalize(self) -> None:
        self.events.append(("finalize",))

    def failure(self, name: str) -> None:
        self.events.append(("failure", name))

    def names(self, event: str) -> list:
        return [e[1] for e in self.events if e[0] == event]

    def kinds(self) -> list[str]:
        return [e[0] for e in self.events]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def config() -> Config:
    return Config()


# =========================================================================
# 归档构造
# =========================================================================

def make_zip(path: Path, files: dict[str, bytes], dirs: tuple[str, ...] = ()) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for d in dirs:
            zf.writestr(d.rstrip("/") + "/", b"")
        for name, data in files.items():
            zf.writestr(name, data)
    return path


def make_tgz(path: Path, files: dict[str, bytes], dirs: tuple[str, ...] = ()) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        for d in dirs:
            info = tarfile.TarInfo(d.rstrip("/"))
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tf.addfile(info)
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return path


def write_manifest(directory: Path, repo: dict, name: str = ".dep.yaml") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(yaml.safe_dump({"repo": repo}, allow_unicode=True), encoding="utf-8")
    return path


def py_step(name: str, code: str, **echo: bool) -> dict:
    """以当前解释器执行一段代码的步骤记录"""
    step: dict = {"step": name, "exec": {"cmd": PY, "args": ["-c", code]}}
    if echo:
        step["exec"]["echo-always"] = echo
    return step


# =========================================================================
# 本地 HTTP 服务
# =========================================================================

class HTTPFixture:
    """路由表: path -> (status, body 或 Location)"""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes | str]] = {}
        self.hits: Counter[str] = Counter()
        # path -> 声明的 Content-Length（大于实际 body 时模拟连接中断）
        self.declared_length: dict[str, int] = {}
        self.base_url = ""

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


@pytest.fixture
def http_server() -> Iterator[HTTPFixture]:
    fixture = HTTPFixture()

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            fixture.hits[self.path] += 1
            status, payload = fixture.routes.get(self.path, (404, b"not found"))
            self.send_response(status)
            if isinstance(payload, str):
                self.send_header("Location", payload)
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
            length = fixture.declared_length.get(self.path, len(payload))
            self.send_header("Content-Length", str(length))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: object) -> None:  # noqa: A002
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    fixture.base_url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield fixture
    finally:
        server.shutdown()
        server.server_close()
