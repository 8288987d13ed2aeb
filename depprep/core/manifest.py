"""清单加载

将已解析的 YAML 字典构造成内存模型。结构错误抛 ConfigError，在编排开始前终止。

清单格式:
    repo:
      meta: {name: ..., descr: ..., tags: [...]}
      deps:
        - name: zlib
          type: tgz
          uri: https://.../zlib.tar.gz
          ref: sha256://...
          dst: dir://third_party/zlib
          recurse: "true"
          build:
            - step: configure
              exec: {cmd: ./configure, args: [], echo-always: {stdout: true}}
      finalize:
        - step: chown
          exec: {cmd: chown, args: [-R, "1000:1000", "."]}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from depprep.core.exceptions import ConfigError
from depprep.core.models import BuildStep, Command, DepSpec, Manifest, Meta
from depprep.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def _as_list(value: Any, where: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{where} 必须是列表")
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_command(data: Any, where: str) -> Command:
    if not isinstance(data, dict) or not data.get("cmd"):
        raise ConfigError(f"{where}.exec 缺少 cmd")
    echo = data.get("echo-always") or {}
    if not isinstance(echo, dict):
        raise ConfigError(f"{where}.exec.echo-always 必须是映射")
    return Command(
        cmd=str(data["cmd"]),
        args=[str(a) for a in _as_list(data.get("args"), f"{where}.exec.args")],
        echo_stdout=_as_bool(echo.get("stdout", False)),
        echo_stderr=_as_bool(echo.get("stderr", False)),
    )


def _parse_steps(data: Any, where: str) -> list[BuildStep]:
    steps: list[BuildStep] = []
    for i, item in enumerate(_as_list(data, where)):
        loc = f"{where}[{i}]"
        if not isinstance(item, dict) or not item.get("step"):
            raise ConfigError(f"{loc} 缺少 step")
        command = None
        if item.get("exec") is not None:
            command = _parse_command(item["exec"], loc)
        steps.append(BuildStep(
            name=str(item["step"]),
            descr=str(item.get("descr", "")),
            command=command,
        ))
    return steps


def _parse_dep(data: Any, index: int) -> DepSpec:
    where = f"repo.deps[{index}]"
    if not isinstance(data, dict) or not data.get("name"):
        raise ConfigError(f"{where} 缺少 name")
    return DepSpec(
        name=str(data["name"]),
        descr=str(data.get("descr", "")),
        type=str(data.get("type") or ""),
        uri=str(data.get("uri") or ""),
        ref=str(data.get("ref") or ""),
        dst=str(data.get("dst") or ""),
        recurse=_as_bool(data.get("recurse", False)),
        build=_parse_steps(data.get("build"), f"{where}.build"),
    )


def parse_manifest(data: dict[str, Any], base_dir: Path) -> Manifest:
    """从已解析的字典构造清单模型

    Raises:
        ConfigError: 缺少 repo / meta / meta.name，或字段结构非法
    """
    repo = data.get("repo")
    if not isinstance(repo, dict):
        raise ConfigError("清单缺少 repo 段")
    meta = repo.get("meta")
    if not isinstance(meta, dict) or not meta.get("name"):
        raise ConfigError("清单缺少 repo.meta.name")

    return Manifest(
        meta=Meta(
            name=str(meta["name"]),
            descr=str(meta.get("descr", "")),
            tags=[str(t) for t in _as_list(meta.get("tags"), "repo.meta.tags")],
        ),
        base_dir=base_dir,
        deps=[_parse_dep(d, i) for i, d in enumerate(_as_list(repo.get("deps"), "repo.deps"))],
        finalize=_parse_steps(repo.get("finalize"), "repo.finalize"),
    )


def load_manifest(path: str | Path) -> Manifest:
    """读取清单文件，清单目录即为缓存与相对路径的根"""
    p = Path(path).resolve()
    if not p.is_file():
        raise ConfigError(f"清单文件不存在: {p}")
    try:
        data = load_yaml(p)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"清单文件无法解析: {p}: {e}") from e
    manifest = parse_manifest(data, p.parent)
    logger.debug("已加载清单 %s: %d 个依赖", manifest.meta.name, len(manifest.deps))
    return manifest
