"""清单中各类 URI 的前缀解析

| 字段 | 前缀 |
|------|------|
| uri  | path:// file:// http:// https:// |
| ref  | md5:// sha1:// sha256:// sha512:// 或 commit:// branch:// tag:// 或裸字符串 |
| dst  | dir:// 或缺省 |
"""

from __future__ import annotations

from pathlib import Path

from depprep.core.exceptions import UnsupportedSchemeError
from depprep.core.models import INTEGRITY_ALGORITHMS, IntegrityReference

VCS_REF_SCHEMES = ("commit", "branch", "tag")


def split_scheme(uri: str) -> tuple[str, str]:
    """拆分 ``scheme://rest``，无前缀时 scheme 为空字符串"""
    if "://" not in uri:
        return "", uri
    scheme, rest = uri.split("://", 1)
    return scheme.lower(), rest


def resolve_local_path(raw: str, base_dir: Path) -> Path:
    """相对路径按清单目录解析"""
    p = Path(raw).expanduser()
    return p if p.is_absolute() else base_dir / p


def parse_integrity(ref: str) -> IntegrityReference:
    """解析完整性引用，空字符串表示 none"""
    if not ref:
        return IntegrityReference()
    scheme, digest = split_scheme(ref)
    if scheme not in INTEGRITY_ALGORITHMS or not digest:
        raise UnsupportedSchemeError(f"不支持的完整性引用: {ref}")
    return IntegrityReference(algorithm=scheme, digest=digest.strip().lower())


def parse_vcs_ref(ref: str) -> str:
    """解析版本控制引用，去掉 commit:// / branch:// / tag:// 前缀

    三种前缀处理方式相同；无前缀的裸字符串原样返回。
    """
    scheme, target = split_scheme(ref)
    if not scheme:
        return ref
    if scheme not in VCS_REF_SCHEMES:
        raise UnsupportedSchemeError(f"不支持的版本引用: {ref}")
    return target


def resolve_destination(
    dst: str, name: str, base_dir: Path, *, explicit: bool = False,
) -> Path:
    """解析目标目录

    dir://PATH 为显式目录；缺省时由依赖名推导（explicit=True 时不允许缺省）。
    """
    if not dst:
        if explicit:
            raise UnsupportedSchemeError(f"依赖 '{name}' 必须使用 dir:// 指定目标目录")
        return base_dir / name
    scheme, raw = split_scheme(dst)
    if scheme != "dir" or not raw:
        raise UnsupportedSchemeError(f"不支持的目标目录: {dst}")
    return resolve_local_path(raw, base_dir)
