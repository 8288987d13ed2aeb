"""网络工具 - 来源 URI 协议校验"""

from __future__ import annotations

from urllib.parse import urlparse

from depprep.core.exceptions import UnsupportedSchemeError

_ALLOWED_SCHEMES = frozenset(("http", "https", "file"))


def validate_url_scheme(url: str, *, context: str = "") -> str:
    """校验来源 URI 仅使用 http/https/file，返回小写的 scheme

    Raises:
        UnsupportedSchemeError: URI 无法解析或 scheme 不在白名单内
    """
    label = f" ({context})" if context else ""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise UnsupportedSchemeError(f"无法解析的来源 URI{label}: {url} ({e})") from e
    if parsed.scheme not in _ALLOWED_SCHEMES or "://" not in url:
        raise UnsupportedSchemeError(
            f"不支持的来源协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https/file: {url}"
        )
    return parsed.scheme
