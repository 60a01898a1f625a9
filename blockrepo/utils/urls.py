"""URL 与路径拼接工具"""

from __future__ import annotations

from urllib.parse import urlparse


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def origin(url: str) -> str:
    """返回 scheme://host[:port]"""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_remote_url(value: str) -> bool:
    """http(s):// 或协议相对 // 开头视为远程地址"""
    lowered = value.lower()
    return lowered.startswith(("http://", "https://", "//"))


def join_posix(*parts: str) -> str:
    """用 / 拼接路径片段，保留首段的 ./ 前缀"""
    out = ""
    for part in parts:
        if not part:
            continue
        if not out:
            out = part.rstrip("/")
            continue
        out = f"{out}/{part.strip('/')}"
    return out
