"""代码托管平台 Provider 公共部分

地址支持三种写法:
    <prefix>/<path>                 默认主机
    https://<默认主机>/<path>
    <prefix>:https://<自建主机>/<path>
"""

from __future__ import annotations

from urllib.parse import urlparse

from blockrepo.core.providers.base import Provider


class GitForgeProvider(Provider):
    """git 托管平台基类，默认分支探测结果可缓存"""

    cacheable = True
    prefix: str = ""
    default_base: str = ""

    def matches(self, url: str) -> bool:
        return (
            url.startswith(f"{self.prefix}/")
            or url.startswith(f"{self.prefix}:")
            or url.startswith(f"{self.default_base}/")
        )

    def split_host(self, url: str) -> tuple[str, str]:
        """返回 (主机基础地址, 仓库路径)"""
        if url.startswith(f"{self.prefix}:"):
            custom = url[len(self.prefix) + 1:]
            parsed = urlparse(custom)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise self.invalid(url)
            return f"{parsed.scheme}://{parsed.netloc}", parsed.path.strip("/") + (
                f"?{parsed.query}" if parsed.query else ""
            )
        if url.startswith(f"{self.default_base}/"):
            return self.default_base, url[len(self.default_base) + 1:].strip("/")
        if url.startswith(f"{self.prefix}/"):
            return self.default_base, url[len(self.prefix) + 1:].strip("/")
        raise self.invalid(url)

    def join_host(self, base: str, path: str) -> str:
        """split_host 的逆操作，生成规范 locator"""
        if base == self.default_base:
            return f"{self.prefix}/{path}"
        return f"{self.prefix}:{base}/{path}"

    def api_host(self, base: str) -> str:
        """api.<host> 形式的 API 地址"""
        parsed = urlparse(base)
        return f"{parsed.scheme}://api.{parsed.netloc}"
