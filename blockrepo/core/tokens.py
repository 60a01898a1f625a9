"""访问令牌存储"""

from __future__ import annotations

import os

# provider 名称 -> 环境变量
ENV_TOKENS = {
    "github": "GITHUB_TOKEN",
    "gitlab": "GITLAB_TOKEN",
    "bitbucket": "BITBUCKET_TOKEN",
    "azure": "AZURE_TOKEN",
    "index": "BLOCKREPO_TOKEN",
}


class MemoryTokenStore:
    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self._tokens = dict(tokens or {})

    def get(self, key: str) -> str | None:
        return self._tokens.get(key)

    def set(self, key: str, token: str) -> None:
        self._tokens[key] = token


class EnvTokenStore:
    """从环境变量读取令牌

    http-<origin> 形式的 key 读取 BLOCKREPO_HTTP_TOKEN。
    """

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get(self, key: str) -> str | None:
        if key.startswith("http-"):
            var = "BLOCKREPO_HTTP_TOKEN"
        else:
            var = ENV_TOKENS.get(key, "")
        if not var:
            return None
        return self._environ.get(var) or None
