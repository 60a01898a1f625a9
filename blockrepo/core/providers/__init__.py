"""Provider 注册

顺序即匹配优先级: 平台前缀在前，通用 http 兜底放最后。
"""

from __future__ import annotations

from pathlib import Path

from blockrepo.core.providers.azure import AzureProvider
from blockrepo.core.providers.base import ParseResult, Provider
from blockrepo.core.providers.bitbucket import BitbucketProvider
from blockrepo.core.providers.fs import FsProvider
from blockrepo.core.providers.github import GitHubProvider
from blockrepo.core.providers.gitlab import GitLabProvider
from blockrepo.core.providers.http import HttpProvider
from blockrepo.core.providers.index import DEFAULT_INDEX_URL, IndexProvider
from blockrepo.utils.net import Transport


def default_providers(
    transport: Transport | None = None,
    timeout: float = 30,
    index_url: str = DEFAULT_INDEX_URL,
    cwd: str | Path = ".",
) -> list[Provider]:
    """按匹配顺序创建内置 Provider"""
    common = {"transport": transport, "timeout": timeout}
    return [
        GitHubProvider(**common),
        GitLabProvider(**common),
        BitbucketProvider(**common),
        AzureProvider(**common),
        IndexProvider(index_url=index_url, **common),
        FsProvider(cwd=cwd, **common),
        HttpProvider(**common),
    ]


__all__ = [
    "AzureProvider", "BitbucketProvider", "FsProvider", "GitHubProvider",
    "GitLabProvider", "HttpProvider", "IndexProvider", "ParseResult",
    "Provider", "default_providers",
]
