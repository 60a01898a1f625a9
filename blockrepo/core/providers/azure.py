"""Azure DevOps Provider

地址格式:
    azure/<org>/<project>/<repo>[/(heads|tags)/<ref>]
    azure:https://<主机>/<org>/<project>/<repo>[/(heads|tags)/<ref>]

不做默认分支探测，未指定时使用 main。
"""

from __future__ import annotations

import threading
from urllib.parse import quote

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.git import GitForgeProvider

DEFAULT_BRANCH = "main"
_REF_KINDS = ("heads", "tags")


class AzureProvider(GitForgeProvider):
    name = "azure"
    prefix = "azure"
    default_base = "https://dev.azure.com"
    # 无网络探测，不需要缓存
    cacheable = False
    url_formats = (
        "azure/<org>/<project>/<repo>[/(heads|tags)/<ref>]",
        "azure:https://<host>/<org>/<project>/<repo>[/(heads|tags)/<ref>]",
    )

    def matches(self, url: str) -> bool:
        return url.startswith(("azure/", "azure:"))

    def _parts(self, url: str) -> tuple[str, str, str, str, str, str]:
        base, path = self.split_host(url)
        parts = path.split("?", 1)[0].split("/")
        if len(parts) < 3 or not all(parts[:3]):
            raise self.invalid(url)
        org, project, repo = parts[:3]
        kind, ref = "heads", DEFAULT_BRANCH
        if len(parts) >= 4 and parts[3] in _REF_KINDS:
            kind = parts[3]
            if len(parts) >= 5 and parts[4]:
                ref = parts[4]
        return base, org, project, repo, kind, ref

    def normalize(self, url: str) -> str:
        base, org, project, repo, kind, ref = self._parts(url)
        return self.join_host(base, f"{org}/{project}/{repo}/{kind}/{ref}")

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        base, org, project, repo, kind, ref = self._parts(locator)
        return ProviderState.create(
            self.name, locator,
            base_url=base, org=org, project=project, repo=repo, kind=kind, ref=ref,
        )

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        version_type = "tag" if state.get("kind") == "tags" else "branch"
        return (
            f"{state.get('base_url')}/{state.get('org')}/{state.get('project')}"
            f"/_apis/git/repositories/{state.get('repo')}/items"
            f"?path={quote(path)}&api-version=7.2-preview.1"
            f"&versionDescriptor.version={quote(state.get('ref'), safe='')}"
            f"&versionDescriptor.versionType={version_type}"
        )

    def auth_hint(self) -> str:
        return "请检查 Azure DevOps 个人访问令牌（AZURE_TOKEN）是否有效且具有 Code (Read) 权限"
