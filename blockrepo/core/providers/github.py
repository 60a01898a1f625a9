"""GitHub Provider

地址格式:
    github/<owner>/<repo>
    github/<owner>/<repo>/tree/<ref>
    https://github.com/<owner>/<repo>[/tree/<ref>]
    github:https://<自建主机>/<owner>/<repo>[/tree/<ref>]
"""

from __future__ import annotations

import logging
import threading
from urllib.parse import quote

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.git import GitForgeProvider

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class GitHubProvider(GitForgeProvider):
    name = "github"
    prefix = "github"
    default_base = "https://github.com"
    url_formats = (
        "github/<owner>/<repo>[/tree/<ref>]",
        "https://github.com/<owner>/<repo>[/tree/<ref>]",
        "github:https://<host>/<owner>/<repo>[/tree/<ref>]",
    )

    def _parts(self, url: str) -> tuple[str, str, str, str | None]:
        base, path = self.split_host(url)
        parts = path.split("?", 1)[0].split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise self.invalid(url)
        owner, repo = parts[0], parts[1]
        ref = None
        if len(parts) >= 4 and parts[2] == "tree" and parts[3]:
            ref = parts[3]
        return base, owner, repo.removesuffix(".git"), ref

    def normalize(self, url: str) -> str:
        base, owner, repo, ref = self._parts(url)
        path = f"{owner}/{repo}" + (f"/tree/{ref}" if ref else "")
        return self.join_host(base, path)

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        base, owner, repo, ref = self._parts(locator)
        if ref is None:
            data = self.get_json(f"{self.api_host(base)}/repos/{owner}/{repo}", token, cancel)
            if isinstance(data, dict) and data.get("default_branch"):
                ref = str(data["default_branch"])
            else:
                ref = DEFAULT_BRANCH
                logger.warning("[github] 无法获取 %s/%s 的默认分支，使用 %s", owner, repo, ref)
        return ProviderState.create(
            self.name, locator, base_url=base, owner=owner, repo=repo, ref=ref,
        )

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        api = self.api_host(state.get("base_url"))
        return (
            f"{api}/repos/{state.get('owner')}/{state.get('repo')}/contents/"
            f"{quote(path)}?ref={quote(state.get('ref'), safe='')}"
        )

    def fetch_headers(self, token: str | None) -> dict[str, str]:
        headers = self.auth_header(token)
        headers["Accept"] = "application/vnd.github.raw+json"
        return headers

    def auth_hint(self) -> str:
        return "请检查 GitHub 令牌（GITHUB_TOKEN）是否有效且具有 repo 读取权限"

    def not_found_hint(self) -> str:
        return "请检查仓库名、分支（/tree/<ref>）和清单文件是否已推送"
