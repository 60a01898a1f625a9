"""Bitbucket Provider

地址格式:
    bitbucket/<owner>/<repo>[/src/<ref>]
    https://bitbucket.org/<owner>/<repo>[/src/<ref>]
    bitbucket:https://<自建主机>/<owner>/<repo>[/src/<ref>]
"""

from __future__ import annotations

import logging
import threading
from urllib.parse import quote

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.git import GitForgeProvider

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"


class BitbucketProvider(GitForgeProvider):
    name = "bitbucket"
    prefix = "bitbucket"
    default_base = "https://bitbucket.org"
    url_formats = (
        "bitbucket/<owner>/<repo>[/src/<ref>]",
        "https://bitbucket.org/<owner>/<repo>[/src/<ref>]",
        "bitbucket:https://<host>/<owner>/<repo>[/src/<ref>]",
    )

    def _parts(self, url: str) -> tuple[str, str, str, str | None]:
        base, path = self.split_host(url)
        parts = path.split("?", 1)[0].split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise self.invalid(url)
        ref = None
        if len(parts) >= 4 and parts[2] == "src" and parts[3]:
            ref = parts[3]
        return base, parts[0], parts[1], ref

    def normalize(self, url: str) -> str:
        base, owner, repo, ref = self._parts(url)
        return self.join_host(base, f"{owner}/{repo}" + (f"/src/{ref}" if ref else ""))

    def api_host(self, base: str) -> str:
        return f"{super().api_host(base)}/2.0"

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        base, owner, repo, ref = self._parts(locator)
        if ref is None:
            data = self.get_json(f"{self.api_host(base)}/repositories/{owner}/{repo}", token, cancel)
            branch = data.get("mainbranch") if isinstance(data, dict) else None
            if isinstance(branch, dict) and branch.get("name"):
                ref = str(branch["name"])
            else:
                ref = DEFAULT_BRANCH
                logger.warning("[bitbucket] 无法获取 %s/%s 的默认分支，使用 %s", owner, repo, ref)
        return ProviderState.create(
            self.name, locator, base_url=base, owner=owner, repo=repo, ref=ref,
        )

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        api = self.api_host(state.get("base_url"))
        return (
            f"{api}/repositories/{state.get('owner')}/{state.get('repo')}/src/"
            f"{quote(state.get('ref'), safe='')}/{quote(path)}"
        )

    def auth_hint(self) -> str:
        return "请检查 Bitbucket 访问令牌（BITBUCKET_TOKEN）是否有效"
