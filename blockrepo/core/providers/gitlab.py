"""GitLab Provider

地址格式:
    gitlab/<group>/[<subgroup>/]<repo>[/-/tree/<ref>[?ref_type=heads]]
    https://gitlab.com/...
    gitlab:https://<自建主机>/...
"""

from __future__ import annotations

import logging
import threading
from urllib.parse import quote

from blockrepo.core.models import ProviderState
from blockrepo.core.providers.base import ParseResult
from blockrepo.core.providers.git import GitForgeProvider

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
_TREE_MARKER = "/-/tree/"


class GitLabProvider(GitForgeProvider):
    name = "gitlab"
    prefix = "gitlab"
    default_base = "https://gitlab.com"
    url_formats = (
        "gitlab/<group>/<repo>[/-/tree/<ref>]",
        "https://gitlab.com/<group>/<repo>[/-/tree/<ref>]",
        "gitlab:https://<host>/<group>/<repo>[/-/tree/<ref>]",
    )

    def _parts(self, url: str) -> tuple[str, str, str | None]:
        base, path = self.split_host(url)
        project, ref = path, None
        idx = path.find(_TREE_MARKER)
        if idx != -1:
            project = path[:idx]
            ref = path[idx + len(_TREE_MARKER):].split("?", 1)[0].strip("/") or None
        project = project.split("?", 1)[0].strip("/")
        if project.count("/") < 1:
            raise self.invalid(url)
        return base, project, ref

    def parse(self, url: str, fully_qualified: bool = False) -> ParseResult:
        # ?ref_type=... 位于 ref 之后，拆分条目前先去掉
        url = url.strip()
        if "?" in url:
            head, _, tail = url.partition("?")
            rest = tail.split("/", 1)
            url = head + (f"/{rest[1]}" if len(rest) > 1 else "")
        return super().parse(url, fully_qualified)

    def normalize(self, url: str) -> str:
        base, project, ref = self._parts(url)
        path = project + (f"{_TREE_MARKER}{ref}" if ref else "")
        return self.join_host(base, path)

    def api_host(self, base: str) -> str:
        return f"{base}/api/v4"

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        base, project, ref = self._parts(locator)
        if ref is None:
            url = f"{self.api_host(base)}/projects/{quote(project, safe='')}"
            data = self.get_json(url, token, cancel)
            if isinstance(data, dict) and data.get("default_branch"):
                ref = str(data["default_branch"])
            else:
                ref = DEFAULT_BRANCH
                logger.warning("[gitlab] 无法获取 %s 的默认分支，使用 %s", project, ref)
        return ProviderState.create(self.name, locator, base_url=base, project=project, ref=ref)

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        api = self.api_host(state.get("base_url"))
        return (
            f"{api}/projects/{quote(state.get('project'), safe='')}/repository/files/"
            f"{quote(path, safe='')}/raw?ref={quote(state.get('ref'), safe='')}"
        )

    def auth_header(self, token: str | None) -> dict[str, str]:
        return {"PRIVATE-TOKEN": token} if token else {}

    def auth_hint(self) -> str:
        return "请检查 GitLab 令牌（GITLAB_TOKEN）是否有效且具有 read_repository 权限"

    def not_found_hint(self) -> str:
        return "请检查项目路径、分支（/-/tree/<ref>）和文件路径是否正确"
