"""本地文件系统 Provider

地址格式: fs://<路径>，相对路径基于当前工作目录。
主要用于本地联调与测试。
"""

from __future__ import annotations

import logging
import os
import posixpath
import threading
from pathlib import Path

from blockrepo.core.exceptions import ProviderFetchError
from blockrepo.core.models import ProviderState
from blockrepo.core.providers.base import Provider
from blockrepo.utils.net import check_cancelled

logger = logging.getLogger(__name__)

_SCHEME = "fs://"


class FsProvider(Provider):
    name = "fs"
    url_formats = ("fs://<path>", "fs://./relative/path")

    def __init__(self, cwd: str | Path = ".", **kwargs) -> None:
        super().__init__(**kwargs)
        self.cwd = Path(cwd)

    def matches(self, url: str) -> bool:
        return url.startswith(_SCHEME)

    def normalize(self, url: str) -> str:
        raw = url[len(_SCHEME):]
        if not raw:
            raise self.invalid(url)
        path = posixpath.normpath(raw.replace("\\", "/"))
        if raw.startswith("./") and not path.startswith("."):
            path = f"./{path}"
        return f"{_SCHEME}{path}"

    def resolve_state(
        self, locator: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ProviderState:
        raw = locator[len(_SCHEME):]
        root = Path(raw) if os.path.isabs(raw) else (self.cwd / raw)
        return ProviderState.create(self.name, locator, path=str(root.resolve()))

    def resolve_raw(self, state: ProviderState, path: str) -> str:
        return str(Path(state.get("path")) / path)

    def fetch(
        self, state: ProviderState, path: str, token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> str:
        check_cancelled(cancel)
        file_path = self.resolve_raw(state, path)
        logger.debug("[fs] 读取 %s", file_path)
        try:
            return Path(file_path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ProviderFetchError(
                f"{file_path}: 文件不存在，请检查 fs:// 路径与清单内容",
                url=file_path, kind="not_found",
            ) from e
        except OSError as e:
            raise ProviderFetchError(
                f"{file_path}: 读取失败 ({e})", url=file_path, kind="transport",
            ) from e
