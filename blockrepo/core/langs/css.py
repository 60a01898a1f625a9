"""CSS / SCSS / Sass 导入提取"""

from __future__ import annotations

import re

from blockrepo.core.langs.base import Language, dedup
from blockrepo.utils.urls import is_remote_url

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
# scss/sass 行注释，排除 url(http://...) 中的 //
_LINE_COMMENT_RE = re.compile(r"(?<![:\"'(])//[^\n]*")

_QUOTED = r"""["']([^"']+)["']"""
_IMPORT_RES = (
    re.compile(rf"@import\s+(?:url\(\s*)?{_QUOTED}"),
    re.compile(r"@import\s+url\(\s*([^)\s\"']+)\s*\)"),
    re.compile(rf"@(?:use|forward)\s+{_QUOTED}"),
)
# tailwind 指令
_TAILWIND_RES = (
    re.compile(rf"@(?:plugin|config|reference)\s+{_QUOTED}"),
)


class Css(Language):
    """样式表: @import / @use / @forward 及 tailwind 的 @plugin / @config / @reference"""

    name = "css"
    extensions = (".css", ".scss", ".sass")

    def __init__(self, allow_tailwind_directives: bool = True) -> None:
        self.allow_tailwind_directives = allow_tailwind_directives

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        text = _COMMENT_RE.sub("", content)
        if not file_path.endswith(".css"):
            text = _LINE_COMMENT_RE.sub("", text)

        patterns = _IMPORT_RES + (_TAILWIND_RES if self.allow_tailwind_directives else ())
        found: list[tuple[int, str]] = []
        for pattern in patterns:
            found.extend((m.start(), m.group(1).strip()) for m in pattern.finditer(text))
        found.sort()

        imports = []
        for _, spec in found:
            # 远程地址与 sass:math 这类内置模块不是依赖
            if is_remote_url(spec) or spec.startswith("sass:"):
                continue
            imports.append(spec)
        return dedup(imports)
