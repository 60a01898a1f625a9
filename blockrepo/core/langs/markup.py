"""HTML 与单文件组件（Vue / Svelte）的导入提取

使用 BeautifulSoup（html.parser）定位 <script> / <link>，
脚本内容交给 tree-sitter 解析。
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from blockrepo.core.exceptions import FileSyntaxError
from blockrepo.core.langs.base import Language, MarkupCommentMixin, dedup
from blockrepo.core.langs.javascript import extract_script_imports
from blockrepo.utils.urls import is_remote_url

_SCRIPT_OPEN_RE = re.compile(r"<script\b", re.IGNORECASE)
_SCRIPT_CLOSE_RE = re.compile(r"</script\s*>", re.IGNORECASE)


def _check_scripts_closed(file_path: str, content: str) -> None:
    opened = len(_SCRIPT_OPEN_RE.findall(content))
    closed = len(_SCRIPT_CLOSE_RE.findall(content))
    if opened > closed:
        raise FileSyntaxError(file_path, "<script> 标签未闭合")


def _script_grammar(tag) -> str:
    lang = (tag.get("lang") or "").lower()
    if lang == "tsx":
        return "tsx"
    if lang in ("ts", "typescript"):
        return "typescript"
    return "javascript"


class Html(MarkupCommentMixin, Language):
    """HTML: <script src>、内联脚本、本地样式表链接"""

    name = "html"
    extensions = (".html", ".htm")

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        _check_scripts_closed(file_path, content)
        soup = BeautifulSoup(content, "html.parser")
        imports: list[str] = []

        for tag in soup.find_all(["script", "link"]):
            if tag.name == "script":
                src = tag.get("src")
                if src:
                    if not is_remote_url(src):
                        imports.append(src)
                    continue
                code = tag.string or ""
                if code.strip():
                    imports.extend(extract_script_imports(code, "javascript", file_path))
            else:
                rel = tag.get("rel") or []
                href = tag.get("href")
                if "stylesheet" in rel and href and not is_remote_url(href):
                    imports.append(href)
        return dedup(imports)


class SingleFileComponent(MarkupCommentMixin, Language):
    """.vue / .svelte: 只解析 <script> 块中的导入"""

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        _check_scripts_closed(file_path, content)
        soup = BeautifulSoup(content, "html.parser")
        imports: list[str] = []
        for tag in soup.find_all("script"):
            if tag.get("src"):
                continue
            code = tag.string or ""
            if code.strip():
                imports.extend(extract_script_imports(code, _script_grammar(tag), file_path))
        return dedup(imports)


class Vue(SingleFileComponent):
    name = "vue"
    extensions = (".vue",)
    implicit_packages = frozenset(("vue", "nuxt"))


class Svelte(SingleFileComponent):
    name = "svelte"
    extensions = (".svelte",)
    implicit_packages = frozenset(("svelte", "@sveltejs/kit"))
