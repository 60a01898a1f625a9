"""语言解析器注册表"""

from __future__ import annotations

from blockrepo.core.langs.base import BUILTIN_FORMATTER, Language
from blockrepo.core.langs.css import Css
from blockrepo.core.langs.data import Json, Jsonc, Markdown, Svg, Yaml
from blockrepo.core.langs.javascript import JavaScript
from blockrepo.core.langs.markup import Html, Svelte, Vue

LANGUAGES: list[Language] = [
    JavaScript(), Css(), Html(), Vue(), Svelte(),
    Json(), Jsonc(), Yaml(), Svg(), Markdown(),
]


def find_language(file_name: str, languages: list[Language] | None = None) -> Language | None:
    """按扩展名选取第一个匹配的解析器"""
    for lang in languages if languages is not None else LANGUAGES:
        if lang.matches(file_name):
            return lang
    return None


__all__ = ["BUILTIN_FORMATTER", "LANGUAGES", "Language", "find_language"]
