"""纯数据格式: 没有导入，只做基本语法校验"""

from __future__ import annotations

import json

import yaml

from blockrepo.core.exceptions import FileSyntaxError
from blockrepo.core.langs.base import (
    HashCommentMixin,
    Language,
    MarkupCommentMixin,
    format_json,
)


class Json(Language):
    name = "json"
    extensions = (".json",)

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            raise FileSyntaxError(file_path, f"JSON 解析失败: {e}") from e
        return []

    def comment(self, content: str) -> str:
        # JSON 不支持注释
        return ""

    def format(self, code: str, formatter: str | None = None) -> str:
        return format_json(code, formatter)


class Jsonc(Language):
    name = "jsonc"
    extensions = (".jsonc",)

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        return []


class Yaml(HashCommentMixin, Language):
    name = "yaml"
    extensions = (".yaml", ".yml")

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise FileSyntaxError(file_path, f"YAML 解析失败: {e}") from e
        return []


class Svg(MarkupCommentMixin, Language):
    name = "svg"
    extensions = (".svg",)

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        return []


class Markdown(MarkupCommentMixin, Language):
    name = "markdown"
    extensions = (".md", ".mdx")

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        return []
