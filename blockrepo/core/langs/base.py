"""语言解析器接口

每种语言/文件类型一个实现，按扩展名匹配。
新增语言只需新增一个子类并注册到 blockrepo.core.langs.LANGUAGES。
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

BUILTIN_FORMATTER = "builtin"


def _indent_lines(content: str, prefix: str = "\t") -> str:
    return "\n".join(f"{prefix}{line}" if line else line for line in content.splitlines())


def dedup(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class Language(ABC):
    """语言解析器基类"""

    name: str = ""
    extensions: tuple[str, ...] = ()
    # 永远不作为外部依赖记录的包（如框架自身）
    implicit_packages: frozenset[str] = frozenset()

    def matches(self, file_name: str) -> bool:
        return file_name.endswith(self.extensions)

    @abstractmethod
    def extract_imports(self, file_path: str, content: str) -> list[str]:
        """返回文件中引用的原始模块说明符（保持出现顺序并去重）

        Raises:
            FileSyntaxError: 内容严重损坏，无法提取
        """

    def comment(self, content: str) -> str:
        """将内容包装为该语言的块注释"""
        return f"/*\n{_indent_lines(content)}\n*/"

    def format(self, code: str, formatter: str | None = None) -> str:
        """格式化代码，仅支持内置格式化器，其余原样返回"""
        return code

    def __repr__(self) -> str:
        return f"<Language {self.name}>"


class MarkupCommentMixin:
    def comment(self, content: str) -> str:
        return f"<!--\n{_indent_lines(content)}\n-->"


class HashCommentMixin:
    def comment(self, content: str) -> str:
        return "\n".join(f"# {line}" if line else "#" for line in content.splitlines())


def format_json(code: str, formatter: str | None) -> str:
    if formatter != BUILTIN_FORMATTER:
        return code
    try:
        return json.dumps(json.loads(code), indent=2, ensure_ascii=False) + "\n"
    except json.JSONDecodeError:
        return code
