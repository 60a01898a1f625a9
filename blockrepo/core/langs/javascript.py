"""JavaScript / TypeScript 导入提取（tree-sitter）

识别:
- import x from "mod" / import "mod"
- export { x } from "mod" / export * from "mod"
- 动态 import("mod")（仅字符串字面量参数）
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from tree_sitter_language_pack import get_parser

from blockrepo.core.langs.base import Language, dedup

logger = logging.getLogger(__name__)

_GRAMMAR_BY_EXT = {
    ".tsx": "tsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".jsx": "javascript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

_STATEMENT_TYPES = frozenset(("import_statement", "export_statement"))


@lru_cache(maxsize=None)
def _parser(grammar: str) -> Any:
    return get_parser(grammar)


def grammar_for(file_name: str) -> str:
    for ext, grammar in _GRAMMAR_BY_EXT.items():
        if file_name.endswith(ext):
            return grammar
    return "typescript"


def _string_value(node: Any) -> str:
    return node.text.decode("utf-8", errors="ignore").strip("\"'")


def collect_imports(root: Any) -> list[str]:
    """先序遍历语法树，按出现顺序收集模块说明符"""
    found: list[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in _STATEMENT_TYPES:
            source = node.child_by_field_name("source")
            if source is not None and source.type == "string":
                found.append(_string_value(source))
        elif node.type == "call_expression":
            fn = node.child_by_field_name("function")
            args = node.child_by_field_name("arguments")
            if fn is not None and fn.type == "import" and args is not None:
                literals = [c for c in args.named_children if c.type == "string"]
                if literals:
                    found.append(_string_value(literals[0]))
        stack.extend(reversed(node.children))
    return [s for s in found if s]


def extract_script_imports(code: str, grammar: str, file_path: str = "") -> list[str]:
    """解析一段脚本代码；存在语法错误时记录告警，返回可恢复部分的导入"""
    tree = _parser(grammar).parse(code.encode("utf-8"))
    if tree.root_node.has_error:
        logger.warning("%s: 存在语法错误，仅提取可识别的导入", file_path or "<inline>")
    return dedup(collect_imports(tree.root_node))


class JavaScript(Language):
    """JavaScript 与 TypeScript（含 JSX/TSX）"""

    name = "javascript"
    extensions = tuple(_GRAMMAR_BY_EXT)

    def extract_imports(self, file_path: str, content: str) -> list[str]:
        return extract_script_imports(content, grammar_for(file_path), file_path)
