"""文件角色

条目中的每个文件带一个角色: primary / test / doc / example。
辅助角色（test/doc/example）按文件名后缀与主文件关联。
"""

from __future__ import annotations

PRIMARY = "primary"
TEST = "test"
DOC = "doc"
EXAMPLE = "example"

ALL_ROLES = (PRIMARY, TEST, DOC, EXAMPLE)
AUXILIARY_ROLES = frozenset((TEST, DOC, EXAMPLE))

_ROLE_ALIASES = {
    "file": PRIMARY,
    "files": PRIMARY,
    "tests": TEST,
    "docs": DOC,
    "examples": EXAMPLE,
}

TEST_SUFFIXES = (
    ".test.ts", "_test.ts", ".test.js", "_test.js",
    ".spec.ts", ".spec.js",
)
DOC_SUFFIXES = (".md", ".mdx")


def normalize_role(role: str) -> str:
    """角色别名归一化（tests -> test 等），未知角色原样返回"""
    role = role.strip().lower()
    return _ROLE_ALIASES.get(role, role)


def normalize_roles(roles: list[str] | set[str] | tuple[str, ...]) -> frozenset[str]:
    return frozenset(normalize_role(r) for r in roles if r.strip())


def is_test_file(file_name: str) -> bool:
    return file_name.endswith(TEST_SUFFIXES)


def is_example_file(file_name: str) -> bool:
    """形如 button.example.tsx"""
    parts = file_name.split(".")
    return len(parts) >= 3 and parts[-2] == "example"


def is_doc_file(file_name: str) -> bool:
    return file_name.lower().endswith(DOC_SUFFIXES)


def is_auxiliary_file(file_name: str) -> bool:
    """测试或示例文件不会作为独立条目出现"""
    return is_test_file(file_name) or is_example_file(file_name)


def detect_role(file_name: str) -> str:
    """根据文件名推断角色（文档文件只有在与主文件同名时才是 doc，这里不做判断）"""
    if is_test_file(file_name):
        return TEST
    if is_example_file(file_name):
        return EXAMPLE
    return PRIMARY


def auxiliary_role_for(item_name: str, file_name: str) -> str | None:
    """判断 file_name 是否为条目 item_name 的辅助文件，返回角色或 None"""
    if any(file_name == f"{item_name}{s}" for s in TEST_SUFFIXES):
        return TEST
    if any(file_name == f"{item_name}{s}" for s in DOC_SUFFIXES):
        return DOC
    if file_name.startswith(f"{item_name}.example."):
        return EXAMPLE
    return None
