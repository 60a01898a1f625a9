"""测试公共夹具: 假 HTTP 传输、源码目录树构造"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from blockrepo.utils.net import HttpResponse, check_cancelled


class FakeTransport:
    """按 URL 返回预置响应的传输层

    路由值:
        str            -> 200 文本
        dict / list    -> 200 JSON
        HttpResponse   -> 原样返回
        Exception      -> 抛出
    未配置的 URL 返回 404。
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, dict[str, str]]] = []

    def __call__(self, url, headers, timeout, cancel) -> HttpResponse:
        self.calls.append((url, dict(headers)))
        check_cancelled(cancel)
        route = self.routes.get(url)
        if route is None:
            return HttpResponse(status=404, body=b"")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, HttpResponse):
            return route
        if isinstance(route, (dict, list)):
            return HttpResponse(
                status=200,
                body=json.dumps(route).encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        return HttpResponse(status=200, body=str(route).encode("utf-8"))

    def urls(self) -> list[str]:
        return [u for u, _ in self.calls]


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def make_tree() -> Callable[[Path, dict[str, str]], Path]:
    """在 root 下按 {相对路径: 内容} 写入文件"""

    def _make(root: Path, files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make


# 典型注册表: types/result 被 utils/math 相对引用
SAMPLE_REGISTRY = {
    "package.json": json.dumps({
        "name": "sample-registry",
        "dependencies": {"lodash-es": "^4.17.21"},
        "devDependencies": {"vitest": "^1.6.0"},
    }),
    "src/types/result.ts": (
        "export type Result<T> = { ok: true; value: T } | { ok: false; error: string };\n"
    ),
    "src/utils/math.ts": (
        'import type { Result } from "../types/result.ts";\n'
        'import { clamp } from "lodash-es";\n'
        "\n"
        "export function add(a: number, b: number): Result<number> {\n"
        "\treturn { ok: true, value: clamp(a + b, 0, 100) };\n"
        "}\n"
    ),
    "src/utils/math.test.ts": (
        'import { expect, it } from "vitest";\n'
        'import { add } from "./math";\n'
        "\n"
        'it("adds", () => expect(add(1, 2).ok).toBe(true));\n'
    ),
}


@pytest.fixture()
def sample_registry(tmp_path, make_tree) -> Path:
    return make_tree(tmp_path / "registry", SAMPLE_REGISTRY)
