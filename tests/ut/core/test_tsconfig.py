"""路径别名解析测试"""

from __future__ import annotations

import json
import os

import pytest

from blockrepo.core import tsconfig
from blockrepo.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _clear_alias_cache():
    tsconfig.clear_cache()
    yield
    tsconfig.clear_cache()


class TestStripJsonComments:
    def test_comments_and_trailing_commas(self) -> None:
        text = """{
            // 行注释
            "a": "http://example.com", /* 块注释 */
            "b": [1, 2,],
        }"""
        assert json.loads(tsconfig.strip_json_comments(text)) == {
            "a": "http://example.com", "b": [1, 2],
        }

    def test_comment_markers_in_strings_kept(self) -> None:
        text = '{"a": "/* not a comment */", "b": "x,}"}'
        assert json.loads(tsconfig.strip_json_comments(text)) == {
            "a": "/* not a comment */", "b": "x,}",
        }

    def test_load_jsonc_invalid(self, tmp_path) -> None:
        p = tmp_path / "tsconfig.json"
        p.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError, match="顶层"):
            tsconfig.load_jsonc(p)


class TestPathAliases:
    def test_exact_before_wildcard(self, tmp_path) -> None:
        aliases = tsconfig.PathAliases(
            config_path=tmp_path / "tsconfig.json",
            paths={"@/*": ["./src/*"], "@/special": ["./lib/special"]},
        )
        assert aliases.match("@/special") == [
            os.path.normpath(str(tmp_path / "lib/special")),
            os.path.normpath(str(tmp_path / "src/special")),
        ]

    def test_longest_prefix_wins(self, tmp_path) -> None:
        aliases = tsconfig.PathAliases(
            config_path=tmp_path / "tsconfig.json",
            paths={"@/*": ["./src/*"], "@/ui/*": ["./components/*"]},
        )
        assert aliases.match("@/ui/button") == [
            os.path.normpath(str(tmp_path / "components/button")),
        ]

    def test_base_url_fallback(self, tmp_path) -> None:
        aliases = tsconfig.PathAliases(
            config_path=tmp_path / "tsconfig.json", base_url=tmp_path / "src",
        )
        assert aliases.match("utils/math") == [
            os.path.normpath(str(tmp_path / "src/utils/math")),
        ]

    def test_relative_specifier_not_matched(self, tmp_path) -> None:
        aliases = tsconfig.PathAliases(
            config_path=tmp_path / "tsconfig.json", paths={"*": ["./src/*"]},
        )
        assert aliases.match("./x") == []


class TestGetPathAliases:
    def test_nearest_tsconfig(self, tmp_path, make_tree) -> None:
        make_tree(tmp_path, {
            "tsconfig.json": '{\n  // 注释\n  "compilerOptions": {"paths": {"@/*": ["./src/*"]},},\n}',
            "src/utils/math.ts": "",
        })
        aliases = tsconfig.get_path_aliases(tmp_path / "src/utils/math.ts")
        assert aliases is not None
        assert aliases.paths == {"@/*": ["./src/*"]}
        assert aliases.paths_base == tmp_path.resolve()

    def test_jsconfig_fallback(self, tmp_path, make_tree) -> None:
        make_tree(tmp_path, {
            "jsconfig.json": '{"compilerOptions": {"baseUrl": "src"}}',
            "src/a.js": "",
        })
        aliases = tsconfig.get_path_aliases(tmp_path / "src/a.js")
        assert aliases.base_url == (tmp_path / "src").resolve()

    def test_extends_relative(self, tmp_path, make_tree) -> None:
        make_tree(tmp_path, {
            "tsconfig.base.json": '{"compilerOptions": {"baseUrl": ".", "paths": {"~/*": ["./lib/*"]}}}',
            "app/tsconfig.json": '{"extends": "../tsconfig.base.json", "compilerOptions": {"strict": true}}',
            "app/main.ts": "",
        })
        aliases = tsconfig.get_path_aliases(tmp_path / "app/main.ts")
        assert aliases.base_url == tmp_path.resolve()
        assert aliases.match("~/x") == [
            os.path.normpath(str(tmp_path.resolve() / "lib/x")),
            os.path.normpath(str(tmp_path.resolve() / "~/x")),
        ]

