"""语言解析器测试"""

from __future__ import annotations

import pytest

from blockrepo.core.exceptions import FileSyntaxError
from blockrepo.core.langs import BUILTIN_FORMATTER, find_language
from blockrepo.core.langs.css import Css
from blockrepo.core.langs.data import Json, Markdown, Yaml
from blockrepo.core.langs.javascript import JavaScript, grammar_for
from blockrepo.core.langs.markup import Html, Svelte, Vue


class TestFindLanguage:
    @pytest.mark.parametrize("file_name,expected", [
        ("a.ts", "javascript"),
        ("a.tsx", "javascript"),
        ("a.mjs", "javascript"),
        ("a.scss", "css"),
        ("a.vue", "vue"),
        ("a.svelte", "svelte"),
        ("a.html", "html"),
        ("a.json", "json"),
        ("a.jsonc", "jsonc"),
        ("a.yml", "yaml"),
        ("a.svg", "svg"),
        ("a.mdx", "markdown"),
    ])
    def test_by_extension(self, file_name, expected) -> None:
        assert find_language(file_name).name == expected

    def test_unknown(self) -> None:
        assert find_language("logo.png") is None


class TestJavaScript:
    def test_grammar(self) -> None:
        assert grammar_for("a.tsx") == "tsx"
        assert grammar_for("a.cts") == "typescript"
        assert grammar_for("a.jsx") == "javascript"

    def test_static_dynamic_and_reexports(self) -> None:
        code = (
            'import a from "a";\n'
            'import "./side-effect.js";\n'
            'export * from "./b";\n'
            'export { c } from "@scope/c";\n'
            'const lazy = () => import("./lazy");\n'
            "const skipped = import(`./${name}`);\n"
            'import a2 from "a";\n'
        )
        assert JavaScript().extract_imports("x.js", code) == [
            "a", "./side-effect.js", "./b", "@scope/c", "./lazy",
        ]

    def test_typescript_type_imports(self) -> None:
        code = (
            'import type { Result } from "../types/result.ts";\n'
            "export const f = (x: number): Result<number> => ({ ok: true, value: x });\n"
        )
        assert JavaScript().extract_imports("x.ts", code) == ["../types/result.ts"]

    def test_tsx(self) -> None:
        code = 'import { cn } from "@/lib/utils";\nexport const B = () => <button className={cn()} />;\n'
        assert JavaScript().extract_imports("b.tsx", code) == ["@/lib/utils"]

    def test_syntax_error_does_not_raise(self) -> None:
        code = 'import x from "ok";\nconst = ;;; {\n'
        assert "ok" in JavaScript().extract_imports("broken.js", code)

    def test_comment(self) -> None:
        assert JavaScript().comment("a\nb") == "/*\n\ta\n\tb\n*/"


class TestCss:
    def test_imports(self) -> None:
        code = (
            '@import "./base.css";\n'
            '@import url("https://fonts.example.com/x.css");\n'
            "@import url(./reset.css);\n"
            '@plugin "tailwindcss-animate";\n'
            "/* @import './commented.css'; */\n"
        )
        assert Css().extract_imports("a.css", code) == [
            "./base.css", "./reset.css", "tailwindcss-animate",
        ]

    def test_scss_use_forward(self) -> None:
        code = (
            '@use "sass:math";\n'
            '@use "./variables" as vars;\n'
            "// @use './ignored';\n"
            '@forward "./mixins";\n'
        )
        assert Css().extract_imports("a.scss", code) == ["./variables", "./mixins"]

    def test_tailwind_directives_disabled(self) -> None:
        assert Css(allow_tailwind_directives=False).extract_imports(
            "a.css", '@config "./tailwind.config.js";',
        ) == []


class TestMarkup:
    def test_html(self) -> None:
        code = (
            "<html><head>"
            '<script src="./main.js"></script>'
            '<script src="https://cdn.example.com/x.js"></script>'
            '<link rel="stylesheet" href="./style.css">'
            '<link rel="icon" href="./favicon.ico">'
            "</head><body>"
            '<script type="module">import { start } from "./inline.js"; start();</script>'
            "</body></html>"
        )
        assert Html().extract_imports("index.html", code) == [
            "./main.js", "./style.css", "./inline.js",
        ]

    def test_unclosed_script(self) -> None:
        with pytest.raises(FileSyntaxError, match="script"):
            Html().extract_imports("index.html", "<script>import x from 'y';")

    def test_vue(self) -> None:
        code = (
            "<template><Button /></template>\n"
            '<script setup lang="ts">\n'
            'import { ref } from "vue";\n'
            'import Button from "./Button.vue";\n'
            "const count = ref<number>(0);\n"
            "</script>\n"
        )
        vue = Vue()
        assert vue.extract_imports("App.vue", code) == ["vue", "./Button.vue"]
        assert "vue" in vue.implicit_packages

    def test_svelte(self) -> None:
        code = '<script>\nimport { goto } from "$app/navigation";\n</script>\n<h1>hi</h1>\n'
        svelte = Svelte()
        assert svelte.extract_imports("Page.svelte", code) == ["$app/navigation"]
        assert "@sveltejs/kit" in svelte.implicit_packages

    def test_markup_comment(self) -> None:
        assert Vue().comment("x") == "<!--\n\tx\n-->"


class TestDataFormats:
    def test_json_valid_and_invalid(self) -> None:
        assert Json().extract_imports("a.json", '{"a": 1}') == []
        with pytest.raises(FileSyntaxError, match="a.json"):
            Json().extract_imports("a.json", "{")

    def test_json_has_no_comment(self) -> None:
        assert Json().comment("x") == ""

    def test_json_builtin_format(self) -> None:
        assert Json().format('{"a":1}', BUILTIN_FORMATTER) == '{\n  "a": 1\n}\n'
        assert Json().format('{"a":1}') == '{"a":1}'

    def test_yaml(self) -> None:
        assert Yaml().extract_imports("a.yml", "a: 1\n") == []
        with pytest.raises(FileSyntaxError):
            Yaml().extract_imports("a.yml", "a: [1, 2\n")
        assert Yaml().comment("a\nb") == "# a\n# b"

    def test_markdown(self) -> None:
        assert Markdown().extract_imports("a.md", "# title\n```js\nimport x from 'y'\n```") == []
