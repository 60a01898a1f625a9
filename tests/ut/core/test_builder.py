"""清单构建器测试"""

from __future__ import annotations

import pytest

from blockrepo.core import roles
from blockrepo.core.builder import ManifestBuilder, prune_unused, validate_local_dependencies
from blockrepo.core.config import BuildConfig, ConfigFileSpec
from blockrepo.core.exceptions import (
    BuildError,
    InvalidLocalDependencyError,
    SkippedPathWarning,
    UnsupportedFileTypeWarning,
)
from blockrepo.core.models import Category, Item, Manifest, RemoteDependency


def _build(root, **overrides):
    cfg = BuildConfig(dirs=["src"], **overrides)
    return ManifestBuilder(cfg, cwd=root).build()


class TestManifestBuilder:
    def test_relative_import_scenario(self, sample_registry) -> None:
        result = _build(sample_registry)
        math = result.manifest.get_item("utils/math")
        assert math is not None
        assert math.local_dependencies == ["types/result"]
        assert math.imports == {"../types/result.ts": "{{types/result}}.ts"}
        assert math.dependencies == [RemoteDependency("lodash-es", "^4.17.21")]
        assert math.directory == "src/utils"
        assert result.manifest.get_item("types/result").local_dependencies == []

    def test_test_file_attached_not_classified(self, sample_registry) -> None:
        math = _build(sample_registry).manifest.get_item("utils/math")
        assert [(f.path, f.role) for f in math.files] == [
            ("math.ts", roles.PRIMARY), ("math.test.ts", roles.TEST),
        ]
        # 测试文件里的 vitest 不进入依赖
        assert math.dev_dependencies == []
        assert "./math" not in math.imports

    def test_deterministic(self, sample_registry) -> None:
        first = _build(sample_registry).manifest.to_dict()
        assert _build(sample_registry).manifest.to_dict() == first

    def test_missing_root(self, tmp_path) -> None:
        with pytest.raises(BuildError, match="无法读取"):
            _build(tmp_path)

    def test_unsupported_file_warns(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/assets/logo.png": "png"})
        result = _build(sample_registry)
        assert result.manifest.get_item("assets/logo") is None
        assert any(isinstance(w, UnsupportedFileTypeWarning) for w in result.warnings)

    def test_include_files_verbatim(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/assets/logo.png": "png"})
        item = _build(sample_registry, include_files=["*.png"]).manifest.get_item("assets/logo")
        assert [f.path for f in item.files] == ["logo.png"]

    def test_docs(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/utils/math.md": "# math"})
        skipped = _build(sample_registry)
        assert any(isinstance(w, SkippedPathWarning) for w in skipped.warnings)
        assert skipped.manifest.get_item("utils/math").files[-1].role == roles.TEST

        included = _build(sample_registry, include_docs=True).manifest.get_item("utils/math")
        assert ("math.md", roles.DOC) in [(f.path, f.role) for f in included.files]

    def test_hidden_and_node_modules_skipped(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "src/.cache/x.ts": "",
            "src/node_modules/pkg/index.ts": "",
            "src/utils/.secret.ts": "",
        })
        manifest = _build(sample_registry).manifest
        assert [c.name for c in manifest.categories] == ["types", "utils"]
        assert manifest.get_item("utils/.secret") is None

    def test_out_of_root_import_is_build_error(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "outside.ts": "export const x = 1;\n",
            "src/utils/bad.ts": 'import { x } from "../../outside.ts";\n',
        })
        with pytest.raises(BuildError) as exc:
            _build(sample_registry)
        assert any("bad.ts" in d for d in exc.value.details)

    def test_same_name_different_extension_is_build_error(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "src/ui/button.tsx": "export const Button = () => null;\n",
            "src/ui/button.css": ".button { color: red; }\n",
        })
        with pytest.raises(BuildError) as exc:
            _build(sample_registry)
        assert any("ui/button" in d and "button.tsx" in d for d in exc.value.details)

    def test_malformed_json_is_build_error(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/data/broken.json": "{"})
        with pytest.raises(BuildError) as exc:
            _build(sample_registry)
        assert any("broken.json" in d for d in exc.value.details)

    def test_builtins_ignored(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "src/utils/io.ts": 'import fs from "node:fs";\nimport path from "path";\n',
        })
        io = _build(sample_registry).manifest.get_item("utils/io")
        assert io.dependencies == [] and io.local_dependencies == []

    def test_directory_item(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "src/ui/button/button.ts": (
                'import { helper } from "./helpers";\n'
                'import { add } from "../../utils/math.ts";\n'
            ),
            "src/ui/button/helpers.ts": "export const helper = 1;\n",
            "src/ui/button/button.test.ts": 'import "./button";\n',
        })
        button = _build(sample_registry).manifest.get_item("ui/button")
        assert button.subdirectory is True
        assert button.directory == "src/ui/button"
        assert button.local_dependencies == ["utils/math"]
        assert [(f.path, f.role) for f in button.files] == [
            ("button.test.ts", roles.TEST),
            ("button.ts", roles.PRIMARY),
            ("helpers.ts", roles.PRIMARY),
        ]

    def test_nested_directories(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "src/ui/card/card.ts": "export {};\n",
            "src/ui/card/parts/header.ts": "export {};\n",
        })
        flat = _build(sample_registry)
        assert [f.path for f in flat.manifest.get_item("ui/card").files] == ["card.ts"]
        assert any(isinstance(w, SkippedPathWarning) for w in flat.warnings)

        nested = _build(sample_registry, allow_subdirectories=True)
        assert [f.path for f in nested.manifest.get_item("ui/card").files] == [
            "card.ts", "parts/header.ts",
        ]

    def test_include_exclude_filters(self, sample_registry) -> None:
        manifest = _build(sample_registry, exclude_blocks=["utils/math"]).manifest
        assert manifest.get_item("utils/math") is None
        # types/result 仍可见，不会被裁剪
        assert manifest.get_item("types/result") is not None

        with pytest.raises(InvalidLocalDependencyError) as exc:
            _build(sample_registry, exclude_categories=["types"])
        assert exc.value.details == ["utils/math -> types/result"]

    def test_unlisted_dependency_kept_unused_pruned(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/utils/private.ts": "export {};\n"})
        result = _build(
            sample_registry, do_not_list_blocks=["types/result", "private"],
        )
        result_item = result.manifest.get_item("types/result")
        assert result_item is not None and result_item.listed is False
        assert result.manifest.get_item("utils/private") is None
        assert result.pruned == ["utils/private"]

    def test_prune_disabled(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"src/utils/private.ts": "export {};\n"})
        result = _build(sample_registry, do_not_list_blocks=["private"], prune_unused=False)
        assert result.manifest.get_item("utils/private") is not None
        assert result.pruned == []

    def test_list_categories(self, sample_registry) -> None:
        manifest = _build(sample_registry, list_categories=["utils"]).manifest
        assert manifest.get_item("utils/math").listed is True
        assert manifest.get_item("types/result").listed is False

    def test_metadata(self, sample_registry) -> None:
        manifest = _build(
            sample_registry, name="sample", version="1.0.0",
            default_paths={"utils": "./src/utils"},
        ).manifest
        assert manifest.name == "sample"
        assert manifest.default_paths == {"utils": "./src/utils"}

    def test_output_dir_relative_directories(self, sample_registry) -> None:
        cfg = BuildConfig(dirs=["src"], output_dir="src")
        manifest = ManifestBuilder(cfg, cwd=sample_registry).build().manifest
        assert manifest.get_item("utils/math").directory == "utils"


class TestConfigFiles:
    def test_external_deps_collected(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "tailwind.config.ts": 'import animate from "tailwindcss-animate";\nexport default {};\n',
        })
        manifest = _build(sample_registry, config_files=[
            ConfigFileSpec(name="tailwind", path="tailwind.config.ts"),
        ]).manifest
        assert len(manifest.config_files) == 1
        cf = manifest.config_files[0]
        assert cf.path == "tailwind.config.ts"
        assert cf.dependencies == [RemoteDependency("tailwindcss-animate")]

    def test_missing_required(self, sample_registry) -> None:
        with pytest.raises(BuildError) as exc:
            _build(sample_registry, config_files=[
                ConfigFileSpec(name="tailwind", path="tailwind.config.ts"),
            ])
        assert any("tailwind" in d for d in exc.value.details)

    def test_missing_optional(self, sample_registry) -> None:
        result = _build(sample_registry, config_files=[
            ConfigFileSpec(name="tailwind", path="tailwind.config.ts", optional=True),
        ])
        assert result.manifest.config_files == []
        assert any(isinstance(w, SkippedPathWarning) for w in result.warnings)

    def test_local_import_rejected(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {
            "app.config.ts": 'import { add } from "./src/utils/math.ts";\n',
        })
        with pytest.raises(BuildError) as exc:
            _build(sample_registry, config_files=[
                ConfigFileSpec(name="app", path="app.config.ts"),
            ])
        assert any("utils/math" in d for d in exc.value.details)


class TestPostProcessing:
    def test_validate_local_dependencies_ok(self) -> None:
        manifest = Manifest(categories=[Category("a", [
            Item(name="x", category="a", local_dependencies=["a/y"]),
            Item(name="y", category="a"),
        ])])
        validate_local_dependencies(manifest)

    def test_prune_until_fixpoint(self) -> None:
        manifest = Manifest(categories=[
            Category("a", [
                Item(name="top", category="a", listed=False, local_dependencies=["b/mid"]),
            ]),
            Category("b", [
                Item(name="mid", category="b", listed=False, local_dependencies=["b/leaf"]),
                Item(name="leaf", category="b", listed=False),
                Item(name="public", category="b"),
            ]),
        ])
        removed = prune_unused(manifest)
        assert removed == ["a/top", "b/mid", "b/leaf"]
        assert [c.name for c in manifest.categories] == ["b"]
        assert [i.name for i in manifest.categories[0].items] == ["public"]
