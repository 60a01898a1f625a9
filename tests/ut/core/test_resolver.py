"""依赖图解析测试"""

from __future__ import annotations

import pytest

from blockrepo.core import roles
from blockrepo.core.exceptions import (
    AmbiguousRegistryError,
    ItemNotFoundError,
    ParseError,
    ProviderFetchError,
    RegistryNotProvidedError,
)
from blockrepo.core.models import Category, File, Item, Manifest, ProviderState
from blockrepo.core.providers import FsProvider, default_providers
from blockrepo.core.registry import LoadedRegistry, RegistryResolver
from blockrepo.core.resolver import DependencyResolver


def _item(identity: str, deps: list[str] | None = None, **kwargs) -> Item:
    category, name = identity.split("/")
    files = kwargs.pop("files", [File(f"{name}.ts")])
    return Item(
        name=name, category=category, files=files,
        local_dependencies=deps or [], **kwargs,
    )


def _loaded(locator: str, items: list[Item]) -> LoadedRegistry:
    categories: dict[str, Category] = {}
    for item in items:
        categories.setdefault(item.category, Category(item.category)).items.append(item)
    return LoadedRegistry(
        state=ProviderState.create("fs", locator, path="/nowhere"),
        provider=FsProvider(),
        manifest=Manifest(categories=list(categories.values())),
    )


@pytest.fixture()
def resolver() -> DependencyResolver:
    return DependencyResolver(RegistryResolver(default_providers()))


def _labels(resolved) -> list[str]:
    return [r.label for r in resolved]


class TestClosure:
    def test_cycle_terminates(self, resolver) -> None:
        reg = _loaded("fs://reg", [_item("a/x", ["a/y"]), _item("a/y", ["a/x"])])
        assert _labels(resolver.resolve(["x"], [reg])) == ["fs://reg/a/y", "fs://reg/a/x"]

    def test_diamond_dependencies_first(self, resolver) -> None:
        reg = _loaded("fs://reg", [
            _item("a/a", ["a/b", "a/c"]),
            _item("a/b", ["a/d"]),
            _item("a/c", ["a/d"]),
            _item("a/d"),
        ])
        assert _labels(resolver.resolve(["a"], [reg])) == [
            "fs://reg/a/d", "fs://reg/a/b", "fs://reg/a/c", "fs://reg/a/a",
        ]

    def test_deterministic(self, resolver) -> None:
        reg = _loaded("fs://reg", [
            _item("a/a", ["a/b", "a/c"]), _item("a/b", ["a/c"]), _item("a/c"),
        ])
        first = _labels(resolver.resolve(["a", "c"], [reg]))
        assert first == _labels(resolver.resolve(["a", "c"], [reg]))
        assert first == ["fs://reg/a/c", "fs://reg/a/b", "fs://reg/a/a"]

    def test_dependencies_stay_in_source_registry(self, resolver) -> None:
        reg1 = _loaded("fs://reg1", [_item("ui/button", ["utils/cn"]), _item("utils/cn")])
        reg2 = _loaded("fs://reg2", [_item("utils/cn"), _item("ui/card")])
        resolved = resolver.resolve(["button"], [reg1, reg2])
        assert _labels(resolved) == ["fs://reg1/utils/cn", "fs://reg1/ui/button"]

    def test_installed_skipped(self, resolver) -> None:
        reg = _loaded("fs://reg", [
            _item("utils/math", ["types/result"]),
            _item("types/result", ["types/base"]),
            _item("types/base"),
        ])
        resolved = resolver.resolve(["math"], [reg], installed={"types/result"})
        assert _labels(resolved) == ["fs://reg/utils/math"]

        qualified = resolver.resolve(["math"], [reg], installed={"fs://reg/types/base"})
        assert _labels(qualified) == ["fs://reg/types/result", "fs://reg/utils/math"]

    def test_missing_dependency(self, resolver) -> None:
        reg = _loaded("fs://reg", [_item("utils/math", ["types/missing"])])
        with pytest.raises(ItemNotFoundError, match="types/missing"):
            resolver.resolve(["math"], [reg])


class TestRoles:
    def _registry(self) -> LoadedRegistry:
        return _loaded("fs://reg", [
            _item("utils/math", ["types/result"], files=[
                File("math.ts"), File("math.test.ts", role=roles.TEST),
                File("math.md", role=roles.DOC),
            ]),
            _item("types/result"),
        ])

    def test_primary_only_by_default(self, resolver) -> None:
        math = resolver.resolve(["math"], [self._registry()])[-1]
        assert [f.path for f in math.files] == ["math.ts"]

    def test_soft_roles_add_files(self, resolver) -> None:
        resolved = resolver.resolve(["math"], [self._registry()], soft_roles={"tests"})
        assert [f.path for f in resolved[-1].files] == ["math.ts", "math.test.ts"]
        # 没有测试文件的依赖不受影响
        assert [f.path for f in resolved[0].files] == ["result.ts"]


class TestLocate:
    def test_ambiguous_lists_registries(self, resolver) -> None:
        reg1 = _loaded("fs://reg1", [_item("ui/button")])
        reg2 = _loaded("fs://reg2", [_item("ui/button")])
        with pytest.raises(AmbiguousRegistryError) as exc:
            resolver.resolve(["button"], [reg1, reg2])
        assert exc.value.candidates == ["fs://reg1", "fs://reg2"]
        assert resolver.candidates("button", [reg1, reg2]) == ["fs://reg1", "fs://reg2"]

    def test_qualified_request(self, resolver) -> None:
        reg1 = _loaded("fs://reg1", [_item("ui/button")])
        reg2 = _loaded("fs://reg2", [_item("ui/button")])
        resolved = resolver.resolve(["fs://reg1/ui/button"], [reg1, reg2])
        assert _labels(resolved) == ["fs://reg1/ui/button"]

    def test_qualified_request_loads_registry(self, sample_registry, make_tree) -> None:
        make_tree(sample_registry, {"blockrepo-manifest.json": Manifest(categories=[
            Category("ui", [_item("ui/button")]),
        ]).to_json()})
        resolver = DependencyResolver(RegistryResolver([FsProvider()]))
        resolved = resolver.resolve([f"fs://{sample_registry}/ui/button"], [])
        assert [r.item.identity for r in resolved] == ["ui/button"]

    def test_qualified_requests_load_registries_together(
        self, tmp_path, sample_registry, make_tree, monkeypatch,
    ) -> None:
        other = tmp_path / "other"
        make_tree(sample_registry, {"blockrepo-manifest.json": Manifest(categories=[
            Category("ui", [_item("ui/button")]),
        ]).to_json()})
        make_tree(other, {"blockrepo-manifest.json": Manifest(categories=[
            Category("ui", [_item("ui/card")]),
        ]).to_json()})
        registry = RegistryResolver([FsProvider()], max_workers=4)
        calls: list[list[str]] = []
        load = registry.load

        def _load(urls, **kwargs):
            calls.append(list(urls))
            return load(urls, **kwargs)

        monkeypatch.setattr(registry, "load", _load)
        resolved = DependencyResolver(registry).resolve([
            f"fs://{sample_registry}/ui/button",
            f"fs://{other}/ui/card",
            f"fs://{sample_registry}/ui/button",
        ], [])
        assert [r.item.identity for r in resolved] == ["ui/button", "ui/card"]
        assert calls == [[f"fs://{sample_registry}", f"fs://{other}"]]

    def test_qualified_missing_item(self, resolver) -> None:
        reg = _loaded("fs://reg1", [_item("ui/button")])
        with pytest.raises(ItemNotFoundError, match="fs://reg1"):
            resolver.resolve(["fs://reg1/ui/card"], [reg])

    def test_unqualified_not_found(self, resolver) -> None:
        reg = _loaded("fs://reg", [_item("ui/button")])
        with pytest.raises(ItemNotFoundError, match="card"):
            resolver.resolve(["card"], [reg])

    def test_no_registries(self, resolver) -> None:
        with pytest.raises(RegistryNotProvidedError, match="button"):
            resolver.resolve(["button"], [])

    def test_name_in_several_categories(self, resolver) -> None:
        reg = _loaded("fs://reg", [_item("ui/button"), _item("forms/button")])
        with pytest.raises(ParseError, match="ui/button"):
            resolver.resolve(["button"], [reg])
        assert _labels(resolver.resolve(["forms/button"], [reg])) == ["fs://reg/forms/button"]

    def test_empty_request_means_all_listed(self, resolver) -> None:
        reg = _loaded("fs://reg", [
            _item("utils/math", ["types/result"]),
            _item("types/result", listed=False),
        ])
        assert _labels(resolver.resolve([], [reg])) == [
            "fs://reg/types/result", "fs://reg/utils/math",
        ]


class TestFetchFiles:
    def _manifest(self) -> Manifest:
        return Manifest(categories=[
            Category("types", [_item("types/result", directory="src/types")]),
            Category("utils", [_item(
                "utils/math", ["types/result"], directory="src/utils",
                files=[File("math.ts"), File("math.test.ts", role=roles.TEST)],
            )]),
        ])

    def test_contents_filled(self, sample_registry) -> None:
        registry = RegistryResolver([FsProvider()], max_workers=4)
        state = registry.resolve_state(f"fs://{sample_registry}")
        loaded = LoadedRegistry(state=state, provider=FsProvider(), manifest=self._manifest())
        resolver = DependencyResolver(registry)

        resolved = resolver.resolve(["math"], [loaded], soft_roles={"test"})
        resolver.fetch_files(resolved)
        assert resolved[0].contents["result.ts"].startswith("export type Result")
        assert set(resolved[1].contents) == {"math.ts", "math.test.ts"}
        assert 'from "lodash-es"' in resolved[1].contents["math.ts"]

    def test_missing_file_fails(self, sample_registry) -> None:
        registry = RegistryResolver([FsProvider()])
        state = registry.resolve_state(f"fs://{sample_registry}")
        manifest = Manifest(categories=[
            Category("utils", [_item("utils/gone", directory="src/utils")]),
        ])
        loaded = LoadedRegistry(state=state, provider=FsProvider(), manifest=manifest)
        resolver = DependencyResolver(registry)
        resolved = resolver.resolve(["gone"], [loaded])
        with pytest.raises(ProviderFetchError) as exc:
            resolver.fetch_files(resolved)
        assert exc.value.kind == "not_found"
        assert resolved[0].contents == {}
