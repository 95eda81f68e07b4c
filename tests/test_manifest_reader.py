from __future__ import annotations

import json
from pathlib import Path

from framework_classifier.manifest_reader import ManifestReader, PackageManifest


def test_find_manifest_walks_up(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)

    reader = ManifestReader()
    assert reader.find_manifest(deep / "file.ts") == tmp_path / "package.json"


def test_find_and_load_returns_none_without_manifest(tmp_path: Path) -> None:
    reader = ManifestReader(manifest_filename="does-not-exist.json")
    assert reader.find_and_load(tmp_path / "src" / "index.js") is None


def test_load_parses_three_keys_and_ignores_rest(tmp_path: Path) -> None:
    p = tmp_path / "package.json"
    p.write_text(
        json.dumps(
            {
                "name": "demo",
                "dependencies": {"react": "^18.2.0"},
                "devDependencies": {"vite": "5"},
                "scripts": {"build": "vite build"},
            }
        ),
        encoding="utf-8",
    )

    info = ManifestReader().load(p)
    assert info is not None
    assert info.dependencies == {"react": "^18.2.0"}
    assert info.dev_dependencies == {"vite": "5"}
    assert info.scripts == {"build": "vite build"}
    assert info.all_dependencies() == {"react": "^18.2.0", "vite": "5"}


def test_empty_manifest_is_cached(tmp_path: Path) -> None:
    p = tmp_path / "package.json"
    p.write_text("{}", encoding="utf-8")

    reader = ManifestReader()
    info = reader.load(p)
    assert info is not None
    assert info.all_dependencies() == {}
    assert p.absolute() in reader.cached_paths()


def test_malformed_manifest_is_not_cached(tmp_path: Path) -> None:
    """Ошибка разбора -> None и без кэша: исправленный файл читается заново."""
    p = tmp_path / "package.json"
    p.write_text("{ broken", encoding="utf-8")

    reader = ManifestReader()
    assert reader.load(p) is None
    assert reader.cached_paths() == []

    p.write_text('{"dependencies": {"vue": "3"}}', encoding="utf-8")
    info = reader.load(p)
    assert info is not None
    assert "vue" in info.dependencies


def test_non_object_json_is_malformed(tmp_path: Path) -> None:
    p = tmp_path / "package.json"
    p.write_text("[1, 2, 3]", encoding="utf-8")
    assert ManifestReader().load(p) is None


def test_values_are_coerced_to_strings() -> None:
    m = PackageManifest.model_validate(
        {
            "dependencies": {"a": 1, "b": True, "c": None, "d": {"x": 1}, "e": "2.0"},
            "scripts": "not a map",
        }
    )
    assert m.dependencies == {"a": "1", "b": "true", "e": "2.0"}
    assert m.scripts == {}


def test_boundary_stops_upward_search(tmp_path: Path) -> None:
    """С boundary поиск не выходит за его пределы и не смотрит файлы снаружи."""
    (tmp_path / "package.json").write_text('{"dependencies": {"next": "14"}}', encoding="utf-8")
    sandbox = tmp_path / "sandbox"
    (sandbox / "src").mkdir(parents=True)

    reader = ManifestReader(boundary=sandbox)
    assert reader.find_manifest(sandbox / "src" / "index.ts") is None
    assert reader.find_manifest(tmp_path / "other" / "index.ts") is None

    (sandbox / "package.json").write_text("{}", encoding="utf-8")
    assert reader.find_manifest(sandbox / "src" / "index.ts") == sandbox / "package.json"
