from __future__ import annotations

import json
from pathlib import Path

from fastapi.testclient import TestClient

from framework_classifier.settings import settings
from main import app

client = TestClient(app)


def _make_min_project(tmp_path: Path) -> Path:
    """
    Создаёт минимальный проект для тестов /analyze/local.

    Состав:
    - package.json с react (чтобы manifest-стратегия сработала)
    - src/index.js без импортов
    """
    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)

    (project / "package.json").write_text(json.dumps({"dependencies": {"react": "18"}}), encoding="utf-8")
    (project / "src" / "index.js").write_text("console.log('hi');\n", encoding="utf-8")
    return project


def test_health() -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_detect_endpoint(tmp_path: Path) -> None:
    resp = client.post(
        "/detect",
        json={"path": str(tmp_path / "views.py"), "content": "from django.db import models\n"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["framework"] == "Django"
    assert data["language"] == "python"


def test_detect_endpoint_requires_path() -> None:
    resp = client.post("/detect", json={"path": "  ", "content": ""})
    assert resp.status_code == 422


def test_analyze_flutter_endpoint() -> None:
    resp = client.post(
        "/analyze/flutter",
        json={"content": "import 'package:flutter/cupertino.dart';\nconst app = CupertinoApp();\n"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_flutter"] is True
    assert data["ui_framework"] == "cupertino"
    assert "CupertinoApp" in data["features"]


def test_analyze_local_ok(tmp_path: Path) -> None:
    """
    Happy-path: корректный проект -> 200 + базовые поля присутствуют.

    Важно:
    - временно отключаем sandbox (analysis_root), чтобы тест не зависел от окружения.
    """
    old_root = settings.analysis_root
    settings.analysis_root = None  # avoid sandbox affecting tests

    try:
        project_root = _make_min_project(tmp_path)

        resp = client.post("/analyze/local", json={"path": str(project_root)})
        assert resp.status_code == 200, resp.text

        data = resp.json()
        assert data["meta"]["project_path"] == str(project_root.resolve())
        assert data["summary"]["frameworks"] == {"React": 1}
        assert isinstance(data["files"], list)
    finally:
        settings.analysis_root = old_root


def test_analyze_local_404_when_path_missing(tmp_path: Path) -> None:
    """Если путь не существует: API отвечает 404 и в detail есть 'Path not found'."""
    old_root = settings.analysis_root
    settings.analysis_root = None

    try:
        missing = tmp_path / "no_such_dir"
        resp = client.post("/analyze/local", json={"path": str(missing)})
        assert resp.status_code == 404
        assert "Path not found" in resp.json()["detail"]
    finally:
        settings.analysis_root = old_root


def test_analyze_local_400_when_path_is_file(tmp_path: Path) -> None:
    """Если path указывает на файл: API отвечает 400 и сообщает, что это не директория."""
    old_root = settings.analysis_root
    settings.analysis_root = None

    try:
        f = tmp_path / "file.txt"
        f.write_text("hi", encoding="utf-8")

        resp = client.post("/analyze/local", json={"path": str(f)})
        assert resp.status_code == 400
        assert "not a directory" in resp.json()["detail"].lower()
    finally:
        settings.analysis_root = old_root


def test_analyze_local_422_when_path_empty() -> None:
    """Пустой path: validation-style ошибка (422) с текстом 'path is required'."""
    resp = client.post("/analyze/local", json={"path": ""})
    assert resp.status_code == 422
    assert "path is required" in resp.json()["detail"]


def test_analyze_local_403_when_outside_analysis_root(tmp_path: Path) -> None:
    """
    Если sandbox включён (analysis_root задан), а path вне его: API отвечает 403.
    """
    inside = tmp_path / "inside"
    outside = tmp_path / "outside"
    inside.mkdir()
    outside.mkdir()

    old_root = settings.analysis_root
    settings.analysis_root = inside

    try:
        resp = client.post("/analyze/local", json={"path": str(outside)})
        assert resp.status_code == 403
        assert "outside ANALYSIS_ROOT" in resp.json()["detail"]
    finally:
        settings.analysis_root = old_root


def test_detect_403_when_outside_analysis_root(tmp_path: Path) -> None:
    """
    /detect подчиняется тому же sandbox, что и /analyze/local:
    путь вне analysis_root -> 403, package.json снаружи не читается.
    """
    inside = tmp_path / "inside"
    secret = tmp_path / "secret"
    inside.mkdir()
    secret.mkdir()
    (secret / "package.json").write_text(json.dumps({"dependencies": {"next": "14"}}), encoding="utf-8")

    old_root = settings.analysis_root
    settings.analysis_root = inside

    try:
        resp = client.post("/detect", json={"path": str(secret / "x.ts"), "content": ""})
        assert resp.status_code == 403
        assert "outside ANALYSIS_ROOT" in resp.json()["detail"]

        resp = client.post("/detect", json={"path": "../secret/x.ts", "content": ""})
        assert resp.status_code == 403
    finally:
        settings.analysis_root = old_root


def test_detect_inside_analysis_root_does_not_climb_out(tmp_path: Path) -> None:
    """Внутри sandbox относительный путь считается от analysis_root, поиск manifest не выходит наружу."""
    (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"next": "14"}}), encoding="utf-8")
    inside = tmp_path / "inside"
    (inside / "web").mkdir(parents=True)
    (inside / "web" / "package.json").write_text(json.dumps({"dependencies": {"vue": "3"}}), encoding="utf-8")

    old_root = settings.analysis_root
    settings.analysis_root = inside

    try:
        resp = client.post("/detect", json={"path": "web/src/main.ts", "content": ""})
        assert resp.status_code == 200, resp.text
        assert resp.json()["framework"] == "Vue"

        resp = client.post("/detect", json={"path": "scripts/build.ts", "content": ""})
        assert resp.status_code == 200, resp.text
        assert resp.json()["framework"] == ""
    finally:
        settings.analysis_root = old_root
