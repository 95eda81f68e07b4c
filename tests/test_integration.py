from __future__ import annotations

import json
from pathlib import Path

from framework_classifier.framework_detector import (
    FLUTTER_LABEL,
    DetectionRequest,
    DetectionStrategy,
    FrameworkDetector,
)
from framework_classifier.integration import FileClassifier, integrate_flutter_analysis
from framework_classifier.models import FlutterAnalysis, SourceAST, UIFramework

FLUTTER_SRC = """\
import 'package:flutter/material.dart';

class Home extends StatelessWidget {
  @override
  Widget build(BuildContext context) {
    return Scaffold(body: ListView());
  }
}
"""


def test_dart_file_writes_flutter_metadata(tmp_path: Path) -> None:
    classifier = FileClassifier(tmp_path)
    ast = SourceAST(file_path="lib/home.dart", language="dart")

    result = classifier.classify("lib/home.dart", "dart", FLUTTER_SRC, ast=ast)

    assert result.framework == ""
    assert result.flutter is not None
    assert ast.metadata["framework"] == ""
    assert ast.metadata["has_flutter"] is True
    assert ast.metadata["flutter_framework"] == "material"
    assert ast.metadata["state_management"] == "none"
    assert ast.metadata["has_navigation"] is False
    assert ast.metadata["flutter_analysis"] is result.flutter


def test_plain_dart_file_gets_none_metadata(tmp_path: Path) -> None:
    result = FileClassifier(tmp_path).classify("bin/main.dart", "dart", "void main() {}\n")

    assert result.metadata["has_flutter"] is False
    assert result.metadata["flutter_framework"] == "none"
    assert result.metadata["state_management"] == "none"


def test_non_dart_file_has_no_flutter_keys(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"react": "18"}}), encoding="utf-8")

    result = FileClassifier(tmp_path).classify(tmp_path / "src" / "App.jsx", "javascript", "")

    assert result.framework == "React"
    assert result.flutter is None
    assert "has_flutter" not in result.metadata
    assert result.as_dict()["framework"] == "React"


def test_swift_file_gets_framework_flags(tmp_path: Path) -> None:
    src = "import SwiftUI\nimport Combine\n"
    result = FileClassifier(tmp_path).classify(tmp_path / "App.swift", "Swift", src)

    assert result.language == "swift"
    assert result.framework == "SwiftUI"
    assert result.metadata["has_swiftui"] is True
    assert result.metadata["has_combine"] is True
    assert result.metadata["has_foundation"] is True
    assert result.metadata["has_uikit"] is False
    assert result.swift_frameworks["has_swiftui"] is True


def test_integration_error_is_recorded() -> None:
    """Сломанный анализ не роняет обработку: ошибка уходит в metadata."""
    broken = FlutterAnalysis(is_flutter=True)
    broken.ui_framework = "material"  # type: ignore[assignment]  # не enum -> нет .value

    ast = SourceAST(file_path="x.dart", language="dart")
    integrate_flutter_analysis(ast, broken)

    assert "flutter_integration_error" in ast.metadata
    assert ast.metadata["has_flutter"] is True


def test_as_dict_is_json_ready() -> None:
    a = FlutterAnalysis()
    d = a.as_dict()
    assert d["ui_framework"] == UIFramework.NONE.value
    json.dumps(d)


def test_custom_flutter_label_triggers_analysis(tmp_path: Path) -> None:
    """Метка Flutter от пользовательской стратегии запускает Flutter-анализ и для не-dart файла."""

    class FlutterByDirectory(DetectionStrategy):
        name = "flutter_dir"

        def detect(self, request: DetectionRequest):
            return FLUTTER_LABEL if request.file_path.startswith("lib/") else None

    detector = FrameworkDetector(tmp_path, strategies=[FlutterByDirectory()])
    result = FileClassifier(detector=detector).classify("lib/home.txt", "text", FLUTTER_SRC)

    assert result.framework == "Flutter"
    assert result.flutter is not None
    assert result.metadata["has_flutter"] is True
