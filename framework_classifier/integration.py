from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from .flutter_analyzer import FlutterAnalyzer
from .framework_detector import FLUTTER_LABEL, FrameworkDetector, swift_frameworks
from .manifest_reader import DEFAULT_MANIFEST_FILENAME, ManifestReader
from .models import FileClassification, FlutterAnalysis, SourceAST

logger = logging.getLogger(__name__)


def integrate_flutter_analysis(ast: SourceAST, analysis: FlutterAnalysis) -> None:
    """
    Записывает результат Flutter-анализа в metadata корня AST.

    Ключи:
    - has_flutter        -> analysis.is_flutter
    - flutter_framework  -> analysis.ui_framework (строковое значение)
    - state_management   -> строковое значение
    - has_navigation     -> analysis.has_navigation
    - flutter_analysis   -> сам FlutterAnalysis (дальше им владеет AST)

    Ошибка интеграции не роняет обработку файла: она логируется и
    сохраняется в metadata["flutter_integration_error"].
    """
    try:
        ast.metadata["has_flutter"] = analysis.is_flutter
        ast.metadata["flutter_framework"] = analysis.ui_framework.value
        ast.metadata["state_management"] = analysis.state_management.value
        ast.metadata["has_navigation"] = analysis.has_navigation
        ast.metadata["flutter_analysis"] = analysis
    except Exception as e:  # noqa: BLE001
        logger.error("Flutter integration failed for %s: %s", ast.file_path, e, exc_info=True)
        ast.metadata["flutter_integration_error"] = str(e)


def integrate_swift_frameworks(ast: SourceAST, flags: Dict[str, bool]) -> None:
    """Флаги импортов Swift-фреймворков (has_swiftui, has_uikit, ...) -> metadata."""
    for key, value in flags.items():
        ast.metadata[key] = bool(value)


class FileClassifier:
    """
    Сессия классификации: один FrameworkDetector + один FlutterAnalyzer.

    Порядок для каждого файла (как во внешнем парсере):
    1) detect(): ровно один раз на файл
    2) если язык dart или метка == Flutter -> Flutter-анализ + запись в metadata
    3) для swift: флаги импортов в metadata

    Кэши детектора живут столько же, сколько экземпляр FileClassifier.
    """

    def __init__(
        self,
        project_root: str | Path | None = None,
        *,
        detector: Optional[FrameworkDetector] = None,
        flutter_analyzer: Optional[FlutterAnalyzer] = None,
        manifest_filename: Optional[str] = None,
        manifest_boundary: str | Path | None = None,
    ) -> None:
        if detector is None:
            reader = ManifestReader(
                manifest_filename or DEFAULT_MANIFEST_FILENAME,
                boundary=manifest_boundary,
            )
            detector = FrameworkDetector(project_root, manifest_reader=reader)
        self.detector = detector
        self.flutter_analyzer = flutter_analyzer or FlutterAnalyzer()

    def classify(
        self,
        file_path: str | Path,
        language: Optional[str],
        content: Optional[str],
        ast: Optional[SourceAST] = None,
    ) -> FileClassification:
        """
        Классифицирует один файл и (опционально) пишет результат в переданный AST.

        Если ast не передан: создаётся SourceAST, его metadata возвращается
        в FileClassification.metadata.
        """
        lang = (language or "").strip().lower()
        text = content or ""
        if ast is None:
            ast = SourceAST(file_path=str(file_path), language=lang)

        label = self.detector.detect(file_path, lang, text)
        ast.metadata["framework"] = label

        flutter: Optional[FlutterAnalysis] = None
        # метку Flutter дают только пользовательские стратегии; встроенные Dart не размечают
        if lang == "dart" or label == FLUTTER_LABEL:
            flutter = self.flutter_analyzer.analyze(text)
            integrate_flutter_analysis(ast, flutter)

        swift_flags: Dict[str, bool] = {}
        if lang == "swift":
            swift_flags = swift_frameworks(text)
            integrate_swift_frameworks(ast, swift_flags)

        return FileClassification(
            path=Path(file_path),
            language=lang or None,
            framework=label,
            flutter=flutter,
            swift_frameworks=swift_flags,
            metadata=ast.metadata,
        )
