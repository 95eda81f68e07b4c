from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .file_scanner import FileScanner, FileScannerConfig
from .integration import FileClassifier
from .languages import detect_language
from .models import FileClassification
from .settings import settings
from .text_loader import read_source

logger = logging.getLogger(__name__)


def _to_jsonable(obj: Any) -> Any:
    """
    Приводит объект к JSON-сериализуемому виду.

    Поддерживает:
    - None -> None
    - Path -> str(path)
    - Enum -> value
    - объекты с as_dict() (модели классификатора) -> as_dict()
    - dataclass -> asdict + рекурсивное преобразование
    - dict/list/tuple/set -> рекурсивное преобразование элементов
    """
    if obj is None:
        return None

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, Enum):
        return obj.value

    if hasattr(obj, "as_dict") and callable(obj.as_dict):
        return _to_jsonable(obj.as_dict())

    if is_dataclass(obj) and not isinstance(obj, type):
        return _to_jsonable(asdict(obj))

    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [_to_jsonable(x) for x in obj]

    return obj


def _enforce_analysis_root(root: Path) -> None:
    """
    Если задан settings.analysis_root, анализируемый путь обязан быть внутри него.

    root должен быть уже resolved.
    """
    if settings.analysis_root is None:
        return

    ar = settings.analysis_root.expanduser().resolve()
    try:
        root.relative_to(ar)
    except ValueError as e:
        raise ValueError(f"Path '{root}' is outside ANALYSIS_ROOT='{ar}'") from e


def _new_classifier(project_root: Optional[Path] = None) -> FileClassifier:
    return FileClassifier(
        project_root,
        manifest_filename=settings.manifest_filename,
        manifest_boundary=settings.analysis_root,
    )


def resolve_in_analysis_root(path: str | Path) -> Path:
    """
    Приводит путь файла, пришедший извне, к абсолютному и проверяет sandbox.

    Если analysis_root задан: относительный путь считается от него, а путь
    вне analysis_root даёт ValueError. Иначе путь возвращается как есть.
    """
    p = Path(path).expanduser()
    if settings.analysis_root is None:
        return p

    if not p.is_absolute():
        p = settings.analysis_root / p
    p = p.resolve()
    _enforce_analysis_root(p)
    return p


def classify_source(
    path: str | Path,
    content: str,
    language: Optional[str] = None,
    classifier: Optional[FileClassifier] = None,
) -> FileClassification:
    """
    Классифицирует один файл по его тексту.

    language по умолчанию определяется по расширению. Путь используется для
    стратегии по расширению и для поиска package.json; сам файл не читается.
    """
    lang = language or detect_language(path)
    classifier = classifier or _new_classifier(settings.analysis_root)
    return classifier.classify(path, lang, content)


def classify_local_file(
    path: str | Path,
    classifier: Optional[FileClassifier] = None,
    *,
    language: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> FileClassification:
    """
    Читает файл с диска и классифицирует его.

    Нечитаемый файл не считается ошибкой: классификация идёт по пустому тексту
    (остаются стратегии по расширению и по package.json).
    """
    p = Path(path)
    try:
        content = read_source(p, max_bytes=max_bytes or settings.max_file_size_bytes).text
    except OSError as e:
        logger.warning("Cannot read %s: %s", p, e)
        content = ""
    return classify_source(p, content, language=language, classifier=classifier)


def _compute_summary(results: list[FileClassification]) -> dict[str, Any]:
    """Агрегаты по проекту: метки фреймворков, языки, Flutter-статистика."""
    frameworks = Counter(r.framework for r in results if r.framework)
    languages = Counter(r.language for r in results if r.language)
    flutter = [r.flutter for r in results if r.flutter is not None and r.flutter.is_flutter]
    state_management = Counter(a.state_management.value for a in flutter)
    ui_frameworks = Counter(a.ui_framework.value for a in flutter)

    return {
        "files": len(results),
        "classified_files": sum(frameworks.values()),
        "frameworks": dict(sorted(frameworks.items())),
        "languages": dict(sorted(languages.items())),
        "flutter_files": len(flutter),
        "flutter_widgets": sum(len(a.widgets) for a in flutter),
        "state_management": dict(sorted(state_management.items())),
        "ui_frameworks": dict(sorted(ui_frameworks.items())),
    }


def analyze_local_project(path: str | Path, include_files: bool = True) -> dict[str, Any]:
    """
    Классифицирует все исходники локального проекта.

    Pipeline:
    1) Валидация root (существует, директория, resolve)
    2) Security gate: enforce analysis_root (если настроено)
    3) FileScanner -> исходники + package.json
    4) FileClassifier (одна сессия на проект: общие кэши manifest/меток)
    5) Сбор результата: meta/scan/summary/files
    """
    root = Path(path).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Path not found: {root}")
    if not root.is_dir():
        raise ValueError(f"Root path is not a directory: {root}")

    root = root.resolve()
    _enforce_analysis_root(root)

    scanner = FileScanner(
        root,
        FileScannerConfig(
            max_file_size_bytes=settings.max_file_size_bytes,
            respect_gitignore=settings.respect_gitignore,
        ),
    )
    scan_result = scanner.scan()

    classifier = _new_classifier(root)
    results = [
        classify_local_file(p, classifier, language=scan_result.languages.get(p))
        for p in scan_result.source_files
    ]
    logger.info("Classified %d files under %s", len(results), root)

    result: dict[str, Any] = {
        "meta": {
            "project_path": str(root),
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "options": {"include_files": bool(include_files)},
        },
        "scan": {
            "stats": _to_jsonable(scan_result.stats),
            "manifests": [str(p) for p in scan_result.manifests],
        },
        "summary": _compute_summary(results),
        "cache": classifier.detector.cache_info(),
    }
    if include_files:
        result["files"] = [_to_jsonable(r) for r in results]
    return result
