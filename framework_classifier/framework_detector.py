from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .manifest_reader import ManifestReader

logger = logging.getLogger(__name__)

# =============================================================================
# Knowledge bases
# =============================================================================

FLUTTER_LABEL = "Flutter"

EXTENSION_LABELS: Dict[str, str] = {
    ".vue": "Vue",
    ".svelte": "Svelte",
    ".astro": "Astro",
}

ANGULAR_COMPONENT_MARKER = ".component."
ANGULAR_COMPONENT_SUFFIXES: FrozenSet[str] = frozenset({".ts", ".js"})

# Порядок строк важен: мета-фреймворки и “базовые” библиотеки проверяются
# в фиксированном порядке, внутри одной строки побеждает более ранняя запись.
JS_IMPORT_SIGNATURES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("React", ("from 'react'", 'from "react"', "import React")),
    ("Next.js", ("from 'next/", 'from "next/', "from 'next'", 'from "next"')),
    ("Vue", ("from 'vue'", 'from "vue"')),
    ("Nuxt", ("from '#app'", 'from "#app"', "from 'nuxt/")),
    ("Angular", ("@angular/core", "@angular/common")),
    ("Svelte", ("from 'svelte", 'from "svelte')),
    ("SvelteKit", ("$app/", "@sveltejs/kit")),
    ("Astro", ("astro:",)),
)

# Мета-фреймворки раньше базовых: Next.js-проект с `react` в зависимостях: это Next.js.
MANIFEST_PRIORITY: Tuple[Tuple[str, str], ...] = (
    ("next", "Next.js"),
    ("nuxt", "Nuxt"),
    ("@sveltejs/kit", "SvelteKit"),
    ("astro", "Astro"),
    ("react", "React"),
    ("vue", "Vue"),
    ("svelte", "Svelte"),
    ("@angular/core", "Angular"),
)

# Подстроки, как в строке импорта: `from flask_sqlalchemy import ...` тоже Flask.
PYTHON_IMPORT_SIGNATURES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Django", ("from django", "import django")),
    ("Flask", ("from flask", "import flask")),
    ("FastAPI", ("from fastapi", "import fastapi")),
)

SPRING_MARKERS: Tuple[str, ...] = (
    "org.springframework",
    "@SpringBootApplication",
    "@RestController",
    "@Service",
)

# `import SwiftUI`, `@testable import Foo`, `import struct Foo.Bar`
_SWIFT_IMPORT_RE = re.compile(
    r"^(?:@\w+\s+)*import\s+(?:(?:struct|class|enum|protocol|typealias|func|let|var)\s+)?([A-Za-z_]\w*)"
)

# module -> metadata flag
SWIFT_MODULE_FLAGS: Dict[str, str] = {
    "SwiftUI": "has_swiftui",
    "UIKit": "has_uikit",
    "Vapor": "has_vapor",
    "Combine": "has_combine",
    "SwiftData": "has_swiftdata",
    "Testing": "has_swift_testing",
    "ComposableArchitecture": "has_tca",
    "TCA": "has_tca",
    "Foundation": "has_foundation",
}

# Новее/специфичнее: выше.
SWIFT_PRIORITY: Tuple[Tuple[str, str], ...] = (
    ("has_swiftdata", "SwiftData"),
    ("has_swiftui", "SwiftUI"),
    ("has_tca", "TCA"),
    ("has_vapor", "Vapor"),
    ("has_uikit", "UIKit"),
    ("has_swift_testing", "Swift Testing"),
    ("has_combine", "Combine"),
)


# =============================================================================
# Helpers
# =============================================================================

def _iter_trimmed_lines(content: str) -> Iterable[str]:
    for line in (content or "").splitlines():
        line = line.strip()
        if line:
            yield line


def swift_frameworks(content: str) -> Dict[str, bool]:
    """
    Флаги импортов Swift-фреймворков в файле.

    Foundation считается импортированным неявно, если есть SwiftUI или SwiftData.
    """
    flags: Dict[str, bool] = {flag: False for flag in SWIFT_MODULE_FLAGS.values()}
    for line in _iter_trimmed_lines(content):
        m = _SWIFT_IMPORT_RE.match(line)
        if not m:
            continue
        flag = SWIFT_MODULE_FLAGS.get(m.group(1))
        if flag:
            flags[flag] = True

    if flags["has_swiftui"] or flags["has_swiftdata"]:
        flags["has_foundation"] = True
    return flags


# =============================================================================
# Strategies
# =============================================================================

@dataclass(frozen=True)
class DetectionRequest:
    """
    Вход одной детекции.

    file_path:
      Путь как его передал вызывающий код (ключ кэша).
    resolved_path:
      Тот же путь, приведённый к абсолютному относительно project_root.
    language:
      Нормализованный (lower-case) языковой тег.
    """

    file_path: str
    resolved_path: Path
    language: str
    content: str


class DetectionStrategy(ABC):
    """
    Одна стратегия в цепочке детекции.

    languages:
      Если непусто: стратегия применяется только к этим языкам.
    """

    name: str = "base"
    languages: FrozenSet[str] = frozenset()

    def applies_to(self, request: DetectionRequest) -> bool:
        return not self.languages or request.language in self.languages

    @abstractmethod
    def detect(self, request: DetectionRequest) -> Optional[str]:
        """Метка фреймворка или None/"" если стратегия ничего не нашла."""
        ...

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}(name={self.name!r})"


class ExtensionStrategy(DetectionStrategy):
    name = "extension"

    def detect(self, request: DetectionRequest) -> Optional[str]:
        path = Path(request.file_path)
        suffix = path.suffix.lower()

        label = EXTENSION_LABELS.get(suffix)
        if label:
            return label

        if ANGULAR_COMPONENT_MARKER in path.name and suffix in ANGULAR_COMPONENT_SUFFIXES:
            return "Angular"
        return None


class JsImportStrategy(DetectionStrategy):
    name = "js_imports"
    languages = frozenset({"javascript", "typescript"})

    def detect(self, request: DetectionRequest) -> Optional[str]:
        for line in _iter_trimmed_lines(request.content):
            for label, needles in JS_IMPORT_SIGNATURES:
                if any(n in line for n in needles):
                    return label
        return None


class ManifestStrategy(DetectionStrategy):
    name = "manifest"

    def __init__(self, reader: ManifestReader) -> None:
        self.reader = reader

    def detect(self, request: DetectionRequest) -> Optional[str]:
        found = self.reader.find_and_load(request.resolved_path)
        if found is None:
            return None

        manifest_path, info = found
        deps = info.all_dependencies()
        for dep_name, label in MANIFEST_PRIORITY:
            if dep_name in deps:
                logger.debug("Manifest %s declares %s -> %s", manifest_path, dep_name, label)
                return label
        return None


class PythonImportStrategy(DetectionStrategy):
    name = "python_imports"
    languages = frozenset({"python"})

    def detect(self, request: DetectionRequest) -> Optional[str]:
        for line in _iter_trimmed_lines(request.content):
            for label, needles in PYTHON_IMPORT_SIGNATURES:
                if any(n in line for n in needles):
                    return label
        return None


class JavaAnnotationStrategy(DetectionStrategy):
    name = "java_markers"
    languages = frozenset({"java"})

    def detect(self, request: DetectionRequest) -> Optional[str]:
        for line in _iter_trimmed_lines(request.content):
            if any(marker in line for marker in SPRING_MARKERS):
                return "Spring Boot"
        return None


class SwiftImportStrategy(DetectionStrategy):
    name = "swift_imports"
    languages = frozenset({"swift"})

    def detect(self, request: DetectionRequest) -> Optional[str]:
        flags = swift_frameworks(request.content)
        for flag, label in SWIFT_PRIORITY:
            if flags.get(flag):
                return label
        return None


def default_strategies(reader: ManifestReader) -> List[DetectionStrategy]:
    """Цепочка по умолчанию (порядок = приоритет)."""
    return [
        ExtensionStrategy(),
        JsImportStrategy(),
        ManifestStrategy(reader),
        PythonImportStrategy(),
        JavaAnnotationStrategy(),
        SwiftImportStrategy(),
    ]


# =============================================================================
# Public detector
# =============================================================================

class FrameworkDetector:
    """
    Диспетчер стратегий детекции фреймворка для одного файла.

    Состояние (на время сессии парсера):
    - project_root: база для относительных путей
    - manifest_reader: кэш package.json по пути manifest
    - кэш меток по пути файла ("" тоже кэшируется: “ничего не найдено”)

    Кэши защищены RLock, так что один экземпляр можно делить между потоками;
    порядок конкурентных вызовов не гарантируется.

    detect() никогда не выбрасывает исключений: сбой стратегии логируется
    и трактуется как “стратегия ничего не нашла”.
    """

    def __init__(
        self,
        project_root: str | Path | None = None,
        *,
        manifest_reader: Optional[ManifestReader] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
    ) -> None:
        self.project_root: Optional[Path] = Path(project_root).absolute() if project_root else None
        self.manifest_reader = manifest_reader or ManifestReader()
        self.strategies: List[DetectionStrategy] = (
            list(strategies) if strategies is not None else default_strategies(self.manifest_reader)
        )

        self._labels: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def detect(self, file_path: str | Path, language: str | None, content: str | None) -> str:
        """
        Возвращает метку фреймворка для файла или "" (не определён).

        Результат мемоизируется по file_path: повторный вызов с тем же путём
        отдаёт закэшированную метку, не трогая файловую систему.
        """
        key = str(file_path)
        with self._lock:
            cached = self._labels.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        request = DetectionRequest(
            file_path=key,
            resolved_path=self._resolve(key),
            language=(language or "").strip().lower(),
            content=content or "",
        )
        label = self._run_strategies(request)

        with self._lock:
            # первый записавший побеждает: метка для пути стабильна
            return self._labels.setdefault(key, label)

    def _run_strategies(self, request: DetectionRequest) -> str:
        for strategy in self.strategies:
            if not strategy.applies_to(request):
                continue
            try:
                result = strategy.detect(request)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Strategy %s failed for %s", strategy.name, request.file_path, exc_info=True
                )
                continue
            if result:
                logger.debug("%s -> %s (strategy=%s)", request.file_path, result, strategy.name)
                return result
        return ""

    def _resolve(self, file_path: str) -> Path:
        p = Path(file_path)
        if not p.is_absolute() and self.project_root is not None:
            p = self.project_root / p
        return p

    def invalidate(self, file_path: str | Path | None = None) -> None:
        """
        Сбрасывает кэш.

        - file_path задан: забывает метку только этого файла
        - иначе: очищает все метки и кэш manifest-файлов
        """
        with self._lock:
            if file_path is None:
                self._labels.clear()
                self.manifest_reader.clear()
            else:
                self._labels.pop(str(file_path), None)

    def cache_info(self) -> Dict[str, int]:
        with self._lock:
            return {
                "labels": len(self._labels),
                "manifests": len(self.manifest_reader.cached_paths()),
                "hits": self._hits,
                "misses": self._misses,
            }
