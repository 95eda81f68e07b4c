# framework_classifier/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


# =============================================================================
# Closed enumerations
# =============================================================================

class FlutterFramework(str, Enum):
    """Признак “это Flutter-файл” на уровне фреймворка."""

    FLUTTER = "flutter"
    NONE = "none"


class UIFramework(str, Enum):
    """
    На какой дизайн-системе построен UI внутри Flutter.

    BOTH выставляется, если файл импортирует и material.dart, и cupertino.dart.
    """

    MATERIAL = "material"
    CUPERTINO = "cupertino"
    BOTH = "both"
    NONE = "none"


class StateManagement(str, Enum):
    """Библиотека/паттерн управления состоянием во Flutter-файле."""

    SET_STATE = "setState"
    PROVIDER = "provider"
    RIVERPOD = "riverpod"
    BLOC = "bloc"
    GETX = "getx"
    MOBX = "mobx"
    REDUX = "redux"
    NONE = "none"


class WidgetType(str, Enum):
    """Тип объявленного класса-виджета (по его базовому классу)."""

    STATELESS = "stateless"
    STATEFUL = "stateful"
    STATE = "state"
    CONSUMER = "consumer"
    INHERITED = "inherited"
    HOOK = "hook"
    CUSTOM = "custom"


# =============================================================================
# Manifest
# =============================================================================

@dataclass(frozen=True)
class ManifestInfo:
    """
    Распарсенный package.json (только то, что нужно классификатору).

    dependencies:
      runtime-зависимости: имя -> строка версии (версия не интерпретируется).
    dev_dependencies:
      devDependencies в том же формате.
    scripts:
      npm-скрипты: имя -> команда.
    """

    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)

    def all_dependencies(self) -> Dict[str, str]:
        """Объединение dependencies + devDependencies (dev перекрывает при совпадении имени)."""
        merged: Dict[str, str] = dict(self.dependencies)
        merged.update(self.dev_dependencies)
        return merged


# =============================================================================
# Flutter analysis
# =============================================================================

@dataclass
class FlutterWidget:
    """
    Один класс-виджет, найденный в Dart-исходнике.

    name:
      Имя класса как в объявлении (включая приватный префиксный `_`).
    type:
      WidgetType по базовому классу.
    has_build_method:
      True, если `Widget build(` встречается внутри тела именно этого класса.
    parent:
      Имя суперкласса (как в `extends ...`), если известно.
    """

    name: str
    type: WidgetType
    has_build_method: bool = False
    parent: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "has_build_method": self.has_build_method,
            "parent": self.parent,
        }


@dataclass
class FlutterAnalysis:
    """
    Результат глубокого анализа Dart/Flutter-файла.

    Инвариант: если is_flutter == False, то framework/ui_framework/state_management
    равны `none`, а widgets и features пусты. Конструктор по умолчанию как раз
    даёт такое “пустое” состояние.

    features и lifecycle_methods хранятся как упорядоченные списки без повторов
    (порядок = порядок первого появления).
    """

    is_flutter: bool = False
    framework: FlutterFramework = FlutterFramework.NONE
    ui_framework: UIFramework = UIFramework.NONE
    state_management: StateManagement = StateManagement.NONE
    widgets: List[FlutterWidget] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    lifecycle_methods: List[str] = field(default_factory=list)
    has_navigation: bool = False
    imports: List[str] = field(default_factory=list)

    # extra signals
    build_helpers: List[str] = field(default_factory=list)
    has_override: bool = False
    composition_depth: int = 0

    def widget(self, name: str) -> Optional[FlutterWidget]:
        """Найти виджет по имени (или None)."""
        for w in self.widgets:
            if w.name == name:
                return w
        return None

    def as_dict(self) -> Dict[str, Any]:
        """JSON-готовое представление (enum -> строковое значение)."""
        return {
            "is_flutter": self.is_flutter,
            "framework": self.framework.value,
            "ui_framework": self.ui_framework.value,
            "state_management": self.state_management.value,
            "widgets": [w.as_dict() for w in self.widgets],
            "features": list(self.features),
            "lifecycle_methods": list(self.lifecycle_methods),
            "has_navigation": self.has_navigation,
            "imports": list(self.imports),
            "build_helpers": list(self.build_helpers),
            "has_override": self.has_override,
            "composition_depth": self.composition_depth,
        }


# =============================================================================
# AST metadata sink / per-file result
# =============================================================================

@dataclass
class SourceAST:
    """
    Минимальное представление AST файла для классификатора.

    Классификатору нужен только словарь metadata корня: сюда записываются
    результаты детекции фреймворка и Flutter-анализа. Остальной AST живёт
    во внешнем парсере.
    """

    file_path: str
    language: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FileClassification:
    """
    Итог классификации одного файла.

    framework:
      Метка фреймворка ("": не определён).
    flutter:
      FlutterAnalysis для Dart-файлов (иначе None).
    swift_frameworks:
      Флаги импортов Swift-фреймворков (только для language == "swift").
    """

    path: Path
    language: Optional[str]
    framework: str = ""
    flutter: Optional[FlutterAnalysis] = None
    swift_frameworks: Dict[str, bool] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "language": self.language,
            "framework": self.framework,
            "flutter": self.flutter.as_dict() if self.flutter is not None else None,
            "swift_frameworks": dict(self.swift_frameworks),
        }
