"""
Framework & Flutter classifier for source files.

Public API:
    FrameworkDetector(project_root).detect(path, language, content) -> str
    analyze_flutter(content) -> FlutterAnalysis
    FileClassifier: сессия: детекция + Flutter-анализ + запись в AST metadata
"""

from .flutter_analyzer import FlutterAnalyzer, analyze_flutter
from .framework_detector import FrameworkDetector
from .integration import FileClassifier, integrate_flutter_analysis
from .manifest_reader import ManifestReader
from .models import (
    FileClassification,
    FlutterAnalysis,
    FlutterFramework,
    FlutterWidget,
    ManifestInfo,
    SourceAST,
    StateManagement,
    UIFramework,
    WidgetType,
)

__all__ = [
    "FrameworkDetector",
    "FlutterAnalyzer",
    "analyze_flutter",
    "FileClassifier",
    "integrate_flutter_analysis",
    "ManifestReader",
    "FileClassification",
    "FlutterAnalysis",
    "FlutterFramework",
    "FlutterWidget",
    "ManifestInfo",
    "SourceAST",
    "StateManagement",
    "UIFramework",
    "WidgetType",
]
