from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence, Set, Tuple

from .models import (
    FlutterAnalysis,
    FlutterFramework,
    FlutterWidget,
    StateManagement,
    UIFramework,
    WidgetType,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Knowledge bases
# =============================================================================

FLUTTER_IMPORT_PREFIX = "package:flutter/"
MATERIAL_IMPORT = "package:flutter/material.dart"
CUPERTINO_IMPORT = "package:flutter/cupertino.dart"

# Пакеты, которые существуют только поверх Flutter SDK: их импорт: тоже сигнал Flutter.
FLUTTER_ONLY_PACKAGES: Tuple[str, ...] = (
    "package:flutter_riverpod/",
    "package:hooks_riverpod/",
    "package:flutter_bloc/",
    "package:flutter_redux/",
    "package:flutter_mobx/",
    "package:flutter_hooks/",
)

# базовый класс -> тип виджета
WIDGET_BASES: Dict[str, WidgetType] = {
    "StatelessWidget": WidgetType.STATELESS,
    "StatefulWidget": WidgetType.STATEFUL,
    "State": WidgetType.STATE,
    "ConsumerState": WidgetType.STATE,
    "ConsumerWidget": WidgetType.CONSUMER,
    "ConsumerStatefulWidget": WidgetType.CONSUMER,
    "InheritedWidget": WidgetType.INHERITED,
    "InheritedModel": WidgetType.INHERITED,
    "InheritedNotifier": WidgetType.INHERITED,
    "HookWidget": WidgetType.HOOK,
    "HookConsumerWidget": WidgetType.HOOK,
    "StatefulHookWidget": WidgetType.HOOK,
}

FEATURE_TOKENS: Tuple[str, ...] = (
    "MaterialApp",
    "CupertinoApp",
    "Scaffold",
    "CupertinoPageScaffold",
    "AppBar",
    "FloatingActionButton",
    "Drawer",
    "BottomNavigationBar",
    "TabBar",
    "ListView",
    "GridView",
    "Column",
    "Row",
    "Stack",
    "Container",
    "Text",
    "Image",
    "ElevatedButton",
    "TextButton",
    "IconButton",
)

LIFECYCLE_METHODS: Tuple[str, ...] = (
    "initState",
    "dispose",
    "didChangeDependencies",
    "didUpdateWidget",
    "deactivate",
    "build",
)

NAVIGATION_MARKERS: Tuple[str, ...] = (
    "Navigator.push",
    "Navigator.pop",
    "Navigator.pushNamed",
    "Navigator.pushReplacement",
    "Navigator.of(",
    "GoRouter",
    "AutoRoute",
    "onGenerateRoute",
)


@dataclass(frozen=True)
class _StateRule:
    """Правило распознавания state management: префиксы импортов + маркеры в коде."""

    result: StateManagement
    import_prefixes: Tuple[str, ...]
    code_markers: Tuple[str, ...]


# Порядок = приоритет (первое совпадение побеждает).
STATE_MANAGEMENT_RULES: Tuple[_StateRule, ...] = (
    _StateRule(
        StateManagement.RIVERPOD,
        ("package:flutter_riverpod/", "package:hooks_riverpod/", "package:riverpod/"),
        ("ConsumerWidget", "ConsumerStatefulWidget", "ref.watch(", "StateProvider"),
    ),
    _StateRule(
        StateManagement.BLOC,
        ("package:flutter_bloc/", "package:bloc/"),
        ("Bloc<", "Cubit<", "BlocBuilder<"),
    ),
    _StateRule(
        StateManagement.PROVIDER,
        ("package:provider/",),
        ("ChangeNotifierProvider",),
    ),
    _StateRule(
        StateManagement.GETX,
        ("package:get/",),
        ("GetxController",),
    ),
    _StateRule(
        StateManagement.MOBX,
        ("package:mobx/", "package:flutter_mobx/"),
        ("@observable",),
    ),
    _StateRule(
        StateManagement.REDUX,
        ("package:flutter_redux/", "package:redux/"),
        ("StoreProvider",),
    ),
)

_ID = r"[A-Za-z_$][\w$]*"

# Импорт: ищем по “замаскированному” тексту (так комментарии не считаются),
# а URI берём из исходного текста по тем же смещениям.
_IMPORT_KEYWORD_RE = re.compile(r"^[ \t]*import\b", re.MULTILINE)
_IMPORT_URI_RE = re.compile(r"import\s+r?(['\"])(.*?)\1")

_CLASS_DECL_RE = re.compile(
    rf"(?<![\w$])class\s+({_ID})\s*(?:<[^{{;]*?>)?\s+extends\s+({_ID}(?:\.{_ID})?)"
)
_BUILD_METHOD_RE = re.compile(r"(?<![\w$])Widget\s+build\s*\(")
_BUILD_HELPER_RE = re.compile(r"(?<![\w$])Widget\s+(_[\w$]*)\s*\([^)]*\)\s*(?:async\s*)?(?:\{|=>)")
_LIFECYCLE_RE = re.compile(
    r"^[ \t]*(?:@override\s+)?(?:(?:void|Widget|Future<void>)\s+)?("
    + "|".join(LIFECYCLE_METHODS)
    + r")\s*\(",
    re.MULTILINE,
)
_VOID_LIFECYCLE_RE = re.compile(r"(?<![\w$])void\s+(" + "|".join(LIFECYCLE_METHODS) + r")\s*\(")
_WIDGET_BUILD_RE = re.compile(r"(?<![\w$])Widget\s+(build)\s*\(")


# =============================================================================
# Source masking / brace matching
# =============================================================================

class _DartMasker:
    """
    Минимальный токенайзер Dart: заменяет содержимое комментариев и строковых
    литералов пробелами, сохраняя длину текста и переводы строк.

    После маскирования фигурные скобки в тексте: только “кодовые”, поэтому
    парное сопоставление скобок корректно находит границы тел классов.

    Поддерживается:
    - // и /* */ (включая вложенные блочные комментарии)
    - '...', "...", '''...''', \"\"\"...\"\"\" и raw-строки r'...'
    - escape-последовательности и интерполяция ${...} (внутри может быть код со строками)
    """

    def __init__(self, source: str) -> None:
        self.src = source
        self.out = list(source)
        self.n = len(source)

    def mask(self) -> str:
        self._scan_code(0, stop_at_brace=False)
        return "".join(self.out)

    def _blank(self, start: int, end: int) -> None:
        for k in range(max(start, 0), min(end, self.n)):
            if self.out[k] != "\n":
                self.out[k] = " "

    def _scan_code(self, i: int, *, stop_at_brace: bool) -> int:
        src = self.src
        depth = 0
        while i < self.n:
            c = src[i]
            nxt = src[i + 1] if i + 1 < self.n else ""

            if c == "/" and nxt == "/":
                end = src.find("\n", i)
                end = self.n if end == -1 else end
                self._blank(i, end)
                i = end
                continue

            if c == "/" and nxt == "*":
                i = self._scan_block_comment(i)
                continue

            if c in "'\"":
                i = self._scan_string(i, raw=False)
                continue

            if c in "rR" and nxt and nxt in "'\"" and (i == 0 or not (src[i - 1].isalnum() or src[i - 1] in "_$")):
                i = self._scan_string(i + 1, raw=True)
                continue

            if c == "{":
                depth += 1
            elif c == "}":
                if depth == 0 and stop_at_brace:
                    return i
                depth = max(depth - 1, 0)
            i += 1
        return i

    def _scan_block_comment(self, i: int) -> int:
        src = self.src
        start = i
        depth = 0
        while i < self.n:
            if src.startswith("/*", i):
                depth += 1
                i += 2
            elif src.startswith("*/", i):
                depth -= 1
                i += 2
                if depth == 0:
                    break
            else:
                i += 1
        self._blank(start, i)
        return i

    def _scan_string(self, i: int, *, raw: bool) -> int:
        src = self.src
        quote = src[i] * 3 if src.startswith(src[i] * 3, i) else src[i]
        multiline = len(quote) == 3
        j = i + len(quote)

        while j < self.n:
            c = src[j]
            if src.startswith(quote, j):
                return j + len(quote)
            if c == "\n" and not multiline:
                # незакрытая однострочная строка: ограничиваем ущерб концом строки
                return j
            if not raw and c == "\\":
                self._blank(j, j + 2)
                j += 2
                continue
            if not raw and c == "$" and j + 1 < self.n and src[j + 1] == "{":
                end = self._scan_code(j + 2, stop_at_brace=True)
                self._blank(j, end + 1)
                j = end + 1
                continue
            self._blank(j, j + 1)
            j += 1
        return j


def mask_comments_and_strings(source: str) -> str:
    """Текст той же длины, где комментарии и содержимое строк заменены пробелами."""
    return _DartMasker(source or "").mask()


def find_matching_brace(masked: str, open_index: int) -> int:
    """
    Индекс парной `}` для `{` в позиции open_index.

    Для обрезанного/несбалансированного текста тело считается продолжающимся
    до конца файла.
    """
    depth = 0
    for k in range(open_index, len(masked)):
        ch = masked[k]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return k
    return len(masked) - 1


# =============================================================================
# Class declarations
# =============================================================================

@dataclass(frozen=True)
class _ClassDecl:
    name: str
    parent: str
    body_start: int
    body_end: int

    @property
    def parent_base(self) -> str:
        return self.parent.rsplit(".", 1)[-1]


def _find_class_decls(masked: str) -> List[_ClassDecl]:
    decls: List[_ClassDecl] = []
    for m in _CLASS_DECL_RE.finditer(masked):
        name, parent = m.group(1), m.group(2)

        # тело класса: первая `{` после заголовка (если раньше нет `;`)
        brace = masked.find("{", m.end())
        semi = masked.find(";", m.end())
        if brace == -1 or (semi != -1 and semi < brace):
            decls.append(_ClassDecl(name=name, parent=parent, body_start=m.end(), body_end=m.end()))
            continue

        end = find_matching_brace(masked, brace)
        decls.append(_ClassDecl(name=name, parent=parent, body_start=brace, body_end=end))
    return decls


# =============================================================================
# Analyzer
# =============================================================================

class FlutterAnalyzer:
    """
    Глубокий анализ Dart-исходника на предмет Flutter.

    Анализатор не хранит состояния между вызовами: analyze(): чистая функция
    от текста. Любая внутренняя ошибка логируется и превращается в “пустой”
    анализ (is_flutter=False), исключения наружу не выходят.
    """

    def analyze(self, content: str) -> FlutterAnalysis:
        try:
            return self._analyze(content or "")
        except Exception:  # noqa: BLE001
            logger.warning("Flutter analysis failed; returning empty analysis", exc_info=True)
            return FlutterAnalysis()

    def _analyze(self, content: str) -> FlutterAnalysis:
        masked = mask_comments_and_strings(content)
        imports = self._extract_imports(content, masked)
        decls = _find_class_decls(masked)
        feature_hits = self._find_features(masked)

        analysis = FlutterAnalysis(imports=imports)

        if not self._is_flutter(imports, decls, feature_hits):
            return analysis

        analysis.is_flutter = True
        analysis.framework = FlutterFramework.FLUTTER
        analysis.ui_framework = self._ui_framework(imports)
        analysis.widgets = self._extract_widgets(masked, decls)
        analysis.state_management = self._state_management(imports, masked, analysis.widgets, decls)
        analysis.features = feature_hits
        analysis.lifecycle_methods = self._find_lifecycle_methods(masked)
        analysis.has_navigation = any(marker in masked for marker in NAVIGATION_MARKERS)
        analysis.build_helpers = self._find_build_helpers(masked)
        analysis.has_override = "@override" in masked
        if analysis.widgets:
            analysis.composition_depth = max(1, len(analysis.widgets) // 3)

        return analysis

    # -------------------------------------------------------------------------
    # Signals
    # -------------------------------------------------------------------------

    @staticmethod
    def _extract_imports(content: str, masked: str) -> List[str]:
        seen: Set[str] = set()
        out: List[str] = []
        for m in _IMPORT_KEYWORD_RE.finditer(masked):
            uri_match = _IMPORT_URI_RE.match(content, m.end() - len("import"))
            if not uri_match:
                continue
            uri = uri_match.group(2).strip()
            if uri and uri not in seen:
                seen.add(uri)
                out.append(uri)
        return out

    @staticmethod
    def _is_flutter(imports: Sequence[str], decls: Sequence[_ClassDecl], features: Sequence[str]) -> bool:
        if any(uri.startswith(FLUTTER_IMPORT_PREFIX) for uri in imports):
            return True
        if any(uri.startswith(FLUTTER_ONLY_PACKAGES) for uri in imports):
            return True
        if any(d.parent_base in WIDGET_BASES for d in decls):
            return True
        return bool(features)

    @staticmethod
    def _ui_framework(imports: Sequence[str]) -> UIFramework:
        has_material = MATERIAL_IMPORT in imports
        has_cupertino = CUPERTINO_IMPORT in imports
        if has_material and has_cupertino:
            return UIFramework.BOTH
        if has_cupertino:
            return UIFramework.CUPERTINO
        # material: значение по умолчанию для Flutter-файла
        return UIFramework.MATERIAL

    @staticmethod
    def _find_features(masked: str) -> List[str]:
        """Токены из FEATURE_TOKENS как подстроки (`CupertinoPageScaffold` даёт и `Scaffold`)."""
        hits: List[Tuple[int, int, str]] = []
        for order, token in enumerate(FEATURE_TOKENS):
            idx = masked.find(token)
            if idx != -1:
                hits.append((idx, order, token))
        return [token for _, _, token in sorted(hits)]

    @staticmethod
    def _find_lifecycle_methods(masked: str) -> List[str]:
        hits: List[Tuple[int, str]] = []
        for pattern in (_LIFECYCLE_RE, _VOID_LIFECYCLE_RE, _WIDGET_BUILD_RE):
            hits.extend((m.start(1), m.group(1)) for m in pattern.finditer(masked))

        seen: Set[str] = set()
        out: List[str] = []
        for _, name in sorted(hits):
            if name not in seen:
                seen.add(name)
                out.append(name)
        return out

    @staticmethod
    def _find_build_helpers(masked: str) -> List[str]:
        out: List[str] = []
        for m in _BUILD_HELPER_RE.finditer(masked):
            name = m.group(1)
            if name not in out:
                out.append(name)
        return out

    # -------------------------------------------------------------------------
    # Widgets / state management
    # -------------------------------------------------------------------------

    @staticmethod
    def _extract_widgets(masked: str, decls: Sequence[_ClassDecl]) -> List[FlutterWidget]:
        """
        Виджеты в порядке объявления, без повторов имён.

        Вызывается только для Flutter-файла, поэтому любой другой базовый
        класс даёт тип `custom`.
        """
        widgets: List[FlutterWidget] = []
        seen: Set[str] = set()
        for decl in decls:
            if decl.name in seen:
                continue
            seen.add(decl.name)

            widget_type = WIDGET_BASES.get(decl.parent_base, WidgetType.CUSTOM)
            body = masked[decl.body_start : decl.body_end + 1]
            widgets.append(
                FlutterWidget(
                    name=decl.name,
                    type=widget_type,
                    has_build_method=bool(_BUILD_METHOD_RE.search(body)),
                    parent=decl.parent,
                )
            )
        return widgets

    @staticmethod
    def _state_management(
        imports: Sequence[str],
        masked: str,
        widgets: Sequence[FlutterWidget],
        decls: Sequence[_ClassDecl],
    ) -> StateManagement:
        for rule in STATE_MANAGEMENT_RULES:
            if any(uri.startswith(rule.import_prefixes) for uri in imports):
                return rule.result
            if any(marker in masked for marker in rule.code_markers):
                return rule.result

        state_classes = {w.name for w in widgets if w.type is WidgetType.STATE}
        for decl in decls:
            if decl.name in state_classes and "setState(" in masked[decl.body_start : decl.body_end + 1]:
                return StateManagement.SET_STATE

        return StateManagement.NONE


_default_analyzer = FlutterAnalyzer()


def analyze_flutter(content: str) -> FlutterAnalysis:
    """Module-level вход: анализ Dart-исходника анализатором по умолчанию."""
    return _default_analyzer.analyze(content)
