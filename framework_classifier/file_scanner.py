from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pathspec

from .languages import detect_language

logger = logging.getLogger(__name__)

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_SKIP_DIRS: Set[str] = {
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    "env",
    "venv",
    ".venv",
    "node_modules",
    ".idea",
    ".vscode",
    ".mypy_cache",
    ".pytest_cache",
    ".dart_tool",
    ".next",
    ".nuxt",
    ".svelte-kit",
    ".astro",
    "dist",
    "build",
    "Pods",
    "DerivedData",
}

DEFAULT_BINARY_EXTENSIONS: Set[str] = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".ico",
    ".zip",
    ".gz",
    ".jar",
    ".class",
    ".so",
    ".dylib",
    ".pdf",
}

MANIFEST_FILENAMES: Tuple[str, ...] = ("package.json",)


# =============================================================================
# Result models
# =============================================================================

@dataclass
class ScanStats:
    """
    Счётчики сканирования (наблюдаемость).

    На выбор файлов не влияют, но помогают понять, что и почему пропущено.
    """
    visited_dirs: int = 0
    visited_files: int = 0
    collected_source_files: int = 0
    collected_manifests: int = 0

    skipped_by_dir_rule: int = 0
    skipped_by_gitignore: int = 0
    skipped_binary_ext: int = 0
    skipped_unsupported: int = 0
    skipped_too_large: int = 0
    skipped_symlink: int = 0
    skipped_io_error: int = 0


@dataclass
class ScanResult:
    """
    Результат обхода проекта.

    source_files:
      Отсортированный список исходников с известным языковым тегом.
    languages:
      Путь -> языковой тег (для всех source_files).
    manifests:
      Все найденные package.json (отсортированы).
    """
    source_files: List[Path]
    languages: Dict[Path, str] = field(default_factory=dict)
    manifests: List[Path] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


@dataclass(frozen=True)
class FileScannerConfig:
    """
    Конфиг сканера.

    max_file_size_bytes применяется к исходникам: гигантские (обычно
    сгенерированные/минифицированные) файлы не классифицируются.
    """
    skip_dirs: Set[str] = field(default_factory=lambda: set(DEFAULT_SKIP_DIRS))
    binary_extensions: Set[str] = field(default_factory=lambda: set(DEFAULT_BINARY_EXTENSIONS))
    max_file_size_bytes: int = 2 * 1024 * 1024  # 2 MiB
    respect_gitignore: bool = True
    skip_symlinks: bool = True


# =============================================================================
# .gitignore support
# =============================================================================

class GitignoreMatcher:
    """
    Стек правил .gitignore по уровням директорий (как в git).

    - при входе в директорию её .gitignore добавляется в стек
    - при выходе снимается
    - правила компилируются pathspec (gitwildmatch), negation (!) поддерживается
    """

    def __init__(self, root: Path):
        self.root = root
        self._stack: List[Tuple[Path, pathspec.PathSpec]] = []

    def push_dir(self, dir_path: Path) -> bool:
        """Добавить правила из dir_path/.gitignore. True, если уровень добавлен."""
        gitignore = dir_path / ".gitignore"
        if not gitignore.is_file():
            return False

        try:
            raw = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            logger.debug("Cannot read %s: %s", gitignore, e)
            return False

        lines = [ln.strip() for ln in raw if ln.strip() and not ln.strip().startswith("#")]
        if not lines:
            return False

        self._stack.append((dir_path, pathspec.PathSpec.from_lines("gitwildmatch", lines)))
        return True

    def pop_dir(self, dir_path: Path) -> None:
        if self._stack and self._stack[-1][0] == dir_path:
            self._stack.pop()

    def ignores(self, path: Path, is_dir: bool) -> bool:
        """
        Игнорируется ли path правилами стека.

        Negation (!) работает в пределах одного .gitignore (это делает pathspec).
        """
        for base_dir, spec in self._stack:
            try:
                rel = path.relative_to(base_dir).as_posix()
            except ValueError:
                continue
            if is_dir:
                rel += "/"
            if spec.match_file(rel):
                return True
        return False


# =============================================================================
# FileScanner
# =============================================================================

class FileScanner:
    """
    Рекурсивно сканирует директорию проекта и собирает:
    - исходники с известным языковым тегом (см. languages.py)
    - manifest-файлы (package.json)

    Поведение:
    - skip_dirs (например .git, node_modules, .dart_tool)
    - поддержка .gitignore (через pathspec)
    - пропуск бинарных расширений и слишком больших файлов
    - пропуск symlink’ов (по умолчанию), чтобы избежать циклов
    """

    def __init__(self, root: Path | str, config: Optional[FileScannerConfig] = None):
        self.root = Path(root).resolve()
        self.config = config or FileScannerConfig()
        self._ignore: Optional[GitignoreMatcher] = (
            GitignoreMatcher(self.root) if self.config.respect_gitignore else None
        )

    def scan(self) -> ScanResult:
        if not self.root.is_dir():
            raise ValueError(f"Root path is not a directory: {self.root}")

        stats = ScanStats()
        source_files: List[Path] = []
        languages: Dict[Path, str] = {}
        manifests: List[Path] = []

        for dir_path, files in self._walk_dirs(stats):
            stats.visited_dirs += 1

            for filename in files:
                stats.visited_files += 1
                file_path = dir_path / filename

                if self._ignore is not None and self._ignore.ignores(file_path, is_dir=False):
                    stats.skipped_by_gitignore += 1
                    continue

                if filename in MANIFEST_FILENAMES:
                    manifests.append(file_path)
                    stats.collected_manifests += 1
                    continue

                if file_path.suffix.lower() in self.config.binary_extensions:
                    stats.skipped_binary_ext += 1
                    continue

                language = detect_language(file_path)
                if language is None:
                    stats.skipped_unsupported += 1
                    continue

                if not self._within_size_limit(file_path, stats):
                    continue

                source_files.append(file_path)
                languages[file_path] = language
                stats.collected_source_files += 1

        source_files.sort()
        manifests.sort()
        logger.debug(
            "Scanned %s: %d source files, %d manifests",
            self.root,
            stats.collected_source_files,
            stats.collected_manifests,
        )
        return ScanResult(source_files=source_files, languages=languages, manifests=manifests, stats=stats)

    def _walk_dirs(self, stats: ScanStats) -> Iterable[Tuple[Path, List[str]]]:
        """Обход на базе os.scandir с pruning по skip_dirs и .gitignore."""

        def iter_dir(dir_path: Path) -> Iterable[Tuple[Path, List[str]]]:
            pushed = self._ignore.push_dir(dir_path) if self._ignore is not None else False
            try:
                try:
                    with os.scandir(dir_path) as it:
                        entries = list(it)
                except OSError:
                    stats.skipped_io_error += 1
                    return

                files: List[str] = []
                subdirs: List[Path] = []

                for e in entries:
                    try:
                        if self.config.skip_symlinks and e.is_symlink():
                            stats.skipped_symlink += 1
                            continue

                        if e.is_dir(follow_symlinks=not self.config.skip_symlinks):
                            if e.name in self.config.skip_dirs:
                                stats.skipped_by_dir_rule += 1
                                continue
                            p = Path(e.path)
                            if self._ignore is not None and self._ignore.ignores(p, is_dir=True):
                                stats.skipped_by_gitignore += 1
                                continue
                            subdirs.append(p)
                        elif e.is_file(follow_symlinks=not self.config.skip_symlinks):
                            files.append(e.name)
                    except OSError:
                        stats.skipped_io_error += 1

                yield dir_path, sorted(files)

                for sd in sorted(subdirs):
                    yield from iter_dir(sd)
            finally:
                if pushed and self._ignore is not None:
                    self._ignore.pop_dir(dir_path)

        yield from iter_dir(self.root)

    def _within_size_limit(self, path: Path, stats: ScanStats) -> bool:
        try:
            if path.stat().st_size > self.config.max_file_size_bytes:
                stats.skipped_too_large += 1
                return False
            return True
        except OSError:
            stats.skipped_io_error += 1
            return False
