from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import ManifestInfo

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_FILENAME = "package.json"


# =============================================================================
# package.json schema
# =============================================================================

class PackageManifest(BaseModel):
    """
    Схема package.json в объёме, нужном классификатору.

    Используются только три ключа верхнего уровня; остальные игнорируются.
    Значения внутри карт приводятся к строкам “мягко”:
    - строки остаются как есть
    - числа/bool -> строковое представление
    - null, вложенные объекты и массивы отбрасываются
    - если сам ключ содержит не объект -> пустая карта
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    dependencies: Dict[str, str] = Field(default_factory=dict)
    dev_dependencies: Dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    scripts: Dict[str, str] = Field(default_factory=dict)

    @field_validator("dependencies", "dev_dependencies", "scripts", mode="before")
    @classmethod
    def _coerce_string_map(cls, v: Any) -> Dict[str, str]:
        if not isinstance(v, dict):
            return {}
        out: Dict[str, str] = {}
        for name, value in v.items():
            if value is None or isinstance(value, (dict, list)):
                continue
            if isinstance(value, bool):
                out[str(name)] = "true" if value else "false"
            else:
                out[str(name)] = str(value)
        return out

    def to_info(self) -> ManifestInfo:
        return ManifestInfo(
            dependencies=dict(self.dependencies),
            dev_dependencies=dict(self.dev_dependencies),
            scripts=dict(self.scripts),
        )


# =============================================================================
# Reader
# =============================================================================

class ManifestReader:
    """
    Находит ближайший manifest (package.json) вверх по дереву и парсит его.

    Поиск:
      начинаем с директории файла; если там есть manifest: берём его,
      иначе поднимаемся к родителю, пока родитель != текущая директория (корень ФС).

    Кэш:
      - успешный разбор (в том числе пустого manifest) кэшируется по абсолютному пути
      - неуспешный разбор НЕ кэшируется (файл могут починить)

    Гарантия: ни один публичный метод не выбрасывает исключений наружу.
    """

    def __init__(
        self,
        manifest_filename: str = DEFAULT_MANIFEST_FILENAME,
        *,
        boundary: str | Path | None = None,
    ) -> None:
        self.manifest_filename = manifest_filename
        # Если задан: поиск не поднимается выше этой директории.
        self.boundary: Optional[Path] = Path(boundary).absolute() if boundary else None
        self._cache: Dict[Path, ManifestInfo] = {}
        self._lock = threading.Lock()

    def find_manifest(self, file_path: str | Path) -> Optional[Path]:
        """Путь к ближайшему manifest-файлу или None, если до корня (или boundary) ничего нет."""
        try:
            current = Path(file_path).absolute().parent
        except OSError:
            return None

        if self.boundary is not None and not current.is_relative_to(self.boundary):
            return None

        while True:
            candidate = current / self.manifest_filename
            try:
                if candidate.is_file():
                    return candidate
            except OSError:
                # недоступная директория: просто идём выше
                pass

            parent = current.parent
            if parent == current or current == self.boundary:
                return None
            current = parent

    def load(self, manifest_path: str | Path) -> Optional[ManifestInfo]:
        """
        Загружает manifest по точному пути (с кэшем).

        Возвращает None при ошибке чтения или невалидном JSON.
        """
        path = Path(manifest_path).absolute()

        with self._lock:
            cached = self._cache.get(path)
        if cached is not None:
            return cached

        try:
            raw = path.read_bytes()
        except OSError as e:
            logger.debug("Cannot read manifest %s: %s", path, e)
            return None

        try:
            info = PackageManifest.model_validate_json(raw).to_info()
        except ValidationError as e:
            logger.warning("Malformed manifest %s: %s", path, e.errors()[0].get("msg", e))
            return None

        with self._lock:
            self._cache[path] = info
        return info

    def find_and_load(self, file_path: str | Path) -> Optional[Tuple[Path, ManifestInfo]]:
        """
        Основной вход: (путь manifest, ManifestInfo) для ближайшего manifest или None.

        None означает “manifest не найден или не разобран”: это не ошибка.
        """
        manifest_path = self.find_manifest(file_path)
        if manifest_path is None:
            return None

        info = self.load(manifest_path)
        if info is None:
            return None
        return manifest_path.absolute(), info

    def cached_paths(self) -> list[Path]:
        with self._lock:
            return list(self._cache.keys())

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
