from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Глобальные настройки классификатора (Pydantic Settings).

    Откуда берутся значения:
    - из переменных окружения
    - из файла .env (если присутствует)
    - иначе используются значения по умолчанию из полей класса

    Ядро (FrameworkDetector / FlutterAnalyzer) от настроек не зависит: они
    нужны сервисному слою (сканер проекта, HTTP API) и логированию.
    """

    # ---------------------------------------------------------------------
    # Local analysis security
    # ---------------------------------------------------------------------
    # Если задан, анализ проекта разрешён только внутри этой директории.
    analysis_root: Path | None = None

    # ---------------------------------------------------------------------
    # Scanner / source loading
    # ---------------------------------------------------------------------
    max_file_size_bytes: int = 2 * 1024 * 1024  # 2 MiB
    respect_gitignore: bool = True

    # Имя manifest-файла, который ищется вверх по дереву директорий.
    manifest_filename: str = "package.json"

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------
    log_level: str = "INFO"

    # ---------------------------------------------------------------------
    # Validators
    # ---------------------------------------------------------------------
    @field_validator("analysis_root", mode="before")
    @classmethod
    def _validate_analysis_root(cls, v):
        """
        Нормализует и валидирует analysis_root (sandbox root).

        Правила:
        - None разрешён: sandbox отключён
        - строка/путь -> Path, expanduser(~), затем resolve(strict=True)
        - путь обязан существовать и быть директорией
        """
        if v is None or v == "":
            return None

        p = Path(v).expanduser()
        try:
            p = p.resolve(strict=True)
        except FileNotFoundError as e:
            raise ValueError(f"analysis_root does not exist: {p}") from e

        if not p.is_dir():
            raise ValueError(f"analysis_root is not a directory: {p}")

        return p

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):
        return str(v or "INFO").strip().upper()

    @field_validator("max_file_size_bytes")
    @classmethod
    def _validate_max_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_file_size_bytes must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",   # явно: без скрытых префиксов
        extra="ignore",  # лишние env vars не ломают загрузку
    )


# Singleton settings instance (единая точка доступа)
settings = Settings()
