from __future__ import annotations

import os

import uvicorn

from .logging_setup import setup_logging
from .settings import settings


def run() -> None:
    """
    Запускает HTTP API классификатора в dev-режиме через Uvicorn.

    - порт из переменной окружения `PORT` (по умолчанию 8001)
    - host 127.0.0.1, `reload=True`: только для локальной разработки
    - уровень логов из settings.log_level (LOG_LEVEL в .env)
    """
    setup_logging(settings.log_level)

    port = int(os.getenv("PORT", "8001"))
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=port,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
