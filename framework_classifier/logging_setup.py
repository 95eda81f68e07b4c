from __future__ import annotations

import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Настраивает логирование приложения (stdout, единый формат).

    Неизвестный уровень не роняет запуск: используется INFO.
    """
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
