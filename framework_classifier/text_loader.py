from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# PEP-263 cookie: учитывается только для .py и только в первых двух строках.
_PEP263_LINE_RE = re.compile(r"^[ \t\f]*#.*?coding[:=][ \t]*([-\w.]+)", re.IGNORECASE)

_UTF8_BOM = "\ufeff"
_UTF8_BOM_BYTES = b"\xef\xbb\xbf"

DEFAULT_MAX_BYTES = 2 * 1024 * 1024  # 2 MiB


@dataclass(frozen=True)
class SourceText:
    """
    Текст исходника для классификатора.

    text:
      Содержимое (возможно усечённое до max_bytes).
    encoding:
      Кодировка, которой удалось декодировать файл.
    used_fallback:
      True, если применялся decode(errors="replace"): битые байты не дают
      совпадений, но и не роняют анализ.
    truncated:
      True, если файл был обрезан по лимиту.
    """

    text: str
    encoding: str
    used_fallback: bool = False
    truncated: bool = False


def _python_cookie(raw: bytes) -> Optional[str]:
    for line in raw.splitlines()[:2]:
        m = _PEP263_LINE_RE.match(line.decode("latin-1", errors="ignore"))
        if m and m.group(1).strip():
            return m.group(1).strip()
    return None


def decode_source(raw: bytes, *, python_cookie: bool = False) -> SourceText:
    """
    Декодирует байты исходника best-effort.

    Порядок: UTF-8 BOM -> (для Python) PEP-263 cookie -> utf-8 -> utf-8 с заменой.
    """
    if raw.startswith(_UTF8_BOM_BYTES):
        txt = raw.decode("utf-8", errors="replace").lstrip(_UTF8_BOM)
        return SourceText(text=txt, encoding="utf-8-sig")

    if python_cookie:
        cookie = _python_cookie(raw)
        if cookie:
            try:
                return SourceText(text=raw.decode(cookie), encoding=cookie)
            except (LookupError, UnicodeDecodeError):
                # неизвестная или неверная кодировка в cookie
                pass

    try:
        return SourceText(text=raw.decode("utf-8"), encoding="utf-8")
    except UnicodeDecodeError:
        return SourceText(text=raw.decode("utf-8", errors="replace"), encoding="utf-8", used_fallback=True)


def read_source(path: Path, *, max_bytes: int = DEFAULT_MAX_BYTES) -> SourceText:
    """
    Читает файл исходника (bytes) с лимитом размера и декодирует его.

    OSError пробрасывается: решение “считать ли нечитаемый файл ошибкой”
    принимает вызывающий код.
    """
    raw = path.read_bytes()

    truncated = False
    if max_bytes and max_bytes > 0 and len(raw) > max_bytes:
        raw = raw[:max_bytes]
        truncated = True
        logger.debug("Source %s truncated to %d bytes", path, max_bytes)

    src = decode_source(raw, python_cookie=path.suffix.lower() == ".py")
    if truncated:
        return SourceText(text=src.text, encoding=src.encoding, used_fallback=src.used_fallback, truncated=True)
    return src
