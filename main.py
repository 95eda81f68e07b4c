from __future__ import annotations

import os
from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from framework_classifier.flutter_analyzer import analyze_flutter
from framework_classifier.logging_setup import setup_logging
from framework_classifier.service import (
    analyze_local_project,
    classify_source,
    resolve_in_analysis_root,
)
from framework_classifier.settings import settings

setup_logging(settings.log_level)

app = FastAPI(title="Framework Classifier", version="0.1.0")


@app.get("/")
async def root():
    return {"service": "Framework Classifier", "ok": True}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


class DetectRequest(BaseModel):
    path: str
    content: str = ""
    language: str | None = None  # по умолчанию: по расширению


class FlutterRequest(BaseModel):
    content: str


class AnalyzeLocalRequest(BaseModel):
    path: str
    include_files: bool = True


def _validate_local_path(raw_path: str) -> Path:
    """
    Security gate for local filesystem access:
    - reject empty path (422)
    - resolve path (expands ~, resolves .. and symlinks)
    - must exist and be a directory
    - if ANALYSIS_ROOT is set -> must be inside it (403)
    - basic read permission check
    """
    raw = (raw_path or "").strip()
    if not raw:
        raise HTTPException(status_code=422, detail="path is required")

    try:
        p = Path(raw).expanduser().resolve(strict=True)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Path not found: {raw}") from e
    except OSError as e:
        raise HTTPException(status_code=400, detail=f"Invalid path: {raw}") from e

    if not p.is_dir():
        raise HTTPException(status_code=400, detail=f"Path is not a directory: {p}")

    if settings.analysis_root is not None:
        ar = settings.analysis_root.expanduser().resolve()
        try:
            p.relative_to(ar)
        except ValueError as e:
            raise HTTPException(
                status_code=403,
                detail=f"Path '{p}' is outside ANALYSIS_ROOT='{ar}'",
            ) from e

    if not os.access(p, os.R_OK):
        raise HTTPException(status_code=403, detail=f"Permission denied: {p}")

    return p


def _map_local_errors(e: Exception) -> HTTPException:
    """Normalize local-analysis errors raised by the service layer into HTTP codes."""
    msg = str(e) or e.__class__.__name__
    msg_l = msg.lower()

    if "path is required" in msg_l:
        return HTTPException(status_code=422, detail="path is required")

    # sandbox gate from service.py
    if "outside analysis_root" in msg_l:
        return HTTPException(status_code=403, detail=msg)

    return HTTPException(status_code=400, detail=msg)


@app.post("/detect")
async def detect(request: DetectRequest):
    """
    Классификация одного файла по переданному тексту.

    Файл с диска не читается; path нужен для правил по расширению и
    поиска ближайшего package.json. При заданном ANALYSIS_ROOT путь
    обязан быть внутри него (403), а поиск package.json не выходит за него.
    """
    raw = request.path.strip()
    if not raw:
        raise HTTPException(status_code=422, detail="path is required")

    try:
        path = resolve_in_analysis_root(raw)
    except (ValueError, OSError) as e:
        raise _map_local_errors(e) from e

    result = classify_source(path, request.content, language=request.language)
    return result.as_dict()


@app.post("/analyze/flutter")
async def analyze_flutter_source(request: FlutterRequest):
    return analyze_flutter(request.content).as_dict()


@app.post("/analyze/local")
async def analyze_local(request: AnalyzeLocalRequest):
    p = _validate_local_path(request.path)
    try:
        return analyze_local_project(path=p, include_files=request.include_files)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=f"Permission denied: {e}") from e
    except (ValueError, OSError) as e:
        raise _map_local_errors(e) from e
