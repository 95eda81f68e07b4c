from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

# Extension -> language tag (в формате, который ожидает FrameworkDetector)
LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".vue": "vue",
    ".svelte": "svelte",
    ".astro": "astro",
    ".py": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".swift": "swift",
    ".dart": "dart",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
}


def detect_language(file_path: str | Path) -> Optional[str]:
    """Языковой тег по расширению файла или None, если расширение не поддержано."""
    return LANGUAGE_BY_EXTENSION.get(Path(file_path).suffix.lower())
