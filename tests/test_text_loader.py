# tests/test_text_loader.py
from pathlib import Path

from framework_classifier.text_loader import decode_source, read_source


def test_read_source_pep263_cp1251(tmp_path: Path) -> None:
    p = tmp_path / "cp1251.py"
    # PEP-263 header + Cyrillic text in cp1251 bytes
    raw = "# -*- coding: cp1251 -*-\n# Привет\nimport django\n".encode("cp1251")
    p.write_bytes(raw)

    src = read_source(p)
    assert "Привет" in src.text
    assert src.encoding.lower() == "cp1251"
    assert src.used_fallback is False


def test_cookie_ignored_for_non_python(tmp_path: Path) -> None:
    p = tmp_path / "main.dart"
    p.write_bytes("// coding: cp1251\nvoid main() {}\n".encode("utf-8"))

    src = read_source(p)
    assert src.encoding == "utf-8"


def test_read_source_fallback_never_crashes(tmp_path: Path) -> None:
    p = tmp_path / "broken.dart"
    # invalid utf-8 bytes
    p.write_bytes(b"\xff\xfe\xfa\nimport 'package:flutter/material.dart';\n")

    src = read_source(p)
    assert "package:flutter/material.dart" in src.text
    assert src.used_fallback is True


def test_bom_is_stripped() -> None:
    src = decode_source(b"\xef\xbb\xbfimport React from 'react';\n")
    assert src.text.startswith("import React")
    assert src.encoding == "utf-8-sig"


def test_read_source_truncates(tmp_path: Path) -> None:
    p = tmp_path / "big.ts"
    p.write_text("x" * 100, encoding="utf-8")

    src = read_source(p, max_bytes=10)
    assert src.truncated is True
    assert src.text == "x" * 10
