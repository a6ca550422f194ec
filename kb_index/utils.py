"""Utility functions for KB indexing."""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Optional


def file_mtime_ms(path: str) -> int:
    """Return a file's modification time in integer milliseconds."""
    return int(os.stat(path).st_mtime * 1000)


def safe_relpath(path: str, base: str) -> str:
    """``path`` relative to ``base``; unchanged when no relative form exists (other drive)."""
    try:
        return os.path.relpath(path, base)
    except ValueError:
        return path


def is_under_root(path: str, root: str) -> bool:
    """Check whether ``path`` lies inside ``root`` (or is ``root``)."""
    path = os.path.abspath(path)
    root = os.path.abspath(root)
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def normalize_text(text: Optional[str]) -> str:
    """Collapse every whitespace run (line breaks and no-break spaces included) to one space."""
    if not text:
        return ""
    return " ".join(text.replace("\u00a0", " ").split())


def shorten(text: str, limit: int = 120) -> str:
    """Single-line preview of ``text``, truncated to ``limit`` with an ellipsis."""
    text = normalize_text(text)
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def write_json_atomic(path: str, data: Any) -> None:
    """Rewrite a JSON file in full via a temp file in the same directory."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
