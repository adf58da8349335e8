"""Shared utility helpers."""

from __future__ import annotations

import copy
import json
import os
import time
from pathlib import Path
from typing import Any, Dict

# Directories never read into the generator's file map
IGNORED_DIRS = {".git", "node_modules", "__pycache__", ".venv"}


def ensure_dir(path: Path) -> Path:
    """Convenience for mkdir -p."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def now_ms() -> int:
    """Milliseconds since the epoch, the unit stored in ``lastChecked``."""
    return int(time.time() * 1000)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in recursively."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def read_files(context: Path) -> Dict[str, str]:
    """Read the project tree into a ``relative posix path -> text`` mapping.

    Binary files and dependency/VCS directories are skipped.
    """
    files: Dict[str, str] = {}
    for path in sorted(context.rglob("*")):
        rel = path.relative_to(context)
        if any(part in IGNORED_DIRS for part in rel.parts) or not path.is_file():
            continue
        try:
            files[rel.as_posix()] = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            continue
    return files


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    """Write a dictionary to a JSON file.

    The document goes to a sibling temp file first, so readers never see a
    partially written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    os.replace(tmp_path, path)


def _read_json(path: Path) -> dict[str, Any]:
    """Read a JSON file into a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
