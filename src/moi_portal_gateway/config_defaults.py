"""Helpers for resolving gateway settings from the environment and .env files.

Resolution order for a key:
- the process environment
- `.env` (local override layer, not version-controlled)
- `.env.defaults` (catalog of every key with its default, version-controlled)

Both files are looked up in the repository root and in the current working
directory, so a deployed copy can ship its own overrides next to the WSGI
entry point.
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict


@lru_cache(maxsize=1)
def load_defaults() -> Dict[str, str]:
    """Load key/value pairs from `.env.defaults`, then overlay `.env`.

    Returns an empty dict when neither file exists (production deployments
    usually pass everything through the environment).
    """
    dirs: list[Path] = []
    repo_root = Path(__file__).resolve().parent.parent.parent
    dirs.append(repo_root)

    try:
        cwd = Path.cwd()
        if cwd.resolve() != repo_root.resolve():
            dirs.append(cwd)
    except (OSError, FileNotFoundError):
        pass

    merged: Dict[str, str] = {}

    for directory in dirs:
        defaults_path = directory / ".env.defaults"
        if defaults_path.exists():
            merged.update(_parse_env_file(defaults_path))

    for directory in dirs:
        env_path = directory / ".env"
        if env_path.exists():
            merged.update(_parse_env_file(env_path))

    return merged


def get_setting(key: str, fallback: str | None = None) -> str | None:
    """Return a setting from the environment, the .env files, or `fallback`.

    Blank values count as unset.
    """
    value = os.environ.get(key)
    if value is not None and value.strip():
        return value.strip()
    value = load_defaults().get(key)
    if value is not None and value.strip():
        return value.strip()
    return fallback


def get_bool(key: str, fallback: bool = False) -> bool:
    value = get_setting(key)
    if value is None:
        return fallback
    return value.lower() in {"1", "true", "yes", "on"}


def get_float(key: str, fallback: float) -> float:
    value = get_setting(key)
    if value is None:
        return fallback
    try:
        return float(value)
    except ValueError:
        return fallback


def get_int(key: str, fallback: int) -> int:
    value = get_setting(key)
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def _parse_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    with env_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            value = value.strip()
            # Strip surrounding quotes (single or double)
            if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
                value = value[1:-1]
            values[key.strip()] = value
    return values
