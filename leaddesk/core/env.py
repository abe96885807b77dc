"""`.env` support for local runs of the console.

`.env` holds shared defaults and `.env.local` holds per-machine overrides.
Variables already exported in the shell always win over both files.
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def parse_env_file(path: Path) -> dict[str, str]:
    """Read `KEY=value` lines; blank lines, comments and junk are skipped.

    An optional `export ` prefix is accepted so the same file can be
    sourced from a shell.
    """

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key:
            values[key] = _unquote(value.strip())
    return values


def load_env(path: Path | None = None) -> list[str]:
    """Apply `.env` (or `path`) and then `.env.local` to `os.environ`.

    `.env.local` is only consulted when no explicit `path` is given; it may
    override `.env` but never the shell.

    Returns:
        Names of the variables that were set.
    """

    shell_keys = frozenset(os.environ)
    applied: list[str] = []

    base = path or PROJECT_ROOT / ".env"
    layers = [(base, False)]
    if path is None:
        layers.append((base.with_name(".env.local"), True))

    for env_file, overrides_files in layers:
        if not env_file.is_file():
            continue
        for key, value in parse_env_file(env_file).items():
            if key in shell_keys:
                continue
            if key in os.environ and not overrides_files:
                continue
            os.environ[key] = value
            if key not in applied:
                applied.append(key)
    return applied


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


__all__ = ["PROJECT_ROOT", "load_env", "parse_env_file"]
