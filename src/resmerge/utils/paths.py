from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path) -> None:
    """Create directory and parents if they don't exist."""
    path.mkdir(parents=True, exist_ok=True)


def is_dir_name(name: str) -> bool:
    """True when ``name`` spells a directory rather than a file name."""
    return name.endswith(("/", "\\")) or Path(name).name in ("", ".", "..")
