"""Corpus discovery: find the documents a run should look at."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

# Directories always skipped, on top of anything hidden
DEFAULT_IGNORE = {
    ".git",
    ".obsidian",
    ".trash",
    "node_modules",
    "build",
    "dist",
    "__pycache__",
    ".venv",
}


def _skipped(name: str, ignore: set[str]) -> bool:
    return name.startswith(".") or name in ignore


def discover_documents(
    root: Path,
    extensions: Iterable[str] = (".md", ".markdown"),
    ignore_dirs: Iterable[str] = DEFAULT_IGNORE,
) -> list[Path]:
    """Recursively list document files under *root*, sorted by path.

    Hidden files and directories and anything named in *ignore_dirs* are
    skipped. Unreadable subdirectories are logged and skipped.
    """
    exts = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}
    ignore = set(ignore_dirs)
    found: list[Path] = []

    def _on_error(err: OSError) -> None:
        logger.warning("skipping unreadable directory %s: %s", err.filename, err.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        # Prune in place so os.walk never descends into skipped directories
        dirnames[:] = sorted(d for d in dirnames if not _skipped(d, ignore))
        for name in filenames:
            if name.startswith("."):
                continue
            if Path(name).suffix.lower() in exts:
                found.append(Path(dirpath) / name)

    found.sort()
    return found
