# tools/files.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List

DEFAULT_SKIP_DIRS = frozenset({
    "node_modules",
    ".git",
    ".svn",
    ".hg",
    "vendor",
    ".terraform",
    "dist",
    "build",
    ".next",
    "__pycache__",
    ".venv",
})


def find_by_extension(root: str | Path, *extensions: str, skip_dirs: frozenset[str] = DEFAULT_SKIP_DIRS) -> List[str]:
    """
    Paths (relative to `root`, sorted) of files ending in one of `extensions`.
    Vendored, VCS and build output directories are not descended into.
    """
    root = Path(root)
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # prune in place so os.walk skips them
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        for fname in filenames:
            if extensions and not fname.endswith(tuple(extensions)):
                continue
            found.append(str((Path(dirpath) / fname).relative_to(root)))
    return sorted(found)
