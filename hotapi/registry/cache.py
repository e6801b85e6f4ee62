"""Root-directory tracking shared by file-backed registries."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator


class PathCache:
    """Tracks one root directory and maps absolute paths to relative segments."""

    def __init__(self, root: str | Path, *, extension: str = ".py") -> None:
        self.path = Path(root).expanduser().absolute()
        self.extension = extension

    def relative(self, file_path: str | Path) -> tuple[str, ...]:
        path = Path(file_path).expanduser().absolute()
        try:
            rel = path.relative_to(self.path)
        except ValueError:
            return ()
        return rel.parts

    def tracks(self, file_path: str | Path) -> bool:
        return str(file_path).endswith(self.extension)

    def iter_files(self) -> Iterator[Path]:
        if not self.path.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(self.path):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith((".", "__")))
            for filename in sorted(filenames):
                if self.tracks(filename):
                    yield Path(dirpath) / filename
