# Path: core/indexing/scanner.py
# Purpose: Scan a library folder and describe its files as LibraryItems.
# Layer: core/indexing.
# Details: Item ids are POSIX paths relative to the root, so they stay stable across runs.

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from core.models.domain import LibraryItem


class LibraryScanner:
    """Enumerate every non-hidden file under a root directory.

    Non-image files are reported too: they are valid ids for orphan pruning and
    the indexer filters them by extension.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def scan(self) -> List[LibraryItem]:
        """Return all discovered files in a deterministic order."""

        return [self._to_item(path) for path in sorted(self._iter_files())]

    def _to_item(self, path: Path) -> LibraryItem:
        relative = path.relative_to(self.root).as_posix()
        return LibraryItem(id=relative, ext=path.suffix.lower().lstrip("."), file_path=path)

    def _iter_files(self) -> Iterable[Path]:
        """Yield files under the root directory, skipping hidden entries."""

        if not self.root.is_dir():
            return
        for path in self.root.rglob("*"):
            if not path.is_file():
                continue
            if any(part.startswith(".") for part in path.relative_to(self.root).parts):
                continue
            yield path
