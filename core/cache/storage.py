# Path: core/cache/storage.py
# Purpose: Persist one JSON cache document per library with whole-file atomic replacement.
# Layer: core/cache.
# Details: Writes go to a temporary sibling file that is then renamed over the target.

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from core.models.errors import CacheIOError


def safe_library_name(library_name: Optional[str]) -> str:
    """Map a library name onto a file-system safe stem."""

    return re.sub(r"[^a-zA-Z0-9_-]", "_", library_name or "default")


class JsonDocumentStorage:
    """Read and atomically replace a single JSON document on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @classmethod
    def for_library(cls, cache_dir: Path | str, library_name: Optional[str]) -> "JsonDocumentStorage":
        """Return storage for ``{cache_dir}/{safe library name}.json``."""

        return cls(Path(cache_dir) / f"{safe_library_name(library_name)}.json")

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if nothing has been written yet."""

        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheIOError(f"Failed to read cache document {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CacheIOError(f"Cache document {self.path} is not a JSON object.")
        return payload

    def write(self, payload: Dict[str, Any]) -> None:
        """Serialize ``payload`` and replace the stored document in one rename."""

        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise CacheIOError(f"Failed to write cache document {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
