from __future__ import annotations

from pathlib import Path
from typing import Protocol


class DownloadIndex(Protocol):
    def get(self, item_id: str) -> Path | None:
        """Return the storage directory of a locally stored item, if any."""


class DirectoryDownloadIndex:
    """Items are stored one directory per id under a common root."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def get(self, item_id: str) -> Path | None:
        if not item_id or "/" in item_id or item_id in {".", ".."}:
            return None
        directory = self._root / item_id
        if not directory.is_dir():
            return None
        return directory
