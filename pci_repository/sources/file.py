"""Registry source read from the local filesystem."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pci_repository.errors import FetchError

logger = logging.getLogger(__name__)


class FileTextSource:
    """Read a local copy of ``pci.ids`` without blocking the event loop."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def location(self) -> str:
        return str(self._path)

    async def fetch(self) -> str:
        try:
            text = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(str(self._path), e) from e
        logger.info("Read %d characters from %s", len(text), self._path)
        return text
