"""Text source interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextSource(Protocol):
    """Where the registry text comes from (HTTP endpoint, local file, ...)."""

    @property
    def location(self) -> str: ...

    async def fetch(self) -> str: ...
