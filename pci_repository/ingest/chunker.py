"""Split a flat line sequence into contiguous per-record chunks."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator


def chunk(lines: Iterable[str], start: re.Pattern[str]) -> Iterator[list[str]]:
    """Yield groups of *lines*, starting a new group at every *start* match.

    Lines before the first match form the first group. Concatenating the
    yielded groups gives back the input unchanged; empty input yields nothing.
    """
    current: list[str] = []
    for line in lines:
        if current and start.match(line):
            yield current
            current = []
        current.append(line)
    if current:
        yield current
