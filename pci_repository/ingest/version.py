"""Version gate: decide whether a fetched registry needs processing."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

from pci_repository.errors import VersionFormatError
from pci_repository.ingest.grammar import VERSION_PREFIX, VERSION_RANGE

logger = logging.getLogger(__name__)

# The header of pci.ids puts the version on the fourth non-empty line
DEFAULT_VERSION_LINE = 3

_DATE_FORMATS = ("%Y.%m.%d", "%Y-%m-%d")


@dataclass(frozen=True)
class VersionCheck:
    proceed: bool
    version: date


def parse_version(value: str) -> date:
    """Parse a registry version token such as ``2024.01.05`` or ``2024-01-05``."""
    token = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(token, fmt).date()
        except ValueError:
            continue
    raise VersionFormatError(f"Version {token!r} is not a date")


def extract_version(lines: Sequence[str], line_index: int = DEFAULT_VERSION_LINE) -> date:
    """Read the version marker from its designated (non-empty) header line."""
    header = [line for line in lines if line]
    if line_index >= len(header):
        raise VersionFormatError(
            f"Version line not found: input has only {len(header)} non-empty lines"
        )
    line = header[line_index]
    if not line.startswith(VERSION_PREFIX):
        raise VersionFormatError(
            f"Line {line_index + 1} is not a version marker: {line!r}", line=line
        )
    try:
        return parse_version(VERSION_RANGE.extract(line))
    except VersionFormatError as e:
        raise VersionFormatError(str(e), line=line) from None


def check_version(
    lines: Sequence[str],
    persisted: date | None,
    line_index: int = DEFAULT_VERSION_LINE,
) -> VersionCheck:
    """Compare the source version with the last processed one."""
    version = extract_version(lines, line_index)
    logger.info("Detected repository version %s", version.strftime("%Y.%m.%d"))
    if persisted is not None and version == persisted:
        logger.info("Repository version matches stored version; no processing required")
        return VersionCheck(proceed=False, version=version)
    return VersionCheck(proceed=True, version=version)
