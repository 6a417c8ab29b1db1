"""Line grammar of the PCI ID registry.

Every record is recognised by its leading-whitespace depth and a start
pattern, then split into fields by fixed character columns. The two sections
of the registry (device classes and vendors) share the same three-level
layout, so each one is described by a :class:`Hierarchy` holding its three
:class:`LineShape` definitions rather than by dedicated parser code.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from pci_repository.errors import GrammarViolation
from pci_repository.models import Section

COMMENT_PREFIX = "#"
VERSION_PREFIX = "#\tVersion: "

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class Level(str, Enum):
    """Depth of a record inside its section."""

    root = "root"
    child = "child"
    descendant = "descendant"


@dataclass(frozen=True)
class ColumnRange:
    """Half-open character range over a line; ``end=None`` runs to end of line."""

    start: int
    end: int | None = None

    @property
    def width(self) -> int | None:
        return None if self.end is None else self.end - self.start

    def extract(self, line: str) -> str:
        return line[self.start : self.end]


class ParsedRecord(NamedTuple):
    id: str
    name: str
    aux: str | None = None


@dataclass(frozen=True)
class LineShape:
    """Start pattern plus column layout of one record kind."""

    kind: str
    start: re.Pattern[str]
    id_range: ColumnRange
    name_range: ColumnRange
    aux_range: ColumnRange | None = None
    aux_name: str | None = None

    def matches(self, line: str) -> bool:
        return self.start.match(line) is not None

    def check(self, line: str) -> str | None:
        """Return why *line* is malformed for this shape, or None if it is valid."""
        problem = _check_hex(line, self.id_range, "id")
        if problem is None and self.aux_range is not None:
            problem = _check_hex(line, self.aux_range, self.aux_name or "aux")
        return problem

    def parse(self, line: str) -> ParsedRecord:
        aux = self.aux_range.extract(line) if self.aux_range is not None else None
        return ParsedRecord(
            id=self.id_range.extract(line),
            name=self.name_range.extract(line),
            aux=aux,
        )


def _check_hex(line: str, columns: ColumnRange, label: str) -> str | None:
    value = columns.extract(line)
    if columns.width is not None and len(value) != columns.width:
        return f"{label} column [{columns.start},{columns.end}) is truncated"
    if not _HEX_RE.fullmatch(value):
        return f"{label} column [{columns.start},{columns.end}) is not hexadecimal: {value!r}"
    return None


@dataclass(frozen=True)
class Hierarchy:
    """Capability set of one registry section: its three shapes."""

    section: Section
    root: LineShape
    child: LineShape
    descendant: LineShape

    def shape(self, level: Level) -> LineShape:
        return {
            Level.root: self.root,
            Level.child: self.child,
            Level.descendant: self.descendant,
        }[level]

    def classify(self, line: str) -> Level | None:
        """Return the level of *line*, or None when it matches no shape."""
        if self.root.matches(line):
            return Level.root
        if self.descendant.matches(line):
            return Level.descendant
        if self.child.matches(line):
            return Level.child
        return None


# Start patterns shared by both sections
CHILD_START = re.compile(r"\t[^\t]")
DESCENDANT_START = re.compile(r"\t\t")
CLASS_START = re.compile(r"C ")
VENDOR_START = re.compile(r"[0-9a-fA-F]{4}")

CLASS = LineShape("class", CLASS_START, ColumnRange(2, 4), ColumnRange(6))
SUBCLASS = LineShape("subclass", CHILD_START, ColumnRange(1, 3), ColumnRange(5))
PROGRAMMING_INTERFACE = LineShape(
    "programming interface", DESCENDANT_START, ColumnRange(2, 4), ColumnRange(6)
)

VENDOR = LineShape("vendor", VENDOR_START, ColumnRange(0, 4), ColumnRange(6))
DEVICE = LineShape("device", CHILD_START, ColumnRange(1, 5), ColumnRange(7))
SUBDEVICE = LineShape(
    "subdevice",
    DESCENDANT_START,
    ColumnRange(7, 11),
    ColumnRange(13),
    aux_range=ColumnRange(2, 6),
    aux_name="subvendor",
)

VERSION_RANGE = ColumnRange(len(VERSION_PREFIX))

CLASSES = Hierarchy(Section.classes, CLASS, SUBCLASS, PROGRAMMING_INTERFACE)
VENDORS = Hierarchy(Section.vendors, VENDOR, DEVICE, SUBDEVICE)

HIERARCHIES: dict[Section, Hierarchy] = {
    Section.classes: CLASSES,
    Section.vendors: VENDORS,
}


def is_comment(line: str) -> bool:
    return line.startswith(COMMENT_PREFIX)


@dataclass
class ScanResult:
    """Outcome of validating one section."""

    lines: list[str] = field(default_factory=list)
    violations: list[GrammarViolation] = field(default_factory=list)
    dropped: int = 0


def scan_section(
    lines: Iterable[tuple[int, str]],
    hierarchy: Hierarchy,
    strict: bool = True,
) -> ScanResult:
    """Validate numbered section lines against *hierarchy*.

    In strict mode the first violation is raised. Otherwise violations are
    collected and the offending line is dropped together with the subtree it
    heads, so that no record is attached to the wrong parent.
    """
    result = ScanResult()
    have_root = False
    have_child = False
    # Level of the invalid header whose subtree is being discarded
    discarding: Level | None = None

    for line_no, line in lines:
        level = hierarchy.classify(line)

        if discarding is not None and level is not None:
            if _is_below(level, discarding):
                result.dropped += 1
                continue
            discarding = None

        if level is None:
            reason = f"{hierarchy.section.value} line matches no record shape"
        else:
            shape = hierarchy.shape(level)
            reason = shape.check(line)
            if reason is not None:
                reason = f"{shape.kind} {reason}"
            elif level is Level.child and not have_root:
                reason = f"{shape.kind} record before any {hierarchy.root.kind} record"
            elif level is Level.descendant and not have_child:
                reason = f"{shape.kind} record before any {hierarchy.child.kind} record"

        if reason is not None:
            violation = GrammarViolation(line_no, line, reason)
            if strict:
                raise violation
            result.violations.append(violation)
            # Unmatched lines never start with a tab, so they sit at root depth
            if level is None or level is Level.root:
                have_root = have_child = False
                discarding = Level.root
            elif level is Level.child and have_root:
                have_child = False
                discarding = Level.child
            continue

        if level is Level.root:
            have_root, have_child = True, False
        elif level is Level.child:
            have_child = True
        result.lines.append(line)

    return result


def _is_below(level: Level, header: Level) -> bool:
    if header is Level.root:
        return level is not Level.root
    return level is Level.descendant
