"""Assemble Root → Child → Descendant trees from registry lines."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from pci_repository.errors import FormatError
from pci_repository.ingest.chunker import chunk
from pci_repository.ingest.grammar import CLASS_START, Hierarchy, LineShape, is_comment
from pci_repository.models import ChildEntity, DescendantEntity, RootEntity

NumberedLine = tuple[int, str]


@dataclass
class SourceSections:
    """Record lines of the registry with their 1-based source line numbers."""

    vendors: list[NumberedLine] = field(default_factory=list)
    classes: list[NumberedLine] = field(default_factory=list)


def split_lines(text: str) -> list[str]:
    """Split fetched text into lines, tolerating CRLF line endings."""
    return [line.rstrip("\r") for line in text.split("\n")]


def split_sections(lines: Iterable[str]) -> SourceSections:
    """Partition record lines into the devices section and the classes section.

    Comment and blank lines are dropped. The classes section begins at the
    first class record and runs to the end of the input.
    """
    sections = SourceSections()
    target = sections.vendors
    for line_no, line in enumerate(lines, start=1):
        if not line.strip() or is_comment(line):
            continue
        if target is sections.vendors and CLASS_START.match(line):
            target = sections.classes
        target.append((line_no, line))
    return sections


def _header(lines: list[str], shape: LineShape) -> tuple[str, list[str]]:
    header, *rest = lines
    if not shape.matches(header):
        raise FormatError(f"Expected a {shape.kind} record, got {header!r}")
    return header, rest


def build_trees(lines: Iterable[str], hierarchy: Hierarchy) -> Iterator[RootEntity]:
    """Yield one unhashed root per root chunk of a validated section."""
    for root_chunk in chunk(lines, hierarchy.root.start):
        header, rest = _header(root_chunk, hierarchy.root)
        record = hierarchy.root.parse(header)
        root = RootEntity(id=record.id, name=record.name)

        for child_chunk in chunk(rest, hierarchy.child.start):
            child_header, descendant_lines = _header(child_chunk, hierarchy.child)
            child_record = hierarchy.child.parse(child_header)
            child = ChildEntity(id=child_record.id, name=child_record.name)
            for line in descendant_lines:
                parsed = hierarchy.descendant.parse(line)
                child.descendants.append(
                    DescendantEntity(id=parsed.id, name=parsed.name, aux=parsed.aux)
                )
            root.children.append(child)

        yield root
