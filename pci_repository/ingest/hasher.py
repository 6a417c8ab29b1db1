"""Content digest over a built root tree, the unit of change detection."""

from __future__ import annotations

import base64
import hashlib
from typing import Literal

from pci_repository.models import RootEntity

HashMode = Literal["compat", "strict"]

# ASCII unit and record separators frame strict-mode fields and records
_UNIT = "\x1f"
_RECORD = "\x1e"


def _compat_content(root: RootEntity) -> str:
    parts = [root.id, root.name]
    for child in root.children:
        # the root's fields stand in for each child's own
        parts += [root.id, root.name]
        for descendant in child.descendants:
            parts += [descendant.id, descendant.name]
    return "".join(parts)


def _strict_content(root: RootEntity) -> str:
    records = [_UNIT.join(("R", root.id, root.name))]
    for child in root.children:
        records.append(_UNIT.join(("C", child.id, child.name)))
        for d in child.descendants:
            records.append(_UNIT.join(("D", d.id, d.name, d.aux or "")))
    return _RECORD.join(records)


def compute_hash(root: RootEntity, mode: HashMode = "compat") -> str:
    """SHA-1 over the tree fields, base64 encoded (28 chars).

    In ``compat`` mode the fields are concatenated bare and a child's own id
    and name and a descendant's aux value do not take part in the digest.
    ``strict`` mode includes them and frames every field and record, so
    moving text across a field boundary changes the digest.
    """
    if mode == "compat":
        content = _compat_content(root)
    elif mode == "strict":
        content = _strict_content(root)
    else:
        raise ValueError(f"Unknown hash mode: {mode!r}")
    return base64.b64encode(hashlib.sha1(content.encode("utf-8")).digest()).decode("ascii")


def hash_tree(root: RootEntity, mode: HashMode = "compat") -> RootEntity:
    """Set and return *root* with its digest filled in."""
    root.hash = compute_hash(root, mode)
    return root
