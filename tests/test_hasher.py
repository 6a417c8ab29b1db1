"""Tests for the aggregate content hash."""

from __future__ import annotations

import base64
import hashlib

import pytest

from pci_repository.ingest.hasher import compute_hash, hash_tree
from pci_repository.models import ChildEntity, DescendantEntity, RootEntity


def _vendor() -> RootEntity:
    return RootEntity(
        id="8086",
        name="Intel Corporation",
        children=[
            ChildEntity(
                id="1229",
                name="Ethernet Pro 100",
                descendants=[
                    DescendantEntity(id="0001", name="EtherExpress TX", aux="8086"),
                    DescendantEntity(id="0002", name="EtherExpress T4", aux="8086"),
                ],
            ),
            ChildEntity(
                id="100e",
                name="82540EM",
                descendants=[DescendantEntity(id="002e", name="PRO/1000 MT", aux="8086")],
            ),
        ],
    )


def _expected(*parts: str) -> str:
    return base64.b64encode(hashlib.sha1("".join(parts).encode()).digest()).decode()


# ── Compat digest ────────────────────────────────────────────────────


def test_digest_input_repeats_root_fields_per_child():
    root = _vendor()
    expected = _expected(
        "8086", "Intel Corporation",
        "8086", "Intel Corporation", "0001", "EtherExpress TX", "0002", "EtherExpress T4",
        "8086", "Intel Corporation", "002e", "PRO/1000 MT",
    )
    assert compute_hash(root) == expected


def test_hash_is_28_char_base64():
    h = compute_hash(_vendor())
    assert len(h) == 28
    assert base64.b64decode(h) and len(base64.b64decode(h)) == 20


def test_hash_deterministic():
    assert compute_hash(_vendor()) == compute_hash(_vendor())


def test_leaf_root_hash():
    assert compute_hash(RootEntity(id="02", name="Network controller")) == _expected(
        "02", "Network controller"
    )


@pytest.mark.parametrize(
    "mutate",
    [
        lambda r: setattr(r, "id", "8087"),
        lambda r: setattr(r, "name", "Intel Corp."),
        lambda r: setattr(r.children[0].descendants[0], "id", "0003"),
        lambda r: setattr(r.children[1].descendants[0], "name", "PRO/1000 MT Desktop"),
        lambda r: r.children.reverse(),
        lambda r: r.children[0].descendants.reverse(),
        lambda r: r.children[1].descendants.clear(),
    ],
    ids=["root-id", "root-name", "descendant-id", "descendant-name", "child-order",
         "descendant-order", "descendant-removed"],
)
def test_hash_sensitive_to_content_and_order(mutate):
    original = compute_hash(_vendor())
    changed = _vendor()
    mutate(changed)
    assert compute_hash(changed) != original


def test_compat_ignores_child_fields_and_aux():
    original = compute_hash(_vendor())
    changed = _vendor()
    changed.children[0].name = "Renamed device"
    changed.children[0].id = "ffff"
    changed.children[0].descendants[0].aux = "1028"
    assert compute_hash(changed) == original


# ── Strict digest ────────────────────────────────────────────────────


def test_strict_mode_sees_child_fields_and_aux():
    base = compute_hash(_vendor(), mode="strict")

    renamed = _vendor()
    renamed.children[0].name = "Renamed device"
    assert compute_hash(renamed, mode="strict") != base

    resold = _vendor()
    resold.children[0].descendants[0].aux = "1028"
    assert compute_hash(resold, mode="strict") != base


def test_strict_mode_sees_field_boundary_shifts():
    def tree(child_name: str, d_id: str, d_name: str) -> RootEntity:
        return RootEntity(
            id="8086",
            name="Intel Corporation",
            children=[
                ChildEntity(
                    id="0001",
                    name=child_name,
                    descendants=[DescendantEntity(id=d_id, name=d_name)],
                )
            ],
        )

    assert compute_hash(tree("A", "01", "B"), mode="strict") != compute_hash(
        tree("A0", "1B", ""), mode="strict"
    )


def test_strict_mode_sees_descendant_moved_between_children():
    one = _vendor()
    two = _vendor()
    moved = two.children[0].descendants.pop()
    two.children.append(ChildEntity(id="1230", name="Spare", descendants=[moved]))
    one.children.append(ChildEntity(id="1230", name="Spare"))
    assert compute_hash(one, mode="strict") != compute_hash(two, mode="strict")


def test_strict_differs_from_compat():
    assert compute_hash(_vendor(), mode="strict") != compute_hash(_vendor())


def test_unknown_mode_rejected():
    with pytest.raises(ValueError, match="Unknown hash mode"):
        compute_hash(_vendor(), mode="md5")


def test_hash_tree_sets_hash_on_root():
    root = hash_tree(_vendor())
    assert root.hash == compute_hash(_vendor())
