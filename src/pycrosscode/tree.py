"""Build the root -> brand -> code presentation tree for one group."""

from __future__ import annotations

from collections.abc import Sequence

from pycrosscode.models.record import CrossRecord
from pycrosscode.models.tree import NodeKind, TreeNode


def _code_node(record: CrossRecord) -> TreeNode:
    return TreeNode(
        label=record.cross_code,
        kind=NodeKind.CODE,
        record_id=record.id,
        verity=record.verity,
    )


def _group_by_brand(records: Sequence[CrossRecord]) -> dict[str, list[CrossRecord]]:
    """Bucket records by ``by_code``, keeping first-seen brand order."""
    brands: dict[str, list[CrossRecord]] = {}
    for record in records:
        brands.setdefault(record.by_code, []).append(record)
    return brands


def _root_node(root: CrossRecord, records: Sequence[CrossRecord]) -> TreeNode:
    siblings = [record for record in records if record.main_code == root.main_code and not record.is_root]

    children: list[TreeNode] = []
    for by_code, members in _group_by_brand(siblings).items():
        if not by_code:
            # Unbranded codes hang directly off the root.
            children.extend(_code_node(record) for record in members)
            continue
        children.append(
            TreeNode(
                label=by_code,
                kind=NodeKind.BRAND,
                children=tuple(_code_node(record) for record in members),
            )
        )

    return TreeNode(
        label=root.cross_code,
        kind=NodeKind.ROOT,
        children=tuple(children),
        record_id=root.id,
        verity=root.verity,
    )


def build_tree(records: Sequence[CrossRecord]) -> list[TreeNode]:
    """Turn the records of one group into a list of root nodes.

    Roots keep their input order, and so do brands and codes within a
    root; nothing is sorted. A group without a root record yields ``[]``.
    A group with several roots yields one root node per root, each built
    from the same set of siblings.
    """
    return [_root_node(root, records) for root in records if root.is_root]
