"""Presentation tree nodes."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(StrEnum):
    ROOT = "root"
    BRAND = "brand"
    CODE = "code"


class TreeNode(BaseModel):
    """Immutable node of a resolved cross-reference tree.

    ``record_id`` and ``verity`` are only set on ``root`` and ``code``
    nodes, which stand for a single record.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    kind: NodeKind
    children: tuple[TreeNode, ...] = Field(default_factory=tuple)
    record_id: int | str | None = None
    verity: float | None = None

    def walk(self) -> list[TreeNode]:
        """Return this node and all descendants in depth-first order."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes
