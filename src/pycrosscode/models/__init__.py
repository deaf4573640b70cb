"""Data models for cross-reference records and trees."""

from pycrosscode.models._base import CrossCodeBaseModel
from pycrosscode.models.record import CrossRecord, RecordPage
from pycrosscode.models.tree import NodeKind, TreeNode

__all__ = [
    "CrossCodeBaseModel",
    "CrossRecord",
    "NodeKind",
    "RecordPage",
    "TreeNode",
]
