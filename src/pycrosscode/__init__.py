"""pycrosscode - Incremental resolution of part cross-reference codes."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycrosscode")
except PackageNotFoundError:
    __version__ = "0+local"
from pycrosscode.client import CrossCodeClient
from pycrosscode.config import CrossCodeConfig
from pycrosscode.exceptions import (
    CrossCodeConfigError,
    CrossCodeError,
    ResolutionCancelledError,
    SourceUnavailableError,
)
from pycrosscode.index import RecordIndex
from pycrosscode.models import CrossRecord, NodeKind, RecordPage, TreeNode
from pycrosscode.outcome import Cancelled, Err, Ok, Resolution
from pycrosscode.resolver import ProgressCallback, ResolutionCoordinator
from pycrosscode.source import ODataRecordSource, RecordSource, escape_odata_value
from pycrosscode.tree import build_tree

__all__ = [
    "__version__",
    "Cancelled",
    "CrossCodeClient",
    "CrossCodeConfig",
    "CrossCodeConfigError",
    "CrossCodeError",
    "CrossRecord",
    "Err",
    "NodeKind",
    "ODataRecordSource",
    "Ok",
    "ProgressCallback",
    "RecordIndex",
    "RecordPage",
    "RecordSource",
    "Resolution",
    "ResolutionCancelledError",
    "ResolutionCoordinator",
    "SourceUnavailableError",
    "TreeNode",
    "build_tree",
    "escape_odata_value",
]
