"""
coderelay tools - file targets, tool calls and workspace file access.
"""

from coderelay.tools.base import ApplyResult, FileIO, FileIOError, Recommendation, ToolCall, ToolCallKind
from coderelay.tools.file_ops import WorkspaceFileIO
from coderelay.tools.paths import PathClassifier, is_valid_path

__all__ = [
    "ApplyResult",
    "FileIO",
    "FileIOError",
    "PathClassifier",
    "Recommendation",
    "ToolCall",
    "ToolCallKind",
    "WorkspaceFileIO",
    "is_valid_path",
]
