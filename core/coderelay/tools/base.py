"""
Base types for coderelay tools.
Defines the tool-call, recommendation and file-result contracts shared across the system.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Optional


class ToolCallKind(str, Enum):
    """Inline directives the model may emit in its response."""
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    OPEN_FILE = "open_file"

    @property
    def open_tag(self) -> str:
        return f"<{self.value}>"

    @property
    def close_tag(self) -> str:
        return f"</{self.value}>"


TOOL_TAG_NAMES = tuple(kind.value for kind in ToolCallKind)


@dataclass
class ToolCall:
    """
    A complete, validated tool call recognized in a streamed response.

    Transient: built when a balanced tag pair is seen, dispatched, then dropped.
    For WRITE_FILE the first line of the tag body is the path and the
    remainder is the content.
    """

    kind: ToolCallKind
    path: str
    content: Optional[str] = None
    raw: str = ""


@dataclass
class Recommendation:
    """An extracted (path, code) pair waiting for the user to apply or reject it."""

    file_path: str
    code: str
    language: Optional[str] = None
    line_numbers: Optional[list[str]] = None

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "code": self.code,
            "language": self.language,
            "line_numbers": self.line_numbers,
        }


@dataclass
class ApplyResult:
    """Outcome of writing one recommendation to disk."""

    file_path: str
    ok: bool
    error: Optional[str] = None
    not_found: bool = False

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "ok": self.ok,
            "error": self.error,
            "not_found": self.not_found,
        }


@dataclass
class VerificationResult:
    """Represents the verification status of a file operation."""

    passed: bool
    details: str


@dataclass
class FileResult:
    """
    Result of a workspace file operation.

    status: "success" | "error"
    action: read|write|open
    verification: post-op verification outcome
    """

    status: Literal["success", "error"]
    action: str
    output: Any
    error: Optional[str] = None
    verification: Optional[VerificationResult] = None

    @property
    def success(self) -> bool:
        return self.status == "success"


class FileIOError(OSError):
    """Raised when a workspace read, write or open request fails."""


class FileIO(ABC):
    """File collaborator used by the interpreter and the application executor."""

    @abstractmethod
    async def read(self, path: str) -> str:
        """Return the text content of ``path``."""

    @abstractmethod
    async def write(self, path: str, content: str) -> None:
        """Write ``content`` to ``path``, creating parent directories."""

    @abstractmethod
    async def open_in_editor(self, path: str) -> None:
        """Ask the editor to show ``path``."""
