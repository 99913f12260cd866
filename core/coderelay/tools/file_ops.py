"""
Verified workspace file operations.
Each operation resolves the target inside the workspace root, performs the
action, and verifies the result before reporting success.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from coderelay import config
from coderelay.tools.base import FileIO, FileIOError, FileResult, VerificationResult
from coderelay.tools.verifier import FilesystemVerifier
from coderelay.utils.logging import logger


def _human_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / 1024 / 1024:.1f} MB"


def _failure(details: str, action: str) -> FileResult:
    return FileResult(
        status="error",
        action=action,
        output=None,
        error=details,
        verification=VerificationResult(passed=False, details=details),
    )


class FileOperations:
    """Filesystem helpers confined to a workspace root, with verification."""

    MAX_READ_BYTES = 10 * 1024 * 1024

    def __init__(self, root: Optional[Path] = None):
        self.root = (root or config.WORKSPACE_DIR).expanduser().resolve()

    def resolve(self, path: str) -> Path:
        """Resolve ``path`` against the root and refuse anything that escapes it."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if not (resolved == self.root or resolved.is_relative_to(self.root)):
            raise PermissionError(f"Path {resolved} is outside the workspace {self.root}")
        return resolved

    def read_file(self, path: str) -> FileResult:
        try:
            file_path = self.resolve(path)
            if not file_path.exists():
                return _failure(f"File not found: {file_path}", "read")
            if not file_path.is_file():
                return _failure(f"Not a file: {file_path}", "read")

            size = file_path.stat().st_size
            if size > self.MAX_READ_BYTES:
                return _failure(
                    f"File too large ({_human_size(size)}). Maximum is {_human_size(self.MAX_READ_BYTES)}",
                    "read",
                )

            content = file_path.read_text(encoding="utf-8", errors="replace")
            logger.info(f"Read file: {file_path}")
            return FileResult(
                status="success",
                action="read",
                output={"path": str(file_path), "content": content},
                verification=VerificationResult(True, "Read-only operation"),
            )
        except PermissionError as exc:
            return _failure(str(exc), "read")
        except OSError as exc:
            logger.error(f"Failed to read file {path}: {exc}")
            return _failure(f"Unexpected error reading {path}: {exc}", "read")

    def write_file(self, path: str, content: str) -> FileResult:
        try:
            target = self.resolve(path)
            target.parent.mkdir(parents=True, exist_ok=True)

            data = (content or "").encode("utf-8")
            with tempfile.NamedTemporaryFile(delete=False, dir=target.parent) as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
                temp_name = tmp.name

            os.replace(temp_name, target)

            verification = FilesystemVerifier.verify_write(target, data)
            if verification.passed:
                logger.info(f"Wrote file: {target}")
            return FileResult(
                status="success" if verification.passed else "error",
                action="write",
                output={"path": str(target), "bytes_written": len(data)},
                error=None if verification.passed else verification.details,
                verification=verification,
            )
        except PermissionError as exc:
            return _failure(str(exc), "write")
        except OSError as exc:
            logger.error(f"Failed to write file {path}: {exc}")
            return _failure(f"Unexpected error writing {path}: {exc}", "write")

    def check_openable(self, path: str) -> FileResult:
        try:
            file_path = self.resolve(path)
        except PermissionError as exc:
            return _failure(str(exc), "open")
        if not file_path.is_file():
            return _failure(f"File not found: {file_path}", "open")
        return FileResult(
            status="success",
            action="open",
            output={"path": str(file_path)},
            verification=VerificationResult(True, "File exists"),
        )


class WorkspaceFileIO(FileIO):
    """
    Async file collaborator over FileOperations.

    Errors come back from FileOperations as values and are raised here as
    FileIOError so callers can handle them per file.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        editor_callback: Optional[Callable[[Path], Awaitable[None]]] = None,
    ):
        self.ops = FileOperations(root)
        self.editor_callback = editor_callback

    @property
    def root(self) -> Path:
        return self.ops.root

    async def read(self, path: str) -> str:
        result = await asyncio.to_thread(self.ops.read_file, path)
        if not result.success:
            raise FileIOError(result.error)
        return result.output["content"]

    async def write(self, path: str, content: str) -> None:
        result = await asyncio.to_thread(self.ops.write_file, path, content)
        if not result.success:
            raise FileIOError(result.error)

    async def open_in_editor(self, path: str) -> None:
        result = self.ops.check_openable(path)
        if not result.success:
            raise FileIOError(result.error)
        if self.editor_callback is None:
            logger.info(f"No editor attached, skipping open of {result.output['path']}")
            return
        await self.editor_callback(Path(result.output["path"]))
