"""
Filesystem verification helpers for workspace writes.
"""

from pathlib import Path

from coderelay.tools.base import VerificationResult


class FilesystemVerifier:
    """Post-operation verification for filesystem mutations."""

    @staticmethod
    def verify_write(path: Path, expected: bytes) -> VerificationResult:
        if not path.exists():
            return VerificationResult(False, f"{path} missing after write")
        try:
            actual = path.read_bytes()
        except OSError as exc:
            return VerificationResult(False, f"Could not verify contents: {exc}")
        if actual != expected:
            return VerificationResult(False, f"{path} contents differ after write")
        return VerificationResult(True, f"{path} verified ({len(expected)} bytes)")
