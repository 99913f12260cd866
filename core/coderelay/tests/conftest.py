"""Shared fixtures for coderelay tests."""

import pytest

from coderelay.tools.base import FileIO, FileIOError


class RecordingFileIO(FileIO):
    """In-memory FileIO that records calls and fails for chosen paths."""

    def __init__(self):
        self.files = {}
        self.writes = []
        self.opened = []
        self.failing = set()
        self.failing_open = False

    async def read(self, path):
        if path not in self.files:
            raise FileIOError(f"File not found: {path}")
        return self.files[path]

    async def write(self, path, content):
        self.writes.append(path)
        if path in self.failing:
            raise FileIOError(f"Permission denied: {path}")
        self.files[path] = content

    async def open_in_editor(self, path):
        if self.failing_open:
            raise FileIOError("editor unavailable")
        self.opened.append(path)


@pytest.fixture
def file_io():
    return RecordingFileIO()
