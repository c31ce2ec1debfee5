import io

import pytest


class RecordingStream(io.BytesIO):
    """In-memory write stream that hands its bytes to the fake on close."""

    def __init__(self, files, path):
        super().__init__()
        self._files = files
        self._path = path

    def close(self):
        if not self.closed:
            self._files[self._path] = self.getvalue()
        super().close()


class FakeFileSystem:
    """In-memory stand-in for LocalFileSystem that records every call."""

    def __init__(self, fail_paths=()):
        self.folders = []
        self.files = {}
        self.fail_paths = set(fail_paths)

    def create_folder(self, folder_path):
        self.folders.append(folder_path)

    async def save_bytes(self, file_path, content):
        if file_path in self.fail_paths:
            raise OSError(f"Disk full: {file_path}")
        self.files[file_path] = content

    def open_write_stream(self, file_path):
        return RecordingStream(self.files, file_path)


@pytest.fixture
def fake_fs():
    return FakeFileSystem()


@pytest.fixture
def make_fs():
    return FakeFileSystem
