"""Local filesystem writer shared by concurrent page and resource tasks."""

import os
from typing import BinaryIO

import aiofiles


class LocalFileSystem:
    """Writes downloaded pages and resources to the local disk."""

    def create_folder(self, folder_path: str) -> None:
        """Create a folder and any missing parents. Safe to call repeatedly."""
        if folder_path:
            os.makedirs(folder_path, exist_ok=True)

    async def save_bytes(self, file_path: str, content: bytes) -> None:
        """Write bytes to a file, replacing any previous content."""
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(content)

    def open_write_stream(self, file_path: str) -> BinaryIO:
        """Open a file for writing, truncating it. Use as a context manager."""
        return open(file_path, "wb")
