"""Filesystem metadata queries used when deciding how to watch a path."""
from pathlib import Path
from typing import Protocol


class FilesystemMetadata(Protocol):
    """Answers metadata questions about paths."""

    def is_directory(self, path: str) -> bool: ...

    def exists(self, path: str) -> bool: ...


class LocalFilesystem:
    """Metadata backed by the local filesystem."""

    def is_directory(self, path: str) -> bool:
        return Path(path).is_dir()

    def exists(self, path: str) -> bool:
        return Path(path).exists()
