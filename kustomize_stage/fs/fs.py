"""Abstract destination filesystem for staging kustomization sources."""

from abc import ABC, abstractmethod
from pathlib import PurePosixPath

from kustomize_stage.exceptions import InputException

__all__ = [
    "StagingFS",
    "staged_path",
]


def staged_path(path: str | PurePosixPath) -> PurePosixPath:
    """Return the path as a relative path inside a staging filesystem.

    Absolute paths and paths that traverse outside the staging root are rejected.
    """
    result = PurePosixPath(path)
    if result.is_absolute() or ".." in result.parts or not result.parts:
        raise InputException(f"Invalid staging path must be relative: '{path}'")
    return result


class StagingFS(ABC):
    """Abstract base class for a writable destination holding staged files.

    All paths are relative to the root of the filesystem.
    """

    @abstractmethod
    async def mkdir(self, path: str | PurePosixPath) -> None:
        """Create a directory and any missing parents."""

    @abstractmethod
    async def write_file(self, path: str | PurePosixPath, data: bytes) -> None:
        """Write the contents of a file, creating parent directories as needed."""

    @abstractmethod
    async def read_file(self, path: str | PurePosixPath) -> bytes:
        """Read back the contents of a staged file."""

    @abstractmethod
    async def exists(self, path: str | PurePosixPath) -> bool:
        """Return true if the file or directory exists."""

    @abstractmethod
    async def list_files(self) -> list[PurePosixPath]:
        """Return the sorted paths of all staged files."""

    @abstractmethod
    def cleanup(self) -> None:
        """Remove everything that was staged."""
