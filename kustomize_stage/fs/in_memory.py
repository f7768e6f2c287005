"""Module for an in memory staging filesystem."""

import logging
from pathlib import PurePosixPath

from .fs import StagingFS, staged_path

_LOGGER = logging.getLogger(__name__)


class InMemoryFS(StagingFS):
    """In-memory implementation of the StagingFS interface.

    Useful for inspecting the result of a mirror without touching disk.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryFS."""
        self._files: dict[PurePosixPath, bytes] = {}
        self._dirs: set[PurePosixPath] = set()

    async def mkdir(self, path: str | PurePosixPath) -> None:
        """Create a directory and any missing parents."""
        self._mkdir(staged_path(path))

    def _mkdir(self, path: PurePosixPath) -> None:
        for parent in [path, *path.parents]:
            if parent == PurePosixPath("."):
                continue
            if parent in self._files:
                raise NotADirectoryError(f"Not a directory: '{parent}'")
            self._dirs.add(parent)

    async def write_file(self, path: str | PurePosixPath, data: bytes) -> None:
        """Write the contents of a file, creating parent directories as needed."""
        target = staged_path(path)
        if target in self._dirs:
            raise IsADirectoryError(f"Is a directory: '{target}'")
        self._mkdir(target.parent)
        _LOGGER.debug("Writing %s (%d bytes)", target, len(data))
        self._files[target] = data

    async def read_file(self, path: str | PurePosixPath) -> bytes:
        """Read back the contents of a staged file."""
        target = staged_path(path)
        if target in self._dirs:
            raise IsADirectoryError(f"Is a directory: '{target}'")
        if (data := self._files.get(target)) is None:
            raise FileNotFoundError(f"No such file: '{target}'")
        return data

    async def exists(self, path: str | PurePosixPath) -> bool:
        """Return true if the file or directory exists."""
        target = staged_path(path)
        return target in self._files or target in self._dirs

    async def list_files(self) -> list[PurePosixPath]:
        """Return the sorted paths of all staged files."""
        return sorted(self._files)

    def cleanup(self) -> None:
        """Remove everything that was staged."""
        self._files.clear()
        self._dirs.clear()

    def __str__(self) -> str:
        """Render as a debug string."""
        return f"<in-memory: {len(self._files)} files>"
