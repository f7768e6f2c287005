"""Module for a staging filesystem backed by a local directory."""

from collections.abc import Generator
from contextlib import contextmanager
import logging
from pathlib import Path, PurePosixPath
import shutil
import tempfile

import aiofiles
import aiofiles.os
from aiofiles.ospath import exists

from .fs import StagingFS, staged_path

_LOGGER = logging.getLogger(__name__)

_PREFIX = "kustomize-stage-"


class TempDirFS(StagingFS):
    """A StagingFS writing files below a root directory on local disk.

    The root directory is created on first write if it does not already exist.
    """

    def __init__(self, root: Path) -> None:
        """Initialize TempDirFS."""
        self._root = root

    @property
    def root(self) -> Path:
        """The directory holding the staged files."""
        return self._root

    def _path(self, path: str | PurePosixPath) -> Path:
        return self._root / staged_path(path)

    async def mkdir(self, path: str | PurePosixPath) -> None:
        """Create a directory and any missing parents."""
        await aiofiles.os.makedirs(self._path(path), exist_ok=True)

    async def write_file(self, path: str | PurePosixPath, data: bytes) -> None:
        """Write the contents of a file, creating parent directories as needed."""
        target = self._path(path)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        _LOGGER.debug("Writing %s (%d bytes)", target, len(data))
        async with aiofiles.open(str(target), mode="wb") as staged_file:
            await staged_file.write(data)

    async def read_file(self, path: str | PurePosixPath) -> bytes:
        """Read back the contents of a staged file."""
        async with aiofiles.open(str(self._path(path)), mode="rb") as staged_file:
            return await staged_file.read()

    async def exists(self, path: str | PurePosixPath) -> bool:
        """Return true if the file or directory exists."""
        return await exists(self._path(path))

    async def list_files(self) -> list[PurePosixPath]:
        """Return the sorted paths of all staged files."""
        if not self._root.is_dir():
            return []
        return sorted(
            PurePosixPath(path.relative_to(self._root).as_posix())
            for path in self._root.rglob("*")
            if path.is_file()
        )

    def cleanup(self) -> None:
        """Remove the root directory and everything in it."""
        if self._root.exists():
            _LOGGER.debug("Removing staging directory %s", self._root)
            shutil.rmtree(self._root)

    def __str__(self) -> str:
        """Render as a debug string."""
        return str(self._root)


@contextmanager
def temp_dir_fs(prefix: str = _PREFIX) -> Generator[TempDirFS, None, None]:
    """Context manager for a TempDirFS in a new temporary directory.

    The directory and its contents are removed on exit.
    """
    fs = TempDirFS(Path(tempfile.mkdtemp(prefix=prefix)))
    try:
        yield fs
    finally:
        fs.cleanup()
