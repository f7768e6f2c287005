"""Library for running `kustomize build` against a staged copy of a source tree.

This example builds a kustomization directly and returns the objects:
```python
from kustomize_stage import kustomize

objects = await kustomize.build(Path("/path/to/app"), ["--enable-helm"]).objects()
for object in objects:
    print(f"Found object {object['apiVersion']} {object['kind']}")
```

Sources that are read-only, or that should not have absolute host paths leak
into generated output, can be staged into a temporary directory first. The
directory is removed when the context exits:
```python
from kustomize_stage import kustomize

async with kustomize.stage(Path("/path/to/app")) as staged_path:
    objects = await kustomize.build(staged_path).grep("kind=ConfigMap").objects()
```
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
import logging
from pathlib import Path
from typing import Any, AsyncGenerator

from aiofiles.ospath import isdir
import yaml

from .args import build_args
from .command import Command, run_piped, Task, format_path
from .config import StageConfig
from .exceptions import InputException, KustomizeException, KustomizePathException
from .fs import temp_dir_fs
from .mirror import mirror

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "build",
    "stage",
    "staged_build",
    "Kustomize",
]

KUSTOMIZE_BIN = "kustomize"


class Kustomize:
    """Library for issuing a kustomize command."""

    def __init__(self, cmds: list[Task]) -> None:
        """Initialize Kustomize, used internally for copying object."""
        self._cmds = cmds

    def grep(self, expr: str, invert: bool = False) -> "Kustomize":
        """Filter resources based on an expression.

        Example expressions:
          `kind=ConfigMap`
          `metadata.name=redis`
        """
        out = [KUSTOMIZE_BIN, "cfg", "grep", expr]
        if invert:
            out.append("--invert-match")
        return Kustomize(self._cmds + [Command(out, exc=KustomizeException)])

    def skip_resources(self, kinds: list[str]) -> "Kustomize":
        """Skip resources kinds of the specified types."""
        if not kinds:
            return self
        skip_re = "|".join(kinds)
        return self.grep(f"kind=^({skip_re})$", invert=True)

    async def run(self) -> str:
        """Run the kustomize command and return the output as a string."""
        return await run_piped(self._cmds)

    async def _docs(self) -> AsyncGenerator[dict[str, Any], None]:
        """Run the kustomize command and return the result documents."""
        out = await self.run()
        for doc in yaml.safe_load_all(out):
            if doc is None:
                continue
            yield doc

    async def objects(self) -> list[dict[str, Any]]:
        """Run the kustomize command and return the result cluster objects as a list."""
        try:
            return [doc async for doc in self._docs()]
        except yaml.YAMLError as err:
            raise KustomizeException(
                f"Unable to parse command output: {self._cmds}: {err}"
            ) from err


class KustomizeBuild(Task):
    """A task that issues a kustomize build command."""

    def __init__(self, path: Path, build_arguments: Sequence[str]) -> None:
        """Initialize KustomizeBuild."""
        self._path = path
        self._build_arguments = build_arguments

    def command(self) -> Command:
        """Return the command for the build.

        An absolute path is used as the working directory so it does not appear
        in the arguments.
        """
        cwd: Path | None = None
        path = str(self._path)
        if self._path.is_absolute():
            cwd = self._path
            path = "."
        args = [KUSTOMIZE_BIN, "build", *build_args(self._build_arguments, path)]
        return Command(args, cwd=cwd, exc=KustomizeException)

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the task."""
        if stdin is not None:
            raise InputException("Invalid stdin cannot be passed to build command")
        if not await isdir(self._path):
            raise KustomizePathException(
                f"Kustomization path is not a directory: {self._path}"
            )
        return await self.command().run()

    def __str__(self) -> str:
        """Render as a debug string."""
        return f"kustomize build {format_path(self._path)}"


def build(path: Path, build_arguments: Sequence[str] = ()) -> Kustomize:
    """Build cluster artifacts from the specified path."""
    return Kustomize(cmds=[KustomizeBuild(path, build_arguments)])


@asynccontextmanager
async def stage(
    source_dir: Path,
    *,
    root: Path | None = None,
    include_resources: bool = True,
) -> AsyncIterator[Path]:
    """Mirror a kustomization into a temporary directory, yielding its staged path.

    The temporary directory is removed on exit, including when staging fails.
    """
    with temp_dir_fs() as fs:
        mapping = await mirror(
            source_dir, fs, root=root, include_resources=include_resources
        )
        staged_path = fs.root / mapping.path
        _LOGGER.debug("Staged %s at %s", source_dir, staged_path)
        yield staged_path


async def staged_build(source_dir: Path, config: StageConfig) -> list[dict[str, Any]]:
    """Stage the kustomization and build it, returning the cluster objects."""
    async with stage(
        source_dir, root=config.root, include_resources=config.include_resources
    ) as staged_path:
        return await build(staged_path, config.build_args).objects()
