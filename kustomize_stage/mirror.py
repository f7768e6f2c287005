"""Library for staging the sources of a kustomization into an isolated destination.

A kustomization may read files from disk through its generators, resources and
patches. The mirror discovers every file a kustomization transitively depends
on and copies exactly that set into a `StagingFS`, preserving the relative
layout so that `kustomize build` produces the same output when run against the
staged copy.

This example stages a kustomization into memory and lists the staged files:
```python
from pathlib import Path

from kustomize_stage.fs import InMemoryFS
from kustomize_stage.mirror import mirror

fs = InMemoryFS()
mapping = await mirror(Path("/path/to/app"), fs)
for path in await fs.list_files():
    print(f"Staged {path}")
```

Overlays commonly refer to a base in a sibling directory such as `../base`. The
staging root must then be a common ancestor of both:
```python
mapping = await mirror(Path("repo/overlays/prod"), fs, root=Path("repo"))
print(f"Build with: kustomize build {mapping.path}")
```
"""

from collections import deque
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path, PurePosixPath

import aiofiles
from aiofiles.ospath import isdir, isfile

from .exceptions import InputException, MirrorConflictError, ResolutionError
from .fs import StagingFS
from .manifest import find_kustomization, read_kustomization

__all__ = [
    "mirror",
    "MirrorMapping",
]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorMapping:
    """The result of staging a kustomization."""

    kustomization: PurePosixPath
    """The staged path of the root kustomization document."""

    files: dict[PurePosixPath, Path] = field(default_factory=dict)
    """Staged relative path of every file mapped to its absolute source path."""

    @property
    def path(self) -> PurePosixPath:
        """The staged directory to pass to `kustomize build`."""
        return self.kustomization.parent


def _normalize(path: Path) -> Path:
    """Return an absolute path with `.` and `..` components removed."""
    return Path(os.path.normpath(path.absolute()))


def _walk_files(path: Path) -> list[Path]:
    """Return every file below a directory in sorted order."""
    found = []
    for root, _, files in os.walk(str(path)):
        found.extend(Path(root) / file for file in files)
    return sorted(found)


class _MirrorPlan:
    """Files scheduled to be copied, keyed by staged path."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self.files: dict[PurePosixPath, Path] = {}

    def resolve(self, base: Path, entry: str, ref: str) -> Path:
        """Return the source path of an entry relative to a kustomization directory."""
        if PurePosixPath(entry).is_absolute():
            raise ResolutionError(ref, entry, "is not a relative path")
        source = _normalize(base / entry)
        if not source.is_relative_to(self._root):
            raise ResolutionError(
                ref, str(source), f"is outside of the staging root {self._root}"
            )
        return source

    def add(self, source: Path) -> PurePosixPath:
        """Schedule a source file to be copied, returning the staged path."""
        dest = PurePosixPath(source.relative_to(self._root).as_posix())
        if dest in self.files:
            return dest
        _LOGGER.debug("Planning %s -> %s", source, dest)
        self.files[dest] = source
        return dest


async def mirror(
    source_dir: Path,
    destination: StagingFS,
    *,
    root: Path | None = None,
    include_resources: bool = True,
) -> MirrorMapping:
    """Copy a kustomization and the files it depends on into the destination.

    The full set of files is resolved and read before anything is written, so a
    missing or malformed input leaves the destination untouched. A file already
    present in the destination with different contents raises
    `MirrorConflictError`, identical files are left as is. Nested kustomization
    directories referenced as resources are visited once each.

    The destination root corresponds to `root`, which defaults to `source_dir`.
    When `include_resources` is false only kustomization documents and generator
    inputs are staged. Helm chart directories are staged with every file below
    them.
    """
    source_dir = _normalize(source_dir)
    root = _normalize(root) if root is not None else source_dir
    if not source_dir.is_relative_to(root):
        raise InputException(
            f"Kustomization directory {source_dir} is not inside the staging root {root}"
        )

    plan = _MirrorPlan(root)
    kustomization = plan.add(await find_kustomization(source_dir))
    pending: deque[Path] = deque([source_dir])
    visited: set[Path] = set()
    while pending:
        ks_dir = pending.popleft()
        if (key := ks_dir.resolve()) in visited:
            _LOGGER.debug("Skipping already visited kustomization %s", ks_dir)
            continue
        visited.add(key)

        ks_path = await find_kustomization(ks_dir)
        ks = await read_kustomization(ks_path)
        plan.add(ks_path)

        for gen_ref in ks.generator_references():
            source = plan.resolve(ks_dir, gen_ref.path, str(gen_ref))
            if not await isfile(source):
                raise ResolutionError(str(gen_ref), str(source))
            plan.add(source)

        for path_ref in ks.path_references():
            source = plan.resolve(ks_dir, path_ref.path, str(path_ref))
            if path_ref.directory_allowed and await isdir(source):
                pending.append(source)
                continue
            if not include_resources:
                continue
            if path_ref.tree:
                if await isdir(source):
                    for file in _walk_files(source):
                        plan.add(file)
                elif not path_ref.optional:
                    raise ResolutionError(
                        str(path_ref), str(source), "is not a directory"
                    )
                continue
            if not await isfile(source):
                raise ResolutionError(str(path_ref), str(source))
            plan.add(source)

    contents: dict[PurePosixPath, bytes] = {}
    for dest, source in plan.files.items():
        async with aiofiles.open(str(source), mode="rb") as source_file:
            contents[dest] = await source_file.read()

    # Files left by an earlier mirror into the same destination must match
    for dest, data in contents.items():
        if not await destination.exists(dest):
            continue
        try:
            existing = await destination.read_file(dest)
        except IsADirectoryError as err:
            raise MirrorConflictError(
                f"Staged path {dest} is a directory in {destination}"
            ) from err
        if existing != data:
            raise MirrorConflictError(
                f"Staged path {dest} already exists in {destination} with contents "
                f"that differ from {plan.files[dest]}"
            )

    for dest, data in contents.items():
        await destination.write_file(dest, data)
    _LOGGER.debug(
        "Staged %d files from %s into %s", len(plan.files), source_dir, destination
    )
    return MirrorMapping(kustomization=kustomization, files=dict(plan.files))
