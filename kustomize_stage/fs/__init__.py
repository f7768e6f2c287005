"""
The fs module provides the destination that kustomization sources are staged into.

- `StagingFS` is the abstract interface used by the mirror: create directories,
  write files and read them back using paths relative to the staging root.
- `InMemoryFS` keeps staged files in memory, useful for inspection and tests.
- `TempDirFS` writes to a local directory so an external `kustomize build` can
  be pointed at it, and supports removing it once the build is finished.
"""

from .fs import StagingFS, staged_path
from .in_memory import InMemoryFS
from .temp_dir import TempDirFS, temp_dir_fs

__all__ = [
    "StagingFS",
    "staged_path",
    "InMemoryFS",
    "TempDirFS",
    "temp_dir_fs",
]
