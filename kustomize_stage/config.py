"""Configuration objects for kustomize-stage."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class StageConfig:
    """Configuration for a staged kustomize build."""

    build_args: list[str] = field(default_factory=list)
    """Extra arguments for `kustomize build`, each may hold several flags."""

    root: Path | None = None
    """Directory the staging destination corresponds to, defaults to the source."""

    include_resources: bool = True
    """Stage resources and patches in addition to generator inputs."""
