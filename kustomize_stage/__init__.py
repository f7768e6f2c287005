"""
kustomize-stage runs `kustomize build` safely against a staged copy of a source tree.

- `kustomize_stage.mirror` copies a kustomization and every file it depends on
  into an isolated destination, preserving the relative layout.
- `kustomize_stage.args` assembles the argument vector for `kustomize build`.
- `kustomize_stage.kustomize` runs the build, optionally against a staged copy.
"""

__all__ = [
    "args",
    "manifest",
    "mirror",
    "fs",
    "kustomize",
    "command",
    "config",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
