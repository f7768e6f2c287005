"""Library for assembling the arguments of a `kustomize build` invocation.

Build arguments typically come from configuration where a single entry may hold
more than one flag, for example `"--load-restrictor LoadRestrictionsNone"`. These
are split into individual tokens so they can be passed directly to a process
without a shell:

```python
from kustomize_stage.args import build_args

args = build_args(["--enable-helm", "--load-restrictor LoadRestrictionsNone"], "overlays/prod")
# ["--enable-helm", "--load-restrictor", "LoadRestrictionsNone", "overlays/prod"]
```
"""

from collections.abc import Sequence

__all__ = [
    "build_args",
]


def build_args(build_arguments: Sequence[str], kustomize_path: str = "") -> list[str]:
    """Return the flattened argument vector for a kustomize build.

    Each build argument is split on whitespace, keeping the tokens in order. The
    kustomize path is appended last as a single token and is never split.
    """
    args: list[str] = []
    for arg in build_arguments:
        args.extend(arg.split())
    if kustomize_path:
        args.append(kustomize_path)
    return args
