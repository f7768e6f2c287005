"""Exceptions related to kustomize-stage."""

__all__ = [
    "StageException",
    "InputException",
    "KustomizationParseError",
    "ResolutionError",
    "MirrorConflictError",
    "CommandException",
    "KustomizeException",
    "KustomizePathException",
]


class StageException(Exception):
    """Generic base exception used for this library."""


class InputException(StageException):
    """Raised when the input files or values are not formatted as expected."""


class KustomizationParseError(InputException):
    """Raised when a kustomization document is missing or malformed."""


class ResolutionError(InputException):
    """Raised when a file referenced by a kustomization can't be resolved."""

    def __init__(self, entry: str, path: str, reason: str = "does not exist") -> None:
        super().__init__(
            f"Kustomization entry {entry} references {path} which {reason}"
        )
        self.entry = entry
        self.path = path


class MirrorConflictError(InputException):
    """Raised when two different source files map to the same staged path."""


class CommandException(StageException):
    """Raised when there is a failure running a subcommand."""


class KustomizeException(CommandException):
    """Raised when there is a failure running a kustomize command."""


class KustomizePathException(KustomizeException):
    """Raised when a kustomize build points to a path that does not exist."""
