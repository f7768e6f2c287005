"""kustomize-stage mirror action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import logging
import pathlib
from typing import cast

from kustomize_stage.fs import TempDirFS
from kustomize_stage.mirror import mirror

_LOGGER = logging.getLogger(__name__)


class MirrorAction:
    """kustomize-stage mirror action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "mirror",
                help="Copy a kustomization and the files it references to a directory",
                description="""Stage the files needed to build a kustomization
                    into a destination directory, preserving their relative layout.
                    The staged paths are printed one per line.""",
            ),
        )
        args.add_argument(
            "path", type=pathlib.Path, help="Directory holding the kustomization"
        )
        args.add_argument(
            "destination", type=pathlib.Path, help="Directory to stage files into"
        )
        args.add_argument(
            "--root",
            type=pathlib.Path,
            default=None,
            help="Directory the destination corresponds to, must contain the path",
        )
        args.add_argument(
            "--include-resources",
            default=True,
            action=BooleanOptionalAction,
            help="Stage resources and patches in addition to generator inputs",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        destination: pathlib.Path,
        root: pathlib.Path | None,
        include_resources: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        fs = TempDirFS(destination)
        mapping = await mirror(
            path, fs, root=root, include_resources=include_resources
        )
        _LOGGER.info("Staged kustomization at %s", destination / mapping.path)
        for staged in mapping.files:
            print(staged)
