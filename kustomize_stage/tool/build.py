"""kustomize-stage build action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import logging
import pathlib
from typing import cast

import yaml

from kustomize_stage.config import StageConfig
from kustomize_stage.kustomize import staged_build

_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """kustomize-stage build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Build a kustomization from a staged copy of its sources",
                description="""Stage a kustomization into a temporary directory
                    then run kustomize build against it. The temporary directory is
                    removed once the build finishes.""",
            ),
        )
        args.add_argument(
            "path", type=pathlib.Path, help="Directory holding the kustomization"
        )
        args.add_argument(
            "--build-arg",
            dest="build_args",
            action="append",
            default=[],
            help="Argument for kustomize build, may be repeated e.g. --build-arg=--enable-helm",
        )
        args.add_argument(
            "--root",
            type=pathlib.Path,
            default=None,
            help="Directory the staged copy corresponds to, must contain the path",
        )
        args.add_argument(
            "--include-resources",
            default=True,
            action=BooleanOptionalAction,
            help="Stage resources and patches in addition to generator inputs",
        )
        args.add_argument(
            "--output-file",
            type=str,
            default="/dev/stdout",
            help="Output file for the results of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        build_args: list[str],
        root: pathlib.Path | None,
        include_resources: bool,
        output_file: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = StageConfig(
            build_args=build_args, root=root, include_resources=include_resources
        )
        objects = await staged_build(path, config)
        _LOGGER.info("Built %d objects from %s", len(objects), path)
        with open(output_file, "w") as output:
            yaml.dump_all(objects, output, sort_keys=False, explicit_start=True)
