"""Command line tool for staging kustomization sources and building them."""

import argparse
import asyncio
import logging
import sys
import traceback

from kustomize_stage.exceptions import StageException
from . import build, mirror

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for staging kustomization sources.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    mirror.MirrorAction.register(subparsers)
    build.BuildAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """kustomize-stage command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except StageException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("kustomize-stage error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
