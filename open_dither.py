"""
Open Dither command line.

Commands:
    list                               Show the available algorithms
    dither IMAGE -a KEY [-c] [-o NAME] Dither one image with a registry algorithm
    script IMAGE SCRIPT [-c] [-o NAME] Run a Lua script on one image
    batch PATH [PATH ...]              Dither every image using the .txt config among PATHs
"""

from pathlib import Path
from typing import List, Optional, Union
import argparse
import logging
import sys

from OD_Libs.EngineLib import (
    DecodeError,
    DitherEngine,
    DitherEngineConfig,
    create_default_registry,
)

logger = logging.getLogger("open_dither")


def _algorithm_key(value: str) -> Union[int, str]:
    value = value.strip()
    return int(value) if value.isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="open-dither",
        description="Dither images with built-in algorithms or Lua scripts",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List the available algorithms")

    dither = commands.add_parser("dither", help="Dither one image")
    dither.add_argument("image", type=Path, help="Input image")
    dither.add_argument(
        "-a", "--algorithm", type=_algorithm_key, required=True,
        help="Algorithm index (see 'list') or name",
    )
    dither.add_argument("-c", "--colored", action="store_true", help="Dither in color")
    dither.add_argument("-o", "--output", default=None, help="Output name without extension")

    script = commands.add_parser("script", help="Run a Lua script on one image")
    script.add_argument("image", type=Path, help="Input image")
    script.add_argument("script", type=Path, help="Lua script defining Execute()")
    script.add_argument("-c", "--colored", action="store_true", help="Skip the grayscale pre-step")
    script.add_argument("-o", "--output", default=None, help="Output name without extension")

    batch = commands.add_parser("batch", help="Batch process images with a .txt configuration")
    batch.add_argument("paths", type=Path, nargs="+", help="Images and one configuration file")

    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _list_algorithms() -> int:
    registry = create_default_registry()
    for meta in registry.get_all_metadata():
        print(f"{meta['index']}: {meta['name']} - {meta['description']}")
    return 0


def _dither(args: argparse.Namespace) -> int:
    with DitherEngine(DitherEngineConfig()) as engine:
        try:
            engine.load_image(args.image)
            engine.apply_algorithm(args.algorithm, args.colored)
            saved = engine.export(args.output)
        except (DecodeError, KeyError, ValueError, OSError) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    print(saved)
    return 0


def _script(args: argparse.Namespace) -> int:
    with DitherEngine(DitherEngineConfig()) as engine:
        try:
            engine.load_image(args.image)
        except DecodeError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

        error = engine.run_script(args.script, colored=args.colored)
        if error is not None:
            print(f"Lua error: {error}", file=sys.stderr)
            return 1

        try:
            saved = engine.export(args.output)
        except (ValueError, OSError) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    print(saved)
    return 0


def _batch(args: argparse.Namespace) -> int:
    with DitherEngine(DitherEngineConfig()) as engine:
        written = engine.process_batch(args.paths)

    for path in written:
        print(path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args)

    if args.command == "list":
        return _list_algorithms()
    if args.command == "dither":
        return _dither(args)
    if args.command == "script":
        return _script(args)
    return _batch(args)


if __name__ == "__main__":
    sys.exit(main())
