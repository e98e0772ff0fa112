# Command-line front end: extracts a .unitypackage into a directory tree.

import argparse
import logging
import sys
from dataclasses import replace
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from ununity.config import UnunityConfig, get_default_config
from ununity.core import default_output_dir, extract_package
from ununity.dependency_checker import (
    format_dependency_versions,
    get_dependency_versions,
)
from ununity.exceptions import UnunityError, UsageError
from ununity.types import Entry

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ununity",
        description="Extracts .unitypackage files into their normalized directory structure",
    )
    parser.add_argument("archive", nargs="?", help="Package file to extract")
    parser.add_argument(
        "-o",
        "--output",
        help="Destination output folder. Defaults to the name of the input archive without suffix",
    )
    parser.add_argument(
        "--nometa",
        action="store_true",
        help="Does not write metadata files (.meta) alongside the asset files",
    )
    parser.add_argument(
        "--use-rapidgzip",
        action="store_true",
        help="Use rapidgzip for decompressing the package",
    )
    parser.add_argument(
        "--allow-unsafe-paths",
        action="store_true",
        help="Allow asset paths that are absolute or point outside the output folder",
    )
    parser.add_argument("--hide-progress", action="store_true", help="Hide progress bar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--version", action="store_true", help="Print version information and exit"
    )
    return parser


def _print_version() -> None:
    try:
        ver = package_version("ununity")
    except PackageNotFoundError:
        ver = "unknown"
    print(f"ununity {ver}")
    print(format_dependency_versions(get_dependency_versions()))


def run(args: argparse.Namespace, config: UnunityConfig) -> None:
    if args.archive is None:
        raise UsageError("no path or file provided")

    output_dir = args.output if args.output else default_output_dir(args.archive)

    with tqdm(
        desc="Extracting",
        unit=" entries",
        disable=args.hide_progress,
    ) as progress:

        def on_entry(entry: Entry) -> None:
            progress.update(1)

        def on_path_resolved(path: str) -> None:
            progress.set_postfix_str(path, refresh=False)

        with logging_redirect_tqdm():
            result = extract_package(
                args.archive,
                output_dir,
                include_meta=not args.nometa,
                config=config,
                on_entry=on_entry,
                on_path_resolved=on_path_resolved,
            )

    for identifier, paths in result.unresolved.items():
        print(f"warning: no pathname for {identifier}, left as {', '.join(paths)}")
    print("Extracted successfully.")


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if args.version:
        _print_version()
        return 0

    config = get_default_config()
    if args.use_rapidgzip:
        config = replace(config, use_rapidgzip=True)
    if args.allow_unsafe_paths:
        config = replace(config, allow_unsafe_paths=True)

    try:
        run(args, config)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        return 2
    except UnunityError as e:
        logger.debug("Extraction failed", exc_info=e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
