import logging
import os
from typing import BinaryIO, Callable, Iterator

from ununity.config import UnunityConfig, get_default_config
from ununity.exceptions import InputError
from ununity.package_reader import open_package
from ununity.resolver import Resolver
from ununity.types import Entry, ExtractionResult

logger = logging.getLogger(__name__)


def default_output_dir(path: str | os.PathLike) -> str:
    """Return the default output directory for the package at ``path``.

    This is the package file name without its extension, relative to the
    current directory, or ``"."`` if the name has no extension.
    """
    basename = os.path.basename(os.fspath(path))
    stem, ext = os.path.splitext(basename)
    if not ext or not stem:
        return os.curdir
    return stem


def _notify_entries(
    entries: Iterator[Entry], on_entry: Callable[[Entry], None]
) -> Iterator[Entry]:
    for entry in entries:
        on_entry(entry)
        yield entry


def extract_package(
    source: str | os.PathLike | BinaryIO,
    output_dir: str | os.PathLike | None = None,
    *,
    include_meta: bool | None = None,
    config: UnunityConfig | None = None,
    on_entry: Callable[[Entry], None] | None = None,
    on_path_resolved: Callable[[str], None] | None = None,
) -> ExtractionResult:
    """Extract a package into a directory tree with the original asset paths.

    Args:
        source: Path to the package, or a binary file object with its contents.
        output_dir: Where to write the assets. Defaults to
            :func:`default_output_dir` for paths; required for file objects.
        include_meta: Whether to write ``.meta`` files. Defaults to the
            config's ``include_meta``.
        config: Configuration to use. Defaults to :func:`get_default_config`.
        on_entry: Called with every entry before it is processed.
        on_path_resolved: Called with each asset path as it becomes known.

    Raises:
        InputError: If the package file does not exist or cannot be opened.
        FormatError: If the package is corrupted or truncated.
        ExtractError: If the output tree cannot be written.
    """
    if config is None:
        config = get_default_config()

    if isinstance(source, (str, os.PathLike)):
        source = os.fspath(source)
        if not os.path.isfile(source):
            raise InputError(f"Package file not found: {source}", source)
        if output_dir is None:
            output_dir = default_output_dir(source)
    elif output_dir is None:
        raise ValueError("output_dir is required when extracting from a file object")

    output_dir = os.fspath(output_dir)
    logger.info(f"Extracting {source} to {output_dir}")

    with open_package(source, config=config) as package:
        entries = package.iter_entries()
        if on_entry is not None:
            entries = _notify_entries(entries, on_entry)

        resolver = Resolver(
            output_dir,
            include_meta=include_meta,
            config=config,
            on_path_resolved=on_path_resolved,
        )
        return resolver.extract(entries)
