"""Resolves package records into the final directory tree.

Records for one asset share an identifier, and may come in any order: the
asset data, its optional ``.meta`` sidecar and the pathname record that gives
the asset its real location. Data is written as soon as it is read, named after
the pathname if it was already seen, or after the identifier otherwise. In the
second case the file is moved into place when the pathname arrives.
"""

import logging
import os
from typing import Callable, Iterable

from ununity.config import UnunityConfig, get_default_config
from ununity.exceptions import (
    ArchiveEOFError,
    FormatError,
    RenameError,
    UnsafePathError,
    WriteError,
)
from ununity.io_helpers import copy_exact, read_exact
from ununity.types import META_SUFFIX, Entry, EntryKind, ExtractionResult

logger = logging.getLogger(__name__)


def normalize_relative_path(
    name: str, *, allow_unsafe: bool = False, description: str = "path"
) -> str:
    """Convert a ``/``-separated path from the package to a host relative path.

    Raises:
        UnsafePathError: If the path is empty, absolute or escapes its root,
            unless ``allow_unsafe`` is set.
    """
    host_name = name.replace("/", os.sep)
    norm = os.path.normpath(host_name) if host_name else host_name
    if allow_unsafe:
        return norm

    if not norm or norm == os.curdir:
        raise UnsafePathError(f"Empty {description}: {name!r}")
    if os.path.isabs(norm) or os.path.splitdrive(norm)[0] or name.startswith("/"):
        raise UnsafePathError(f"Absolute {description} not allowed: {name!r}")
    if norm == os.pardir or norm.startswith(os.pardir + os.sep):
        raise UnsafePathError(f"{description.capitalize()} outside destination: {name!r}")
    return norm


class Resolver:
    """Single-pass writer for package entries.

    Holds the state for one extraction run: the resolved name of each
    identifier, and the files written under a placeholder name that are still
    waiting for their pathname record.
    """

    def __init__(
        self,
        output_root: str,
        *,
        include_meta: bool | None = None,
        config: UnunityConfig | None = None,
        on_path_resolved: Callable[[str], None] | None = None,
    ):
        self.config = config if config is not None else get_default_config()
        self.output_root = output_root
        self.include_meta = (
            self.config.include_meta if include_meta is None else include_meta
        )
        self.on_path_resolved = on_path_resolved

        self.known_names: dict[str, str] = {}
        self.pending_content_renames: dict[str, str] = {}
        self.pending_meta_renames: dict[str, str] = {}

        self._result = ExtractionResult(output_dir=output_root)
        self._output_root_created = False

    def _ensure_output_root(self) -> None:
        if self._output_root_created:
            return
        try:
            os.makedirs(self.output_root, exist_ok=True)
        except OSError as e:
            raise WriteError(
                f"Cannot create output directory '{self.output_root}': {e}",
                self.output_root,
            ) from e
        self._output_root_created = True

    def _placeholder_name(self, identifier: str) -> str:
        return normalize_relative_path(
            identifier,
            allow_unsafe=self.config.allow_unsafe_paths,
            description="identifier",
        )

    def _write_file(self, entry: Entry, target: str) -> None:
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "wb") as dst:
                written = (
                    copy_exact(
                        entry.payload, dst, entry.size, self.config.copy_buffer_size
                    )
                    if entry.payload is not None
                    else 0
                )
        except OSError as e:
            raise WriteError(f"Error creating '{target}': {e}", target) from e

        if written != entry.size:
            raise WriteError(
                f"Error extracting '{target}': expected {entry.size} bytes, got {written}",
                target,
            )

        self._result.files_written += 1
        self._result.bytes_written += written

    def _move(self, current: str, target: str) -> None:
        parent = os.path.dirname(target)
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise RenameError(
                f"Error creating output '{parent}': {e}", current, target
            ) from e

        try:
            os.replace(current, target)
        except OSError as e:
            raise RenameError(
                f"Error moving file from {current} to {target}: {e}", current, target
            ) from e
        logger.info(f"Moved {current} to {target}")
        self._remove_empty_parents(current, target)

    def _remove_empty_parents(self, current: str, target: str) -> None:
        # Identifiers containing "/" leave directories behind once their
        # placeholder file is moved away.
        root = os.path.abspath(self.output_root)
        parent = os.path.dirname(os.path.abspath(current))
        while parent != root and os.path.dirname(parent) != parent:
            if os.path.commonpath([root, parent]) != root:
                break
            try:
                if os.listdir(parent):
                    break
                os.rmdir(parent)
            except OSError as e:
                raise RenameError(
                    f"Error removing placeholder directory '{parent}': {e}",
                    current,
                    target,
                ) from e
            logger.debug(f"Removed empty placeholder directory {parent}")
            parent = os.path.dirname(parent)

    def _process_content(self, entry: Entry) -> None:
        identifier = entry.identifier
        is_meta = entry.kind == EntryKind.META_CONTENT

        base_name = self.known_names.get(identifier)
        if base_name is None:
            base_name = self._placeholder_name(identifier)
            pending = (
                self.pending_meta_renames if is_meta else self.pending_content_renames
            )
            pending[identifier] = os.path.join(
                self.output_root, base_name + META_SUFFIX if is_meta else base_name
            )
            logger.debug(f"Name of {identifier} not known yet, writing as {base_name}")

        if is_meta:
            base_name += META_SUFFIX

        self._write_file(entry, os.path.join(self.output_root, base_name))
        if identifier in self.known_names:
            self._mark_extracted(identifier)

    def _mark_extracted(self, identifier: str) -> None:
        self._result.extracted[identifier] = self.known_names[identifier].replace(
            os.sep, "/"
        )

    def _read_pathname(self, entry: Entry) -> str:
        data = read_exact(entry.payload, entry.size) if entry.payload is not None else b""
        if len(data) != entry.size:
            raise ArchiveEOFError(
                f"Error reading path info for {entry.identifier}: "
                f"expected {entry.size} bytes, got {len(data)}"
            )

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(
                f"Path info for {entry.identifier} is not valid UTF-8: {e}"
            ) from e

        # Some exporters append extra lines after the path.
        lines = text.strip().splitlines()
        return lines[0].strip() if lines else ""

    def _process_pathname(self, entry: Entry) -> None:
        identifier = entry.identifier
        path = self._read_pathname(entry)
        name = normalize_relative_path(
            path, allow_unsafe=self.config.allow_unsafe_paths, description="pathname"
        )

        previous = self.known_names.get(identifier)
        if previous is not None and previous != name:
            logger.warning(
                f"Pathname for {identifier} changed from {previous} to {name}, using the latest"
            )
        self.known_names[identifier] = name

        current = self.pending_content_renames.pop(identifier, None)
        if current is not None:
            self._move(current, os.path.join(self.output_root, name))
            self._mark_extracted(identifier)

        current = self.pending_meta_renames.pop(identifier, None)
        if current is not None:
            self._move(current, os.path.join(self.output_root, name + META_SUFFIX))
            self._mark_extracted(identifier)

        if self.on_path_resolved is not None:
            self.on_path_resolved(path)

    def process(self, entry: Entry) -> None:
        """Handle one entry. Entries must be passed in package order."""
        if entry.kind == EntryKind.OTHER:
            return
        if entry.kind == EntryKind.META_CONTENT and not self.include_meta:
            logger.debug(f"Skipping metadata for {entry.identifier}")
            return

        self._ensure_output_root()

        if entry.kind == EntryKind.PATH_NAME:
            self._process_pathname(entry)
        else:
            self._process_content(entry)

    def result(self) -> ExtractionResult:
        """Return the summary of the entries processed so far."""
        unresolved: dict[str, list[str]] = {}
        for pending in (self.pending_content_renames, self.pending_meta_renames):
            for identifier, path in pending.items():
                unresolved.setdefault(identifier, []).append(path)
        self._result.unresolved = unresolved
        return self._result

    def extract(self, entries: Iterable[Entry]) -> ExtractionResult:
        """Process all ``entries`` in a single pass."""
        self._ensure_output_root()
        for entry in entries:
            self.process(entry)

        result = self.result()
        for identifier, paths in result.unresolved.items():
            logger.warning(
                f"No pathname found for {identifier}, left as {', '.join(paths)}"
            )
        logger.info(
            f"Extracted {len(result.extracted)} assets to {self.output_root} "
            f"({result.files_written} files, {result.bytes_written} bytes)"
        )
        return result


def extract(
    entries: Iterable[Entry],
    output_root: str,
    include_meta: bool = True,
    *,
    config: UnunityConfig | None = None,
    on_path_resolved: Callable[[str], None] | None = None,
) -> ExtractionResult:
    """Write ``entries`` under ``output_root``, resolving their final names.

    Raises:
        WriteError: If a file cannot be created or fully written.
        RenameError: If a file cannot be moved to its resolved location.
        FormatError: If a pathname record is truncated, undecodable or unsafe.
    """
    resolver = Resolver(
        output_root,
        include_meta=include_meta,
        config=config,
        on_path_resolved=on_path_resolved,
    )
    return resolver.extract(entries)
