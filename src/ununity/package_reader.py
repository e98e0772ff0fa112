import logging
import posixpath
import tarfile
from typing import BinaryIO, Iterator, Optional

from ununity.compressed_streams import open_stream
from ununity.config import UnunityConfig, get_default_config
from ununity.exceptions import ArchiveEOFError, FormatError, UnunityError
from ununity.io_helpers import ExceptionTranslatingIO
from ununity.types import Entry, EntryKind

logger = logging.getLogger(__name__)

_KINDS_BY_BASENAME = {
    kind.value: kind
    for kind in (EntryKind.CONTENT, EntryKind.META_CONTENT, EntryKind.PATH_NAME)
}


def _translate_tar_exception(e: Exception) -> Optional[UnunityError]:
    if isinstance(e, tarfile.ReadError):
        if "unexpected end of data" in str(e).lower():
            return ArchiveEOFError("Package tar stream is truncated")
        return FormatError(f"Error reading package tar stream: {e}")
    elif isinstance(e, tarfile.TarError):
        return FormatError(f"Error reading package tar stream: {e}")
    return None


def classify_entry(name: str, size: int) -> tuple[str, EntryKind]:
    """Split a record name into its identifier and kind.

    Record names have the form ``<identifier>/<basename>``. Directory
    placeholders (where the identifier is the whole name) and empty records
    are classified as :attr:`EntryKind.OTHER`.
    """
    if name.startswith("./"):
        name = name[2:]

    if name.endswith("/"):
        identifier = name.rstrip("/")
        basename = posixpath.basename(identifier)
    else:
        identifier = posixpath.dirname(name)
        basename = posixpath.basename(name)

    if not identifier or identifier == basename or size < 1:
        return identifier or basename, EntryKind.OTHER

    return identifier, _KINDS_BY_BASENAME.get(basename, EntryKind.OTHER)


class PackageReader:
    """Sequential reader for the records of a gzip-compressed package.

    The package is read in a single forward pass. Each :class:`Entry` payload
    must be consumed before advancing to the next one.
    """

    def __init__(
        self,
        source: str | BinaryIO,
        *,
        config: UnunityConfig | None = None,
    ):
        self.config = config if config is not None else get_default_config()
        self.source = source

        logger.debug(f"PackageReader init: {source}")
        self._fileobj: BinaryIO | None = open_stream(source, self.config)
        self._archive: tarfile.TarFile | None = None

        try:
            # Streaming mode, as the decompressed stream is not seekable.
            self._archive = tarfile.open(fileobj=self._fileobj, mode="r|", errorlevel=2)
        except tarfile.TarError as e:
            self.close()
            translated = _translate_tar_exception(e)
            if translated is not None:
                raise translated from e
            raise
        except UnunityError:
            self.close()
            raise

    def close(self) -> None:
        """Close the package and release any resources.

        A file object passed by the caller is left open.
        """
        if self._archive is not None:
            self._archive.close()
            self._archive = None
        if self._fileobj is not None:
            self._fileobj.close()
            self._fileobj = None

    def __enter__(self) -> "PackageReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_payload(self, tarinfo: tarfile.TarInfo) -> BinaryIO:
        def _open_stream():
            assert self._archive is not None
            stream = self._archive.extractfile(tarinfo)
            if stream is None:
                raise FormatError(f"Record {tarinfo.name} cannot be opened")
            return stream

        return ExceptionTranslatingIO(_open_stream, _translate_tar_exception)

    def _check_end_of_archive(self) -> None:
        # The tar reader stops quietly on a missing or cut-short header past the
        # first record. It has only reached the end-of-archive marker if it read
        # a full zero block at the offset where the next record would start.
        assert self._archive is not None
        stream = self._archive.fileobj
        end_offset = self._archive.offset
        if stream.tell() != end_offset + tarfile.BLOCKSIZE:
            raise ArchiveEOFError(
                f"Package tar stream is truncated: no complete record header at offset {end_offset}"
            )

        if not self.config.check_integrity:
            return

        data = stream.read(tarfile.BLOCKSIZE)
        if len(data) < tarfile.BLOCKSIZE:
            raise ArchiveEOFError("Missing end-of-archive block after last record")
        if data != tarfile.NUL * tarfile.BLOCKSIZE:
            raise FormatError("Invalid data after last record")

    def _check_integrity(self) -> None:
        # Reading the rest of the decompressed stream makes the gzip layer
        # verify its trailer.
        assert self._fileobj is not None
        while self._fileobj.read(self.config.copy_buffer_size):
            pass

    def iter_entries(self) -> Iterator[Entry]:
        """Yield the package records in stream order."""
        if self._archive is None:
            raise ValueError("Package is closed")

        try:
            for tarinfo in self._archive:
                identifier, kind = classify_entry(tarinfo.name, tarinfo.size)
                if not tarinfo.isfile():
                    kind = EntryKind.OTHER

                logger.debug(
                    f"Record {tarinfo.name}: identifier={identifier} kind={kind.value} size={tarinfo.size}"
                )
                yield Entry(
                    identifier=identifier,
                    kind=kind,
                    size=tarinfo.size,
                    payload=self._open_payload(tarinfo)
                    if kind != EntryKind.OTHER
                    else None,
                    name=tarinfo.name,
                )

            self._check_end_of_archive()
            if self.config.check_integrity:
                self._check_integrity()

        except tarfile.TarError as e:
            translated = _translate_tar_exception(e)
            if translated is not None:
                raise translated from e
            raise


def open_package(
    source: str | BinaryIO, *, config: UnunityConfig | None = None
) -> PackageReader:
    """Open a package for sequential reading.

    Args:
        source: Path to the package file, or a binary file object positioned at
            the start of the gzip stream.
        config: Configuration to use. Defaults to :func:`get_default_config`.
    """
    return PackageReader(source, config=config)
